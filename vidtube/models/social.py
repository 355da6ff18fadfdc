from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field, model_validator

from vidtube.models.base import PyObjectId, Record


class LikeTarget(str, Enum):
    VIDEO = "video"
    COMMENT = "comment"
    TWEET = "tweet"


class Like(Record):
    liked_by: PyObjectId = Field(..., alias="likedBy")
    video: Optional[PyObjectId] = None
    comment: Optional[PyObjectId] = None
    tweet: Optional[PyObjectId] = None

    @model_validator(mode="after")
    def single_target(self) -> "Like":
        targets = [t for t in (self.video, self.comment, self.tweet) if t is not None]
        if len(targets) != 1:
            raise ValueError("A like references exactly one of video, comment or tweet")
        return self

    @classmethod
    def key(cls, actor: PyObjectId, kind: LikeTarget, target: PyObjectId) -> Dict[str, Any]:
        return {"likedBy": actor, kind.value: target}


class Subscription(Record):
    subscriber: PyObjectId
    channel: PyObjectId

    @classmethod
    def key(cls, subscriber: PyObjectId, channel: PyObjectId) -> Dict[str, Any]:
        return {"subscriber": subscriber, "channel": channel}


class Playlist(Record):
    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    owner: PyObjectId
    videos: List[PyObjectId] = Field(default_factory=list)
