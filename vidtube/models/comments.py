from pydantic import Field

from vidtube.models.base import PyObjectId, Record


class Comment(Record):
    content: str = Field(..., min_length=1)
    video: PyObjectId
    owner: PyObjectId


class Tweet(Record):
    content: str = Field(..., min_length=1)
    owner: PyObjectId
