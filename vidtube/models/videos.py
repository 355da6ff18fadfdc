from pydantic import Field

from vidtube.models.base import PyObjectId, Record


class Video(Record):
    video_file: str = Field(..., alias="videoFile")
    thumbnail: str
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    duration: float = Field(default=0, ge=0)
    views: int = Field(default=0, ge=0)
    is_published: bool = Field(default=True, alias="isPublished")
    owner: PyObjectId
