from typing import Any, Dict, List

from bson import ObjectId
from loguru import logger

from vidtube.core.errors import NotFoundError, ValidationError
from vidtube.db.indexes import USERS, VIDEOS
from vidtube.db.repository import PlaylistRepository, to_object_id
from vidtube.db.store import DocumentStore
from vidtube.models.social import Playlist
from vidtube.schemas.content import PlaylistCreate, PlaylistUpdate
from vidtube.services import graph
from vidtube.services.video_service import ensure_owner


def _ordered(playlist: Dict[str, Any]) -> Dict[str, Any]:
    playlist["videos"] = graph.order_by_ids(playlist.get("videos", []), playlist.pop("videoDocs", []))
    playlist["totalVideos"] = len(playlist["videos"])
    return playlist


class PlaylistService:
    def __init__(self, store: DocumentStore):
        self.store = store
        self.playlists = PlaylistRepository(store)

    async def _owned(self, playlist_id: str, user_id: ObjectId) -> Playlist:
        playlist = await self.playlists.find_by_id(to_object_id(playlist_id, "playlist id"))
        if playlist is None:
            raise NotFoundError("Playlist not found.")
        ensure_owner(playlist.owner, user_id, "playlist")
        return playlist

    async def create(self, user_id: ObjectId, payload: PlaylistCreate) -> Playlist:
        playlist = await self.playlists.create(
            self.playlists.build(name=payload.name, description=payload.description, owner=user_id)
        )
        logger.info(f"User {user_id} created playlist {playlist.id}")
        return playlist

    async def user_playlists(self, user_id: str, viewer_id: ObjectId) -> List[Dict[str, Any]]:
        oid = to_object_id(user_id, "user id")
        if not await self.store.find_one(USERS, {"_id": oid}):
            raise NotFoundError("User not found.")
        return [_ordered(doc) for doc in await self.store.aggregate(graph.playlists({"owner": oid}, viewer_id))]

    async def get(self, playlist_id: str, viewer_id: ObjectId) -> Dict[str, Any]:
        oid = to_object_id(playlist_id, "playlist id")
        found = await self.store.aggregate(graph.playlists({"_id": oid}, viewer_id))
        if not found:
            raise NotFoundError("Playlist not found.")
        return _ordered(found[0])

    async def update(self, playlist_id: str, user_id: ObjectId, payload: PlaylistUpdate) -> Playlist:
        playlist = await self._owned(playlist_id, user_id)
        changes = payload.model_dump(exclude_none=True)
        updated = await self.playlists.update(playlist.id, {"$set": changes})
        if updated is None:
            raise NotFoundError("Playlist not found.")
        return updated

    async def delete(self, playlist_id: str, user_id: ObjectId) -> None:
        playlist = await self._owned(playlist_id, user_id)
        await self.playlists.delete(playlist.id)
        logger.info(f"User {user_id} deleted playlist {playlist.id}")

    async def add_video(self, playlist_id: str, video_id: str, user_id: ObjectId) -> Playlist:
        playlist = await self._owned(playlist_id, user_id)
        video = to_object_id(video_id, "video id")
        if not await self.store.find_one(VIDEOS, {"_id": video, **graph.visible_to(user_id)}):
            raise NotFoundError("Video not found.")

        # the membership check and the push are one conditional update
        updated = await self.playlists.update(
            playlist.id,
            {"$push": {"videos": video}},
            extra_filter={"videos": {"$ne": video}},
        )
        if updated is None:
            raise ValidationError("Video is already in the playlist.")
        return updated

    async def remove_video(self, playlist_id: str, video_id: str, user_id: ObjectId) -> Playlist:
        playlist = await self._owned(playlist_id, user_id)
        video = to_object_id(video_id, "video id")
        if video not in playlist.videos:
            raise NotFoundError("Video is not in the playlist.")
        updated = await self.playlists.update(playlist.id, {"$pull": {"videos": video}})
        if updated is None:
            raise NotFoundError("Playlist not found.")
        return updated
