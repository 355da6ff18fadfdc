from fastapi import APIRouter, Depends, status

from vidtube.api.deps import get_playlist_service
from vidtube.core.responses import respond
from vidtube.schemas.content import PlaylistCreate, PlaylistUpdate
from vidtube.schemas.user import UserPublic
from vidtube.services.playlist_service import PlaylistService
from vidtube.utils.security import get_current_user

playlists_router = APIRouter()


@playlists_router.post("")
async def create_playlist(
    payload: PlaylistCreate,
    current_user: UserPublic = Depends(get_current_user),
    service: PlaylistService = Depends(get_playlist_service),
):
    playlist = await service.create(current_user.id, payload)
    return respond(playlist, "Playlist created successfully.", status.HTTP_201_CREATED)


@playlists_router.get("/user/{user_id}")
async def user_playlists(
    user_id: str,
    current_user: UserPublic = Depends(get_current_user),
    service: PlaylistService = Depends(get_playlist_service),
):
    playlists = await service.user_playlists(user_id, current_user.id)
    return respond(playlists, "Playlists fetched successfully.")


@playlists_router.patch("/add/{video_id}/{playlist_id}")
async def add_video(
    video_id: str,
    playlist_id: str,
    current_user: UserPublic = Depends(get_current_user),
    service: PlaylistService = Depends(get_playlist_service),
):
    playlist = await service.add_video(playlist_id, video_id, current_user.id)
    return respond(playlist, "Video added to playlist successfully.")


@playlists_router.patch("/remove/{video_id}/{playlist_id}")
async def remove_video(
    video_id: str,
    playlist_id: str,
    current_user: UserPublic = Depends(get_current_user),
    service: PlaylistService = Depends(get_playlist_service),
):
    playlist = await service.remove_video(playlist_id, video_id, current_user.id)
    return respond(playlist, "Video removed from playlist successfully.")


@playlists_router.get("/{playlist_id}")
async def get_playlist(
    playlist_id: str,
    current_user: UserPublic = Depends(get_current_user),
    service: PlaylistService = Depends(get_playlist_service),
):
    playlist = await service.get(playlist_id, current_user.id)
    return respond(playlist, "Playlist fetched successfully.")


@playlists_router.patch("/{playlist_id}")
async def update_playlist(
    playlist_id: str,
    payload: PlaylistUpdate,
    current_user: UserPublic = Depends(get_current_user),
    service: PlaylistService = Depends(get_playlist_service),
):
    playlist = await service.update(playlist_id, current_user.id, payload)
    return respond(playlist, "Playlist updated successfully.")


@playlists_router.delete("/{playlist_id}")
async def delete_playlist(
    playlist_id: str,
    current_user: UserPublic = Depends(get_current_user),
    service: PlaylistService = Depends(get_playlist_service),
):
    await service.delete(playlist_id, current_user.id)
    return respond({}, "Playlist deleted successfully.")
