# Video response ENDPOINTS

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from . import videos
from .config import settings
from .dependencies import ResourceId, get_current_user, get_session, require_candidate
from .models import User
from .ratelimit import conditional_limit
from .schemas import ApiResponse, VideoOut, VideoStatusUpdate, VideoUpload

router = APIRouter(prefix="/videos", tags=["videos"])


@router.post("/upload", response_model=ApiResponse[VideoOut], status_code=201)
@conditional_limit(settings.RATE_LIMIT_WRITE)
async def upload_video(
    data: VideoUpload,
    request: Request,
    current_user: User = Depends(require_candidate),
    session: AsyncSession = Depends(get_session),
):
    """Upload a base64-encoded recording for one of the caller's profiles.

    Raises:
        400: Payload is not valid base64
        403: Profile does not belong to the caller
    """
    video = await videos.upload_video(session, current_user.id, data)
    return ApiResponse(data=video, message="Video uploaded successfully")


@router.get("/candidate/{profile_id}", response_model=ApiResponse[list[VideoOut]])
@conditional_limit(settings.RATE_LIMIT_READ)
async def list_candidate_videos(
    profile_id: ResourceId,
    request: Request,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    items = await videos.list_candidate_videos(session, profile_id)
    return ApiResponse(data=items, message="Videos retrieved successfully")


@router.put("/{video_id}/status", response_model=ApiResponse[VideoOut])
@conditional_limit(settings.RATE_LIMIT_WRITE)
async def update_video_status(
    video_id: ResourceId,
    data: VideoStatusUpdate,
    request: Request,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    video = await videos.update_video_status(session, current_user.id, video_id, data.status)
    return ApiResponse(data=video, message="Video status updated successfully")


@router.delete("/{video_id}", response_model=ApiResponse[None])
@conditional_limit(settings.RATE_LIMIT_WRITE)
async def delete_video(
    video_id: ResourceId,
    request: Request,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    await videos.delete_video(session, current_user.id, video_id)
    return ApiResponse(message="Video deleted successfully")
