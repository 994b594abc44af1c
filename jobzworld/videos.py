"""Video responses to interview questions, stored as files with a DB record."""

import base64
import binascii
import os
import uuid
import aiofiles
import aiofiles.os
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .config import settings
from .errors import BadRequest, Forbidden, NotFound
from .logger import logger
from .models import CandidateProfile, VideoResponse, VideoStatus
from .schemas import VideoOut, VideoUpload


# ==================== File Storage ====================


def decode_video_blob(video_blob: str) -> bytes:
    """Decode the base64 payload; accepts an optional ``data:...;base64,`` prefix."""
    if video_blob.startswith("data:") and "," in video_blob:
        video_blob = video_blob.split(",", 1)[1]
    try:
        data = base64.b64decode(video_blob, validate=True)
    except (binascii.Error, ValueError) as e:
        raise BadRequest("Video payload is not valid base64") from e
    if not data:
        raise BadRequest("Video payload is empty")
    return data


async def store_video(data: bytes, upload_dir: str | None = None) -> str:
    """Write the recording under a random name and return its path."""
    upload_dir = upload_dir or settings.VIDEO_UPLOAD_DIR
    await aiofiles.os.makedirs(upload_dir, exist_ok=True)
    path = os.path.join(upload_dir, f"{uuid.uuid4()}.webm")
    async with aiofiles.open(path, "wb") as out:
        await out.write(data)
    return path


async def remove_video_file(path: str | None) -> None:
    """Best-effort removal; a missing or locked file is logged, not raised."""
    if not path:
        return
    try:
        await aiofiles.os.remove(path)
    except OSError as e:
        logger.error(f"Error deleting video file {path}: {str(e)}")


# ==================== Ownership ====================


async def verify_candidate_ownership(session: AsyncSession, profile_id: int, user_id: int) -> None:
    result = await session.execute(
        select(CandidateProfile.id).where(
            CandidateProfile.id == profile_id, CandidateProfile.user_id == user_id
        )
    )
    if result.first() is None:
        raise Forbidden("Candidate profile not found or access denied")


async def _select_own_video(session: AsyncSession, video_id: int, user_id: int) -> VideoResponse:
    video = await session.get(VideoResponse, video_id)
    if video is None:
        raise NotFound("Video response not found")
    await verify_candidate_ownership(session, video.candidate_profile_id, user_id)
    return video


# ==================== Service Operations ====================


async def upload_video(
    session: AsyncSession, user_id: int, data: VideoUpload, upload_dir: str | None = None
) -> VideoOut:
    """Store a recording for one of the caller's interview answers."""
    await verify_candidate_ownership(session, data.candidate_profile_id, user_id)
    video_bytes = decode_video_blob(data.video_blob)

    path = await store_video(video_bytes, upload_dir)
    try:
        video = VideoResponse(
            candidate_profile_id=data.candidate_profile_id,
            question_text=data.question_text,
            video_url=path,
            duration_seconds=data.duration_seconds,
            status=VideoStatus.READY.value,
            response_order=data.response_order,
        )
        session.add(video)
        await session.commit()
    except Exception:
        await session.rollback()
        await remove_video_file(path)
        logger.error(f"Video upload failed for profile id={data.candidate_profile_id}", exc_info=True)
        raise

    await session.refresh(video)
    logger.info(
        f"Video stored: id={video.id} profile_id={video.candidate_profile_id} bytes={len(video_bytes)}"
    )
    return VideoOut.model_validate(video)


async def list_candidate_videos(session: AsyncSession, profile_id: int) -> list[VideoOut]:
    result = await session.execute(
        select(VideoResponse)
        .where(VideoResponse.candidate_profile_id == profile_id)
        .order_by(VideoResponse.response_order.asc(), VideoResponse.id.asc())
    )
    return [VideoOut.model_validate(v) for v in result.scalars().all()]


async def update_video_status(
    session: AsyncSession, user_id: int, video_id: int, status: VideoStatus
) -> VideoOut:
    video = await _select_own_video(session, video_id, user_id)
    video.status = status.value
    await session.commit()
    await session.refresh(video)
    return VideoOut.model_validate(video)


async def delete_video(session: AsyncSession, user_id: int, video_id: int) -> None:
    video = await _select_own_video(session, video_id, user_id)
    path = video.video_url
    await session.delete(video)
    await session.commit()
    logger.info(f"Video deleted: id={video_id}")
    await remove_video_file(path)
