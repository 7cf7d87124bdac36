"""Service-to-service ingestion endpoint.

Called by the post service after a post is created or edited. Not exposed
through the public gateway.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import Settings
from app.dependencies import get_db_session_factory, get_settings
from app.hashtags import controller
from app.hashtags.schemas import HashtagUsageResponse
from shared.events.schemas import HashtagsUsed

router = APIRouter(prefix="/hashtags/internal", tags=["Internal"])


@router.post(
    "/usage",
    response_model=HashtagUsageResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Record hashtag usage for a post",
    description=(
        "Counts each explicit tag plus any inline '#tags' in the caption. "
        "Invalid tags are skipped; storage failures are reported per tag and never fail the call. "
        "In queue mode the event is handed to the worker and counted asynchronously."
    ),
)
async def record_hashtag_usage(
    body: HashtagsUsed,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_db_session_factory),
    settings: Settings = Depends(get_settings),
) -> HashtagUsageResponse:
    return await controller.record_usage(body, session_factory, settings)
