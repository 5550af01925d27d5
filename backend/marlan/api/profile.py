"""Photography studio profile endpoints"""
from fastapi import APIRouter, BackgroundTasks, Depends, Request

from ..auth import AuthUser, get_current_user
from ..db import database
from ..db.models import UserProfile, UserProfileUpdate
from ..errors import api_error
from ..services.website_summary import WebsiteSummarizer, WebsiteSummary
from ..utils.structured_logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


def get_website_summarizer(request: Request) -> WebsiteSummarizer:
    return request.app.state.website_summarizer


async def refresh_website_summary(summarizer: WebsiteSummarizer, user_id: str, url: str):
    """Summarize the studio website into the profile; failures are logged and the old summary kept"""
    try:
        result = await summarizer.summarize(url)
    except Exception as e:
        logger.error("Website summarization failed", url=url, error=str(e))
        return
    await database.upsert_user_profile(user_id, UserProfileUpdate(website_summary=result.summary))


@router.get("/profile", response_model=UserProfile)
async def api_get_profile(user: AuthUser = Depends(get_current_user)):
    profile = await database.get_user_profile(user.id)
    if not profile:
        raise api_error(404, "Not Found", "Profile not found")
    return profile


@router.put("/profile", response_model=UserProfile)
async def api_update_profile(
    update: UserProfileUpdate,
    background_tasks: BackgroundTasks,
    user: AuthUser = Depends(get_current_user),
    summarizer: WebsiteSummarizer = Depends(get_website_summarizer),
):
    """
    Create or update the caller's profile; omitted fields keep their value

    A new website URL is summarized after the response is sent, unless the
    request carries its own summary.
    """
    profile = await database.upsert_user_profile(user.id, update)
    if update.website_url and update.website_summary is None:
        background_tasks.add_task(refresh_website_summary, summarizer, user.id, update.website_url)
    return profile


@router.post("/profile/website-summary", response_model=WebsiteSummary)
async def api_generate_website_summary(
    user: AuthUser = Depends(get_current_user),
    summarizer: WebsiteSummarizer = Depends(get_website_summarizer),
):
    """Summarize the saved website now and store the result"""
    profile = await database.get_user_profile(user.id)
    if not profile or not profile.website_url:
        raise api_error(400, "Bad Request", "Profile has no website URL")

    try:
        result = await summarizer.summarize(profile.website_url)
    except Exception as e:
        logger.error("Website summarization failed", url=profile.website_url, error=str(e))
        raise api_error(502, "Bad Gateway", "Could not summarize the website")

    await database.upsert_user_profile(user.id, UserProfileUpdate(website_summary=result.summary))
    return result
