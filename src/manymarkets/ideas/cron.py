"""Scheduled job endpoints (/api/cron)."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from manymarkets.ai.provider import LLMClient, get_llm_client
from manymarkets.api.deps import verify_cron_secret
from manymarkets.database import get_db
from manymarkets.exceptions import AIProviderError, IdeaGenerationError

from .generator import generate_daily_idea

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cron", tags=["cron"], dependencies=[Depends(verify_cron_secret)])


@router.api_route("/generate-daily-idea", methods=["GET", "POST"])
def generate_daily_idea_job(db: Session = Depends(get_db), llm: LLMClient = Depends(get_llm_client)):
    """Generate today's idea; a second call on the same day is a no-op."""
    try:
        idea, created = generate_daily_idea(db, llm)
    except IdeaGenerationError as exc:
        logger.error("Failed to parse AI response: %s", exc)
        raise HTTPException(status_code=500, detail="Failed to parse AI response")
    except AIProviderError as exc:
        logger.error("Error generating daily idea: %s", exc)
        raise HTTPException(status_code=500, detail="Failed to generate daily idea")

    if not created:
        return {"message": "Idea already exists for today", "ideaId": idea.id}
    return {"success": True, "ideaId": idea.id, "name": idea.name, "industry": idea.industry}
