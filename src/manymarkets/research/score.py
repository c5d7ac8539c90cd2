"""AI helper endpoints under /api/research: idea scoring and product suggestions."""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from manymarkets.ai.provider import LLMClient, get_llm_client
from manymarkets.ai.scoring import score_idea
from manymarkets.ai.suggestions import suggest_products
from manymarkets.api.deps import limiter
from manymarkets.auth import get_current_profile
from manymarkets.database import get_db
from manymarkets.exceptions import AIProviderError
from manymarkets.models import Message, Profile, ResearchSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/research", tags=["research"])


class ScoreIdeaRequest(BaseModel):
    idea: Any = None


class SkillProfile(BaseModel):
    skills: List[str]
    experience_level: Optional[str] = Field(None, alias="experienceLevel")
    time_commitment: Optional[str] = Field(None, alias="timeCommitment")
    additional_notes: Optional[str] = Field(None, alias="additionalNotes")

    model_config = ConfigDict(populate_by_name=True)


class SuggestionsRequest(BaseModel):
    session_id: Optional[str] = Field(None, alias="sessionId")
    skills: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(populate_by_name=True)


@router.post("/score-idea")
@limiter.limit("20/minute")
def score_idea_endpoint(request: Request, body: ScoreIdeaRequest, llm: LLMClient = Depends(get_llm_client)):
    idea = body.idea
    if not isinstance(idea, str) or len(idea.strip()) < 3:
        raise HTTPException(status_code=400, detail="Please provide a valid business idea")

    try:
        return score_idea(llm, idea)
    except AIProviderError as exc:
        logger.error("Error scoring idea: %s", exc)
        raise HTTPException(status_code=500, detail="Failed to score idea")


@router.post("/suggestions")
def product_suggestions(
    body: SuggestionsRequest,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
    llm: LLMClient = Depends(get_llm_client),
):
    """Three product ideas fitted to the caller's research and skills."""
    if not body.session_id or not body.skills:
        raise HTTPException(status_code=400, detail="Missing sessionId or skills")
    try:
        skills = SkillProfile.model_validate(body.skills)
    except ValueError:
        raise HTTPException(status_code=400, detail="Missing sessionId or skills")

    session = (
        db.query(ResearchSession)
        .filter(ResearchSession.id == body.session_id, ResearchSession.user_id == profile.id)
        .first()
    )
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")

    messages = (
        db.query(Message).filter(Message.session_id == session.id).order_by(Message.created_at.asc()).all()
    )
    return suggest_products(llm, session, messages, skills.model_dump(by_alias=True))
