"""Daily niche ideas and the caller's saved ideas (/api/daily-ideas)."""

import logging
import math
from datetime import date, timedelta
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from manymarkets.ai.provider import LLMClient, get_llm_client
from manymarkets.auth import get_current_profile, get_optional_profile
from manymarkets.config import FREE_DAILY_IDEAS_DAYS, FREE_SAVED_IDEAS_LIMIT, PRO_SAVED_IDEAS_LIMIT
from manymarkets.database import get_db, get_session_factory
from manymarkets.models import DailyNicheIdea, Profile, SavedIdea

from .gating import GATED_SECTIONS, gated_idea_view
from .generator import generate_daily_idea_in_background, utc_today

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/daily-ideas", tags=["daily-ideas"])


class SaveIdeaRequest(BaseModel):
    idea_id: Optional[str] = Field(None, alias="ideaId")

    model_config = ConfigDict(populate_by_name=True)


def _published(db: Session):
    return db.query(DailyNicheIdea).filter(DailyNicheIdea.is_published.is_(True))


@router.get("")
def list_daily_ideas(
    background_tasks: BackgroundTasks,
    date_filter: Optional[date] = Query(None, alias="date"),
    industry: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    profile: Optional[Profile] = Depends(get_optional_profile),
    db: Session = Depends(get_db),
    session_factory=Depends(get_session_factory),
    llm: LLMClient = Depends(get_llm_client),
):
    """Published ideas, newest first; free users only see the recent window."""
    today = utc_today()
    has_today = _published(db).filter(DailyNicheIdea.featured_date == today).first() is not None
    if not has_today:
        logger.info("No idea for today, scheduling generation")
        background_tasks.add_task(generate_daily_idea_in_background, session_factory, llm)

    query = _published(db)
    if profile is None or not profile.is_pro:
        window_start = today - timedelta(days=FREE_DAILY_IDEAS_DAYS - 1)
        query = query.filter(DailyNicheIdea.featured_date >= window_start)
    if date_filter:
        query = query.filter(DailyNicheIdea.featured_date == date_filter)
    if industry:
        query = query.filter(DailyNicheIdea.industry == industry)

    total = query.count()
    ideas = (
        query.order_by(DailyNicheIdea.featured_date.desc(), DailyNicheIdea.display_order.asc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    industries = [
        row[0]
        for row in _published(db).with_entities(DailyNicheIdea.industry).distinct().all()
        if row[0]
    ]

    return {
        "ideas": [idea.to_dict() for idea in ideas],
        "isGenerating": not has_today,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": math.ceil(total / limit),
        },
        "filters": {"industries": sorted(industries)},
    }


@router.get("/saved")
def list_saved_ideas(profile: Profile = Depends(get_current_profile), db: Session = Depends(get_db)):
    rows = db.query(SavedIdea.idea_id).filter(SavedIdea.user_id == profile.id).all()
    return {"savedIdeaIds": [row[0] for row in rows]}


@router.post("/saved")
def save_idea(
    body: SaveIdeaRequest,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    """Bookmark an idea, subject to the per-tier cap."""
    if not body.idea_id:
        raise HTTPException(status_code=400, detail="Idea ID is required")

    if db.query(DailyNicheIdea.id).filter(DailyNicheIdea.id == body.idea_id).first() is None:
        raise HTTPException(status_code=404, detail="Idea not found")

    is_pro = profile.is_pro
    limit = PRO_SAVED_IDEAS_LIMIT if is_pro else FREE_SAVED_IDEAS_LIMIT
    count = db.query(SavedIdea).filter(SavedIdea.user_id == profile.id).count()
    if count >= limit:
        suffix = "" if is_pro else " Upgrade to Pro for more saves!"
        raise HTTPException(
            status_code=403,
            detail={
                "error": f"You've reached the limit of {limit} saved ideas.{suffix}",
                "limitReached": True,
            },
        )

    db.add(SavedIdea(user_id=profile.id, idea_id=body.idea_id))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Idea already saved")

    return {"success": True, "message": "Idea saved!"}


@router.delete("/saved")
def unsave_idea(
    idea_id: Optional[str] = Query(None, alias="ideaId"),
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    if not idea_id:
        raise HTTPException(status_code=400, detail="Idea ID is required")

    db.query(SavedIdea).filter(SavedIdea.user_id == profile.id, SavedIdea.idea_id == idea_id).delete(
        synchronize_session=False
    )
    db.commit()
    return {"success": True, "message": "Idea removed from saved"}


@router.get("/{idea_id}")
def get_daily_idea(
    idea_id: str,
    profile: Optional[Profile] = Depends(get_optional_profile),
    db: Session = Depends(get_db),
):
    """Full idea for pro users, a gated teaser for everyone else."""
    idea = _published(db).filter(DailyNicheIdea.id == idea_id).first()
    if idea is None:
        raise HTTPException(status_code=404, detail="Idea not found")

    if profile is not None and profile.is_pro:
        return {"idea": idea.to_dict(), "isPro": True, "gated": False, "gatedSections": []}

    return {
        "idea": gated_idea_view(idea),
        "isPro": False,
        "gated": True,
        "gatedSections": GATED_SECTIONS,
    }
