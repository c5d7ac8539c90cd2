"""Research session endpoints (/api/sessions).

Every lookup is scoped to the caller, so another user's session id behaves
exactly like a missing one (404).
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from manymarkets.auth import get_current_profile
from manymarkets.config import FREE_SESSION_LIMIT, settings
from manymarkets.database import get_db
from manymarkets.models import Message, Product, Profile, ResearchSession, SessionPhase, utcnow

from .schemas import MessageCreate, MessageResponse, SessionCreate, SessionResponse, SessionUpdate
from .summary import render_html, render_markdown, summary_filename

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sessions", tags=["sessions"])


def session_limit(profile: Profile) -> int:
    return FREE_SESSION_LIMIT + (profile.bonus_sessions or 0)


def _get_owned_session(db: Session, session_id: str, profile: Profile) -> ResearchSession:
    session = (
        db.query(ResearchSession)
        .filter(ResearchSession.id == session_id, ResearchSession.user_id == profile.id)
        .first()
    )
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


@router.get("")
def list_sessions(profile: Profile = Depends(get_current_profile), db: Session = Depends(get_db)):
    sessions = (
        db.query(ResearchSession)
        .filter(ResearchSession.user_id == profile.id, ResearchSession.is_archived.is_(False))
        .order_by(ResearchSession.last_message_at.desc())
        .all()
    )
    return {"sessions": [SessionResponse.model_validate(s) for s in sessions]}


@router.post("")
def create_session(
    body: SessionCreate,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    """Start a research session; free users are capped when pricing is enabled."""
    if settings.enable_pricing and not profile.is_pro:
        # Serialize concurrent creates for one user on the profile row
        db.query(Profile).filter(Profile.id == profile.id).with_for_update().first()
        limit = session_limit(profile)
        used = db.query(ResearchSession).filter(ResearchSession.user_id == profile.id).count()
        if used >= limit:
            raise HTTPException(
                status_code=403,
                detail={
                    "error": "Session limit reached",
                    "limitReached": True,
                    "used": used,
                    "limit": limit,
                },
            )

    session = ResearchSession(
        user_id=profile.id,
        title=body.title or "New Research Session",
        industry=body.industry or None,
        phase=SessionPhase.DISCOVERY.value,
    )
    db.add(session)
    db.commit()
    db.refresh(session)
    logger.info("Created research session %s for %s", session.id, profile.id)
    return {"session": SessionResponse.model_validate(session), "goal": body.goal}


@router.get("/{session_id}")
def get_session(session_id: str, profile: Profile = Depends(get_current_profile), db: Session = Depends(get_db)):
    return {"session": SessionResponse.model_validate(_get_owned_session(db, session_id, profile))}


@router.patch("/{session_id}")
def update_session(
    session_id: str,
    body: SessionUpdate,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    session = _get_owned_session(db, session_id, profile)
    for field, value in body.model_dump(exclude_unset=True).items():
        setattr(session, field, value)
    db.commit()
    db.refresh(session)
    return {"session": SessionResponse.model_validate(session)}


@router.delete("/{session_id}")
def delete_session(session_id: str, profile: Profile = Depends(get_current_profile), db: Session = Depends(get_db)):
    session = _get_owned_session(db, session_id, profile)
    db.query(Product).filter(Product.session_id == session.id).update(
        {Product.session_id: None}, synchronize_session=False
    )
    db.delete(session)
    db.commit()
    return {"success": True}


@router.get("/{session_id}/messages")
def list_messages(session_id: str, profile: Profile = Depends(get_current_profile), db: Session = Depends(get_db)):
    _get_owned_session(db, session_id, profile)
    messages = (
        db.query(Message)
        .filter(Message.session_id == session_id)
        .order_by(Message.created_at.asc())
        .all()
    )
    return {"messages": [MessageResponse.model_validate(m) for m in messages]}


@router.post("/{session_id}/messages")
def add_message(
    session_id: str,
    body: MessageCreate,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    """Append a chat turn and bump the session's counters."""
    if not body.role or not body.content:
        raise HTTPException(status_code=400, detail="Role and content are required")

    session = _get_owned_session(db, session_id, profile)
    message = Message(
        session_id=session.id,
        user_id=profile.id,
        role=body.role,
        content=body.content,
        tool_calls=body.tool_calls or None,
        tool_results=body.tool_results or None,
    )
    db.add(message)

    session.message_count = (session.message_count or 0) + 1
    if body.tool_calls:
        calls = len(body.tool_calls) if isinstance(body.tool_calls, list) else 1
        session.tool_calls_count = (session.tool_calls_count or 0) + calls
    session.last_message_at = utcnow()

    db.commit()
    db.refresh(message)
    return {"message": MessageResponse.model_validate(message)}


@router.get("/{session_id}/summary")
def export_summary(
    session_id: str,
    format: str = Query("html"),
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    """Download a session summary; ``pdf`` returns printable inline HTML."""
    session = _get_owned_session(db, session_id, profile)
    messages = list(session.messages)
    is_pro = profile.is_pro

    if format == "md":
        return Response(
            content=render_markdown(session, messages, is_pro),
            media_type="text/markdown",
            headers={"Content-Disposition": f'attachment; filename="{summary_filename(session.title, "md")}"'},
        )

    html = render_html(session, messages, is_pro)
    if format == "pdf":
        return Response(content=html, media_type="text/html")
    return Response(
        content=html,
        media_type="text/html",
        headers={"Content-Disposition": f'attachment; filename="{summary_filename(session.title, "html")}"'},
    )
