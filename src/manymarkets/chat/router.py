"""Chat endpoints: streaming research assistant and daily quick-start prompts."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel

from manymarkets.ai.daily_prompts import daily_prompt_cache, generate_daily_prompts
from manymarkets.ai.prompts import CHATBOT_SYSTEM_PROMPT
from manymarkets.ai.provider import LLMClient, get_llm_client
from manymarkets.api.deps import limiter
from manymarkets.exceptions import AIProviderError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chat", tags=["chat"])

DAILY_PROMPTS_CACHE_CONTROL = "public, max-age=3600"


class ChatRequest(BaseModel):
    messages: Optional[List[Dict[str, Any]]] = None


def _message_text(content: Any) -> str:
    """Flatten string or ``[{type: "text", text}]`` content to plain text."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = [p.get("text", "") for p in content if isinstance(p, dict) and p.get("type") == "text"]
        return "".join(parts)
    return "" if content is None else str(content)


def split_system_messages(messages: List[Dict[str, Any]]) -> Tuple[str, List[Dict[str, str]]]:
    """Fold system-role messages into the system prompt; keep user/assistant turns."""
    system_parts = [CHATBOT_SYSTEM_PROMPT]
    turns: List[Dict[str, str]] = []
    for message in messages:
        role = message.get("role")
        text = _message_text(message.get("content"))
        if role == "system":
            if text:
                system_parts.append(text)
        elif role in ("user", "assistant") and text:
            turns.append({"role": role, "content": text})
    return "\n\n".join(system_parts), turns


@router.post("")
@limiter.limit("30/minute")
def chat(request: Request, body: ChatRequest, llm: LLMClient = Depends(get_llm_client)):
    """Stream the assistant's reply as plain text."""
    if not body.messages:
        raise HTTPException(status_code=400, detail="Messages are required")

    system, turns = split_system_messages(body.messages)
    if not turns:
        raise HTTPException(status_code=400, detail="Messages are required")

    chunks = llm.stream_text(turns, system=system)
    # Pull the first chunk eagerly so a dead provider becomes a proper error status
    try:
        first = next(chunks, None)
    except AIProviderError as exc:
        logger.error("Chat stream failed before first chunk: %s", exc)
        raise HTTPException(status_code=502, detail="AI provider unavailable")

    def body_iter():
        if first is not None:
            yield first
        try:
            yield from chunks
        except AIProviderError as exc:
            logger.error("Chat stream interrupted: %s", exc)

    return StreamingResponse(body_iter(), media_type="text/plain; charset=utf-8")


@router.get("/daily-prompts")
def daily_prompts(llm: LLMClient = Depends(get_llm_client)):
    """Five prompts for today, generated once per day per process."""
    today = datetime.now(timezone.utc).date().isoformat()
    headers = {"Cache-Control": DAILY_PROMPTS_CACHE_CONTROL}

    cached = daily_prompt_cache.get(today)
    if cached:
        return JSONResponse({"prompts": cached, "date": today, "source": "cache"}, headers=headers)

    prompts, source = generate_daily_prompts(llm, today)
    daily_prompt_cache.set(today, prompts)
    return JSONResponse({"prompts": prompts, "date": today, "source": source}, headers=headers)
