"""
Inbound request classification.

The raw JSON body is inspected once and turned into either a
CompletionRequest or a SessionRequest; the handler dispatches on the result
instead of probing fields again.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from fastapi import Request

from ..config import Settings
from ..models import (
    TEXT_CHAT_INTERACTION,
    ClassifiedRequest,
    CompletionRequest,
    SessionKind,
    SessionRequest,
)
from .errors import InvalidRequestError


def classify(body: Any, settings: Settings) -> ClassifiedRequest:
    """
    Classify an inbound body.

    Priority order:
        1. chat_id and message both present -> completion
        2. agent_id missing -> 400
        3. agent_id malformed -> 400
        4. metadata.interaction_type == "text_chat" -> chat session, else voice call

    Raises:
        InvalidRequestError: missing or malformed agent_id
    """
    if not isinstance(body, Mapping):
        body = {}

    chat_id = body.get("chat_id")
    message = body.get("message")
    if chat_id and message:
        return CompletionRequest(chat_id=str(chat_id), message=str(message))

    agent_id = body.get("agent_id")
    if not agent_id:
        raise InvalidRequestError("agent_id is required")

    if not is_valid_agent_id(agent_id, settings):
        raise InvalidRequestError("Invalid agent_id format")

    metadata = body.get("metadata")
    if not isinstance(metadata, Mapping):
        metadata = {}

    if metadata.get("interaction_type") == TEXT_CHAT_INTERACTION:
        kind = SessionKind.CHAT
    else:
        kind = SessionKind.VOICE

    return SessionRequest(kind=kind, agent_id=agent_id, metadata=dict(metadata))


def is_valid_agent_id(agent_id: Any, settings: Settings) -> bool:
    """Coarse shape check: known prefix and minimum length."""
    return (
        isinstance(agent_id, str)
        and agent_id.startswith(settings.AGENT_ID_PREFIX)
        and len(agent_id) >= settings.AGENT_ID_MIN_LENGTH
    )


def client_ip(request: Request) -> str:
    """Apparent caller address: first X-Forwarded-For hop, else the socket peer."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    return request.client.host if request.client else "unknown"


def utc_timestamp(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def enrich_metadata(
    metadata: Mapping[str, Any],
    ip: str,
    settings: Settings,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Merge caller metadata with the server-side fields; server keys win."""
    return {
        **metadata,
        "proxy_timestamp": utc_timestamp(now),
        "client_ip": ip,
        "source": settings.SOURCE_TAG,
    }
