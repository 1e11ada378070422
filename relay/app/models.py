"""
Data Models Module

Pydantic models for the relay:
- Classified inbound requests (completion vs. voice/chat session creation)
- Client-safe response bodies re-exposed from upstream results
- Health check model
"""

from enum import Enum
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, Field


# ============================================================================
# Upstream Routes
# ============================================================================

class UpstreamRoute(str, Enum):
    """Routes of the Retell API the relay is allowed to call."""

    CREATE_WEB_CALL = "/v2/create-web-call"
    CREATE_CHAT = "/create-chat"
    CREATE_CHAT_COMPLETION = "/create-chat-completion"


class SessionKind(str, Enum):
    VOICE = "voice"
    CHAT = "chat"


TEXT_CHAT_INTERACTION = "text_chat"


# ============================================================================
# Classified Requests
# ============================================================================

class CompletionRequest(BaseModel):
    """A message sent into an existing chat."""

    kind: Literal["completion"] = "completion"
    chat_id: str = Field(..., description="Existing chat identifier")
    message: str = Field(..., description="User message text")

    @property
    def route(self) -> UpstreamRoute:
        return UpstreamRoute.CREATE_CHAT_COMPLETION

    @property
    def service_name(self) -> str:
        return "Chat"

    def upstream_payload(self) -> Dict[str, Any]:
        return {"chat_id": self.chat_id, "message": self.message}

    def public_fields(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return CompletionResponse(
            response=data.get("response"),
            chat_id=data.get("chat_id"),
        ).model_dump()


class SessionRequest(BaseModel):
    """Creation of a web (voice) call or a text chat for an agent."""

    kind: SessionKind
    agent_id: str = Field(..., description="Agent identifier")
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def route(self) -> UpstreamRoute:
        if self.kind is SessionKind.CHAT:
            return UpstreamRoute.CREATE_CHAT
        return UpstreamRoute.CREATE_WEB_CALL

    @property
    def service_name(self) -> str:
        return "Chat" if self.kind is SessionKind.CHAT else "Voice"

    def upstream_payload(self) -> Dict[str, Any]:
        return {"agent_id": self.agent_id, "metadata": self.metadata}

    def public_fields(self, data: Dict[str, Any]) -> Dict[str, Any]:
        if self.kind is SessionKind.CHAT:
            return ChatSessionResponse(
                chat_id=data.get("chat_id"),
                agent_id=data.get("agent_id"),
            ).model_dump()
        return WebCallResponse(
            call_id=data.get("call_id"),
            access_token=data.get("access_token"),
            agent_id=data.get("agent_id"),
        ).model_dump()


ClassifiedRequest = Union[CompletionRequest, SessionRequest]


# ============================================================================
# Client-safe Responses
# ============================================================================

class CompletionResponse(BaseModel):
    response: Optional[Any] = Field(None, description="Agent reply")
    chat_id: Optional[Any] = Field(None, description="Chat identifier")


class WebCallResponse(BaseModel):
    call_id: Optional[Any] = Field(None, description="Created call identifier")
    access_token: Optional[Any] = Field(None, description="Token the browser uses to join the call")
    agent_id: Optional[Any] = Field(None, description="Agent identifier")


class ChatSessionResponse(BaseModel):
    chat_id: Optional[Any] = Field(None, description="Created chat identifier")
    agent_id: Optional[Any] = Field(None, description="Agent identifier")


# ============================================================================
# Health Model
# ============================================================================

class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service health status")
    service: str = Field(..., description="Service name")
    version: str = Field(..., description="Service version")

