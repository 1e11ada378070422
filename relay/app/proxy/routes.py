"""
Proxy Routes - Retell Request Forwarding
========================================

This module implements the single relay endpoint that forwards browser
requests to the Retell API while the credential stays on the server.

Security Model:
---------------
1. CORS origin is echoed only for allow-listed origins (or '*' in open mode)
2. Only POST reaches the upstream; OPTIONS is answered locally
3. The credential is attached server-side and never returned or logged
4. Upstream failures become a generic 503 with a fixed retry hint
5. Successful upstream bodies are reduced to the fields the caller needs

The verbose error-detail mode reproduces the legacy pass-through behaviour
(raw upstream bodies, upstream status and exception messages reach the
caller) and is meant for local debugging only.
"""

import logging
from typing import Any, Dict

from fastapi import Depends, Request, Response, status
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..config import Settings, get_settings
from ..models import ClassifiedRequest, SessionRequest
from .classify import classify, client_ip, enrich_metadata
from .cors import cors_headers
from .errors import (
    ConfigurationError,
    MethodNotAllowedError,
    ProxyError,
    UpstreamUnavailableError,
)
from .upstream import RetellClient

logger = logging.getLogger(__name__)

# Listed verbs reach the method gate; method_not_allowed_handler covers the rest.
PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


# ============================================================================
# Dependencies
# ============================================================================

def get_upstream_client(request: Request) -> RetellClient:
    """
    Fetch the shared upstream client from app state.

    Raises:
        ConfigurationError: If the client was never initialized
    """
    app_state = getattr(request.app.state, "app_state", None)
    client = getattr(app_state, "upstream_client", None) if app_state else None
    if client is None:
        logger.error("Upstream client not initialized")
        raise ConfigurationError()
    return client


async def read_json_body(request: Request) -> Any:
    """Parse the request body; an empty or non-JSON body reads as {}."""
    raw = await request.body()
    if not raw:
        return {}
    try:
        return await request.json()
    except ValueError:
        logger.warning("Request body is not valid JSON")
        return {}


# ============================================================================
# Forwarding
# ============================================================================

async def forward(
    classified: ClassifiedRequest,
    ip: str,
    settings: Settings,
    retell: RetellClient,
) -> Dict[str, Any]:
    """
    Send the classified request upstream and return the caller-facing body.

    Raises:
        UpstreamUnavailableError: If the upstream answers with a non-2xx status
    """
    if isinstance(classified, SessionRequest):
        classified = classified.model_copy(
            update={"metadata": enrich_metadata(classified.metadata, ip, settings)}
        )
        logger.info(
            f"Request from IP: {ip} for agent: {classified.agent_id}",
            extra={"client_ip": ip, "agent_id": classified.agent_id, "kind": classified.kind.value},
        )
    else:
        logger.info(
            f"Chat completion request from IP: {ip} for chat: {classified.chat_id}",
            extra={"client_ip": ip, "chat_id": classified.chat_id},
        )

    response = await retell.post(
        classified.route,
        classified.upstream_payload(),
        settings.RETELL_API_KEY,
    )

    if not 200 <= response.status_code < 300:
        logger.error(
            f"Retell API error: {response.status_code} {response.text}",
            extra={"status_code": response.status_code, "route": classified.route.value},
        )
        raise UpstreamUnavailableError(
            f"{classified.service_name} service temporarily unavailable",
            retry_after=settings.RETRY_AFTER_SECONDS,
            upstream_status=response.status_code,
            upstream_body=response.text,
        )

    data = response.json()
    public = classified.public_fields(data)

    created_id = public.get("call_id") or public.get("chat_id")
    logger.info(
        f"Successful {classified.route.value} call: {created_id}",
        extra={"route": classified.route.value, "created_id": created_id},
    )

    if settings.security_policy.exposes_details:
        return data
    return public


# ============================================================================
# Proxy Endpoint
# ============================================================================

async def proxy_handler(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> Response:
    """
    Relay one browser request to the Retell API.

    Flow:
    1. Attach CORS headers according to the origin policy
    2. Answer OPTIONS preflight locally
    3. Reject every method other than POST
    4. Fail fast when the credential is missing
    5. Classify the body (completion, chat session, voice call)
    6. Forward upstream and reduce the response to the public fields

    Returns:
        JSONResponse with the public fields, or an {error} body
    """
    headers = cors_headers(request.headers.get("origin"), settings)
    policy = settings.security_policy

    if request.method == "OPTIONS":
        return Response(status_code=status.HTTP_200_OK, headers=headers)

    try:
        if request.method != "POST":
            raise MethodNotAllowedError()

        if not settings.RETELL_API_KEY:
            logger.error("RETELL_API_KEY environment variable not set")
            raise ConfigurationError()

        retell = get_upstream_client(request)
        body = await read_json_body(request)
        classified = classify(body, settings)
        content = await forward(classified, client_ip(request), settings, retell)
        return JSONResponse(status_code=status.HTTP_200_OK, content=content, headers=headers)

    except UpstreamUnavailableError as exc:
        if policy.exposes_details:
            return JSONResponse(
                status_code=exc.upstream_status,
                content={"error": "RetellAI API error", "details": exc.upstream_body},
                headers=headers,
            )
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_body(),
            headers={**headers, "Retry-After": str(exc.retry_after)},
        )

    except ProxyError as exc:
        return JSONResponse(status_code=exc.status_code, content=exc.to_body(), headers=headers)

    except Exception as exc:
        logger.exception(
            "Proxy error",
            extra={"path": request.url.path, "exception_type": type(exc).__name__},
        )
        content = {"error": "Internal server error"}
        if policy.exposes_details:
            content["message"] = str(exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=content,
            headers=headers,
        )


async def method_not_allowed_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> Response:
    """
    Give verbs outside PROXY_METHODS on the relay path the relay's own 405.

    Starlette rejects those before the handler runs; every other HTTP error
    keeps FastAPI's default response.
    """
    settings = request.app.dependency_overrides.get(get_settings, get_settings)()
    if (
        exc.status_code != status.HTTP_405_METHOD_NOT_ALLOWED
        or request.url.path != settings.PROXY_PATH
    ):
        return await http_exception_handler(request, exc)

    error = MethodNotAllowedError()
    return JSONResponse(
        status_code=error.status_code,
        content=error.to_body(),
        headers=cors_headers(request.headers.get("origin"), settings),
    )
