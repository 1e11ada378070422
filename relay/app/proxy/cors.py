"""CORS headers for the proxy endpoint."""

from typing import Dict, Optional

from ..config import OriginMode, Settings

ALLOWED_METHODS = "POST, OPTIONS"
ALLOWED_HEADERS = "Content-Type"


def cors_headers(origin: Optional[str], settings: Settings) -> Dict[str, str]:
    """
    Build the CORS headers for a response.

    In allow-list mode the request origin is echoed only when listed; an
    unlisted origin gets no Access-Control-Allow-Origin header and the request
    still proceeds (the browser enforces the restriction). Open mode always
    announces '*'.
    """
    headers = {
        "Access-Control-Allow-Methods": ALLOWED_METHODS,
        "Access-Control-Allow-Headers": ALLOWED_HEADERS,
        "Access-Control-Max-Age": str(settings.CORS_MAX_AGE_SECONDS),
    }

    if settings.security_policy.origin_mode is OriginMode.OPEN:
        headers["Access-Control-Allow-Origin"] = "*"
    else:
        # Response differs per origin; caches must key on it.
        headers["Vary"] = "Origin"
        if origin and origin.rstrip("/") in settings.allowed_origins_list:
            headers["Access-Control-Allow-Origin"] = origin

    return headers
