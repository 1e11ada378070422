"""
Proxy Package
=============

Forwards browser requests to the Retell API with a server-held credential.

Main Components:
----------------
- routes.py: the relay endpoint handler
- classify.py: turns the inbound body into a completion or session request
- cors.py: origin policy headers
- upstream.py: httpx client for the Retell API
- errors.py: caller-safe error taxonomy

Usage:
------
    from relay.app.proxy import PROXY_METHODS, proxy_handler
    app.add_api_route(settings.PROXY_PATH, proxy_handler, methods=PROXY_METHODS)
"""

from .routes import PROXY_METHODS, method_not_allowed_handler, proxy_handler

__all__ = ["PROXY_METHODS", "method_not_allowed_handler", "proxy_handler"]
