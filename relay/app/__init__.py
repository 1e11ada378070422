"""
Retell relay service.

Forwards browser requests to the Retell API while the credential stays
on the server.
"""

__version__ = "1.0.0"
