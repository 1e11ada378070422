"""Pre-deployment secret scanning for the static demo site."""

from .scanner import SecurityValidator

__all__ = ["SecurityValidator"]
