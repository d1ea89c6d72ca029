"""Dynalist API client."""

from .api_client import DynalistClient
from .api_client_core import DynalistClientCore, log_event
from .api_client_tree import DynalistClientTree
from .rate_limiter import AdaptiveRateLimiter

__all__ = [
    "AdaptiveRateLimiter",
    "DynalistClient",
    "DynalistClientCore",
    "DynalistClientTree",
    "log_event",
]
