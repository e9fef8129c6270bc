"""Shared slowapi rate limiter for the sandbox routes."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from ridebook.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.sandbox_rate_limit],
)
