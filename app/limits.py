"""Rate limiting of the public endpoints."""

from fastapi import Request, Response
from fastapi_limiter.depends import RateLimiter

from .core import get_settings


def public_rate_limit():
    """
    Build a per-client rate limit dependency for an anonymous endpoint.

    Limits come from the settings; ``RATE_LIMIT_ENABLED=false`` turns
    the check off without touching the routes.
    """
    settings = get_settings()
    limiter = RateLimiter(
        times=settings.RATE_LIMIT_TIMES, seconds=settings.RATE_LIMIT_SECONDS
    )

    async def dependency(request: Request, response: Response):
        if get_settings().RATE_LIMIT_ENABLED:
            await limiter(request, response)

    return dependency
