from fakeredis import FakeAsyncRedis, FakeServer
from fastapi import status
from fastapi_limiter import FastAPILimiter

from app.core import get_settings


def test_public_search_is_rate_limited(client, session_loop):
    settings = get_settings()
    redis = FakeAsyncRedis(server=FakeServer(), decode_responses=True)
    session_loop.run_until_complete(FastAPILimiter.init(redis))
    settings.RATE_LIMIT_ENABLED = True
    try:
        codes = [
            client.get("/pets-near?lat=1&lng=2").status_code
            for _ in range(settings.RATE_LIMIT_TIMES + 1)
        ]
    finally:
        settings.RATE_LIMIT_ENABLED = False
        session_loop.run_until_complete(redis.aclose())

    assert codes[:-1] == [status.HTTP_200_OK] * settings.RATE_LIMIT_TIMES
    assert codes[-1] == status.HTTP_429_TOO_MANY_REQUESTS
