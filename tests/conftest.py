import pytest

from app.middleware.rate_limit import limiter


@pytest.fixture(autouse=True)
def disable_rate_limit():
    """Keep request limits out of the way of repeated test calls"""
    limiter.enabled = False
    yield
    limiter.enabled = True
