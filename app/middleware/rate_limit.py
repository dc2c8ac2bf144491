"""
Rate limiting middleware using slowapi
"""
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse
import structlog

from app import config

logger = structlog.get_logger()

# Create limiter instance
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["1000/hour", "100/minute"]
)

def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """Custom rate limit exceeded handler"""
    client = request.client.host if request.client else "unknown"
    logger.warning(f"Rate limit exceeded for {client}: {exc.detail}")
    return JSONResponse(
        status_code=429,
        content={
            "success": False,
            "message": f"Rate limit exceeded: {exc.detail}. Please try again later."
        }
    )

# Rate limit decorators for different endpoints
def ai_generation_limit():
    """Rate limit for AI generation endpoints"""
    return limiter.limit(config.FLASHCARD_RATE_LIMIT)

def general_api_limit():
    """Rate limit for general API endpoints"""
    return limiter.limit("60/minute")
