from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
import time
import structlog

from app.errors import FlashcardError
from app.routers import flashcards as flashcards_router
from app.services.logging import configure_logging, log_api_request
from app.services.monitoring import health_checker, get_metrics, REQUEST_COUNT, REQUEST_DURATION, AI_GENERATION_REQUESTS
from app.middleware.rate_limit import limiter, rate_limit_exceeded_handler

# Configure logging
configure_logging()
logger = structlog.get_logger()

app = FastAPI(
    title="PDF Flashcards",
    description="Generate graded study flashcards from PDF documents",
    version="1.0.0"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["POST", "OPTIONS", "GET"],
    allow_headers=["*"],
)

# Add rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


@app.exception_handler(FlashcardError)
async def flashcard_error_handler(request: Request, exc: FlashcardError):
    logger.warning("flashcard_generation_failed", path=request.url.path, **exc.to_dict())
    generation_type = getattr(request.state, "generation_type", "flashcards")
    AI_GENERATION_REQUESTS.labels(type=generation_type, status=exc.kind).inc()
    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "message": "Error generating flashcards. Please try again.",
            **exc.to_dict()
        }
    )


# Add middleware for request logging and metrics
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start_time = time.time()

    # Log request start
    log_api_request(request)

    response = await call_next(request)

    # Calculate processing time
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)

    # Update metrics
    REQUEST_COUNT.labels(
        method=request.method,
        endpoint=request.url.path,
        status=response.status_code
    ).inc()

    REQUEST_DURATION.labels(
        method=request.method,
        endpoint=request.url.path
    ).observe(process_time)

    # Log request completion
    response.response_time = process_time
    log_api_request(request, response)

    return response

# ----------------- Health & Monitoring Endpoints -----------------
@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return health_checker.get_health_status()

@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint"""
    return get_metrics()


# ----------------- Routers -----------------
app.include_router(flashcards_router.router)
