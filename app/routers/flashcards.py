from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
import structlog

from app import config
from app.middleware.rate_limit import ai_generation_limit, general_api_limit
from app.schemas import FlashcardResponse, NormalizeRequest
from app.services.flashcards import build_flashcards
from app.services.llm import LLMConfigurationError, LLMRequestError, generate_flashcard_completion
from app.services.monitoring import AI_GENERATION_REQUESTS, FLASHCARDS_RETURNED
from app.services.pdf_processor import PdfExtractionError, extract_text_from_pdf, normalize_text, truncate_text

logger = structlog.get_logger()

router = APIRouter(prefix="/api", tags=["flashcards"])


def _is_pdf(file: UploadFile) -> bool:
    filename = (file.filename or "").lower()
    return filename.endswith(".pdf") or file.content_type == "application/pdf"


@router.post("/process-pdf", response_model=FlashcardResponse)
@ai_generation_limit()
async def process_pdf(
    request: Request,
    pdf: UploadFile | None = File(None),
    strict: bool | None = Form(None),
):
    """Generate graded flashcards from an uploaded PDF"""
    request.state.generation_type = "flashcards"
    if pdf is None:
        raise HTTPException(status_code=400, detail="No PDF file uploaded")
    if not _is_pdf(pdf):
        raise HTTPException(status_code=400, detail="File must be a PDF")

    # One byte past the cap is enough to detect an oversized upload
    content = await pdf.read(config.MAX_FILE_SIZE + 1)
    if len(content) > config.MAX_FILE_SIZE:
        raise HTTPException(
            status_code=413,
            detail=f"PDF is too large (maximum {config.MAX_FILE_SIZE // (1024 * 1024)}MB)"
        )
    logger.info("pdf_received", filename=pdf.filename, size=len(content))

    try:
        text = await run_in_threadpool(extract_text_from_pdf, content)
    except PdfExtractionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    text = normalize_text(text)
    if not text:
        raise HTTPException(status_code=400, detail="Could not extract any text from PDF")
    text = truncate_text(text, config.MAX_PDF_CHARS)

    try:
        completion = await run_in_threadpool(generate_flashcard_completion, text)
    except LLMConfigurationError:
        logger.error("llm_not_configured")
        AI_GENERATION_REQUESTS.labels(type="flashcards", status="not_configured").inc()
        raise HTTPException(status_code=500, detail="Server configuration error")
    except LLMRequestError as e:
        AI_GENERATION_REQUESTS.labels(type="flashcards", status="upstream_error").inc()
        raise HTTPException(status_code=502, detail=str(e))

    use_strict = config.FLASHCARD_STRICT if strict is None else strict
    cards = build_flashcards(completion, strict=use_strict)

    AI_GENERATION_REQUESTS.labels(type="flashcards", status="success").inc()
    FLASHCARDS_RETURNED.observe(len(cards))
    return FlashcardResponse(flashcards=cards)


@router.post("/flashcards/normalize", response_model=FlashcardResponse)
@general_api_limit()
def normalize_completion(request: Request, payload: NormalizeRequest):
    """Run the normalization pipeline over an already obtained completion"""
    request.state.generation_type = "normalize"
    cards = build_flashcards(payload.content, strict=payload.strict)

    AI_GENERATION_REQUESTS.labels(type="normalize", status="success").inc()
    FLASHCARDS_RETURNED.observe(len(cards))
    return FlashcardResponse(message="Flashcards normalized successfully", flashcards=cards)
