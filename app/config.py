import os


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-3.5-turbo")
OPENAI_TEMPERATURE = float(os.getenv("OPENAI_TEMPERATURE", "0.7"))
OPENAI_MAX_TOKENS = int(os.getenv("OPENAI_MAX_TOKENS", "2000"))
OPENAI_TIMEOUT = float(os.getenv("OPENAI_TIMEOUT", "30"))

# Upload limits
MAX_FILE_SIZE = int(os.getenv("MAX_FILE_SIZE", str(5 * 1024 * 1024)))
MAX_PDF_CHARS = int(os.getenv("MAX_PDF_CHARS", "10000"))

MAX_FLASHCARDS = int(os.getenv("MAX_FLASHCARDS", "15"))
FLASHCARD_STRICT = _env_bool("FLASHCARD_STRICT", False)
FLASHCARD_RATE_LIMIT = os.getenv("FLASHCARD_RATE_LIMIT", "5/minute")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
