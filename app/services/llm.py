from __future__ import annotations

import structlog
from openai import OpenAI, OpenAIError

from app import config

logger = structlog.get_logger()


class LLMConfigurationError(RuntimeError):
    pass


class LLMRequestError(RuntimeError):
    pass


PROMPT_TEMPLATE = """Create {count} flashcards from the following text. Each flashcard should have a question, an answer and a difficulty category from 1 to 5.
Create {per_level} flashcards for each category, ordered from category 1 (basic recall) to category 5 (hardest, requires synthesis).
Format the response as a JSON array of objects with 'question', 'answer' and 'category' properties. Keep both questions and answers concise.

Example format:
[
  {{
    "question": "What is the main concept?",
    "answer": "The clear, concise answer",
    "category": 1
  }}
]

Text:
{text}"""


def _get_client() -> OpenAI:
    api_key = config.OPENAI_API_KEY
    if not api_key:
        raise LLMConfigurationError("OPENAI_API_KEY not set")
    # Use env var; set timeouts per-request via with_options()
    return OpenAI(api_key=api_key)


def build_prompt(text: str, count: int = config.MAX_FLASHCARDS) -> str:
    return PROMPT_TEMPLATE.format(count=count, per_level=max(1, count // 5), text=text)


def generate_flashcard_completion(text: str) -> str:
    """Ask the model for flashcards and return the raw completion text."""
    client = _get_client().with_options(timeout=config.OPENAI_TIMEOUT)
    try:
        rsp = client.chat.completions.create(
            model=config.OPENAI_MODEL,
            messages=[{"role": "user", "content": build_prompt(text)}],
            temperature=config.OPENAI_TEMPERATURE,
            max_tokens=config.OPENAI_MAX_TOKENS,
        )
    except OpenAIError as e:
        logger.error("llm_request_failed", model=config.OPENAI_MODEL, error=str(e))
        raise LLMRequestError(f"Model request failed: {e}") from e

    content = rsp.choices[0].message.content or ""
    logger.info("llm_completion_received", model=config.OPENAI_MODEL, chars=len(content))
    return content
