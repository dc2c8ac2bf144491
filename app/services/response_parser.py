"""
Lenient JSON parsing of model completions
"""
import json
import re
from typing import Any

import structlog

from app.errors import MalformedResponse

logger = structlog.get_logger()

# Opening fence with optional language tag, or a bare closing fence
CODE_FENCE = re.compile(r"```[\w+-]*")
# Greedy: first "[" through the last "]" anywhere in the text
JSON_ARRAY = re.compile(r"\[[\s\S]*\]")


def strip_code_fences(text: str) -> str:
    return CODE_FENCE.sub("", text).strip()


def extract_json_array(text: str) -> str | None:
    match = JSON_ARRAY.search(text)
    return match.group(0) if match else None


def parse_response(text: str) -> Any:
    """Parse a completion that should be JSON but may be fenced or wrapped in prose.

    Tries a direct parse, then a fence-stripped parse, then the outermost
    array-looking substring. The first strategy that succeeds wins.
    """
    if not isinstance(text, str):
        logger.warning("response_parse_failed", reason="not_text", type=type(text).__name__)
        raise MalformedResponse(None if text is None else str(text))

    try:
        value = json.loads(text)
        logger.debug("response_parsed", strategy="direct")
        return value
    except ValueError:
        logger.debug("response_parse_attempt_failed", strategy="direct")

    try:
        value = json.loads(strip_code_fences(text))
        logger.info("response_parsed", strategy="fence_stripped")
        return value
    except ValueError:
        logger.debug("response_parse_attempt_failed", strategy="fence_stripped")

    candidate = extract_json_array(text)
    if candidate is not None:
        try:
            value = json.loads(candidate)
            logger.info("response_parsed", strategy="array_extraction")
            return value
        except ValueError:
            logger.debug("response_parse_attempt_failed", strategy="array_extraction")

    error = MalformedResponse(text)
    logger.warning("response_parse_failed", length=len(text), preview=error.preview)
    raise error
