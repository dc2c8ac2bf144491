"""
Typed failures of the flashcard pipeline
"""
from typing import Optional

PREVIEW_LENGTH = 100


class FlashcardError(Exception):
    """Base class for every unrecoverable pipeline failure"""

    kind = "FlashcardError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"kind": self.kind, "error": self.message}


class MalformedResponse(FlashcardError):
    kind = "MalformedResponse"

    def __init__(self, text: Optional[str]):
        self.preview = (text or "")[:PREVIEW_LENGTH]
        super().__init__(f"Model response is not valid JSON: {self.preview!r}")

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["preview"] = self.preview
        return data


class InvalidShape(FlashcardError):
    kind = "InvalidShape"

    def __init__(self, payload_type: str):
        self.payload_type = payload_type
        super().__init__(f"Response has no flashcard list (got {payload_type})")


class NoFlashcards(FlashcardError):
    kind = "NoFlashcards"

    def __init__(self):
        super().__init__("No valid flashcards generated")


class InvalidEntry(FlashcardError):
    kind = "InvalidEntry"

    def __init__(self, index: int, reason: str):
        self.index = index
        self.reason = reason
        super().__init__(f"Invalid card at index {index}: {reason}")

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["index"] = self.index
        return data
