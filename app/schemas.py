from typing import List

from pydantic import BaseModel, ConfigDict, Field


class Flashcard(BaseModel):
    model_config = ConfigDict(frozen=True)

    question: str = Field(min_length=1)
    answer: str = Field(min_length=1)
    category: int = Field(description="Difficulty level, 1 (easiest) to 5")


class NormalizeRequest(BaseModel):
    content: str
    strict: bool = False


class FlashcardResponse(BaseModel):
    success: bool = True
    message: str = "PDF processed successfully"
    flashcards: List[Flashcard]
