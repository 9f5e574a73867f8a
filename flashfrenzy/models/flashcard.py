from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from flashfrenzy.config.settings import get_settings


class FlashcardCreate(BaseModel):
    question: str
    options: List[str]
    correct_answer: Optional[str] = None
    correct_index: Optional[int] = Field(default=None, ge=0)

    @field_validator("question")
    @classmethod
    def _question_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Please fill in the question")
        return value

    @field_validator("options")
    @classmethod
    def _options_filled(cls, value: List[str]) -> List[str]:
        cleaned = [option.strip() for option in value]
        max_options = get_settings().max_options
        if len(cleaned) < 2:
            raise ValueError("A flashcard needs at least 2 options")
        if len(cleaned) > max_options:
            raise ValueError(f"A flashcard can have at most {max_options} options")
        if any(not option for option in cleaned):
            raise ValueError("Options cannot be blank")
        if len(set(cleaned)) != len(cleaned):
            raise ValueError("Options must be distinct")
        return cleaned

    @model_validator(mode="after")
    def _resolve_correct_answer(self) -> "FlashcardCreate":
        if self.correct_index is not None:
            if self.correct_index >= len(self.options):
                raise ValueError("correct_index does not point at an option")
            resolved = self.options[self.correct_index]
            if self.correct_answer is not None and self.correct_answer.strip() != resolved:
                raise ValueError("correct_answer and correct_index disagree")
            self.correct_answer = resolved
        if self.correct_answer is None:
            raise ValueError("Please select the correct answer")
        self.correct_answer = self.correct_answer.strip()
        if self.correct_answer not in self.options:
            raise ValueError("correct_answer must be one of the options")
        return self


class FlashcardRead(BaseModel):
    id: int
    question: str
    options: List[str]
    correct_answer: str
    created_by: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class FlashcardImportResult(BaseModel):
    created: List[FlashcardRead] = Field(default_factory=list)
