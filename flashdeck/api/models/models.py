from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator


class ProjectRequest(BaseModel):
    """Request schema for creating a project"""

    name: str = Field(..., min_length=1, max_length=200, description="Project name")
    description: str = Field("", max_length=2000)


class AddCardsRequest(BaseModel):
    """Request schema for adding a generated batch of flashcards"""

    drafts: List[Dict[str, Any]] = Field(..., description="Generated drafts: question, answer, options, correctOptionIndex")
    source_content: Optional[str] = Field(None, description="Text the drafts were generated from")
    section_title: Optional[str] = Field(None)
    topic_title: Optional[str] = Field(None)
    force: bool = Field(False, description="Add even if this source text was already processed")


class ContentCheckRequest(BaseModel):
    """Request schema for checking source text and questions before generating"""

    source_content: Optional[str] = Field(None)
    questions: List[str] = Field(default_factory=list)
    section_title: Optional[str] = Field(None)
    topic_title: Optional[str] = Field(None)


class AnswerRequest(BaseModel):
    """Request schema for answering the current card"""

    card_id: str
    correct: Optional[bool] = Field(None, description="Whether the answer was correct")
    selected_option_index: Optional[int] = Field(None, ge=0, description="Index of the chosen option")

    @model_validator(mode="after")
    def validate_answer(self) -> "AnswerRequest":
        """
        Require either an explicit outcome or the chosen option.

        Raises:
            ValueError: If neither field is set
        """
        if self.correct is None and self.selected_option_index is None:
            raise ValueError("Either correct or selected_option_index is required")
        return self


class CardActionRequest(BaseModel):
    card_id: str
