from datetime import date
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator

# ✅ question types as the admin builds them; stored as 'score' | 'text' | 'head'
QuestionType = Literal["scale", "text"]


# ==========================================================
# [Admin] structure of one assessment round
# ==========================================================

class QuestionIn(BaseModel):
    text: str
    type: QuestionType = "scale"


class TopicIn(BaseModel):
    """A numbered topic (stored as a 'head' detail row) and its items"""
    text: str
    questions: List[QuestionIn] = Field(default_factory=list)


class SectionIn(BaseModel):
    title: str = ""
    description: str = ""
    topics: List[TopicIn] = Field(default_factory=list)


class AssessmentIn(BaseModel):
    academic_year: int = Field(..., description="Buddhist-era year, e.g. 2568")
    term: int = Field(..., ge=1, le=3, description="1, 2 or 3 (summer)")
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    min_score: int = 1
    max_score: int = 5
    sections: List[SectionIn] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_range(self):
        if self.min_score >= self.max_score:
            raise ValueError("min_score must be lower than max_score")
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self


# ==========================================================
# [Student] submitted answers
# ==========================================================

class AnswerSubmission(BaseModel):
    teacher_id: int
    # question_id -> score (scale) or text
    answers: Dict[int, Union[int, float, str, None]] = Field(default_factory=dict)
