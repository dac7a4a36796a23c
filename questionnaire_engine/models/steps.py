"""Pydantic models for presentation steps and plans."""

from __future__ import annotations

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from questionnaire_engine.models.entities import Group, Question


class _StepBase(BaseModel):
    index: int
    initially_visible: bool = False
    previous: Optional[int] = None
    next: Optional[int] = None
    action: Literal["next", "submit"] = "next"


class GroupStep(_StepBase):
    kind: Literal["group"] = "group"
    group: Group
    questions: List[Question] = Field(default_factory=list)


class QuestionStep(_StepBase):
    kind: Literal["question"] = "question"
    question: Question


class SummaryStep(_StepBase):
    kind: Literal["summary"] = "summary"
    action: Literal["next", "submit"] = "submit"


Step = Annotated[Union[GroupStep, QuestionStep, SummaryStep], Field(discriminator="kind")]


class Plan(BaseModel):
    questionnaire_id: int
    total_steps: int
    steps: List[Step]


__all__ = ["GroupStep", "QuestionStep", "SummaryStep", "Step", "Plan"]
