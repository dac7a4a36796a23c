"""Pydantic models for builder request payloads.

Kept separate from the route modules so payload shapes can be imported by
tests and clients without pulling in the HTTP layer.
"""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, Field


class QuestionnaireCreate(BaseModel):
    service_id: Optional[int] = None
    title: str
    description: str = ""
    status: str = "draft"
    seed_fixed_contact_fields: Optional[bool] = None


class StatusChange(BaseModel):
    status: str


class GroupCreate(BaseModel):
    name: str
    description: str = ""


class GroupCombine(BaseModel):
    question_ids: List[int]
    name: str
    description: str = ""


class GroupReorder(BaseModel):
    group_ids: List[int]


class GroupEdit(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None


class QuestionFields(BaseModel):
    """Editable question fields; `options` accepts any stored encoding."""

    question_text: Optional[str] = None
    question_type: Optional[str] = None
    options: Any = None
    placeholder_text: Optional[str] = None
    help_text: Optional[str] = None
    is_required: Optional[bool] = None


class QuestionCreate(QuestionFields):
    question_text: str
    question_type: str
    group_id: Optional[int] = None


class QuestionAttach(BaseModel):
    question_id: int
    group_id: Optional[int] = None


class QuestionMove(BaseModel):
    target_group_id: Optional[int] = None
    target_index: int = Field(ge=0)


__all__ = [
    "QuestionnaireCreate",
    "StatusChange",
    "GroupCreate",
    "GroupCombine",
    "GroupReorder",
    "GroupEdit",
    "QuestionFields",
    "QuestionCreate",
    "QuestionAttach",
    "QuestionMove",
]
