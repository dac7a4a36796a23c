"""Typed entities decoded once at the Store boundary.

Repositories turn raw rows into these models so the resolver, planner and
builder never handle driver rows or optional dictionary keys.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class Service(BaseModel):
    id: int
    slug: str
    name: str
    is_active: bool = True


class Questionnaire(BaseModel):
    id: int
    service_id: Optional[int] = None
    title: str
    description: str = ""
    status: str
    created_at: Optional[str] = None


class Group(BaseModel):
    id: int
    questionnaire_id: int
    name: str
    description: str = ""
    sort_order: int = 0
    is_fixed: bool = False
    is_active: bool = True


class Question(BaseModel):
    id: int
    question_text: str
    question_type: str
    options: List[str] = Field(default_factory=list)
    placeholder_text: str = ""
    help_text: str = ""
    is_required: bool = False
    is_fixed: bool = False


class MembershipRow(BaseModel):
    """One questionnaire↔question association joined with its metadata.

    `group` is populated only when `group_id` references an active group;
    rows pointing at an inactive group are presented as ungrouped.
    """

    questionnaire_id: int
    question_id: int
    group_id: Optional[int] = None
    sort_order: int = 0
    question: Question
    group: Optional[Group] = None


__all__ = ["Service", "Questionnaire", "Group", "Question", "MembershipRow"]
