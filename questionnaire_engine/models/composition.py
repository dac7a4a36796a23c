"""Pydantic models for the resolved (grouped/ordered) questionnaire structure."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field

from questionnaire_engine.models.entities import Group, Question, Questionnaire


class GroupBucket(BaseModel):
    group: Group
    questions: List[Question] = Field(default_factory=list)


class Composition(BaseModel):
    groups: List[GroupBucket] = Field(default_factory=list)
    ungrouped: List[Question] = Field(default_factory=list)
    flat: List[Question] = Field(default_factory=list)


class BuilderView(BaseModel):
    """Editor-facing structure: every active group, including empty ones."""

    questionnaire: Questionnaire
    groups: List[GroupBucket] = Field(default_factory=list)
    ungrouped: List[Question] = Field(default_factory=list)


__all__ = ["GroupBucket", "Composition", "BuilderView"]
