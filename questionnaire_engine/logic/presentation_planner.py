"""Presentation planner: resolved composition → navigable steps.

Every group becomes one GroupStep (in group order), every ungrouped question
one QuestionStep (in ungrouped order), and a SummaryStep closes the plan.
Grouped sections always come before ungrouped questions, whatever their
relative storage order.
"""

from __future__ import annotations

from typing import List, Union

from questionnaire_engine.models.composition import Composition
from questionnaire_engine.models.steps import GroupStep, Plan, QuestionStep, SummaryStep

AnyStep = Union[GroupStep, QuestionStep, SummaryStep]


def plan_steps(questionnaire_id: int, composition: Composition) -> Plan:
    total = len(composition.groups) + len(composition.ungrouped) + 1
    steps: List[AnyStep] = []

    def _links(index: int) -> dict:
        return {
            "index": index,
            "initially_visible": index == 0,
            "previous": index - 1 if index > 0 else None,
            "next": index + 1 if index < total - 1 else None,
        }

    for bucket in composition.groups:
        steps.append(
            GroupStep(group=bucket.group, questions=list(bucket.questions), **_links(len(steps)))
        )
    for question in composition.ungrouped:
        steps.append(QuestionStep(question=question, **_links(len(steps))))
    steps.append(SummaryStep(**_links(len(steps))))

    return Plan(questionnaire_id=int(questionnaire_id), total_steps=total, steps=steps)


__all__ = ["plan_steps"]
