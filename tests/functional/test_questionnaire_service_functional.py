"""Functional tests for the questionnaire read path and lifecycle."""

from __future__ import annotations

import pytest

from questionnaire_engine.errors import NotFoundError, ValidationError
from questionnaire_engine.logic import events, questionnaire_service
from questionnaire_engine.logic.fixed_contact_fields import CONTACT_FIELDS, CONTACT_GROUP_NAME, seed_contact_fields
from questionnaire_engine.models.steps import GroupStep


@pytest.mark.parametrize("status", ["draft", "archived"])
def test_resolve_hides_non_presentable_questionnaires(seed, status) -> None:
    qn = seed.questionnaire(status=status)

    with pytest.raises(NotFoundError):
        questionnaire_service.resolve(qn)
    assert questionnaire_service.preview(qn).total_steps == 1


def test_resolve_unknown_questionnaire(engine) -> None:
    with pytest.raises(NotFoundError):
        questionnaire_service.resolve(123456)


def test_resolve_for_service_picks_latest_presentable(seed) -> None:
    sid = seed.service("umzug")
    seed.questionnaire("alt", service_id=sid, created_at="2024-01-01 10:00:00")
    newest_tie_low = seed.questionnaire("neu-a", service_id=sid, created_at="2024-03-01 10:00:00")
    newest_tie_high = seed.questionnaire("neu-b", service_id=sid, status="published", created_at="2024-03-01 10:00:00")
    seed.questionnaire("entwurf", service_id=sid, status="draft", created_at="2025-01-01 10:00:00")

    plan = questionnaire_service.resolve_for_service("umzug")

    assert plan.questionnaire_id == newest_tie_high
    assert plan.questionnaire_id != newest_tie_low


def test_resolve_for_service_not_found_cases(seed) -> None:
    inactive = seed.service("inaktiv", is_active=False)
    seed.questionnaire(service_id=inactive)
    seed.service("leer")

    for slug in ("inaktiv", "leer", "gibt-es-nicht"):
        with pytest.raises(NotFoundError):
            questionnaire_service.resolve_for_service(slug)


def test_builder_view_lists_empty_groups(seed) -> None:
    qn = seed.questionnaire(status="draft")
    empty = seed.group(qn, "Leer", 1)
    full = seed.group(qn, "Voll", 0)
    q = seed.question(qn, "Frage", group_id=full)
    loose = seed.question(qn, "Lose")

    view = questionnaire_service.builder_view(qn)

    assert [(b.group.id, [x.id for x in b.questions]) for b in view.groups] == [(full, [q]), (empty, [])]
    assert [x.id for x in view.ungrouped] == [loose]
    assert view.questionnaire.status == "draft"


def test_create_questionnaire_seeds_contact_fields(engine) -> None:
    questionnaire = questionnaire_service.create_questionnaire(title="Kontakt", seed_fixed_contact_fields=True)

    view = questionnaire_service.builder_view(questionnaire.id)
    assert questionnaire.status == "draft"
    assert len(view.groups) == 1
    contact = view.groups[0]
    assert contact.group.name == CONTACT_GROUP_NAME
    assert contact.group.is_fixed and contact.group.sort_order == -1
    assert [q.question_text for q in contact.questions] == [f[0] for f in CONTACT_FIELDS]
    assert all(q.is_fixed for q in contact.questions)
    assert [q.question_type for q in contact.questions] == ["text", "text", "email", "phone", "phone"]
    assert [q.is_required for q in contact.questions] == [True, True, True, False, False]
    assert events.get_buffered_events()[-1]["type"] == events.QUESTIONNAIRE_CREATED


def test_seeding_is_idempotent(engine) -> None:
    questionnaire = questionnaire_service.create_questionnaire(title="Kontakt", seed_fixed_contact_fields=True)

    with engine.begin() as conn:
        assert seed_contact_fields(conn, questionnaire.id) is None

    assert len(questionnaire_service.builder_view(questionnaire.id).groups) == 1


def test_create_questionnaire_honors_configured_default(engine) -> None:
    # conftest sets SEED_FIXED_CONTACT_FIELDS=false
    questionnaire = questionnaire_service.create_questionnaire(title="Ohne Kontakt")

    assert questionnaire_service.builder_view(questionnaire.id).groups == []


@pytest.mark.parametrize(
    "kwargs, error",
    [
        ({"title": "  "}, ValidationError),
        ({"title": "X", "status": "deleted"}, ValidationError),
        ({"title": "X", "service_id": 9999}, NotFoundError),
    ],
)
def test_create_questionnaire_rejects_bad_input(engine, kwargs, error) -> None:
    with pytest.raises(error):
        questionnaire_service.create_questionnaire(**kwargs)


def test_status_state_machine(seed) -> None:
    qn = seed.questionnaire(status="draft")

    with pytest.raises(ValidationError):
        questionnaire_service.transition_status(qn, "archived")
    assert questionnaire_service.transition_status(qn, "published").status == "published"
    assert questionnaire_service.resolve(qn).questionnaire_id == qn
    assert questionnaire_service.transition_status(qn, "archived").status == "archived"
    with pytest.raises(NotFoundError):
        questionnaire_service.resolve(qn)
    with pytest.raises(ValidationError):
        questionnaire_service.transition_status(qn, "active")


def test_archived_questionnaire_stays_visible_to_builder(seed) -> None:
    qn = seed.questionnaire(status="archived")
    g = seed.group(qn, "Archiv", 0)
    seed.question(qn, "Frage", group_id=g)

    preview = questionnaire_service.preview(qn)

    assert isinstance(preview.steps[0], GroupStep)
    assert questionnaire_service.builder_view(qn).questionnaire.status == "archived"
