"""Seeding of the mandatory contact section.

Every new questionnaire can start with a fixed, active "Kontaktinformationen"
group holding five fixed contact questions. The group sits at sort_order -1
so it always precedes groups created by editors.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.engine import Connection

from questionnaire_engine.logic import repository_groups, repository_membership, repository_questions
from questionnaire_engine.models.entities import Group
from questionnaire_engine.models.question_type import QuestionType

logger = logging.getLogger(__name__)

CONTACT_GROUP_NAME = "Kontaktinformationen"
CONTACT_GROUP_DESCRIPTION = "Bitte geben Sie Ihre Kontaktdaten ein, damit wir Sie erreichen können."
CONTACT_GROUP_SORT_ORDER = -1

# (question_text, question_type, is_required, placeholder_text, help_text)
CONTACT_FIELDS = (
    ("Vorname", QuestionType.TEXT, True, "Ihr Vorname", ""),
    ("Nachname", QuestionType.TEXT, True, "Ihr Nachname", ""),
    ("E-Mail Adresse", QuestionType.EMAIL, True, "ihre.email@beispiel.de", ""),
    ("Telefonnummer", QuestionType.PHONE, False, "+49 123 456789", "Ihre Festnetznummer (optional)"),
    ("Mobilnummer", QuestionType.PHONE, False, "+49 170 1234567", "Ihre Mobilnummer (optional)"),
)


def seed_contact_fields(conn: Connection, questionnaire_id: int) -> Optional[Group]:
    """Create the fixed contact group and its questions inside ``conn``'s transaction.

    Returns the new group, or None when the questionnaire already has a
    fixed group.
    """
    if repository_groups.get_fixed_group(conn, questionnaire_id) is not None:
        logger.info("seed_contact_fields skipped qid=%s (fixed group exists)", questionnaire_id)
        return None

    group = repository_groups.upsert_group(
        conn,
        questionnaire_id=questionnaire_id,
        name=CONTACT_GROUP_NAME,
        description=CONTACT_GROUP_DESCRIPTION,
        sort_order=CONTACT_GROUP_SORT_ORDER,
        is_fixed=True,
        is_active=True,
    )
    for idx, (text, qtype, required, placeholder, help_text) in enumerate(CONTACT_FIELDS):
        question = repository_questions.upsert_question(
            conn,
            question_text=text,
            question_type=qtype,
            placeholder_text=placeholder,
            help_text=help_text,
            is_required=required,
            is_fixed=True,
        )
        repository_membership.upsert_membership(
            conn,
            questionnaire_id=questionnaire_id,
            question_id=question.id,
            group_id=group.id,
            sort_order=idx,
        )
    logger.info("seed_contact_fields qid=%s group_id=%s", questionnaire_id, group.id)
    return group


__all__ = [
    "CONTACT_GROUP_NAME",
    "CONTACT_GROUP_DESCRIPTION",
    "CONTACT_GROUP_SORT_ORDER",
    "CONTACT_FIELDS",
    "seed_contact_fields",
]
