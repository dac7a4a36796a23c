"""QuestionType and QuestionnaireStatus constants.

Provides simple constants containers instead of Enums to keep imports
lightweight in architectural tests and to keep stored values plain strings.
"""

from __future__ import annotations


class QuestionType:
    TEXT = "text"
    EMAIL = "email"
    PHONE = "phone"
    TEXTAREA = "textarea"
    SELECT = "select"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    NUMBER = "number"
    DATE = "date"

    ALL = frozenset({TEXT, EMAIL, PHONE, TEXTAREA, SELECT, RADIO, CHECKBOX, NUMBER, DATE})
    CHOICE = frozenset({SELECT, RADIO, CHECKBOX})
    ALIASES = {"tel": PHONE}

    @classmethod
    def normalize(cls, value: str | None) -> str | None:
        """Return the canonical type name, or None when unsupported."""
        if value is None:
            return None
        token = str(value).strip().lower()
        token = cls.ALIASES.get(token, token)
        return token if token in cls.ALL else None


class QuestionnaireStatus:
    DRAFT = "draft"
    ACTIVE = "active"
    PUBLISHED = "published"
    ARCHIVED = "archived"

    ALL = frozenset({DRAFT, ACTIVE, PUBLISHED, ARCHIVED})
    # Statuses served to end users by the presentation read path
    PRESENTABLE = (ACTIVE, PUBLISHED)
    TRANSITIONS = {
        DRAFT: frozenset({ACTIVE, PUBLISHED}),
        ACTIVE: frozenset({ARCHIVED}),
        PUBLISHED: frozenset({ARCHIVED}),
        ARCHIVED: frozenset(),
    }


__all__ = ["QuestionType", "QuestionnaireStatus"]
