"""Composition resolver: flat membership rows → grouped/ordered structure.

Pure function, no I/O. The input is expected in the Store's canonical order;
order inside each bucket is taken from the input and never re-sorted.
"""

from __future__ import annotations

from typing import Dict, Iterable, List

from questionnaire_engine.models.composition import Composition, GroupBucket
from questionnaire_engine.models.entities import MembershipRow


def resolve_composition(rows: Iterable[MembershipRow]) -> Composition:
    """Group membership rows into ordered group buckets and an ungrouped list.

    A single pass appends every question to ``flat``; grouped rows go to a
    bucket created on first sight of their group, other rows to
    ``ungrouped``. Buckets are then stable-sorted by (sort_order, group id).
    """
    buckets: Dict[int, GroupBucket] = {}
    ungrouped = []
    flat = []
    for row in rows:
        flat.append(row.question)
        if row.group_id is not None and row.group is not None:
            bucket = buckets.get(row.group_id)
            if bucket is None:
                bucket = GroupBucket(group=row.group)
                buckets[row.group_id] = bucket
            bucket.questions.append(row.question)
        else:
            ungrouped.append(row.question)

    ordered: List[GroupBucket] = sorted(
        buckets.values(), key=lambda b: (b.group.sort_order, b.group.id)
    )
    return Composition(groups=ordered, ungrouped=ungrouped, flat=flat)


__all__ = ["resolve_composition"]
