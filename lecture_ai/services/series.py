from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from lecture_ai.core.errors import NotFound
from lecture_ai.core.language import normalize_subject_id
from lecture_ai.services.store import ArtifactStore, SubjectRecord


@dataclass(frozen=True)
class SeriesMember:
    id: str
    title: str | None
    position: int


def _sort_key(s: SubjectRecord) -> tuple:
    # hinted first (ascending), then un-hinted; created_at, then numeric id
    return (
        s.order_hint is None,
        s.order_hint if s.order_hint is not None else 0,
        s.created_at is None,
        s.created_at or datetime.min,
        int(s.id),
    )


def order_members(subjects: Iterable[SubjectRecord]) -> list[SeriesMember]:
    ordered = sorted(subjects, key=_sort_key)
    return [SeriesMember(id=s.id, title=s.title, position=i) for i, s in enumerate(ordered, start=1)]


class SeriesResolver:
    def __init__(self, store: ArtifactStore) -> None:
        self._store = store

    def members(self, series_id: str) -> list[SeriesMember]:
        return order_members(self._store.get_series_members(series_id))

    def members_up_to(self, series_id: str, target_subject_id: str) -> list[SeriesMember]:
        """
        Ready members of the series from position 1 through the target,
        inclusive. NotFound when the target is not a ready member.
        """
        target = normalize_subject_id(target_subject_id)
        ordered = self.members(series_id)
        for m in ordered:
            if m.id == target:
                return ordered[: m.position]
        raise NotFound(
            f"Subject {target} is not a ready member of series {series_id}",
            kind="series",
            subject_id=target,
        )
