from datetime import datetime, timedelta

import pytest

from lecture_ai.core.errors import NotFound
from lecture_ai.services.series import order_members
from lecture_ai.services.store import SubjectRecord

T0 = datetime(2024, 1, 1)


def _subject(sid, order_hint, minutes, title=None):
    return SubjectRecord(
        id=sid,
        title=title or sid,
        series_id="1",
        state="ready",
        order_hint=order_hint,
        created_at=T0 + timedelta(minutes=minutes),
    )


def test_hinted_members_first_then_unhinted_by_created():
    a = _subject("10", 3, 1, "A")
    b = _subject("20", 1, 2, "B")
    c = _subject("30", None, 3, "C")
    d = _subject("40", 2, 4, "D")

    ordered = order_members([a, b, c, d])

    assert [m.title for m in ordered] == ["B", "D", "A", "C"]
    assert [m.position for m in ordered] == [1, 2, 3, 4]


def test_ordering_is_independent_of_input_order():
    subjects = [_subject("1", None, 5), _subject("2", None, 1), _subject("3", 7, 9), _subject("4", 7, 2)]
    expected = [m.id for m in order_members(subjects)]

    assert expected == ["4", "3", "2", "1"]
    assert [m.id for m in order_members(reversed(subjects))] == expected


def test_numeric_id_breaks_full_ties():
    ordered = order_members([_subject("100", None, 0), _subject("99", None, 0)])
    assert [m.id for m in ordered] == ["99", "100"]


def test_members_up_to_target(container, seed_subject):
    seed_subject(1, series_id=5, order_hint=3, created_offset=1)
    seed_subject(2, series_id=5, order_hint=1, created_offset=2)
    seed_subject(3, series_id=5, order_hint=None, created_offset=3)
    seed_subject(4, series_id=5, order_hint=2, created_offset=4)
    seed_subject(5, series_id=5, order_hint=None, created_offset=5, state="processing")
    seed_subject(6, series_id=8)

    members = container.resolver.members_up_to("5", "4")
    assert [m.id for m in members] == ["2", "4"]

    members = container.resolver.members_up_to("5", "3")
    assert [m.id for m in members] == ["2", "4", "1", "3"]


def test_target_outside_series_is_not_found(container, seed_subject):
    seed_subject(1, series_id=5)
    seed_subject(2, series_id=5, state="processing")
    seed_subject(3, series_id=9)

    with pytest.raises(NotFound):
        container.resolver.members_up_to("5", "2")
    with pytest.raises(NotFound):
        container.resolver.members_up_to("5", "3")
