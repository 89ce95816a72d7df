from dataclasses import replace

import pytest

from lecture_ai.core.errors import FeatureDisabled, NotFound
from lecture_ai.services.artifacts import Provenance
from lecture_ai.services.cumulative_quiz import merge_questions
from lecture_ai.services.series import SeriesMember
from lecture_ai.services.store import ArtifactKind, ArtifactRecord, CumulativeRecord


def _tf(text, timestamp=None):
    q = {"type": "true_false", "question": text, "correct_answer": True}
    if timestamp is not None:
        q["timestamp"] = timestamp
    return q


def _mc(text):
    return {"type": "multiple_choice", "question": text, "options": ["a", "b", "c"], "correct_answer": 1}


def _quiz(store, sid, questions, language="en"):
    store.upsert_artifact(ArtifactKind.QUIZ, sid, language, {"questions": questions}, "m")


@pytest.fixture()
def series(seed_subject):
    """Series 5: A (hint 1), B (hint 2), C (hint 3), all ready."""
    seed_subject(101, series_id=5, order_hint=1, created_offset=1, title="A")
    seed_subject(102, series_id=5, order_hint=2, created_offset=2, title="B")
    seed_subject(103, series_id=5, order_hint=3, created_offset=3, title="C")
    return ["101", "102", "103"]


def test_merge_keeps_member_order_and_tags_context(store, series, container):
    _quiz(store, "101", [_tf("a1", timestamp=12.5), _mc("a2")])
    _quiz(store, "103", [_tf("c1"), _tf("c2"), _mc("c3")])

    res = container.composer.generate("103", "en")
    questions = res.quiz.questions

    assert res.provenance is Provenance.FRESH
    assert [q["question"] for q in questions] == ["a1", "a2", "c1", "c2", "c3"]
    assert [q["video_context"]["video_number"] for q in questions] == [1, 1, 3, 3, 3]
    assert questions[0]["video_context"] == {
        "subject_id": "101",
        "video_title": "A",
        "video_number": 1,
        "timestamp": 12.5,
    }
    assert res.quiz.included_subject_ids == ["101", "102", "103"]
    assert res.quiz.subject_count == 3
    assert res.quiz.series_id == "5"


def test_only_members_up_to_target_are_included(store, series, container):
    for sid in series:
        _quiz(store, sid, [_tf(f"q-{sid}")])

    res = container.composer.generate("102", "en")
    assert res.quiz.included_subject_ids == ["101", "102"]
    assert [q["question"] for q in res.quiz.questions] == ["q-101", "q-102"]


def test_second_call_returns_cached_snapshot(store, series, container):
    _quiz(store, "101", [_tf("a1")])
    container.composer.generate("102", "en")

    again = container.composer.generate("102", "EN")
    assert again.provenance is Provenance.CACHED


def test_new_member_before_target_makes_snapshot_stale(store, series, container, seed_subject):
    _quiz(store, "101", [_tf("a1")])
    first = container.composer.generate("103", "en")
    assert first.quiz.subject_count == 3

    seed_subject(104, series_id=5, order_hint=0, created_offset=0, title="Intro")
    _quiz(store, "104", [_tf("intro")])

    res = container.composer.generate("103", "en")
    assert res.provenance is Provenance.FRESH
    assert res.quiz.included_subject_ids == ["104", "101", "102", "103"]
    assert res.quiz.questions[0]["question"] == "intro"


def test_membership_compared_as_set(store, series, container):
    snapshot = CumulativeRecord(
        subject_id="103",
        series_id="5",
        language="en",
        model="m",
        questions=[],
        included_subject_ids=["103", "101", "102"],
        subject_count=3,
    )
    assert container.composer.is_current(snapshot, "103") is True

    extra = replace(snapshot, included_subject_ids=["101", "102", "103", "104"], subject_count=4)
    fewer = replace(snapshot, included_subject_ids=["101", "102"], subject_count=2)
    assert container.composer.is_current(extra, "103") is False
    assert container.composer.is_current(fewer, "103") is False


def test_store_snapshot_is_reused_after_cache_loss(store, series, container):
    _quiz(store, "101", [_tf("a1")])
    container.composer.generate("102", "en")
    container.cache.clear()

    res = container.composer.generate("102", "en")
    assert res.provenance is Provenance.FROM_STORE


def test_member_quiz_edits_do_not_invalidate_snapshot(store, series, container):
    _quiz(store, "101", [_tf("a1")])
    container.composer.generate("102", "en")
    _quiz(store, "102", [_tf("b1")])

    res = container.composer.generate("102", "en")
    assert res.provenance is Provenance.CACHED
    assert [q["question"] for q in res.quiz.questions] == ["a1"]

    forced = container.composer.generate("102", "en", force_regenerate=True)
    assert [q["question"] for q in forced.quiz.questions] == ["a1", "b1"]


def test_target_removed_from_series_is_not_found(store, series, container):
    from lecture_ai.models import Subject

    _quiz(store, "101", [_tf("a1")])
    container.composer.generate("102", "en")
    with container.session() as db:
        db.get(Subject, 102).state = "processing"

    with pytest.raises(NotFound):
        container.composer.generate("102", "en")


def test_subject_without_series_is_not_found(container, seed_subject):
    seed_subject(200)
    with pytest.raises(NotFound):
        container.composer.generate("200", "en")
    with pytest.raises(NotFound):
        container.composer.generate("404", "en")


def test_disabled_quizzes_block_composition(store, series, container):
    store.set_config("quiz_enabled", False)
    with pytest.raises(FeatureDisabled):
        container.composer.generate("101", "en")


def test_get_delete_and_stats(store, series, container):
    _quiz(store, "101", [_tf("a1"), _tf("a2")])
    with pytest.raises(NotFound):
        container.composer.get("101", "en")

    container.composer.generate("101", "en")
    assert container.composer.get("101", "en").provenance is Provenance.CACHED
    assert container.composer.stats()["total_quizzes"] == 1

    assert container.composer.delete("101", "en") is True
    with pytest.raises(NotFound):
        container.composer.get("101", "en")

    container.composer.generate("101", "en")
    container.composer.generate("102", "en")
    assert container.composer.delete_all() == 2
    assert container.composer.generate("102", "en").provenance is Provenance.FRESH


def test_merge_questions_counts_and_positions():
    members = [SeriesMember("1", "One", 1), SeriesMember("2", "Two", 2), SeriesMember("3", "Three", 3)]
    quizzes = {
        "1": ArtifactRecord(ArtifactKind.QUIZ, "1", "en", {"questions": [_tf("x"), _tf("y")]}, "m", None),
        "3": ArtifactRecord(ArtifactKind.QUIZ, "3", "en", {"questions": [_mc("p"), _mc("q"), _tf("r")]}, "m", None),
    }

    merged = merge_questions(members, quizzes)

    assert len(merged) == 5
    assert [q["video_context"]["video_number"] for q in merged] == [1, 1, 3, 3, 3]
    assert [q["question"] for q in merged] == ["x", "y", "p", "q", "r"]


def test_merge_skips_malformed_member_quiz():
    members = [SeriesMember("1", "One", 1), SeriesMember("2", "Two", 2)]
    quizzes = {
        "1": ArtifactRecord(ArtifactKind.QUIZ, "1", "en", {"questions": [{"type": "essay"}]}, "m", None),
        "2": ArtifactRecord(ArtifactKind.QUIZ, "2", "en", {"questions": [_tf("ok")]}, "m", None),
    }
    merged = merge_questions(members, quizzes)
    assert [q["question"] for q in merged] == ["ok"]


def test_merge_drops_only_the_bad_question_of_a_member():
    members = [SeriesMember("1", "One", 1), SeriesMember("2", "Two", 2)]
    bad_mc = {"type": "multiple_choice", "question": "broken", "options": ["a", "b"], "correct_answer": 7}
    quizzes = {
        "1": ArtifactRecord(ArtifactKind.QUIZ, "1", "en", {"questions": [_tf("a1"), bad_mc, _mc("a3")]}, "m", None),
        "2": ArtifactRecord(ArtifactKind.QUIZ, "2", "en", {"questions": "not a list"}, "m", None),
    }

    merged = merge_questions(members, quizzes)

    assert [q["question"] for q in merged] == ["a1", "a3"]
    assert {q["video_context"]["subject_id"] for q in merged} == {"1"}
