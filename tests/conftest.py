import os

# must be set before lecture_ai.worker.celery_app is imported
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["GENERATOR_PROVIDER"] = "heuristic"
os.environ["QUEUE_ENABLED"] = "1"

from datetime import datetime, timedelta  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from lecture_ai.core.config import get_settings  # noqa: E402
from lecture_ai.core.container import Container  # noqa: E402
from lecture_ai.db.base import Base  # noqa: E402
from lecture_ai.db.session import build_engine  # noqa: E402
from lecture_ai.main import create_app  # noqa: E402
from lecture_ai.models import Subject  # noqa: E402
from lecture_ai.services.llm import GenerationResult, HeuristicGenerator  # noqa: E402

TRANSCRIPT = (
    "Photosynthesis converts light energy into chemical energy. "
    "It takes place in the chloroplasts of plant cells. "
    "Chlorophyll absorbs mostly blue and red light. "
    "The light reactions produce ATP and NADPH. "
    "The Calvin cycle fixes carbon dioxide into sugars. "
    "Oxygen is released as a by-product of splitting water."
)

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class CountingGenerator:
    """Heuristic output, but every call is recorded and failures can be injected."""

    name = "fake"
    default_model = "fake-model"
    configured = True

    def __init__(self) -> None:
        self.calls: list[tuple[str, str | None]] = []
        self.fail_with: Exception | None = None
        self._inner = HeuristicGenerator()

    def generate(self, kind, transcript, *, model=None):
        self.calls.append((kind, model))
        if self.fail_with is not None:
            raise self.fail_with
        r = self._inner.generate(kind, transcript)
        return GenerationResult(
            payload=r.payload,
            model=model or self.default_model,
            processing_time_ms=r.processing_time_ms,
            tokens_used=42,
        )

    def count(self, kind: str) -> int:
        return sum(1 for k, _ in self.calls if k == kind)


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def generator():
    return CountingGenerator()


@pytest.fixture()
def engine():
    eng = build_engine("sqlite://")
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def container(engine, generator, clock):
    c = Container(get_settings(), engine=engine, generator=generator, clock=clock)
    yield c
    c.cache.stop_sweeper()


@pytest.fixture()
def store(container):
    return container.store


@pytest.fixture()
def client(container):
    app = create_app(container)
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def seed_subject(container):
    def _seed(subject_id, series_id=None, order_hint=None, created_offset=0, state="ready", title=None):
        with container.session() as db:
            db.add(
                Subject(
                    id=int(subject_id),
                    title=title or f"Video {subject_id}",
                    series_id=int(series_id) if series_id is not None else None,
                    state=state,
                    order_hint=order_hint,
                    created_at=BASE_TIME + timedelta(minutes=created_offset),
                )
            )
        return str(subject_id)

    return _seed
