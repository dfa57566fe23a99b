"""Process-wide context holding the quiz catalog and the session engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from quizzer.core.clock import Clock, now_ms
from quizzer.core.id_generator import generate_id
from quizzer.core.services.countdown import RecurringTimer, TimerFactory, create_qt_timer
from quizzer.core.services.quiz_catalog import QuizCatalog
from quizzer.core.services.session_engine import SessionEngine
from quizzer.core.services.storage import KeyValueStore


@dataclass(slots=True)
class AppContext:
    """Built once at startup and passed to whatever needs the managers.

    The countdown timer lives exactly as long as the context: ``close()``
    cancels it so no tick ever runs against a discarded context.
    """

    store: KeyValueStore
    catalog: QuizCatalog
    engine: SessionEngine
    timer: RecurringTimer

    @classmethod
    def create(
        cls,
        store: KeyValueStore,
        timer_factory: TimerFactory = create_qt_timer,
        clock: Clock = now_ms,
        id_factory: Callable[[], str] = generate_id,
    ) -> "AppContext":
        catalog = QuizCatalog(store, clock=clock, id_factory=id_factory)
        engine = SessionEngine(catalog, store, clock=clock, id_factory=id_factory)
        timer = timer_factory(engine.tick)
        timer.start()
        return cls(store=store, catalog=catalog, engine=engine, timer=timer)

    def close(self) -> None:
        self.timer.cancel()

    def __enter__(self) -> "AppContext":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
