"""
Repository boundary for the CAT orchestrator.

The engine never touches storage. The orchestrator reads and writes through
`CatRepository`; `InMemoryCatRepository` backs tests, the CLI and embedded use.
"""

import logging
from typing import Hashable, Iterable, Protocol

from adaptive_cat.core.app_exceptions import StaleSessionError
from adaptive_cat.learning_engine.cat.domain import CatSession, Item, ResponseEvent

logger = logging.getLogger(__name__)


class CatRepository(Protocol):
    """Storage collaborators needed by the session orchestrator."""

    def get_session(self, session_id: Hashable) -> CatSession | None: ...

    def save_session(self, session: CatSession) -> None:
        """
        Persist a session (insert or update).

        Must raise StaleSessionError when the stored version differs from
        `session.version`, then bump the version on success.
        """
        ...

    def list_active_items(self) -> list[Item]: ...

    def get_item(self, item_id: Hashable) -> Item | None: ...

    def get_learner_ability(self, learner_id: Hashable) -> float | None: ...

    def set_learner_ability(self, learner_id: Hashable, theta: float) -> None: ...

    def list_learner_responses(self, learner_id: Hashable, limit: int) -> list[ResponseEvent]:
        """Most recent responses across the learner's sessions, newest first."""
        ...

    def list_learner_sessions(self, learner_id: Hashable, limit: int) -> list[CatSession]:
        """Most recent sessions of the learner, newest first."""
        ...


class InMemoryCatRepository:
    """Dict-backed CatRepository with optimistic version checks."""

    def __init__(
        self,
        items: Iterable[Item] = (),
        abilities: dict[Hashable, float] | None = None,
    ):
        self._items: dict[Hashable, Item] = {item.item_id: item for item in items}
        self._sessions: dict[Hashable, CatSession] = {}
        self._abilities: dict[Hashable, float] = dict(abilities or {})

    def get_session(self, session_id: Hashable) -> CatSession | None:
        stored = self._sessions.get(session_id)
        return stored.copy() if stored else None

    def save_session(self, session: CatSession) -> None:
        stored = self._sessions.get(session.session_id)
        stored_version = stored.version if stored else 0
        if stored_version != session.version:
            raise StaleSessionError(
                f"Session {session.session_id} was modified concurrently",
                details={"expected_version": session.version, "stored_version": stored_version},
            )
        session.version += 1
        self._sessions[session.session_id] = session.copy()

    def list_active_items(self) -> list[Item]:
        return [item for item in self._items.values() if item.is_active]

    def get_item(self, item_id: Hashable) -> Item | None:
        return self._items.get(item_id)

    def get_learner_ability(self, learner_id: Hashable) -> float | None:
        return self._abilities.get(learner_id)

    def set_learner_ability(self, learner_id: Hashable, theta: float) -> None:
        logger.debug(f"Storing ability {theta} for learner {learner_id}")
        self._abilities[learner_id] = theta

    def list_learner_responses(self, learner_id: Hashable, limit: int) -> list[ResponseEvent]:
        # (answered_at, position in session) breaks timestamp ties toward later responses
        ranked = [
            (response.answered_at, position, response)
            for session in self._sessions.values()
            if session.learner_id == learner_id
            for position, response in enumerate(session.responses)
        ]
        ranked.sort(key=lambda entry: (entry[0], entry[1]), reverse=True)
        return [response for _, _, response in ranked[:limit]]

    def list_learner_sessions(self, learner_id: Hashable, limit: int) -> list[CatSession]:
        sessions = [s.copy() for s in self._sessions.values() if s.learner_id == learner_id]
        sessions.sort(key=lambda s: s.started_at, reverse=True)
        return sessions[:limit]
