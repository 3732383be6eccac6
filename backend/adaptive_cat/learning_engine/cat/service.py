"""
CAT Session Service - Main orchestration layer.

Coordinates:
- Session creation with carried-over ability
- Termination checks (pool exhaustion, stopping rules)
- Content-balanced maximum-information item selection
- Response recording and ability re-estimation
- Batch submission of a whole session
- Session finalization and learner ability bookkeeping

This is the only CAT component that talks to storage, and only through
a CatRepository.
"""

import logging
import random
from datetime import UTC, datetime
from typing import Hashable, Iterable
from uuid import uuid4

from adaptive_cat.core.app_exceptions import (
    DuplicateItemError,
    ItemNotFoundError,
    LearnerNotFoundError,
    NoResponsesError,
    SessionCompletedError,
    SessionLimitError,
    SessionNotFoundError,
)
from adaptive_cat.learning_engine.cat.domain import (
    CatSession,
    Item,
    ResponseEvent,
    ScoredResponse,
    SessionSummary,
    normalize_category,
)
from adaptive_cat.learning_engine.cat.estimation import clamp_theta, estimate_ability
from adaptive_cat.learning_engine.cat.repo import CatRepository
from adaptive_cat.learning_engine.cat.scoring import (
    classify_ability,
    feedback_message,
    recommended_difficulty_range,
    reliability,
    standard_error,
)
from adaptive_cat.learning_engine.cat.selection import (
    available_candidates,
    balance_candidates,
    create_seeded_rng,
    select_next_item,
)
from adaptive_cat.learning_engine.cat.stopping import should_stop
from adaptive_cat.learning_engine.config import (
    ABILITY_RESET_THRESHOLD,
    RECALCULATION_RESPONSE_LIMIT,
    SEM_UNDEFINED,
    THETA_DEFAULT,
    THETA_MAX,
    THETA_MIN,
)
from adaptive_cat.learning_engine.constants import SessionStatus, SessionType, StopReason
from adaptive_cat.schemas.cat import (
    AbilityDiagnosisOut,
    AbilityResetOut,
    AbilityUpdateOut,
    CatConfig,
    ItemOut,
    NextItemOut,
    RecentSessionOut,
    ResponseIn,
    ResponseRecordedOut,
    ResponsesSubmittedOut,
    SessionStartOut,
    SessionSummaryOut,
)

logger = logging.getLogger(__name__)

_COMPLETION_MESSAGES = {
    StopReason.POOL_EXHAUSTED: "No more items available",
    StopReason.TARGET_PRECISION: "Assessment complete - sufficient precision achieved",
    StopReason.MAX_ITEMS: "Assessment complete - maximum items reached",
    StopReason.RESPONSES_SUBMITTED: "Responses saved successfully",
}


class CatSessionService:
    """
    Orchestrates adaptive sessions over a repository.

    Stateless apart from the injected collaborators: two services sharing a
    repository see the same sessions. Callers must serialize requests for the
    same session; concurrent writers surface as StaleSessionError.
    """

    def __init__(
        self,
        repository: CatRepository,
        config: CatConfig | None = None,
        rng: random.Random | None = None,
    ):
        self.repository = repository
        self.config = config or CatConfig()
        self.rng = rng or create_seeded_rng()

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def start_session(
        self,
        learner_id: Hashable,
        session_type: SessionType = SessionType.PRE_ASSESSMENT,
        initial_theta: float | None = None,
        session_id: Hashable | None = None,
    ) -> SessionStartOut:
        """
        Create an Active session.

        The initial theta is the explicit value when given, otherwise the
        learner's stored ability (0.0 for a new learner), clamped to [-3, 3].
        """
        if initial_theta is None:
            stored = self.repository.get_learner_ability(learner_id)
            initial_theta = THETA_DEFAULT.value if stored is None else stored
        initial_theta = clamp_theta(float(initial_theta))

        session = CatSession(
            session_id=session_id if session_id is not None else uuid4(),
            learner_id=learner_id,
            initial_theta=initial_theta,
            current_theta=initial_theta,
            session_type=SessionType(session_type),
        )
        self.repository.save_session(session)

        logger.info(
            f"Started {session.session_type.value} session {session.session_id} "
            f"for learner {learner_id} at theta={initial_theta}"
        )

        return SessionStartOut(
            session_id=session.session_id,
            learner_id=learner_id,
            session_type=session.session_type,
            initial_theta=initial_theta,
            status=session.status,
            started_at=session.started_at,
        )

    def next_item(self, session_id: Hashable) -> NextItemOut:
        """
        Decide whether the session is over and, if not, which item comes next.

        Steps:
        1. Load the session (a completed session returns its summary)
        2. Empty candidate pool -> finalize
        3. Once min_items is reached, compute SEM and apply the stopping rules
        4. Otherwise content-balance the pool and select by maximum information
        """
        session = self._load(session_id)

        if session.is_completed:
            return self._completed_out(session)

        # Step 2: candidate pool
        pool = available_candidates(
            self.repository.list_active_items(),
            session.administered_item_ids,
        )
        answered = session.items_answered

        if not pool:
            logger.info(f"Session {session_id}: no more items after {answered} responses")
            self._finalize(session, StopReason.POOL_EXHAUSTED, sem=None)
            return self._completed_out(session)

        # Step 3: stopping rules
        sem = SEM_UNDEFINED.value
        if answered >= self.config.min_items:
            sem = standard_error(session.current_theta, (r.item for r in session.responses))

        decision = should_stop(
            answered,
            sem,
            self.config.min_items,
            self.config.max_items,
            self.config.target_sem,
        )
        if decision.stop:
            self._finalize(session, decision.reason, sem=sem)
            return self._completed_out(session)

        # Step 4: selection
        balanced = balance_candidates(
            pool,
            session.category_counts,
            self.config.target_distribution,
        )
        item = select_next_item(
            session.current_theta,
            balanced,
            rng=self.rng,
            threshold_ratio=self.config.near_tie_ratio,
        )

        session.offered_item_id = item.item_id
        self.repository.save_session(session)

        logger.debug(
            f"Session {session_id}: offering item {item.item_id} ({item.category}) "
            f"after {answered} responses, pool={len(pool)}, balanced pool={len(balanced)}"
        )

        return NextItemOut(
            session_id=session.session_id,
            assessment_complete=False,
            item=ItemOut(
                item_id=item.item_id,
                category=item.category,
                a=item.a,
                b=item.b,
                c=item.c,
                content=item.content,
            ),
            current_theta=round(session.current_theta, 3),
            items_completed=answered,
            items_remaining=min(self.config.max_items - answered, len(pool)),
            progress_percentage=round(answered / self.config.max_items * 100, 1),
            recommended_difficulty=recommended_difficulty_range(session.current_theta),
        )

    def record_response(
        self,
        session_id: Hashable,
        item_id: Hashable,
        is_correct: bool,
        time_spent: float = 0.0,
        selected_option: str = "",
    ) -> ResponseRecordedOut:
        """
        Append a response and re-estimate ability over the full history.

        Raises:
            SessionNotFoundError: Unknown session
            SessionCompletedError: Session already completed
            SessionLimitError: Session already holds max_items responses
            ItemNotFoundError: Unknown item
            DuplicateItemError: Item already administered in this session
        """
        session = self._load(session_id)
        self._check_accepting(session, incoming=1)
        item = self._admissible_item(session, item_id, session.administered_item_ids)

        previous_theta = session.current_theta
        scored = session.scored_responses()
        scored.append(ScoredResponse(is_correct=bool(is_correct), a=item.a, b=item.b, c=item.c))

        new_theta = estimate_ability(
            scored,
            session.initial_theta,
            max_iter=self.config.mle_max_iter,
            tol=self.config.mle_tol,
        )

        event = ResponseEvent(
            item=item,
            is_correct=bool(is_correct),
            theta_before=previous_theta,
            theta_after=new_theta,
            time_spent=time_spent,
            selected_option=selected_option,
        )
        session.responses = session.responses + (event,)
        session.current_theta = new_theta
        category = normalize_category(item.category)
        session.category_counts[category] = session.category_counts.get(category, 0) + 1
        session.offered_item_id = None

        self.repository.save_session(session)

        sem = standard_error(new_theta, (r.item for r in session.responses))
        theta_change = new_theta - previous_theta

        logger.info(
            f"Session {session_id}: item {item_id} {'correct' if is_correct else 'incorrect'}, "
            f"theta {previous_theta} -> {new_theta}, sem={sem}, n={session.items_answered}"
        )

        return ResponseRecordedOut(
            session_id=session.session_id,
            item_id=item.item_id,
            is_correct=bool(is_correct),
            new_theta=round(new_theta, 3),
            previous_theta=round(previous_theta, 3),
            theta_change=round(theta_change, 3),
            classification=classify_ability(new_theta),
            standard_error=round(sem, 3),
            feedback=feedback_message(bool(is_correct), theta_change),
            total_responses=session.items_answered,
        )

    def submit_responses(self, session_id: Hashable, responses: Iterable[ResponseIn]) -> ResponsesSubmittedOut:
        """
        Record a whole batch of responses and complete the session in one call.

        Steps:
        1. Load the session and validate every response before touching it
        2. Estimate once over the full history from the session's initial theta
        3. Append the events (theta before = running theta, theta after = final)
        4. Finalize: summary, Completed status, learner ability

        Raises:
            SessionNotFoundError: Unknown session
            SessionCompletedError: Session already completed
            NoResponsesError: Empty batch
            SessionLimitError: Batch would take the session past max_items
            ItemNotFoundError: Unknown item
            DuplicateItemError: Item administered earlier or twice in the batch
        """
        session = self._load(session_id)
        batch = list(responses)

        self._check_accepting(session, incoming=len(batch))
        if not batch:
            raise NoResponsesError(
                "Responses array is required and cannot be empty",
                details={"session_id": str(session_id)},
            )

        # Step 1: validate
        seen = set(session.administered_item_ids)
        items = []
        for response in batch:
            item = self._admissible_item(session, response.item_id, seen)
            seen.add(item.item_id)
            items.append(item)

        # Step 2: estimate
        previous_theta = session.current_theta
        scored = session.scored_responses() + [
            ScoredResponse(is_correct=response.is_correct, a=item.a, b=item.b, c=item.c)
            for response, item in zip(batch, items)
        ]
        final_theta = estimate_ability(
            scored,
            session.initial_theta,
            max_iter=self.config.mle_max_iter,
            tol=self.config.mle_tol,
        )

        # Step 3: events
        events = tuple(
            ResponseEvent(
                item=item,
                is_correct=response.is_correct,
                theta_before=previous_theta,
                theta_after=final_theta,
                time_spent=response.time_spent,
                selected_option=response.selected_option,
            )
            for response, item in zip(batch, items)
        )
        session.responses = session.responses + events
        session.current_theta = final_theta
        for item in items:
            category = normalize_category(item.category)
            session.category_counts[category] = session.category_counts.get(category, 0) + 1

        # Step 4: finalize
        sem = standard_error(final_theta, (r.item for r in session.responses))
        self._finalize(session, StopReason.RESPONSES_SUBMITTED, sem=sem)
        summary = session.summary

        return ResponsesSubmittedOut(
            session_id=session.session_id,
            total_responses=summary.total_items,
            correct_answers=summary.correct_count,
            accuracy=summary.accuracy,
            initial_theta=round(session.initial_theta, 3),
            final_theta=round(final_theta, 3),
            change=round(final_theta - session.initial_theta, 3),
            classification=classify_ability(final_theta),
            standard_error=round(sem, 3),
            message=_COMPLETION_MESSAGES[StopReason.RESPONSES_SUBMITTED],
        )

    # ------------------------------------------------------------------
    # Learner ability bookkeeping
    # ------------------------------------------------------------------

    def recalculate_ability(
        self,
        learner_id: Hashable,
        session_id: Hashable | None = None,
        limit: int = RECALCULATION_RESPONSE_LIMIT.value,
    ) -> AbilityUpdateOut:
        """
        Re-estimate a learner's stored ability from response history.

        Uses one session's responses when session_id is given, otherwise the
        `limit` most recent responses across sessions. Starts from the stored
        ability.

        Raises:
            SessionNotFoundError: Session unknown or owned by another learner
            NoResponsesError: Nothing to analyse
        """
        if session_id is not None:
            session = self._load(session_id)
            if session.learner_id != learner_id:
                raise SessionNotFoundError(
                    f"Session {session_id} does not belong to learner {learner_id}",
                    details={"session_id": str(session_id), "learner_id": str(learner_id)},
                )
            responses = list(session.responses)
        else:
            responses = self.repository.list_learner_responses(learner_id, limit)

        if not responses:
            raise NoResponsesError(
                "No responses found to calculate ability",
                details={"learner_id": str(learner_id)},
            )

        stored = self.repository.get_learner_ability(learner_id)
        current = THETA_DEFAULT.value if stored is None else stored

        new_theta = estimate_ability(
            [r.to_scored() for r in responses],
            current,
            max_iter=self.config.mle_max_iter,
            tol=self.config.mle_tol,
        )
        sem = standard_error(new_theta, (r.item for r in responses))
        self.repository.set_learner_ability(learner_id, new_theta)

        logger.info(f"Learner {learner_id}: ability {current} -> {new_theta} from {len(responses)} responses")

        return AbilityUpdateOut(
            learner_id=learner_id,
            ability=round(new_theta, 3),
            previous_ability=round(current, 3),
            change=round(new_theta - current, 3),
            classification=classify_ability(new_theta),
            standard_error=round(sem, 3),
            responses_analyzed=len(responses),
        )

    def reset_ability(self, learner_id: Hashable) -> AbilityResetOut:
        """Reset a learner's stored ability to the scale midpoint."""
        previous = self._stored_ability(learner_id)
        new_ability = THETA_DEFAULT.value
        self.repository.set_learner_ability(learner_id, new_ability)

        logger.info(f"Learner {learner_id}: ability reset from {previous} to {new_ability}")

        return AbilityResetOut(learner_id=learner_id, previous_ability=previous, new_ability=new_ability)

    def diagnose_ability(self, learner_id: Hashable, recent: int = 5) -> AbilityDiagnosisOut:
        """Stored ability with ceiling/floor flags and recent session results."""
        current = self._stored_ability(learner_id)
        sessions = self.repository.list_learner_sessions(learner_id, recent)

        return AbilityDiagnosisOut(
            learner_id=learner_id,
            current_ability=current,
            classification=classify_ability(current),
            is_at_ceiling=current >= THETA_MAX.value,
            is_at_floor=current <= THETA_MIN.value,
            needs_reset=abs(current) >= ABILITY_RESET_THRESHOLD.value,
            recent_sessions=[
                RecentSessionOut(
                    session_id=s.session_id,
                    session_type=s.session_type,
                    status=s.status,
                    initial_theta=s.initial_theta,
                    final_theta=s.summary.final_theta if s.summary else None,
                    total_questions=s.items_answered,
                    correct_answers=s.correct_count,
                    accuracy=s.summary.accuracy if s.summary else None,
                    started_at=s.started_at,
                )
                for s in sessions
            ],
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load(self, session_id: Hashable) -> CatSession:
        session = self.repository.get_session(session_id)
        if session is None:
            raise SessionNotFoundError(
                f"Session {session_id} not found",
                details={"session_id": str(session_id)},
            )
        return session

    def _check_accepting(self, session: CatSession, incoming: int) -> None:
        """Reject writes to a completed session or past max_items."""
        if session.is_completed:
            raise SessionCompletedError(
                f"Session {session.session_id} is completed",
                details={"session_id": str(session.session_id)},
            )
        if session.items_answered + incoming > self.config.max_items:
            raise SessionLimitError(
                f"Session {session.session_id} allows at most {self.config.max_items} responses",
                details={
                    "session_id": str(session.session_id),
                    "items_answered": session.items_answered,
                    "incoming": incoming,
                    "max_items": self.config.max_items,
                },
            )

    def _admissible_item(self, session: CatSession, item_id: Hashable, administered: set[Hashable]) -> Item:
        item = self.repository.get_item(item_id)
        if item is None:
            raise ItemNotFoundError(f"Item {item_id} not found", details={"item_id": str(item_id)})

        if item.item_id in administered:
            raise DuplicateItemError(
                f"Item {item_id} was already administered in session {session.session_id}",
                details={"session_id": str(session.session_id), "item_id": str(item_id)},
            )
        return item

    def _stored_ability(self, learner_id: Hashable) -> float:
        stored = self.repository.get_learner_ability(learner_id)
        if stored is None:
            raise LearnerNotFoundError(
                f"Learner {learner_id} not found",
                details={"learner_id": str(learner_id)},
            )
        return stored

    def _finalize(self, session: CatSession, reason: StopReason, sem: float | None) -> None:
        """Compute summary statistics, complete the session and store the final ability."""
        total = session.items_answered
        correct = session.correct_count
        accuracy = (correct / total) * 100 if total > 0 else 0.0

        session.summary = SessionSummary(
            total_items=total,
            correct_count=correct,
            accuracy=round(accuracy, 2),
            final_theta=session.current_theta,
            sem=sem,
            reason=reason,
            completed_at=datetime.now(UTC),
        )
        session.status = SessionStatus.COMPLETED
        session.offered_item_id = None

        self.repository.save_session(session)
        self.repository.set_learner_ability(session.learner_id, session.current_theta)

        logger.info(
            f"Assessment completion ({reason.value}): session={session.session_id}, items={total}, "
            f"correct={correct}, accuracy={accuracy:.2f}%, theta={session.current_theta}, sem={sem}"
        )

    def _completed_out(self, session: CatSession) -> NextItemOut:
        summary = session.summary
        items = [r.item for r in session.responses]

        return NextItemOut(
            session_id=session.session_id,
            assessment_complete=True,
            current_theta=round(session.current_theta, 3),
            items_completed=summary.total_items,
            summary=SessionSummaryOut(
                session_id=session.session_id,
                total_items=summary.total_items,
                correct_answers=summary.correct_count,
                accuracy=summary.accuracy,
                final_theta=summary.final_theta,
                classification=classify_ability(summary.final_theta),
                sem=summary.sem,
                reliability=round(reliability(items, summary.final_theta), 4),
                reason=summary.reason,
                message=_COMPLETION_MESSAGES[summary.reason],
                completed_at=summary.completed_at,
            ),
        )
