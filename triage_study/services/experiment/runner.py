"""
Participant-side experiment runtime.

ExperimentRunner drives one session from the ticket queue to the survey:
ticket selection, decision walking, completion, scoring, the AI agent
groups and the background tasks (countdown, staggered unlocks, trace sync).
Any UI can sit on top of it; all state lives in the SessionStore.
"""

import logging
import secrets
import string
from typing import Any, Callable, Dict, List, Mapping, Optional

from ...config import Settings
from ..ai_orchestrator.agent import AgentStep, ScriptedAgent, StepStatus, StepType
from ..clock import Clock, now_ms
from ..decision_tree import DecisionNode, DecisionTree
from ..scoring import ScoringEngine, TicketScore
from ..session.models import GroupType, SessionData
from ..session.store import SessionStore
from ..tickets.catalog import TicketCatalog, UnknownTicketError
from ..tickets.lifecycle import TicketLifecycleManager
from ..tickets.models import FieldValue, TicketResponse, TicketStatus, TicketWithStatus, TimingMode
from ..tickets.validation import TicketValidationError, validate_completion
from ..tracking.sync import FlushResult, StudyDataSink, TraceSyncer
from ..tracking.tracker import EventTracker
from .ticker import PeriodicTask
from .timer import DEFAULT_DURATION_SECONDS, CountdownTimer

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_participant_id(clock: Clock = now_ms) -> str:
    """'P<epoch ms>-<7 random chars>', used when the participant gives no id."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(7))
    return f"P{clock()}-{suffix}"


def enroll(
    store: SessionStore,
    tracker: EventTracker,
    group: GroupType,
    timing_mode: TimingMode = TimingMode.IMMEDIATE,
    participant_id: Optional[str] = None,
    prolific_redirect_url: Optional[str] = None,
) -> SessionData:
    """Consent step: creates the session and records ``experiment_started``."""
    participant_id = (participant_id or "").strip() or generate_participant_id(store.clock)
    session = store.create(participant_id, group, timing_mode, prolific_redirect_url)
    tracker.experiment_started(session.participant_id, session.group.value, session.timing_mode.value)
    return session


class ExperimentRunner:

    def __init__(
        self,
        store: SessionStore,
        tree: DecisionTree,
        catalog: TicketCatalog,
        tracker: EventTracker,
        syncer: TraceSyncer,
        scoring: Optional[ScoringEngine] = None,
        agent: Optional[ScriptedAgent] = None,
        clock: Clock = now_ms,
        duration_seconds: int = DEFAULT_DURATION_SECONDS,
        timer_interval: float = 1.0,
        unlock_interval: float = 1.0,
        sync_interval: float = 30.0,
        on_expired: Optional[Callable[[], None]] = None,
    ):
        self.store = store
        self.tree = tree
        self.catalog = catalog
        self.tracker = tracker
        self.syncer = syncer
        self.scoring = scoring or ScoringEngine(catalog)
        self.agent = agent or ScriptedAgent(tree)
        self.clock = clock
        self.duration_seconds = duration_seconds
        self.timer_interval = timer_interval
        self.unlock_interval = unlock_interval
        self.sync_interval = sync_interval
        self.on_expired = on_expired

        self.lifecycle = TicketLifecycleManager(catalog, clock)
        self.timer: Optional[CountdownTimer] = None
        self._tasks: List[PeriodicTask] = []
        self._tickets: List[TicketWithStatus] = []

        # State of the ticket currently open in the detail view
        self.active_ticket_id: Optional[str] = None
        self.selections: Dict[str, str] = {}
        self._opened_at: Optional[int] = None
        self._last_decision_at: Optional[int] = None
        self._agent_steps: Dict[str, List[AgentStep]] = {}

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        store: SessionStore,
        tree: DecisionTree,
        catalog: TicketCatalog,
        tracker: EventTracker,
        syncer: TraceSyncer,
        **kwargs: Any,
    ) -> "ExperimentRunner":
        """Runner with the duration and task intervals taken from ``settings``."""
        return cls(
            store, tree, catalog, tracker, syncer,
            duration_seconds=settings.EXPERIMENT_DURATION_SECONDS,
            sync_interval=settings.SYNC_INTERVAL_SECONDS,
            unlock_interval=settings.UNLOCK_CHECK_INTERVAL_SECONDS,
            **kwargs,
        )

    # --- LIFECYCLE ---

    @property
    def session(self) -> SessionData:
        return self.store.require()

    @property
    def tickets(self) -> List[TicketWithStatus]:
        return list(self._tickets)

    async def start(self, background: bool = True) -> List[TicketWithStatus]:
        """
        Initializes the queue and, unless ``background`` is False, starts the
        countdown, unlock-check and trace-sync tasks.

        Raises:
            SessionNotFoundError: no session; the participant must consent first
        """
        session = self.store.require()
        self._tickets = self.lifecycle.initialize(session.timing_mode, session.start_time)
        self.tracker.page_viewed("experiment", "home")

        self.timer = CountdownTimer(
            start_time=session.start_time,
            duration_seconds=self.duration_seconds,
            on_warning=self.tracker.timer_warning,
            on_expired=self._handle_expired,
            clock=self.clock,
        )
        self.timer.tick()

        if background:
            self._tasks = [
                PeriodicTask("countdown", self.timer_interval, self.timer.tick),
                PeriodicTask("trace-sync", self.sync_interval, self.syncer.flush_if_idle),
            ]
            if session.timing_mode == TimingMode.STAGGERED:
                self._tasks.append(
                    PeriodicTask("unlock-check", self.unlock_interval, self.check_unlocks)
                )
            for task in self._tasks:
                task.start()

        logger.info(
            f"Experiment started for {session.participant_id}: "
            f"{len(self._tickets)} tickets, {self.count(TicketStatus.LOCKED)} locked"
        )
        return self.tickets

    async def stop(self) -> None:
        """Cancels every background task. Safe to call more than once."""
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            await task.stop()

    def _handle_expired(self) -> None:
        self.tracker.experiment_time_expired(self.count(TicketStatus.COMPLETED), len(self._tickets))
        if self.on_expired is not None:
            self.on_expired()

    def check_unlocks(self) -> List[TicketWithStatus]:
        self._tickets = self.lifecycle.check_unlocks(self._tickets, self.session.start_time)
        return self.tickets

    def count(self, status: TicketStatus) -> int:
        return TicketLifecycleManager.count(self._tickets, status)

    def all_tickets_done(self) -> bool:
        """True once no ticket is locked and every ticket is completed."""
        return bool(self._tickets) and all(
            t.status == TicketStatus.COMPLETED for t in self._tickets
        )

    # --- TICKET QUEUE ---

    def _require_ticket(self, ticket_id: str) -> TicketWithStatus:
        item = TicketLifecycleManager.find(self._tickets, ticket_id)
        if item is None:
            raise UnknownTicketError(f"Unknown ticket: {ticket_id}")
        return item

    def _require_active(self) -> str:
        if self.active_ticket_id is None:
            raise ValueError("No ticket is open")
        return self.active_ticket_id

    def select_ticket(self, ticket_id: str) -> TicketWithStatus:
        self._require_ticket(ticket_id)
        if self.active_ticket_id is not None and self.active_ticket_id != ticket_id:
            self.back_to_queue()

        now = self.clock()
        self._tickets = self.lifecycle.transition(
            self._tickets, ticket_id, TicketStatus.IN_PROGRESS, now
        )
        self.active_ticket_id = ticket_id
        self.selections = {}
        self._opened_at = now
        self._last_decision_at = None
        self.tracker.ticket_opened(ticket_id, now)
        return self._require_ticket(ticket_id)

    def back_to_queue(self) -> None:
        """Closes the detail view; an open ticket goes back to available."""
        ticket_id = self.active_ticket_id
        if ticket_id is None:
            return
        item = TicketLifecycleManager.find(self._tickets, ticket_id)
        if item is not None and item.status == TicketStatus.IN_PROGRESS:
            self._tickets = self.lifecycle.transition(
                self._tickets, ticket_id, TicketStatus.AVAILABLE
            )
        self.active_ticket_id = None
        self.selections = {}
        self._opened_at = None

    # --- DECISIONS ---

    def choose_option(self, node_id: str, option_id: str) -> Dict[str, str]:
        """
        Records a choice at a decision node and re-prunes the selections.

        Choosing at a node that is not on the live route is rejected.
        """
        ticket_id = self._require_active()
        node = self.tree.get_node(node_id)
        if not isinstance(node, DecisionNode) or node.option(option_id) is None:
            raise ValueError(f"Unknown option {option_id!r} at node {node_id!r}")
        if node_id not in {n.id for n in self.tree.build_path(self.selections).nodes}:
            raise ValueError(f"Node {node_id!r} is not on the current path")

        previous = self.selections.get(node_id)
        if previous == option_id:
            return dict(self.selections)

        updated = self.tree.prune_selections({**self.selections, node_id: option_id})
        now = self.clock()

        if previous is None:
            since_last = now - self._last_decision_at if self._last_decision_at is not None else None
            self.tracker.decision_made(
                ticket_id, node_id, option_id,
                option_label=node.option(option_id).label,
                time_since_last_decision=since_last,
            )
            if self._last_decision_at is None and self._opened_at is not None:
                self.tracker.first_decision_timing(ticket_id, now - self._opened_at)
        else:
            pruned = [n for n in self.selections if n not in updated]
            self.tracker.decision_changed(ticket_id, node_id, previous, option_id, pruned)

        self._last_decision_at = now
        self.selections = updated
        return dict(self.selections)

    # --- COMPLETION ---

    def complete_ticket(
        self,
        fields: Mapping[str, FieldValue],
        customer_response: str,
    ) -> TicketScore:
        """
        Closes the open ticket and returns its score.

        Raises:
            TicketValidationError: the route, the outcome fields or the reply
                are incomplete; nothing is recorded except the validation error
        """
        ticket_id = self._require_active()
        result = validate_completion(self.tree, self.selections, fields, customer_response)
        if not result.valid:
            self.tracker.form_validation_error(result.messages, ticket_id)
            raise TicketValidationError(ticket_id, result.issues)

        item = self._require_ticket(ticket_id)
        path = self.tree.build_path(self.selections)
        outcome = path.outcome
        completed_at = self.clock()

        response = TicketResponse(
            ticket_id=ticket_id,
            decisions=self.tree.path_decisions(self.selections),
            outcome_id=outcome.id,
            fields={f.id: fields[f.id] for f in outcome.fields if f.id in fields},
            customer_response=customer_response,
            completed_at=completed_at,
            time_to_complete=completed_at - (item.started_at or completed_at),
        )

        self.tracker.customer_response_sent(ticket_id, customer_response, completed_at)
        self.tracker.ticket_closed(
            ticket_id, completed_at, response.time_to_complete, response=response.to_dict()
        )
        self.store.append_response(response)
        self._tickets = self.lifecycle.transition(
            self._tickets, ticket_id, TicketStatus.COMPLETED, completed_at
        )
        self.active_ticket_id = None
        self.selections = {}
        self._opened_at = None

        score = self.scoring.score(response, item.ticket)
        logger.info(
            f"Ticket {ticket_id} completed: outcome {response.outcome_id}, "
            f"quality {score.quality_score}"
        )
        return score

    # --- AI AGENT (groups 3 and 4) ---

    def _agent_mode(self) -> str:
        return "auto" if self.session.group == GroupType.AGENT_AUTONOMOUS else "confirm"

    def agent_steps(self, ticket_id: str) -> List[AgentStep]:
        """Steps proposed for ``ticket_id``; generated on first request."""
        if ticket_id not in self._agent_steps:
            ticket = self._require_ticket(ticket_id).ticket
            steps = self.agent.generate_steps(ticket)
            self._agent_steps[ticket_id] = steps
            self.tracker.ai_agent_started(ticket_id, len(steps), self._agent_mode())
        return list(self._agent_steps[ticket_id])

    def review_step(
        self,
        step_number: int,
        status: StepStatus,
        new_value: Optional[str] = None,
    ) -> AgentStep:
        """Applies the participant's verdict on one step of the open ticket."""
        ticket_id = self._require_active()
        steps = self.agent_steps(ticket_id)
        index = next((i for i, s in enumerate(steps) if s.step_number == step_number), None)
        if index is None:
            raise ValueError(f"Unknown agent step {step_number}")

        step = ScriptedAgent.review(steps[index], status, new_value)
        steps[index] = step
        self._agent_steps[ticket_id] = steps

        if step.status == StepStatus.ACCEPTED:
            self.tracker.ai_step_accepted(ticket_id, step.step_number, step.step_name)
            if step.step_type == StepType.DECISION:
                self.choose_option(step.decision_node_id, step.decision_option_id)
        elif step.status == StepStatus.REJECTED:
            self.tracker.ai_step_rejected(ticket_id, step.step_number, step.step_name)
        elif step.status == StepStatus.EDITED:
            self.tracker.ai_step_edited(ticket_id, step.step_number, step.step_name, step.decision)

        if all(s.status != StepStatus.PENDING for s in steps):
            self.tracker.ai_agent_completed(ticket_id, self._agent_mode())
        return step

    def draft_response(self, ticket_id: str) -> str:
        return self.agent.complete_response(self._require_ticket(ticket_id).ticket)

    def auto_resolve(
        self,
        ticket_id: str,
        fields: Mapping[str, FieldValue],
    ) -> TicketScore:
        """Applies the agent's full resolution and closes the ticket."""
        if self.active_ticket_id != ticket_id:
            self.select_ticket(ticket_id)
        steps = self.agent_steps(ticket_id)
        for step in steps:
            if step.step_type == StepType.DECISION:
                self.choose_option(step.decision_node_id, step.decision_option_id)
        self._agent_steps[ticket_id] = [
            ScriptedAgent.review(s, StepStatus.ACCEPTED) for s in steps
        ]
        self.tracker.ai_agent_completed(ticket_id, self._agent_mode())
        return self.complete_ticket(fields, self.draft_response(ticket_id))

    # --- SURVEY ---

    async def submit_survey(
        self,
        survey: Mapping[str, Any],
        sink: Optional[StudyDataSink] = None,
    ) -> FlushResult:
        """
        Hands in the survey, then runs the final trace sync.

        A survey delivery failure is recorded and re-raised. A final sync
        failure is only recorded; the returned result carries it.
        """
        session = self.store.require()
        survey = {**survey, "participantId": survey.get("participantId") or session.participant_id}
        sink = sink or self.syncer.sink

        self.tracker.survey_completed(survey)
        try:
            await sink.deliver_survey(survey)
        except Exception as e:
            self.tracker.application_error(
                "Survey submission failed",
                context={"participantId": survey["participantId"], "error": str(e)},
            )
            raise
        self.tracker.survey_submitted(survey)
        self.store.update(end_time=self.clock())

        await self.stop()
        return await self.syncer.final_sync()
