"""
Run tracker — walks one AgentRun record through its lifecycle.

    queued (scheduler) → running → success | failed

mark_running() and mark_success() must land: their write failures raise
RunTrackingError and the local status does not advance, so the caller can
still move the run to failed. mark_failed() is best-effort: every write
failure is logged and reported in the returned TrackingResult, never raised.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from agent_runner.models import run as run_model
from agent_runner.services.notifications import notify_run_failed

logger = logging.getLogger('services.run_tracker')


class RunTrackingError(Exception):
    """The run could not be marked running or success."""


class InvalidTransitionError(Exception):
    """Attempted to move a run backwards or out of a terminal state."""

    def __init__(self, run_id, current, new):
        self.run_id = run_id
        self.current = current
        self.new = new
        super().__init__(f"Run {run_id}: illegal status transition {current} → {new}")


@dataclass
class TrackingResult:
    """Outcome of a best-effort tracking step."""
    ok: bool = True
    errors: List[str] = field(default_factory=list)
    alert: Optional[Dict[str, Any]] = None
    notified: bool = False

    def fail(self, message: str):
        self.ok = False
        self.errors.append(message)


class RunTracker:
    """
    Tracks a single run. The store is anything with update/create
    (EntityClient in production, a fake in tests).
    """

    def __init__(self, store, run_id: str, agent_name: str, slack_webhook_url: str = None):
        self.store = store
        self.run_id = run_id
        self.agent_name = agent_name
        self.slack_webhook_url = slack_webhook_url
        self.status = run_model.QUEUED

    def _check(self, new_status: str):
        if not run_model.can_transition(self.status, new_status):
            raise InvalidTransitionError(self.run_id, self.status, new_status)

    def _advance(self, new_status: str):
        self._check(new_status)
        self.status = new_status

    def mark_running(self):
        """Mark the run running. Raises RunTrackingError if the write fails."""
        self._check(run_model.RUNNING)
        try:
            self.store.update(run_model.RUN_ENTITY, self.run_id, run_model.running_patch())
        except Exception as e:
            raise RunTrackingError(f"Failed to mark running: {e}") from e
        self.status = run_model.RUNNING
        logger.info("Run %s (%s) marked running", self.run_id, self.agent_name)

    def mark_success(self, outputs: Optional[Dict[str, Any]], duration_ms: int) -> TrackingResult:
        """Record the agent's outputs. Raises RunTrackingError if the write fails."""
        self._check(run_model.SUCCESS)
        try:
            self.store.update(run_model.RUN_ENTITY, self.run_id, run_model.success_patch(outputs, duration_ms))
        except Exception as e:
            raise RunTrackingError(f"Failed to mark success: {e}") from e
        self.status = run_model.SUCCESS
        logger.info("Run %s (%s) marked success in %dms", self.run_id, self.agent_name, max(0, duration_ms))
        return TrackingResult()

    def mark_failed(self, message: str, duration_ms: int) -> TrackingResult:
        """Record failure, raise a SystemAlert, and notify Slack. Never raises on write errors."""
        self._advance(run_model.FAILED)
        result = TrackingResult()

        try:
            self.store.update(run_model.RUN_ENTITY, self.run_id, run_model.failed_patch(message, duration_ms))
        except Exception as e:
            logger.error("Failed to mark AgentRun %s as failed: %s", self.run_id, e)
            result.fail(f"mark_failed: {e}")

        alert = run_model.alert_record(self.run_id, self.agent_name, message)
        try:
            self.store.create(run_model.ALERT_ENTITY, alert)
            result.alert = alert
        except Exception as e:
            logger.error("Failed to create SystemAlert for run %s: %s", self.run_id, e)
            result.fail(f"create_alert: {e}")

        result.notified = notify_run_failed(
            self.slack_webhook_url, self.run_id, self.agent_name, message, duration_ms=max(0, duration_ms),
        )
        return result
