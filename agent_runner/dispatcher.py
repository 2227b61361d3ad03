"""
Dispatcher — runs one agent for one AgentRun, supervised by the RunTracker.

    mark running → look up agent → agent.run(params) → mark success | failed

Agents run synchronously, one per process. Errors raised by an agent
propagate here unmodified; their message becomes the run's error_message.
"""
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Type

from agent_runner.agents.base import Agent, AgentContext
from agent_runner.agents.events import EventsIngestDaily
from agent_runner.agents.leads import LeadsGenerateDaily
from agent_runner.agents.metrics import MetricsHourly
from agent_runner.agents.outreach import OutreachDraftsDaily
from agent_runner.agents.rollup import RollupNightly
from agent_runner.config import ConfigurationError
from agent_runner.logging_config import bind_run_context
from agent_runner.services.run_tracker import RunTracker, RunTrackingError

logger = logging.getLogger('agent_runner.dispatcher')


# ── Agent registry ────────────────────────────────────────────────────────────
# Maps agent_name → Agent class

AGENT_REGISTRY: Dict[str, Type[Agent]] = {
    cls.name: cls
    for cls in (
        OutreachDraftsDaily,
        EventsIngestDaily,
        MetricsHourly,
        RollupNightly,
        LeadsGenerateDaily,
    )
}


def get_agent(agent_name: str) -> Agent:
    """Look up and instantiate the agent registered under agent_name."""
    agent_cls = AGENT_REGISTRY.get(agent_name)
    if not agent_cls:
        raise ConfigurationError(
            f'Unknown agent_name "{agent_name}". Available: {", ".join(sorted(AGENT_REGISTRY))}'
        )
    return agent_cls()


def parse_params(raw: Optional[str]) -> Dict[str, Any]:
    """
    Parse the --params_json payload.

    Empty input, malformed JSON, and non-object JSON all fall back to {}.
    """
    if raw is None or not raw.strip():
        return {}
    try:
        params = json.loads(raw)
    except ValueError:
        logger.warning("params_json is not valid JSON. Falling back to {}. Raw: %s", raw)
        return {}
    if not isinstance(params, dict):
        logger.warning("params_json must be a JSON object, got %s. Falling back to {}", type(params).__name__)
        return {}
    return params


@dataclass
class DispatchOutcome:
    run_id: str
    agent_name: str
    ok: bool
    duration_ms: int
    outputs: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1


class Dispatcher:
    """Executes a single run. `ctx.store` is used for both agent I/O and run tracking."""

    def __init__(self, ctx: AgentContext):
        self.ctx = ctx

    def _elapsed_ms(self, started: float) -> int:
        return max(0, int((time.monotonic() - started) * 1000))

    def execute(self, run_id: str, agent_name: str, params: Dict[str, Any] = None) -> DispatchOutcome:
        started = time.monotonic()
        bind_run_context(run_id, agent_name)
        tracker = RunTracker(
            self.ctx.store, run_id, agent_name,
            slack_webhook_url=self.ctx.settings.slack_webhook_url,
        )

        # 1) Mark running; the agent never starts if this write fails
        try:
            tracker.mark_running()
        except RunTrackingError as e:
            message = str(e)
            logger.error("Cannot update AgentRun %s to running: %s", run_id, message)
            duration_ms = self._elapsed_ms(started)
            tracker.mark_failed(message, duration_ms)
            return DispatchOutcome(run_id, agent_name, ok=False, duration_ms=duration_ms, error=message)

        # 2) Execute agent
        try:
            agent = get_agent(agent_name)
            logger.info("Starting agent %s for run %s", agent_name, run_id)
            outputs = agent.run(params or {}, self.ctx)
        except Exception as e:
            message = str(e) or e.__class__.__name__
            duration_ms = self._elapsed_ms(started)
            logger.error("Agent run failed: %s %s %s", run_id, agent_name, message)
            logger.debug("Agent traceback", exc_info=True)
            tracker.mark_failed(message, duration_ms)
            return DispatchOutcome(run_id, agent_name, ok=False, duration_ms=duration_ms, error=message)

        # 3) Mark success
        duration_ms = self._elapsed_ms(started)
        outputs = outputs if outputs is not None else {}
        try:
            tracker.mark_success(outputs, duration_ms)
        except RunTrackingError as e:
            message = str(e)
            logger.error("Agent finished but AgentRun %s could not be marked success: %s", run_id, message)
            tracker.mark_failed(message, duration_ms)
            return DispatchOutcome(run_id, agent_name, ok=False, duration_ms=duration_ms, outputs=outputs,
                                   error=message)
        logger.info("Agent run success: %s %s", run_id, agent_name)
        return DispatchOutcome(run_id, agent_name, ok=True, duration_ms=duration_ms, outputs=outputs)
