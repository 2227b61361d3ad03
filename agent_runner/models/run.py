"""
AgentRun + SystemAlert records — status lifecycle and patch builders.

The run record itself is created by the scheduler before this process starts;
we only ever send partial updates (patches) against it.
"""
from typing import Any, Dict, Optional

from agent_runner.timestamps import utc_now_iso


RUN_ENTITY = 'AgentRun'
ALERT_ENTITY = 'SystemAlert'

# ── Run status values ─────────────────────────────────────────────────────────
QUEUED = 'queued'
RUNNING = 'running'
SUCCESS = 'success'
FAILED = 'failed'

TERMINAL_STATUSES = {SUCCESS, FAILED}

# Allowed forward moves. Terminal states have no outgoing edges.
TRANSITIONS = {
    QUEUED: {RUNNING, FAILED},
    RUNNING: {SUCCESS, FAILED},
    SUCCESS: set(),
    FAILED: set(),
}

SEVERITY_INFO = 'info'
SEVERITY_CRITICAL = 'critical'

ALERT_OPEN = 'open'


def can_transition(current: str, new: str) -> bool:
    return new in TRANSITIONS.get(current, set())


def running_patch(started_at: str = None) -> Dict[str, Any]:
    return {
        'status': RUNNING,
        'severity': SEVERITY_INFO,
        'started_at': started_at or utc_now_iso(),
    }


def success_patch(outputs: Optional[Dict[str, Any]], duration_ms: int) -> Dict[str, Any]:
    return {
        'status': SUCCESS,
        'severity': SEVERITY_INFO,
        'outputs_json': outputs if outputs is not None else {},
        'duration_ms': max(0, int(duration_ms)),
        'finished_at': utc_now_iso(),
    }


def failed_patch(message: str, duration_ms: int) -> Dict[str, Any]:
    return {
        'status': FAILED,
        'severity': SEVERITY_CRITICAL,
        'error_message': message,
        'duration_ms': max(0, int(duration_ms)),
        'finished_at': utc_now_iso(),
    }


def alert_record(run_id: str, agent_name: str, message: str) -> Dict[str, Any]:
    """SystemAlert body for a failed run."""
    return {
        'severity': SEVERITY_CRITICAL,
        'message': f"Agent failed: {agent_name} — {message}",
        'agent_run_id': run_id,
        'status': ALERT_OPEN,
        'created_at': utc_now_iso(),
    }
