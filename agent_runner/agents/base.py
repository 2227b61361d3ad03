"""
Agent contract.

Every agent implements Agent.run() and returns a JSON-serializable dict that
records what it did (counts, the parameters it actually used, dry_run).
The dispatcher only sees this uniform interface.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

from agent_runner.config import ConfigurationError, Settings


@dataclass
class AgentContext:
    """Collaborators handed to an agent for one run."""
    settings: Settings
    store: Any                        # EntityClient (or a fake with the same methods)
    places: Optional[Any] = None      # PlacesClient, built lazily when an agent needs it

    def places_client(self):
        if self.places is None:
            from agent_runner.services.places import PlacesClient
            self.places = PlacesClient(self.settings)
        return self.places


class Agent(ABC):
    """
    Base class for all agents.

    `defaults` lists every accepted parameter with its default; run() receives
    the caller's params merged over them.
    """
    name: str = ''
    description: str = ''
    defaults: Dict[str, Any] = {}

    def resolve_params(self, params: Dict[str, Any]) -> Dict[str, Any]:
        resolved = dict(self.defaults)
        resolved.update(params or {})
        return resolved

    @abstractmethod
    def run(self, params: Dict[str, Any], ctx: AgentContext) -> Dict[str, Any]:
        ...


# ── Parameter coercion ────────────────────────────────────────────────────────

def int_param(params: Dict[str, Any], name: str, minimum: int = None) -> int:
    value = params.get(name)
    if isinstance(value, bool):
        raise ConfigurationError(f"Parameter '{name}' must be an integer, got {value!r}")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Parameter '{name}' must be an integer, got {value!r}")
    if minimum is not None and number < minimum:
        raise ConfigurationError(f"Parameter '{name}' must be >= {minimum}, got {number}")
    return number


def float_param(params: Dict[str, Any], name: str) -> float:
    value = params.get(name)
    if isinstance(value, bool):
        raise ConfigurationError(f"Parameter '{name}' must be a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Parameter '{name}' must be a number, got {value!r}")


_TRUE = {'true', '1', 'yes', 'y', 'on'}
_FALSE = {'false', '0', 'no', 'n', 'off', ''}


def bool_param(params: Dict[str, Any], name: str) -> bool:
    value = params.get(name)
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return bool(value)
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigurationError(f"Parameter '{name}' must be a boolean, got {value!r}")
