"""
Structured logging configuration.

configure_logging() is called once by the CLI before anything else runs.
LOG_FORMAT selects text (default) or json; LOG_LEVEL defaults to INFO.

Once the dispatcher knows which run it is executing it calls
bind_run_context(); from then on every record, including those emitted by
agents and HTTP clients, carries run_id and agent_name.
"""
import json
import logging
import os
import sys
from datetime import datetime, timezone

RUN_CONTEXT_FIELDS = ('run_id', 'agent_name')

_run_context = {}


def bind_run_context(run_id=None, agent_name=None):
    """Tag all subsequent log records with this run. Pass nothing to clear."""
    _run_context.clear()
    if run_id:
        _run_context['run_id'] = run_id
    if agent_name:
        _run_context['agent_name'] = agent_name


class RunContextFilter(logging.Filter):
    """Copies the bound run context onto records that don't set it via `extra`."""

    def filter(self, record):
        for key in RUN_CONTEXT_FIELDS:
            if getattr(record, key, None) is None:
                setattr(record, key, _run_context.get(key))
        run_id = record.run_id
        record.run_tag = f' [{run_id}]' if run_id else ''
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for the scheduler's log collector."""

    def format(self, record):
        entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        for key in RUN_CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = value
        if record.exc_info and record.exc_info[0] is not None:
            entry['exception'] = self.formatException(record.exc_info)
        return json.dumps(entry)


TEXT_FORMAT = '[%(asctime)s] %(levelname)s %(name)s%(run_tag)s — %(message)s'

# HTTP stack chatter at INFO/DEBUG drowns the agent's own lines
_NOISY_LOGGERS = [
    'urllib3',
    'requests',
    'charset_normalizer',
]


def _level_from(name):
    level = getattr(logging, (name or 'INFO').upper(), None)
    return level if isinstance(level, int) else logging.INFO


def configure_logging(environ=None):
    """
    Install a single stderr handler on the root logger.

    Environment variables:
        LOG_LEVEL  — Python log level name (default: INFO)
        LOG_FORMAT — "text" (default) or "json"

    Safe to call more than once; previous root handlers are replaced.
    """
    env = os.environ if environ is None else environ
    level = _level_from(env.get('LOG_LEVEL'))
    use_json = env.get('LOG_FORMAT', 'text').lower() == 'json'

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.addFilter(RunContextFilter())
    if use_json:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
