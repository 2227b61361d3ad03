"""Event record — mapped from an upstream EventSource row, keyed by external_id."""
from typing import Any, Dict, Optional

from agent_runner.timestamps import utc_now_iso


EVENT_ENTITY = 'Event'
EVENT_SOURCE_ENTITY = 'EventSource'
EVENT_KEY = 'external_id'

DEFAULT_TITLE = 'Untitled event'
EVENT_ACTIVE = 'active'


def stable_id(source: Dict[str, Any]) -> Optional[str]:
    """external_id, falling back to the source row's own id."""
    value = source.get('external_id') or source.get('id')
    return str(value) if value not in (None, '') else None


def event_from_source(source: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'title': source.get('title') or DEFAULT_TITLE,
        'venue_id': source.get('venue_id'),
        'start_at': source.get('start_at'),
        'end_at': source.get('end_at'),
        'status': EVENT_ACTIVE,
        'external_id': stable_id(source),
        'raw_json': source,
        'created_at': utc_now_iso(),
    }
