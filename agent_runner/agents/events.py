"""
Agent: events_ingest_daily — EventSource rows → Event records, once per external_id.
"""
import logging
from typing import Any, Dict

from agent_runner.agents.base import Agent, AgentContext, bool_param, int_param
from agent_runner.models.event import (
    EVENT_ENTITY, EVENT_KEY, EVENT_SOURCE_ENTITY, event_from_source,
)

logger = logging.getLogger('agents.events')


class EventsIngestDaily(Agent):
    name = 'events_ingest_daily'
    description = 'Ingest upstream EventSource rows as Events, skipping known external ids'
    defaults = {
        'source': 'manual',
        'limit': 50,
        'dry_run': False,
    }

    def run(self, params: Dict[str, Any], ctx: AgentContext) -> Dict[str, Any]:
        p = self.resolve_params(params)
        source = str(p['source'])
        limit = int_param(p, 'limit', minimum=0)
        dry_run = bool_param(p, 'dry_run')

        incoming = [event_from_source(src) for src in (ctx.store.list(EVENT_SOURCE_ENTITY) or [])[:limit]]

        created = skipped_existing = skipped_missing_id = 0
        seen = set()

        for event in incoming:
            external_id = event[EVENT_KEY]
            if not external_id:
                skipped_missing_id += 1
                continue
            # Same id twice in one batch counts once, in dry run as well
            if external_id in seen:
                skipped_existing += 1
                continue
            seen.add(external_id)

            if ctx.store.filter(EVENT_ENTITY, {EVENT_KEY: external_id}):
                skipped_existing += 1
                continue

            if not dry_run:
                ctx.store.create(EVENT_ENTITY, event)
            created += 1

        logger.info(
            "Ingest '%s': %d processed, %d created, %d existing, %d without id",
            source, len(incoming), created, skipped_existing, skipped_missing_id,
        )
        return {
            'agent': self.name,
            'source': source,
            'limit': limit,
            'processed': len(incoming),
            'created': created,
            'skipped_existing': skipped_existing,
            'skipped_missing_id': skipped_missing_id,
            'dry_run': dry_run,
        }
