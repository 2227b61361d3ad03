"""Agent: rollup_nightly — OutreachDrafts per channel over the last N days → RollupSnapshot."""
import logging
from collections import Counter
from typing import Any, Dict

from agent_runner.agents.base import Agent, AgentContext, bool_param, int_param
from agent_runner.agents.outreach import DRAFT_ENTITY
from agent_runner.timestamps import iso_ago, to_iso, utc_now

logger = logging.getLogger('agents.rollup')

SNAPSHOT_ENTITY = 'RollupSnapshot'


class RollupNightly(Agent):
    name = 'rollup_nightly'
    description = 'Roll up outreach drafts by channel over a trailing day window'
    defaults = {
        'days': 7,
        'dry_run': False,
    }

    def run(self, params: Dict[str, Any], ctx: AgentContext) -> Dict[str, Any]:
        p = self.resolve_params(params)
        days = int_param(p, 'days', minimum=1)
        dry_run = bool_param(p, 'dry_run')

        now = utc_now()
        since = iso_ago(now, days=days)
        drafts = ctx.store.filter(DRAFT_ENTITY, {'created_at': {'gte': since}}) or []

        rollup = {
            'range_days': days,
            'since': since,
            'outreach_drafts_created': len(drafts),
            'by_channel': dict(Counter(d.get('channel') or 'unknown' for d in drafts)),
            'computed_at': to_iso(now),
        }

        if not dry_run:
            ctx.store.create(SNAPSHOT_ENTITY, rollup)

        logger.info("Rollup (%dd): %d drafts %s", days, len(drafts), rollup['by_channel'])
        return {'agent': self.name, 'rollup': rollup, 'dry_run': dry_run}
