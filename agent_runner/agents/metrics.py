"""
Agent: metrics_hourly — run/alert counts over a trailing window → MetricSnapshot.
"""
import logging
from typing import Any, Dict

from agent_runner.agents.base import Agent, AgentContext, bool_param, int_param
from agent_runner.models.run import ALERT_ENTITY, FAILED, RUN_ENTITY, SEVERITY_CRITICAL
from agent_runner.timestamps import iso_ago, to_iso, utc_now

logger = logging.getLogger('agents.metrics')

SNAPSHOT_ENTITY = 'MetricSnapshot'


class MetricsHourly(Agent):
    name = 'metrics_hourly'
    description = 'Count AgentRuns and SystemAlerts in the trailing window'
    defaults = {
        'window_minutes': 60,
        'dry_run': False,
    }

    def run(self, params: Dict[str, Any], ctx: AgentContext) -> Dict[str, Any]:
        p = self.resolve_params(params)
        window_minutes = int_param(p, 'window_minutes', minimum=1)
        dry_run = bool_param(p, 'dry_run')

        now = utc_now()
        since = iso_ago(now, minutes=window_minutes)

        runs = ctx.store.filter(RUN_ENTITY, {'started_at': {'gte': since}}) or []
        alerts = ctx.store.filter(ALERT_ENTITY, {'created_date': {'gte': since}}) or []

        summary = {
            'window_minutes': window_minutes,
            'since': since,
            'runs_total': len(runs),
            'runs_failed': sum(1 for r in runs if r.get('status') == FAILED),
            'alerts_total': len(alerts),
            'alerts_critical': sum(1 for a in alerts if a.get('severity') == SEVERITY_CRITICAL),
            'computed_at': to_iso(now),
        }

        if not dry_run:
            ctx.store.create(SNAPSHOT_ENTITY, summary)

        logger.info(
            "Metrics (%dm): %d runs (%d failed), %d alerts (%d critical)",
            window_minutes, summary['runs_total'], summary['runs_failed'],
            summary['alerts_total'], summary['alerts_critical'],
        )
        return {'agent': self.name, 'summary': summary, 'dry_run': dry_run}
