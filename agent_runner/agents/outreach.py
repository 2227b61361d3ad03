"""
Agent: outreach_drafts_daily — templated DM drafts for high-scoring leads.

Picks leads with lead_score >= min_score, not contacted today, and an allowed
outreach_status; writes one OutreachDraft per lead and flags the lead
contacted_today so tomorrow's run doesn't pick it again.
"""
import logging
from typing import Any, Dict, List

from agent_runner.agents.base import Agent, AgentContext, bool_param, float_param, int_param
from agent_runner.config import ConfigurationError
from agent_runner.models.lead import LEAD_ENTITY, OUTREACH_NEW, OUTREACH_OPEN, OUTREACH_STATUSES
from agent_runner.timestamps import utc_now_iso

logger = logging.getLogger('agents.outreach')

DRAFT_ENTITY = 'OutreachDraft'
DRAFT_STATUS = 'draft'

TONE_PREMIUM = 'premium'


def build_draft(lead: Dict[str, Any], channel: str = 'instagram', tone: str = TONE_PREMIUM) -> str:
    """Short, pasteable DM text. Missing names fall back to generic placeholders."""
    name = lead.get('contact_name') or 'there'
    venue = lead.get('venue_name') or lead.get('name') or 'your venue'

    if tone == TONE_PREMIUM:
        return (
            f"Hi {name} — quick one. We help venues like {venue} turn {channel.capitalize()} interest "
            f"into booked tables with a premium “pick-your-spot” booking experience. "
            f"If I send a 30-sec demo, would you be open to a chat this week?"
        )

    return (
        f"Hey {name}! I saw {venue} and wanted to share a quick way we’re helping venues "
        f"get more bookings from IG/WhatsApp. Want a 30-sec demo?"
    )


class OutreachDraftsDaily(Agent):
    name = 'outreach_drafts_daily'
    description = 'Draft outreach messages for top-scoring, uncontacted leads'
    defaults = {
        'min_score': 70,
        'limit': 15,
        'channel': 'instagram',
        'tone': TONE_PREMIUM,
        'statuses': [OUTREACH_NEW, OUTREACH_OPEN],
        'dry_run': False,
    }

    def run(self, params: Dict[str, Any], ctx: AgentContext) -> Dict[str, Any]:
        p = self.resolve_params(params)
        min_score = float_param(p, 'min_score')
        limit = int_param(p, 'limit', minimum=0)
        channel = str(p['channel'])
        tone = str(p['tone'])
        statuses = p['statuses']
        if not isinstance(statuses, list) or not statuses:
            raise ConfigurationError(f"Parameter 'statuses' must be a non-empty list, got {statuses!r}")
        unknown = [s for s in statuses if s not in OUTREACH_STATUSES]
        if unknown:
            raise ConfigurationError(
                f"Parameter 'statuses' has unknown value(s) {unknown}. Allowed: {', '.join(OUTREACH_STATUSES)}"
            )
        statuses = list(statuses)
        dry_run = bool_param(p, 'dry_run')

        leads = ctx.store.filter(LEAD_ENTITY, {
            'lead_score': {'gte': min_score},
            'contacted_today': {'neq': True},
            'outreach_status': {'in': statuses},
        })
        picked = (leads or [])[:limit]
        logger.info("Picked %d of %d eligible leads (limit=%d)", len(picked), len(leads or []), limit)

        drafts: List[Dict[str, Any]] = []
        for lead in picked:
            draft = {
                'lead_id': lead.get('id'),
                'channel': channel,
                'tone': tone,
                'message': build_draft(lead, channel=channel, tone=tone),
                'status': DRAFT_STATUS,
                'created_at': utc_now_iso(),
            }

            if dry_run:
                drafts.append(draft)
                continue

            created = ctx.store.create(DRAFT_ENTITY, draft)
            drafts.append(created if isinstance(created, dict) else draft)
            ctx.store.update(LEAD_ENTITY, lead['id'], {'contacted_today': True})

        return {
            'agent': self.name,
            'params': {
                'min_score': min_score,
                'limit': limit,
                'channel': channel,
                'tone': tone,
                'statuses': statuses,
            },
            'picked': len(picked),
            'created': len(drafts),
            'dry_run': dry_run,
        }
