"""
Agent: leads_generate_daily — Google Places → scored, deduplicated Lead records.

Resolve the target city, then for each category bucket run a nearby search,
take up to max(15, cap*3) candidates, skip places already seen this run, fetch
details, drop low ratings, score, and upsert by place_id. Outreach fields on
existing leads are preserved (see models.lead.PRESERVED_ON_UPDATE).
"""
import logging
import math
import os
from typing import Any, Dict, List

import yaml

from agent_runner.agents.base import Agent, AgentContext, bool_param, float_param, int_param
from agent_runner.config import ConfigurationError
from agent_runner.models.lead import (
    FINE_DINING, LEAD_ENTITY, LEAD_KEY, PRESERVED_ON_UPDATE, Lead, bucket_for,
)
from agent_runner.services.entities import upsert
from agent_runner.services.places import LocationNotFoundError

logger = logging.getLogger('agents.leads')

SAMPLE_SIZE = 10
MIN_CANDIDATES = 15
CANDIDATE_MULTIPLIER = 3

# ── Scoring constants ────────────────────────────────────────────────────────
RATING_WEIGHT = 60
REVIEWS_WEIGHT = 30
REVIEWS_CAP = 5000
FINE_DINING_BOOST = 10


# ── Bucket config (YAML with hardcoded fallback) ─────────────────────────────

_bucket_config = None


def _default_config():
    """Hardcoded fallback if YAML is missing."""
    return {
        'version': 'default',
        'buckets': [
            {'key': 'restaurant', 'keyword': 'restaurant', 'limit': 10},
            {'key': 'fine_dining', 'keyword': 'fine dining restaurant', 'limit': 5},
            {'key': 'shisha', 'keyword': 'shisha lounge', 'limit': 5},
            {'key': 'beach_club', 'keyword': 'beach club', 'limit': 5},
            {'key': 'other_food', 'keyword': 'cafe', 'limit': 5},
        ],
    }


def load_bucket_config():
    """Load bucket queries from YAML, with in-memory cache and hardcoded fallback."""
    global _bucket_config
    if _bucket_config is not None:
        return _bucket_config

    config_path = os.path.join(os.path.dirname(__file__), 'lead_buckets.yaml')
    try:
        with open(config_path, 'r') as f:
            loaded = yaml.safe_load(f)
        if not isinstance(loaded, dict) or not loaded.get('buckets'):
            raise ValueError("no buckets defined")
        _bucket_config = loaded
        logger.info("Bucket config loaded from YAML (version=%s)", _bucket_config.get('version', '?'))
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.warning("Bucket YAML unusable (%s), using defaults", e)
        _bucket_config = _default_config()

    return _bucket_config


def default_limits() -> Dict[str, int]:
    return {b['key']: int(b.get('limit', 0)) for b in load_bucket_config()['buckets']}


# ── Scoring ──────────────────────────────────────────────────────────────────

def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def score_lead(rating: float = 0, reviews: int = 0, bucket: str = '') -> int:
    """
    0–100 lead score.

        rating  → up to 60 (linear over 0–5)
        reviews → up to 30 (log scale, capped at 5000)
        fine_dining bucket → +10
    """
    r = min(max(float(rating or 0), 0.0), 5.0)
    rv = min(max(int(reviews or 0), 0), REVIEWS_CAP)
    rating_score = (r / 5) * RATING_WEIGHT
    reviews_score = math.log10(rv + 1) / math.log10(REVIEWS_CAP + 1) * REVIEWS_WEIGHT
    bucket_boost = FINE_DINING_BOOST if bucket == FINE_DINING else 0
    return _round_half_up(min(100.0, rating_score + reviews_score + bucket_boost))


def upsert_lead(store, lead: Dict[str, Any], dry_run: bool = False):
    """Create-or-update a Lead by place_id, keeping in-progress outreach state."""
    return upsert(store, LEAD_ENTITY, LEAD_KEY, lead, preserve=PRESERVED_ON_UPDATE, dry_run=dry_run)


class LeadsGenerateDaily(Agent):
    name = 'leads_generate_daily'
    description = 'Google Places nearby search per category bucket → scored Lead upserts'
    defaults = {
        'country': 'UAE',
        'city_query': 'Dubai',
        'radius_m': 25000,
        'min_rating': 4.0,
        'limits': None,
        'dry_run': False,
    }

    def _limits(self, requested) -> Dict[str, int]:
        """YAML limits when none are given; otherwise exactly the caller's, omitted buckets at 0."""
        if requested is None:
            return default_limits()
        if not isinstance(requested, dict):
            raise ConfigurationError(f"Parameter 'limits' must be an object, got {requested!r}")
        limits = {key: 0 for key in default_limits()}
        for key in requested:
            limits[key] = int_param(requested, key, minimum=0)
        return limits

    def run(self, params: Dict[str, Any], ctx: AgentContext) -> Dict[str, Any]:
        p = self.resolve_params(params)
        country = str(p['country'])
        city_query = str(p['city_query'])
        radius_m = int_param(p, 'radius_m', minimum=1)
        min_rating = float_param(p, 'min_rating')
        limits = self._limits(p['limits'])
        dry_run = bool_param(p, 'dry_run')

        places = ctx.places_client()
        city = places.resolve_location(city_query, country)
        if city.lat is None or city.lng is None:
            raise LocationNotFoundError(f"City resolved but missing lat/lng: {city.to_dict()}")

        taken_leads: List[Dict[str, Any]] = []
        skipped_low_rating: List[Dict[str, Any]] = []
        created = updated = duplicates = missing_details = 0
        seen_place_ids = set()

        for bucket_cfg in load_bucket_config()['buckets']:
            key = bucket_cfg['key']
            limit = limits.get(key, 0)
            if not limit:
                continue

            bucket = bucket_for(key)
            nearby = places.nearby_search(city.lat, city.lng, radius_m, bucket_cfg['keyword'])
            candidates = nearby[:max(MIN_CANDIDATES, limit * CANDIDATE_MULTIPLIER)]

            taken = 0
            for candidate in candidates:
                if taken >= limit:
                    break
                pid = candidate.get('place_id')
                if not pid:
                    continue
                if pid in seen_place_ids:
                    duplicates += 1
                    continue
                seen_place_ids.add(pid)

                details = places.place_details(pid)
                if not details:
                    missing_details += 1
                    continue

                rating = details.get('rating') or 0
                reviews = details.get('user_ratings_total') or 0
                if rating < min_rating:
                    skipped_low_rating.append({'place_id': pid, 'name': details.get('name'), 'rating': rating})
                    continue

                score = score_lead(rating, reviews, bucket)
                lead = Lead.from_place_details(
                    {**details, 'place_id': details.get('place_id') or pid},
                    country=country, city=city.name, bucket=bucket, score=score,
                )
                result = upsert_lead(ctx.store, lead.to_dict(), dry_run=dry_run)
                if result.created:
                    created += 1
                else:
                    updated += 1

                taken_leads.append({'place_id': lead.place_id, 'name': lead.name, 'bucket': bucket, 'lead_score': score})
                taken += 1

            logger.info("Bucket '%s': %d/%d leads from %d candidates", key, taken, limit, len(candidates))

        return {
            'agent': self.name,
            'params': {
                'country': country,
                'city_query': city_query,
                'radius_m': radius_m,
                'min_rating': min_rating,
                'limits': limits,
            },
            'resolved_city': city.to_dict(),
            'totals': {
                'created_or_updated': len(taken_leads),
                'created': created,
                'updated': updated,
                'skipped_low_rating': len(skipped_low_rating),
                'skipped_duplicate': duplicates,
                'skipped_missing_details': missing_details,
            },
            'sample': taken_leads[:SAMPLE_SIZE],
            'dry_run': dry_run,
        }
