"""Tests for agent_runner.agents.leads — scoring, bucket config, lead upserts."""
import pytest
import yaml
from unittest.mock import patch

from agent_runner.agents import leads as leads_mod
from agent_runner.agents.leads import (
    LeadsGenerateDaily, default_limits, load_bucket_config, score_lead, upsert_lead,
)
from agent_runner.config import ConfigurationError
from agent_runner.services.places import Location, LocationNotFoundError


class FakePlaces:
    """PlacesClient stand-in keyed by keyword / place id."""

    def __init__(self, nearby=None, details=None, city=None):
        self.city = city or Location(name='Dubai', address='Dubai - UAE', lat=25.2, lng=55.27, place_id='C1')
        self.nearby = nearby or {}
        self.details = details or {}
        self.detail_calls = []
        self.nearby_calls = []

    def resolve_location(self, query, region=''):
        return self.city

    def nearby_search(self, lat, lng, radius_m, keyword):
        self.nearby_calls.append((lat, lng, radius_m, keyword))
        return [{'place_id': pid} for pid in self.nearby.get(keyword, [])]

    def place_details(self, place_id):
        self.detail_calls.append(place_id)
        return self.details.get(place_id)


def _details(pid, rating, reviews, name=None):
    return {
        'place_id': pid,
        'name': name or f'Venue {pid}',
        'rating': rating,
        'user_ratings_total': reviews,
        'formatted_address': f'{pid} Street',
        'geometry': {'location': {'lat': 25.0, 'lng': 55.0}},
    }


ONLY_TWO_BUCKETS = {'restaurant': 2, 'fine_dining': 1, 'shisha': 0, 'beach_club': 0, 'other_food': 0}


@pytest.fixture
def places():
    return FakePlaces(
        nearby={
            'restaurant': ['A', 'B', 'C', 'D'],
            'fine dining restaurant': ['A', 'E'],
        },
        details={
            'A': _details('A', 4.5, 100),
            'B': _details('B', 3.0, 900),
            'C': _details('C', 4.8, 5000),
            'D': _details('D', 4.2, 10),
            'E': _details('E', 5.0, 5000),
        },
    )


# ── Scoring ──────────────────────────────────────────────────────────────────

class TestScoreLead:

    def test_maximum_is_clamped_to_100(self):
        assert score_lead(rating=5, reviews=5000, bucket='fine_dining') == 100

    def test_zero(self):
        assert score_lead(rating=0, reviews=0, bucket='restaurant') == 0

    def test_perfect_rating_without_boost(self):
        assert score_lead(rating=5, reviews=5000, bucket='restaurant') == 90

    def test_mid_values(self):
        assert score_lead(rating=4.5, reviews=100, bucket='shisha') == 70
        assert score_lead(rating=4.8, reviews=5000, bucket='restaurant') == 88

    def test_inputs_clamped(self):
        assert score_lead(rating=7, reviews=10 ** 6, bucket='beach_club') == 90
        assert score_lead(rating=-1, reviews=-5, bucket='other_food') == 0

    def test_none_inputs_treated_as_zero(self):
        assert score_lead(rating=None, reviews=None, bucket='restaurant') == 0

    def test_rounds_half_up(self):
        assert leads_mod._round_half_up(70.5) == 71
        assert leads_mod._round_half_up(69.49) == 69


# ── Bucket config ────────────────────────────────────────────────────────────

class TestBucketConfig:

    def test_yaml_buckets_in_order(self):
        keys = [b['key'] for b in load_bucket_config()['buckets']]
        assert keys == ['restaurant', 'fine_dining', 'shisha', 'beach_club', 'other_food']

    def test_default_limits(self):
        assert default_limits() == {
            'restaurant': 10, 'fine_dining': 5, 'shisha': 5, 'beach_club': 5, 'other_food': 5,
        }

    def test_unusable_yaml_falls_back(self):
        with patch.object(leads_mod, '_bucket_config', None), \
                patch.object(leads_mod.yaml, 'safe_load', side_effect=yaml.YAMLError('bad')):
            config = load_bucket_config()
            assert config['version'] == 'default'
            assert len(config['buckets']) == 5


# ── Upsert merge policy ──────────────────────────────────────────────────────

class TestUpsertLead:

    def test_preserves_outreach_state(self, make_store):
        store = make_store({'Lead': [{
            'id': 'L1', 'place_id': 'P1', 'lead_score': 85,
            'outreach_status': 'contacted', 'outreach_attempts': 3, 'contacted_today': True,
        }]})
        result = upsert_lead(store, {
            'place_id': 'P1', 'lead_score': 90, 'outreach_status': 'new', 'outreach_attempts': 0,
        })
        stored = store.data['Lead'][0]
        assert result.action == 'updated'
        assert stored['lead_score'] == 90
        assert stored['outreach_status'] == 'contacted'
        assert stored['outreach_attempts'] == 3
        assert stored['contacted_today'] is True
        assert len(store.data['Lead']) == 1

    def test_creates_new_lead_with_initial_outreach_state(self, fake_store):
        upsert_lead(fake_store, {'place_id': 'P2', 'lead_score': 50, 'outreach_status': 'new', 'outreach_attempts': 0})
        assert fake_store.data['Lead'][0]['outreach_status'] == 'new'


# ── Agent run ────────────────────────────────────────────────────────────────

class TestLeadsGenerateDaily:

    def test_end_to_end(self, make_ctx, fake_store, places):
        ctx = make_ctx(store=fake_store, places=places)
        out = LeadsGenerateDaily().run({'limits': ONLY_TWO_BUCKETS}, ctx)

        assert out['agent'] == 'leads_generate_daily'
        assert out['resolved_city']['name'] == 'Dubai'
        assert out['totals']['created_or_updated'] == 3
        assert out['totals']['created'] == 3
        assert out['totals']['skipped_low_rating'] == 1
        assert out['totals']['skipped_duplicate'] == 1
        assert [(s['place_id'], s['bucket'], s['lead_score']) for s in out['sample']] == [
            ('A', 'restaurant', 70),
            ('C', 'restaurant', 88),
            ('E', 'fine_dining', 100),
        ]
        stored = {l['place_id']: l for l in fake_store.data['Lead']}
        assert set(stored) == {'A', 'C', 'E'}
        assert stored['E']['category_bucket'] == 'fine_dining'
        assert stored['A']['city'] == 'Dubai'
        assert stored['A']['country'] == 'UAE'

    def test_stops_at_bucket_cap_and_dedups_across_buckets(self, make_ctx, places):
        LeadsGenerateDaily().run({'limits': ONLY_TWO_BUCKETS}, make_ctx(places=places))
        # D never looked up (cap reached); A looked up once despite two buckets
        assert places.detail_calls == ['A', 'B', 'C', 'E']

    def test_zero_limit_buckets_not_searched(self, make_ctx, places):
        LeadsGenerateDaily().run({'limits': ONLY_TWO_BUCKETS}, make_ctx(places=places))
        assert [c[3] for c in places.nearby_calls] == ['restaurant', 'fine dining restaurant']

    def test_candidate_window(self, make_ctx):
        places = FakePlaces(
            nearby={'restaurant': [f'P{i}' for i in range(40)]},
            details={},
        )
        limits = {'restaurant': 1, 'fine_dining': 0, 'shisha': 0, 'beach_club': 0, 'other_food': 0}
        LeadsGenerateDaily().run({'limits': limits}, make_ctx(places=places))
        # no details → nothing taken → all of max(15, 1*3) candidates examined
        assert len(places.detail_calls) == 15

    def test_min_rating_param(self, make_ctx, places):
        out = LeadsGenerateDaily().run({'limits': ONLY_TWO_BUCKETS, 'min_rating': 4.9}, make_ctx(places=places))
        assert out['totals']['created_or_updated'] == 1  # only E (5.0)
        assert out['params']['min_rating'] == 4.9

    def test_rerun_updates_existing_without_touching_outreach(self, make_ctx, make_store, places):
        store = make_store({'Lead': [{
            'id': 'L-A', 'place_id': 'A', 'lead_score': 10, 'outreach_status': 'contacted', 'outreach_attempts': 1,
        }]})
        out = LeadsGenerateDaily().run({'limits': ONLY_TWO_BUCKETS}, make_ctx(store=store, places=places))
        assert out['totals']['updated'] == 1
        lead_a = next(l for l in store.data['Lead'] if l['place_id'] == 'A')
        assert lead_a['lead_score'] == 70
        assert lead_a['outreach_status'] == 'contacted'
        assert lead_a['outreach_attempts'] == 1

    def test_dry_run_same_counts_no_writes(self, make_ctx, make_store):
        seed = {'Lead': [{'id': 'L-A', 'place_id': 'A', 'lead_score': 10, 'outreach_status': 'new'}]}

        def _places():
            return FakePlaces(
                nearby={'restaurant': ['A', 'B', 'C'], 'fine dining restaurant': ['E']},
                details={'A': _details('A', 4.5, 100), 'B': _details('B', 3.0, 1),
                         'C': _details('C', 4.8, 5000), 'E': _details('E', 5.0, 5000)},
            )

        dry_store = make_store(seed)
        dry = LeadsGenerateDaily().run({'limits': ONLY_TWO_BUCKETS, 'dry_run': True},
                                       make_ctx(store=dry_store, places=_places()))
        real = LeadsGenerateDaily().run({'limits': ONLY_TWO_BUCKETS},
                                        make_ctx(store=make_store(seed), places=_places()))

        assert dry['totals'] == real['totals']
        assert dry['sample'] == real['sample']
        assert dry['dry_run'] is True
        assert dry_store.writes() == []

    def test_missing_coordinates_is_location_error(self, make_ctx):
        places = FakePlaces(city=Location(name='Dubai', address=None, lat=None, lng=None, place_id='C1'))
        with pytest.raises(LocationNotFoundError, match='missing lat/lng'):
            LeadsGenerateDaily().run({}, make_ctx(places=places))

    def test_invalid_limits(self, make_ctx, places):
        with pytest.raises(ConfigurationError, match='limits'):
            LeadsGenerateDaily().run({'limits': [1, 2]}, make_ctx(places=places))
        with pytest.raises(ConfigurationError, match='shisha'):
            LeadsGenerateDaily().run({'limits': {'shisha': -1}}, make_ctx(places=places))

    def test_supplied_limits_replace_defaults(self, make_ctx):
        places = FakePlaces()
        out = LeadsGenerateDaily().run({'limits': {'fine_dining': 5}}, make_ctx(places=places))
        assert [c[3] for c in places.nearby_calls] == ['fine dining restaurant']
        assert out['params']['limits'] == {
            'restaurant': 0, 'fine_dining': 5, 'shisha': 0, 'beach_club': 0, 'other_food': 0,
        }

    def test_absent_limits_use_yaml_defaults(self, make_ctx):
        places = FakePlaces()
        out = LeadsGenerateDaily().run({}, make_ctx(places=places))
        assert out['params']['limits'] == default_limits()
        assert len(places.nearby_calls) == 5
