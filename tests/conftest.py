"""Shared test fixtures."""
import copy
import itertools
import json

import pytest
from unittest.mock import MagicMock

from agent_runner.agents.base import AgentContext
from agent_runner.config import Settings
from agent_runner.services.predicates import apply_filter


class FakeStore:
    """
    In-memory stand-in for EntityClient.

    Filters run through the same predicate evaluator as the client-side path.
    Every call is recorded in `calls` as (method, entity, ...) so tests can
    assert on writes.
    """

    WRITE_METHODS = ('create', 'update', 'delete')

    def __init__(self, data=None):
        self.data = {entity: [dict(r) for r in rows] for entity, rows in (data or {}).items()}
        self.calls = []
        self._ids = itertools.count(1)

    def _rows(self, entity):
        return self.data.setdefault(entity, [])

    def list(self, entity):
        self.calls.append(('list', entity))
        return copy.deepcopy(self._rows(entity))

    def filter(self, entity, where=None):
        self.calls.append(('filter', entity, where))
        return copy.deepcopy(apply_filter(self._rows(entity), where))

    def create(self, entity, data):
        self.calls.append(('create', entity, data))
        record = {'id': f'{entity.lower()}-{next(self._ids)}', **copy.deepcopy(data)}
        self._rows(entity).append(record)
        return copy.deepcopy(record)

    def update(self, entity, record_id, data):
        self.calls.append(('update', entity, record_id, data))
        for record in self._rows(entity):
            if record.get('id') == record_id:
                record.update(copy.deepcopy(data))
                return copy.deepcopy(record)
        # Run records are created by the scheduler; tests often skip seeding them
        record = {'id': record_id, **copy.deepcopy(data)}
        self._rows(entity).append(record)
        return copy.deepcopy(record)

    def delete(self, entity, record_id):
        self.calls.append(('delete', entity, record_id))
        self.data[entity] = [r for r in self._rows(entity) if r.get('id') != record_id]

    def writes(self, entity=None):
        return [
            c for c in self.calls
            if c[0] in self.WRITE_METHODS and (entity is None or c[1] == entity)
        ]


class FailingStore(FakeStore):
    """
    FakeStore whose writes raise for the listed (method, entity) pairs.

    A (method, entity, status) triple fails only writes whose data carries
    that status, e.g. ('update', 'AgentRun', 'success').
    """

    def __init__(self, fail_on, data=None, error=None):
        super().__init__(data)
        self.fail_on = set(fail_on)
        self.error = error or RuntimeError('store unavailable')

    def _maybe_fail(self, method, entity, data):
        if (method, entity) in self.fail_on or (method, entity, data.get('status')) in self.fail_on:
            raise self.error

    def create(self, entity, data):
        self._maybe_fail('create', entity, data)
        return super().create(entity, data)

    def update(self, entity, record_id, data):
        self._maybe_fail('update', entity, data)
        return super().update(entity, record_id, data)


@pytest.fixture
def settings():
    return Settings(
        store_url='https://base44.test/api',
        store_key='test-key',
        store_app_id='app-123',
        places_key='places-key',
    )


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def make_ctx(settings):
    """Factory fixture — AgentContext around a store and optional places client."""
    def _make(store=None, places=None):
        return AgentContext(settings=settings, store=store if store is not None else FakeStore(), places=places)
    return _make


@pytest.fixture
def mock_response():
    """Factory for requests.Response-like mocks."""
    def _make(status_code=200, json_data=None, text=None):
        resp = MagicMock()
        resp.status_code = status_code
        resp.ok = 200 <= status_code < 300
        if text is None:
            text = json.dumps(json_data) if json_data is not None else ''
        resp.text = text
        if json_data is not None:
            resp.json.return_value = json_data
        else:
            resp.json.side_effect = ValueError('No JSON')
        return resp
    return _make


@pytest.fixture
def make_store():
    """Factory fixture — FakeStore seeded with {entity: [records]}."""
    def _make(data=None):
        return FakeStore(data)
    return _make


@pytest.fixture
def make_failing_store():
    """Factory fixture — FakeStore whose writes fail for given (method, entity[, status]) keys."""
    def _make(fail_on, data=None, error=None):
        return FailingStore(fail_on, data=data, error=error)
    return _make
