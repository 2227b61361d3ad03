"""
Base44 entities REST client — list / filter / create / update / delete.

Paths are relative to {BASE44_API_URL}/apps/{BASE44_APP_ID}. Every request
is bearer-authenticated, JSON in / JSON out, and bounded by a timeout.

Filtering runs in one of three explicit modes (STORE_FILTER_MODE):
  - native → POST /entities/{E}/filter only
  - client → GET /entities/{E}/list, then evaluate predicates locally
  - auto   → native; if the backend has no filter endpoint (404/405/501) switch
             to client mode for the rest of the process and log it
Both paths evaluate the same predicate semantics (see services.predicates).
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

import requests

from agent_runner.config import Settings
from agent_runner.services.predicates import apply_filter, validate_where

logger = logging.getLogger('services.entities')

# Status codes meaning "this backend has no native filter endpoint"
FILTER_UNSUPPORTED_STATUSES = {404, 405, 501}

CREATED = 'created'
UPDATED = 'updated'


class RemoteStoreError(Exception):
    """Non-2xx response (or transport failure) from the entity store."""

    def __init__(self, message, status_code=None, body=''):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


@dataclass
class UpsertResult:
    action: str                       # 'created' or 'updated'
    record: Dict[str, Any]
    dry_run: bool = False

    @property
    def created(self) -> bool:
        return self.action == CREATED


class EntityClient:
    """
    Typed request wrapper around the remote document store.

    Usage:
        client = EntityClient(settings)
        leads = client.filter('Lead', {'lead_score': {'gte': 70}})
        client.update('Lead', leads[0]['id'], {'contacted_today': True})
    """

    def __init__(self, settings: Settings, session: requests.Session = None):
        self.settings = settings
        self.base_url = f"{settings.store_url}/apps/{settings.store_app_id}"
        self.timeout = settings.http_timeout
        self.filter_mode = settings.filter_mode
        self.list_warn_size = settings.list_warn_size
        self.session = session or requests.Session()
        self.session.headers.update({
            'Content-Type': 'application/json',
            'Authorization': f'Bearer {settings.store_key}',
        })
        # Flipped once in auto mode when the native endpoint is missing
        self.native_filter_available = settings.filter_mode != 'client'

    # ── Transport ─────────────────────────────────────────────────────

    def _request(self, method: str, path: str, body: Any = None, label: str = '') -> Any:
        url = f"{self.base_url}{path}"
        label = label or f"{method} {path}"
        try:
            response = self.session.request(
                method,
                url,
                data=json.dumps(body) if body is not None else None,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout:
            raise RemoteStoreError(f"Base44 {label} timed out after {self.timeout}s")
        except requests.exceptions.RequestException as e:
            raise RemoteStoreError(f"Base44 {label} request failed: {e}")

        text = response.text or ''
        if not response.ok:
            logger.debug("Response body: %s", text)
            raise RemoteStoreError(
                f"Base44 {label} failed: {response.status_code} {text}",
                status_code=response.status_code,
                body=text,
            )

        if not text:
            return None
        try:
            return response.json()
        except ValueError:
            return text

    @staticmethod
    def _as_records(payload: Any) -> List[Dict[str, Any]]:
        """Normalize list-ish responses (bare list or {'items'|'data'|'results': [...]})."""
        if payload is None:
            return []
        if isinstance(payload, list):
            return payload
        if isinstance(payload, dict):
            for key in ('items', 'data', 'results'):
                if isinstance(payload.get(key), list):
                    return payload[key]
        raise RemoteStoreError(f"Unexpected list response shape: {str(payload)[:200]}")

    # ── Entity operations ─────────────────────────────────────────────

    def list(self, entity: str) -> List[Dict[str, Any]]:
        payload = self._request('GET', f'/entities/{entity}/list', label=f'{entity}.list')
        return self._as_records(payload)

    def filter(self, entity: str, where: Dict[str, Any] = None) -> List[Dict[str, Any]]:
        """Records of `entity` matching `where`, via the configured filter mode."""
        where = where or {}
        validate_where(where)

        if self.native_filter_available:
            try:
                return self._native_filter(entity, where)
            except RemoteStoreError as e:
                if self.filter_mode != 'auto' or e.status_code not in FILTER_UNSUPPORTED_STATUSES:
                    raise
                logger.warning(
                    "Native filter unavailable for %s (HTTP %s) — switching to client-side "
                    "filtering (full list fetch) for the rest of this run",
                    entity, e.status_code,
                )
                self.native_filter_available = False

        return self._client_filter(entity, where)

    def _native_filter(self, entity: str, where: Dict[str, Any]) -> List[Dict[str, Any]]:
        payload = self._request('POST', f'/entities/{entity}/filter', body=where, label=f'{entity}.filter')
        return self._as_records(payload)

    def _client_filter(self, entity: str, where: Dict[str, Any]) -> List[Dict[str, Any]]:
        records = self.list(entity)
        if len(records) >= self.list_warn_size:
            logger.warning(
                "Client-side filter on %s scanned %d records (warn size %d) — "
                "results may be truncated if the store paginates list responses",
                entity, len(records), self.list_warn_size,
            )
        matched = apply_filter(records, where)
        logger.debug("Client-side filter on %s: %d/%d matched", entity, len(matched), len(records))
        return matched

    def create(self, entity: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._request('POST', f'/entities/{entity}/create', body=data, label=f'{entity}.create')

    def update(self, entity: str, record_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._request(
            'POST', f'/entities/{entity}/{record_id}/update', body=data, label=f'{entity}.update',
        )

    def delete(self, entity: str, record_id: str) -> Any:
        return self._request('POST', f'/entities/{entity}/{record_id}/delete', label=f'{entity}.delete')

    def upsert(self, entity: str, key_field: str, data: Dict[str, Any],
               preserve: Iterable[str] = (), dry_run: bool = False) -> UpsertResult:
        return upsert(self, entity, key_field, data, preserve=preserve, dry_run=dry_run)


def upsert(store, entity: str, key_field: str, data: Dict[str, Any],
           preserve: Iterable[str] = (), dry_run: bool = False) -> UpsertResult:
    """
    Idempotent create-or-update keyed by data[key_field].

    Merge policy: when a record with the same key exists, every field in `data`
    overwrites it EXCEPT the names in `preserve`, which keep their stored values.
    Otherwise `data` is created as-is. With dry_run, the decision is computed
    (one read) but nothing is written.

    `store` is anything with filter/create/update — EntityClient in production.
    """
    key = data.get(key_field)
    if key in (None, ''):
        raise ValueError(f"upsert on {entity} requires a value for '{key_field}'")

    existing = store.filter(entity, {key_field: key})
    hit: Optional[Dict[str, Any]] = existing[0] if existing else None
    if len(existing) > 1:
        logger.warning("%d %s records share %s=%s — updating the first", len(existing), entity, key_field, key)

    if hit and hit.get('id'):
        preserved = set(preserve)
        patch = {k: v for k, v in data.items() if k not in preserved}
        if dry_run:
            return UpsertResult(UPDATED, {**hit, **patch}, dry_run=True)
        updated = store.update(entity, hit['id'], patch)
        return UpsertResult(UPDATED, updated if isinstance(updated, dict) else {**hit, **patch})

    if dry_run:
        return UpsertResult(CREATED, dict(data), dry_run=True)
    created = store.create(entity, data)
    return UpsertResult(CREATED, created if isinstance(created, dict) else dict(data))
