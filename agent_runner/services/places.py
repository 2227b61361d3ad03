"""
Google Places API client — text search, nearby search, place details.

Provider statuses OK and ZERO_RESULTS are successes (ZERO_RESULTS is simply an
empty result). Anything else, or a non-2xx HTTP status, raises ProviderError.
"""
import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional

import requests

from agent_runner.config import PLACES_API_URL, Settings

logger = logging.getLogger('services.places')

OK_STATUSES = {'OK', 'ZERO_RESULTS'}

DETAIL_FIELDS = [
    'place_id',
    'name',
    'formatted_address',
    'geometry',
    'rating',
    'user_ratings_total',
    'international_phone_number',
    'website',
    'types',
]


class ProviderError(Exception):
    """HTTP failure or error status from the place-search provider."""

    def __init__(self, message, status_code=None, provider_status=None):
        self.status_code = status_code
        self.provider_status = provider_status
        super().__init__(message)


class LocationNotFoundError(ProviderError):
    """Text search for the target location returned no usable result."""


@dataclass
class Location:
    name: str
    address: Optional[str]
    lat: Optional[float]
    lng: Optional[float]
    place_id: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class PlacesClient:
    """Google Places web-service client. One instance per agent run."""

    def __init__(self, settings: Settings, session: requests.Session = None, base_url: str = PLACES_API_URL):
        self.api_key = settings.require_places_key()
        self.timeout = settings.http_timeout
        self.base_url = base_url.rstrip('/')
        self.session = session or requests.Session()

    def _get(self, endpoint: str, params: Dict[str, Any], allow_not_found: bool = False) -> Dict[str, Any]:
        url = f"{self.base_url}/{endpoint}/json"
        try:
            response = self.session.get(url, params={**params, 'key': self.api_key}, timeout=self.timeout)
        except requests.exceptions.Timeout:
            raise ProviderError(f"Google {endpoint} timed out after {self.timeout}s")
        except requests.exceptions.RequestException as e:
            raise ProviderError(f"Google {endpoint} request failed: {e}")

        try:
            payload = response.json()
        except ValueError:
            payload = {'raw': response.text}

        if not response.ok:
            raise ProviderError(
                f"Google HTTP {response.status_code}: {payload}",
                status_code=response.status_code,
            )

        status = payload.get('status')
        if status and status not in OK_STATUSES and not (allow_not_found and status == 'NOT_FOUND'):
            message = f"Google Places error: {status} {payload.get('error_message', '')}".strip()
            raise ProviderError(message, status_code=response.status_code, provider_status=status)

        return payload

    def resolve_location(self, query: str, region: str = '') -> Location:
        """
        Text-search "<query>, <region>" and take the provider's first result.

        Raises LocationNotFoundError when nothing comes back.
        """
        text = f"{query}, {region}" if region else query
        payload = self._get('textsearch', {'query': text})
        results = payload.get('results') or []
        if not results:
            raise LocationNotFoundError(f'Could not resolve city from "{query}"')

        place = results[0]
        location = (place.get('geometry') or {}).get('location') or {}
        resolved = Location(
            name=place.get('name'),
            address=place.get('formatted_address'),
            lat=location.get('lat'),
            lng=location.get('lng'),
            place_id=place.get('place_id'),
        )
        logger.info("Resolved '%s' → %s (%s, %s)", text, resolved.name, resolved.lat, resolved.lng)
        return resolved

    def nearby_search(self, lat: float, lng: float, radius_m: int, keyword: str) -> List[Dict[str, Any]]:
        payload = self._get('nearbysearch', {
            'location': f"{lat},{lng}",
            'radius': radius_m,
            'keyword': keyword,
        })
        results = payload.get('results') or []
        logger.debug("Nearby '%s' within %sm: %d results", keyword, radius_m, len(results))
        return results

    def place_details(self, place_id: str) -> Optional[Dict[str, Any]]:
        """Details for one place, or None if the provider has no record of it."""
        payload = self._get(
            'details',
            {'place_id': place_id, 'fields': ','.join(DETAIL_FIELDS)},
            allow_not_found=True,
        )
        return payload.get('result') or None
