"""
Lead record — a venue discovered through place search, scored for outreach.

place_id is the dedup key. Outreach progress fields belong to the outreach
workflow and survive re-discovery of the same place.
"""
from dataclasses import dataclass, asdict, field
from typing import Any, Dict, Optional


LEAD_ENTITY = 'Lead'
LEAD_KEY = 'place_id'

# ── Category buckets ─────────────────────────────────────────────────────────
RESTAURANT = 'restaurant'
FINE_DINING = 'fine_dining'
SHISHA = 'shisha'
BEACH_CLUB = 'beach_club'
OTHER_FOOD = 'other_food'

CATEGORY_BUCKETS = [RESTAURANT, FINE_DINING, SHISHA, BEACH_CLUB, OTHER_FOOD]

# ── Outreach status values ───────────────────────────────────────────────────
OUTREACH_NEW = 'new'
OUTREACH_OPEN = 'open'
OUTREACH_CONTACTED = 'contacted'
OUTREACH_REPLIED = 'replied'
OUTREACH_WON = 'won'
OUTREACH_LOST = 'lost'

OUTREACH_STATUSES = [
    OUTREACH_NEW,
    OUTREACH_OPEN,
    OUTREACH_CONTACTED,
    OUTREACH_REPLIED,
    OUTREACH_WON,
    OUTREACH_LOST,
]

# Never overwritten when an existing lead is refreshed
PRESERVED_ON_UPDATE = ('outreach_status', 'outreach_attempts', 'contacted_today')


def bucket_for(key: str) -> str:
    """Normalize a bucket key; anything unrecognized lands in other_food."""
    return key if key in CATEGORY_BUCKETS else OTHER_FOOD


@dataclass
class Lead:
    place_id: str
    name: str
    country: str
    city: str
    category_bucket: str
    google_rating: float
    google_reviews: int
    lead_score: int
    address: Optional[str] = None
    area: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    instagram_handle: Optional[str] = None
    tech_stack: Optional[str] = None
    outreach_status: str = OUTREACH_NEW
    outreach_attempts: int = 0
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_place_details(cls, details: Dict[str, Any], *, country: str, city: str,
                           bucket: str, score: int) -> 'Lead':
        """Build a Lead from a Places details payload."""
        location = (details.get('geometry') or {}).get('location') or {}
        return cls(
            place_id=details.get('place_id'),
            name=details.get('name'),
            country=country,
            city=city,
            category_bucket=bucket,
            google_rating=details.get('rating') or 0,
            google_reviews=details.get('user_ratings_total') or 0,
            lead_score=score,
            address=details.get('formatted_address'),
            lat=location.get('lat'),
            lng=location.get('lng'),
            phone=details.get('international_phone_number') or None,
            website=details.get('website') or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        extra = data.pop('extra')
        data.update(extra)
        return data
