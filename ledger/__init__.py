"""Core module for ledger-matcher."""

from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Literal, Optional

TimeGranularity = Literal['specific', 'morning', 'afternoon', 'evening']
MatchQuality = Literal['excellent', 'good', 'fair', 'poor']
TimeFilterOption = Literal['last_24h', 'last_week', 'last_month', 'any_time']

# Attribute name -> key used by the app's jsonb avatar records
AVATAR_KEYS: dict[str, str] = {
    'skin_color': 'skinColor',
    'hair_color': 'hairColor',
    'top_type': 'topType',
    'facial_hair_type': 'facialHairType',
    'facial_hair_color': 'facialHairColor',
    'eye_type': 'eyeType',
    'eyebrow_type': 'eyebrowType',
    'mouth_type': 'mouthType',
    'clothe_type': 'clotheType',
    'clothe_color': 'clotheColor',
    'accessories_type': 'accessoriesType',
    'graphic_type': 'graphicType',
    'avatar_style': 'avatarStyle',
}


@dataclass(frozen=True)
class AvatarConfig:
    """An avatar description: a post's target or a viewer's self-avatar."""

    skin_color: Optional[str] = None
    hair_color: Optional[str] = None
    top_type: Optional[str] = None
    facial_hair_type: Optional[str] = None
    facial_hair_color: Optional[str] = None
    eye_type: Optional[str] = None
    eyebrow_type: Optional[str] = None
    mouth_type: Optional[str] = None
    clothe_type: Optional[str] = None
    clothe_color: Optional[str] = None
    accessories_type: Optional[str] = None
    graphic_type: Optional[str] = None
    avatar_style: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> 'AvatarConfig':
        """Build an avatar from a camelCase record; unknown keys are ignored."""
        return cls(**{
            name: data.get(key) for name, key in AVATAR_KEYS.items()
        })

    def to_dict(self) -> dict:
        """Return the camelCase record, leaving out unset attributes."""
        return {
            key: getattr(self, name)
            for name, key in AVATAR_KEYS.items()
            if getattr(self, name) is not None
        }


@dataclass(frozen=True)
class MatchWeights:
    """Per-attribute weights for match scoring. Should sum to 1.0."""

    # Primary
    skin_color: float
    hair_color: float
    top_type: float
    facial_hair_type: float
    facial_hair_color: float
    # Secondary
    eye_type: float
    mouth_type: float
    eyebrow_type: float
    clothe_type: float
    clothe_color: float
    accessories_type: float
    graphic_type: float

    def as_dict(self) -> dict[str, float]:
        """Weights keyed by attribute name."""
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class MatchThresholds:
    """Minimum scores (0-100) for each quality tier; below fair is poor."""

    excellent: float
    good: float
    fair: float


@dataclass(frozen=True)
class MatchConfig:
    """Weights and thresholds driving a scoring run.

    With ``conditional_attributes`` set, facial hair color and graphic
    print are only scored when both avatars make them relevant.
    """

    weights: MatchWeights
    thresholds: MatchThresholds
    conditional_attributes: bool = True


@dataclass
class AttributeScoreDetail:
    """How a single attribute contributed to a score."""

    similarity: float
    weight: float
    contribution: float
    applicable: Optional[bool] = None  # Only set for conditional attributes


@dataclass
class MatchResult:
    """Result of scoring a consumer avatar against a target avatar."""

    score: int            # 0-100
    is_match: bool
    quality: Optional[MatchQuality] = None
    breakdown: Optional[dict[str, AttributeScoreDetail]] = None
    min_threshold: Optional[float] = None


@dataclass
class AttributeMatchDetail:
    """Per-attribute comparison shown in "why did this match" views."""

    attribute: str
    matches: bool
    weight: float
    similarity: float
    target_value: Optional[str]
    consumer_value: Optional[str]


@dataclass
class DetailedMatchResult(MatchResult):
    """MatchResult with per-attribute details and raw totals."""

    details: list[AttributeMatchDetail] = field(default_factory=list)
    max_possible_score: float = 0.0
    weighted_score: float = 0.0


@dataclass
class BatchMatch:
    """Score of one post in a batch run."""

    post_id: str
    score: int
    is_match: bool


@dataclass
class MatchSummary:
    """Count of attributes with similarity >= 0.5."""

    match_count: int
    total: int
    percentage: int = 0


@dataclass
class Post:
    """A post as returned by the data-access layer."""

    id: str
    created_at: datetime
    target_avatar: Optional[AvatarConfig] = None
    sighting_date: Optional[datetime] = None
    time_granularity: Optional[TimeGranularity] = None
    location_id: str = ''
    note: str = ''


@dataclass
class RankedPost:
    """A post scored for a viewer, ready for display."""

    post: Post
    score: int
    is_match: bool
    quality: Optional[MatchQuality]
    priority: int                   # ms timestamp, higher = earlier in list
    deprioritized: bool
    sighting_label: Optional[str] = None
    explanation: Optional[str] = None  # e.g. "skin tone and hair color match"


@dataclass
class DateValidationResult:
    """Outcome of validating a sighting date."""

    valid: bool
    error: Optional[str] = None  # INVALID_DATE, FUTURE_DATE


@dataclass(frozen=True)
class TimeRange:
    """Hour boundaries [start_hour, end_hour) of an approximate time period."""

    start_hour: int
    end_hour: int
    label: str
