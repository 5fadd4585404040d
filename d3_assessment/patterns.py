"""
Detector pattern registry

The booking-flow and trust-signal detectors match raw HTML against ordered
tables of regular expressions. The tables are data, kept in
``config/detector_patterns.yaml``; this module validates that file, compiles
every expression once (case-insensitive) and exposes the result as an
immutable ``PatternRegistry``. Table order is preserved everywhere because
the detectors resolve ties by it.

A registry that loaded successfully never raises during detection; a broken
file raises ``PatternRegistryError`` at load time.
"""
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, List, Optional, Pattern, Tuple

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from core.config import settings
from core.logging import get_logger

from .exceptions import PatternRegistryError
from .types import BadgeCategory, EngineType, ReviewSourceType

logger = get_logger(__name__, domain="d3")

PatternList = Tuple[Pattern, ...]


def _check_regex(value: str) -> str:
    try:
        re.compile(value)
    except re.error as e:
        raise ValueError(f"Invalid regular expression {value!r}: {e}") from e
    return value


# ---------------------------------------------------------------------------
# File schema
# ---------------------------------------------------------------------------


class _PatternGroup(BaseModel):
    patterns: List[str] = Field(..., min_length=1)

    @field_validator("patterns")
    @classmethod
    def validate_patterns(cls, v):
        return [_check_regex(p) for p in v]


class EngineEntry(_PatternGroup):
    name: str
    type: EngineType


class GenericFormEntry(EngineEntry):
    confidence: float = Field(..., ge=0, le=1)


class CTAEntry(BaseModel):
    text: str
    priority: int = Field(..., ge=0)
    pattern: str

    @field_validator("pattern")
    @classmethod
    def validate_pattern(cls, v):
        return _check_regex(v)


class BookingSection(BaseModel):
    engine_confidence: float = Field(..., ge=0, le=1)
    engines: List[EngineEntry] = Field(..., min_length=1)
    generic_form: GenericFormEntry
    fold_ratio: float = Field(..., gt=0, lt=1)
    ctas: List[CTAEntry] = Field(..., min_length=1)
    date_picker: List[str]
    guest_selector: List[str]
    price_calculator: List[str]
    instant_book: List[str]

    @field_validator("date_picker", "guest_selector", "price_calculator", "instant_book")
    @classmethod
    def validate_families(cls, v):
        return [_check_regex(p) for p in v]


class ReviewSourceEntry(_PatternGroup):
    name: str
    type: ReviewSourceType
    verified: bool = False
    rating_pattern: Optional[str] = None
    count_pattern: Optional[str] = None

    @field_validator("rating_pattern", "count_pattern")
    @classmethod
    def validate_capture(cls, v):
        if v is None:
            return v
        _check_regex(v)
        if re.compile(v).groups < 1:
            raise ValueError(f"Pattern {v!r} must contain a capturing group")
        return v


class GenericReviewEntry(ReviewSourceEntry):
    type: ReviewSourceType = ReviewSourceType.CUSTOM


class BadgeEntry(_PatternGroup):
    name: str
    category: BadgeCategory


class SocialEntry(_PatternGroup):
    platform: str


class TrustSection(BaseModel):
    aggregate_source_name: str
    review_sources: List[ReviewSourceEntry]
    generic_reviews: GenericReviewEntry
    badges: List[BadgeEntry]
    social_platforms: List[SocialEntry]
    contact: Dict[str, List[str]]
    social_proof: Dict[str, List[str]]
    legal: Dict[str, List[str]]

    @field_validator("contact", "social_proof", "legal")
    @classmethod
    def validate_families(cls, v):
        return {name: [_check_regex(p) for p in patterns] for name, patterns in v.items()}


class DetectorPatternFile(BaseModel):
    """Root schema of the detector pattern file"""

    version: str = Field(..., pattern=r"^\d+\.\d+$")
    booking: BookingSection
    trust: TrustSection


# ---------------------------------------------------------------------------
# Compiled registry
# ---------------------------------------------------------------------------


def _compile(patterns) -> PatternList:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


def any_match(patterns: PatternList, html: str) -> bool:
    """True if any pattern matches anywhere in ``html``"""
    return any(p.search(html) for p in patterns)


@dataclass(frozen=True)
class EnginePattern:
    name: str
    type: EngineType
    confidence: float
    patterns: PatternList

    def matches(self, html: str) -> bool:
        return any_match(self.patterns, html)


@dataclass(frozen=True)
class CTAPattern:
    text: str
    priority: int
    pattern: Pattern


@dataclass(frozen=True)
class ReviewSourcePattern:
    name: str
    type: ReviewSourceType
    verified: bool
    patterns: PatternList
    rating_pattern: Optional[Pattern] = None
    count_pattern: Optional[Pattern] = None

    def matches(self, html: str) -> bool:
        return any_match(self.patterns, html)


@dataclass(frozen=True)
class BadgePattern:
    name: str
    category: BadgeCategory
    patterns: PatternList


@dataclass(frozen=True)
class SocialPattern:
    platform: str
    patterns: PatternList


@dataclass(frozen=True)
class PatternRegistry:
    """Compiled, immutable detector pattern tables"""

    version: str

    # Booking flow
    engines: Tuple[EnginePattern, ...]
    generic_form: EnginePattern
    fold_ratio: float
    ctas: Tuple[CTAPattern, ...]
    date_picker: PatternList
    guest_selector: PatternList
    price_calculator: PatternList
    instant_book: PatternList

    # Trust signals
    aggregate_source_name: str
    review_sources: Tuple[ReviewSourcePattern, ...]
    generic_reviews: ReviewSourcePattern
    badges: Tuple[BadgePattern, ...]
    social_platforms: Tuple[SocialPattern, ...]
    phone: PatternList
    email: PatternList
    address: PatternList
    testimonials: PatternList
    guest_photos: PatternList
    press_logos: PatternList
    privacy_policy: PatternList
    terms_of_service: PatternList
    about_page: PatternList

    @classmethod
    def from_schema(cls, doc: DetectorPatternFile) -> "PatternRegistry":
        booking = doc.booking
        trust = doc.trust

        def review_source(entry: ReviewSourceEntry) -> ReviewSourcePattern:
            return ReviewSourcePattern(
                name=entry.name,
                type=entry.type,
                verified=entry.verified,
                patterns=_compile(entry.patterns),
                rating_pattern=re.compile(entry.rating_pattern, re.IGNORECASE) if entry.rating_pattern else None,
                count_pattern=re.compile(entry.count_pattern, re.IGNORECASE) if entry.count_pattern else None,
            )

        return cls(
            version=doc.version,
            engines=tuple(
                EnginePattern(e.name, e.type, booking.engine_confidence, _compile(e.patterns))
                for e in booking.engines
            ),
            generic_form=EnginePattern(
                booking.generic_form.name,
                booking.generic_form.type,
                booking.generic_form.confidence,
                _compile(booking.generic_form.patterns),
            ),
            fold_ratio=booking.fold_ratio,
            ctas=tuple(CTAPattern(c.text, c.priority, re.compile(c.pattern, re.IGNORECASE)) for c in booking.ctas),
            date_picker=_compile(booking.date_picker),
            guest_selector=_compile(booking.guest_selector),
            price_calculator=_compile(booking.price_calculator),
            instant_book=_compile(booking.instant_book),
            aggregate_source_name=trust.aggregate_source_name,
            review_sources=tuple(review_source(s) for s in trust.review_sources),
            generic_reviews=review_source(trust.generic_reviews),
            badges=tuple(BadgePattern(b.name, b.category, _compile(b.patterns)) for b in trust.badges),
            social_platforms=tuple(SocialPattern(s.platform, _compile(s.patterns)) for s in trust.social_platforms),
            phone=_compile(trust.contact.get("phone", [])),
            email=_compile(trust.contact.get("email", [])),
            address=_compile(trust.contact.get("address", [])),
            testimonials=_compile(trust.social_proof.get("testimonials", [])),
            guest_photos=_compile(trust.social_proof.get("guest_photos", [])),
            press_logos=_compile(trust.social_proof.get("press_logos", [])),
            privacy_policy=_compile(trust.legal.get("privacy_policy", [])),
            terms_of_service=_compile(trust.legal.get("terms_of_service", [])),
            about_page=_compile(trust.legal.get("about_page", [])),
        )


@lru_cache(maxsize=8)
def load_pattern_registry(path: Optional[str] = None) -> PatternRegistry:
    """
    Load, validate and compile the detector pattern file

    Args:
        path: Pattern file; defaults to ``settings.detector_patterns_path``

    Raises:
        PatternRegistryError: if the file is missing, unparsable or invalid
    """
    yaml_path = settings.resolve_path(path or settings.detector_patterns_path)
    if not yaml_path.exists():
        raise PatternRegistryError(f"Detector pattern file not found: {yaml_path}", path=str(yaml_path))

    try:
        with open(yaml_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise PatternRegistryError(f"Detector pattern file is not valid YAML: {e}", path=str(yaml_path)) from e

    try:
        doc = DetectorPatternFile.model_validate(data or {})
    except PydanticValidationError as e:
        raise PatternRegistryError(
            f"Validation failed for detector pattern file '{yaml_path}': {e}", path=str(yaml_path)
        ) from e

    registry = PatternRegistry.from_schema(doc)
    logger.info(
        "Loaded detector patterns",
        extra={
            "path": str(yaml_path),
            "version": registry.version,
            "engines": len(registry.engines),
            "ctas": len(registry.ctas),
            "badges": len(registry.badges),
        },
    )
    return registry


def get_pattern_registry() -> PatternRegistry:
    """Registry for the configured pattern file"""
    return load_pattern_registry(settings.detector_patterns_path)
