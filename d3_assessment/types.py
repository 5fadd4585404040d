"""
D3 Assessment Types

Enums shared by the audit data model, the detectors and the scoring rules.
All enums are string valued so they serialize to the wire names used by the
crawler and performance services.
"""

from enum import Enum


class Strategy(str, Enum):
    """Measurement strategy (device profile)"""

    MOBILE = "mobile"
    DESKTOP = "desktop"


class AuditStatus(str, Enum):
    """Status of an audit run"""

    PENDING = "pending"
    COMPLETE = "complete"
    PARTIAL = "partial"
    ERROR = "error"


class ScoreCategory(str, Enum):
    """Fixed audit categories; every scoring output carries all six"""

    CONVERSION = "conversion"
    PERFORMANCE = "performance"
    TRUST = "trust"
    CONTENT = "content"
    SEO = "seo"
    SECURITY = "security"


class Severity(str, Enum):
    """Finding severity, most severe first"""

    BLOCKER = "blocker"
    MAJOR = "major"
    MINOR = "minor"
    TRIVIAL = "trivial"

    @property
    def rank(self) -> int:
        """Sort key, 0 for the most severe"""
        return list(Severity).index(self)


class Effort(str, Enum):
    """Estimated remediation effort"""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class PageKind(str, Enum):
    HOME = "home"
    PROPERTY = "property"
    BOOKING = "booking"
    LOCATION = "location"
    OTHER = "other"


class PositionHint(str, Enum):
    ABOVE_FOLD = "above_fold"
    BELOW_FOLD = "below_fold"
    UNKNOWN = "unknown"


class FormKind(str, Enum):
    BOOKING = "booking"
    INQUIRY = "inquiry"
    NEWSLETTER = "newsletter"
    CONTACT = "contact"
    UNKNOWN = "unknown"


class BookingStepKind(str, Enum):
    AVAILABILITY = "availability"
    BOOKING_START = "booking_start"
    CHECKOUT = "checkout"
    CONFIRMATION = "confirmation"
    UNKNOWN = "unknown"


class ModuleName(str, Enum):
    """Upstream modules that can report a ModuleError"""

    PAGESPEED = "pagespeed"
    CRAWL = "crawl"
    TECH = "tech"
    SEO = "seo"
    TRUST = "trust"
    SECURITY = "security"
    BROWSERBASE = "browserbase"


class ErrorSeverity(str, Enum):
    WARN = "warn"
    ERROR = "error"


class EngineType(str, Enum):
    """How a booking engine is integrated into the site"""

    EMBEDDED = "embedded"
    REDIRECT = "redirect"
    NATIVE = "native"


class CTALocation(str, Enum):
    """Heuristic visual position of the winning call-to-action"""

    ABOVE_FOLD = "above-fold"
    BELOW_FOLD = "below-fold"
    NONE = "none"


class ReviewSourceType(str, Enum):
    GOOGLE = "google"
    AIRBNB = "airbnb"
    VRBO = "vrbo"
    TRIPADVISOR = "tripadvisor"
    TRUSTPILOT = "trustpilot"
    CUSTOM = "custom"
    AGGREGATE = "aggregate"


class BadgeCategory(str, Enum):
    SECURITY = "security"
    INDUSTRY = "industry"
    PAYMENT = "payment"
    VERIFICATION = "verification"
