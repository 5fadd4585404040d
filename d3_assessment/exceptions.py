"""
D3 Assessment exceptions
"""
from core.exceptions import ConfigurationError, SiteAuditError


class AssessmentError(SiteAuditError):
    """Base exception for assessment errors"""


class PatternRegistryError(AssessmentError, ConfigurationError):
    """Raised when the detector pattern file cannot be loaded or compiled"""

    def __init__(self, message: str, path: str = None, **details):
        super().__init__(message, setting="detector_patterns_path", path=path, **details)
        self.path = path
