"""
Base detector class for all HTML signal detectors
"""

from abc import ABC, abstractmethod
from typing import Any, Generic, Optional, TypeVar

from d3_assessment.patterns import PatternRegistry, get_pattern_registry

T = TypeVar("T")


def normalize_html(html: Any) -> str:
    """Detectors treat anything that is not a string as an empty document"""
    if isinstance(html, bytes):
        return html.decode("utf-8", errors="replace")
    if not isinstance(html, str):
        return ""
    return html


class BaseDetector(ABC, Generic[T]):
    """Abstract base class for detectors classifying raw HTML into facts"""

    name: str = "detector"

    def __init__(self, registry: Optional[PatternRegistry] = None):
        self._registry = registry

    @property
    def registry(self) -> PatternRegistry:
        if self._registry is None:
            self._registry = get_pattern_registry()
        return self._registry

    def detect(self, html: Any) -> T:
        """
        Classify a page

        Args:
            html: Rendered page HTML; non-string input counts as empty

        Returns:
            A fully populated analysis; unmatched facts are False / None
        """
        return self.analyze(normalize_html(html))

    @abstractmethod
    def analyze(self, html: str) -> T:
        """Run the detector over normalized HTML"""
