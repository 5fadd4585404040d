"""
HTML signal detectors

Each detector turns raw page HTML into a structured, fully populated
analysis using the tables in the pattern registry.
"""

from .base import BaseDetector, normalize_html
from .booking_flow import (
    BookingFlowDetector,
    analyze_booking_flow,
    calculate_friction_score,
    estimate_clicks_to_book,
)
from .trust_signals import TrustSignalDetector, analyze_trust_signals, calculate_trust_score

DETECTOR_REGISTRY = {
    BookingFlowDetector.name: BookingFlowDetector,
    TrustSignalDetector.name: TrustSignalDetector,
}

__all__ = [
    "BaseDetector",
    "normalize_html",
    "BookingFlowDetector",
    "TrustSignalDetector",
    "analyze_booking_flow",
    "analyze_trust_signals",
    "estimate_clicks_to_book",
    "calculate_friction_score",
    "calculate_trust_score",
    "DETECTOR_REGISTRY",
]
