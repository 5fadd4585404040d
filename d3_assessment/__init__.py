"""
D3 Assessment - Website signal detection

Provides the normalized audit data model, the pattern-driven booking-flow
and trust-signal detectors, and the coordinator that runs them over the
pages of an audit.
"""

from .audit_schema import (
    BookingFlowAnalysis,
    CategoryScore,
    DetectedSignals,
    Finding,
    NormalizedAudit,
    ScoringOutput,
    TrustSignalAnalysis,
    dump_audit,
    load_audit,
)
from .coordinator import DetectionCoordinator, PageDetections, attach_detections
from .detectors import analyze_booking_flow, analyze_trust_signals
from .patterns import PatternRegistry, get_pattern_registry, load_pattern_registry
from .types import CTALocation, Effort, EngineType, ScoreCategory, Severity, Strategy

__all__ = [
    # Models
    "NormalizedAudit",
    "DetectedSignals",
    "BookingFlowAnalysis",
    "TrustSignalAnalysis",
    "Finding",
    "CategoryScore",
    "ScoringOutput",
    "load_audit",
    "dump_audit",
    # Types
    "ScoreCategory",
    "Severity",
    "Effort",
    "Strategy",
    "CTALocation",
    "EngineType",
    # Detection
    "analyze_booking_flow",
    "analyze_trust_signals",
    "DetectionCoordinator",
    "PageDetections",
    "attach_detections",
    "PatternRegistry",
    "get_pattern_registry",
    "load_pattern_registry",
]
