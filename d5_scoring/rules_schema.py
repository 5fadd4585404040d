"""Schema and loader for the audit scoring configuration

This module defines the Pydantic models representing `config/scoring.yaml`:
category weights, the projected-score assumptions, the conversion-impact
coefficients and the issue-selection limits.

It also exposes a cached `load_scoring_config(path)` helper that loads the
YAML file, validates it against the schema, and enforces the business rules
(e.g. category weights must sum to **1.0** and cover every category).
"""

from __future__ import annotations

from functools import lru_cache
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from core.config import settings
from core.exceptions import ConfigurationError
from core.logging import get_logger
from d3_assessment.types import Effort, ScoreCategory, Severity

from .constants import MAX_SCORE, WEIGHT_SUM_ERROR_THRESHOLD, WEIGHT_SUM_WARNING_THRESHOLD

# ---------------------------------------------------------------------------
# Constants & logging
# ---------------------------------------------------------------------------

_TOLERANCE_SOFT = WEIGHT_SUM_WARNING_THRESHOLD
_TOLERANCE_HARD = WEIGHT_SUM_ERROR_THRESHOLD
_logger = get_logger("scoring.rules_schema", domain="d5")


# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------


class ProjectionConfig(BaseModel):
    """Assumptions behind the projected scores."""

    fixable_efforts: List[Effort] = Field(
        default_factory=lambda: [Effort.LOW, Effort.MEDIUM],
        description="Findings with these efforts are assumed fixed",
    )
    max_projected_score: int = Field(95, ge=0, le=MAX_SCORE, description="Cap on the projected score")
    product_uplift: int = Field(5, ge=0, le=MAX_SCORE, description="Extra points credited to the product")


class ImpactConfig(BaseModel):
    """Coefficients for the estimated conversion loss."""

    severity_coefficients: Dict[Severity, float] = Field(..., description="Loss per unit impact x confidence")
    max_conversion_loss_percent: float = Field(60.0, gt=0, le=100)
    top_contributor_count: int = Field(3, ge=0)

    @field_validator("severity_coefficients")
    @classmethod
    def validate_coefficients(cls, v):
        missing = set(Severity) - set(v)
        if missing:
            raise ValueError(f"Missing severity coefficients for: {sorted(s.value for s in missing)}")
        if any(coefficient < 0 for coefficient in v.values()):
            raise ValueError("Severity coefficients must be non-negative")
        return v


class SelectionConfig(BaseModel):
    """Limits and filters for top issues and fast wins."""

    top_issues_limit: int = Field(5, ge=0)
    fast_wins_limit: int = Field(3, ge=0)
    fast_win_efforts: List[Effort] = Field(default_factory=lambda: [Effort.LOW])
    fast_win_min_impact: float = Field(0.2, ge=0, le=1)


class ScoringConfig(BaseModel):
    """Root schema for the scoring configuration document."""

    version: str = Field(..., pattern=r"^\d+\.\d+$", description="Configuration version")
    category_weights: Dict[ScoreCategory, float] = Field(..., description="Weight of each category")
    projection: ProjectionConfig = Field(default_factory=ProjectionConfig)
    impact: ImpactConfig
    selection: SelectionConfig = Field(default_factory=SelectionConfig)

    @field_validator("category_weights")
    @classmethod
    def validate_categories(cls, v):
        """Every category needs a weight in [0, 1]."""
        missing = set(ScoreCategory) - set(v)
        if missing:
            raise ValueError(f"Missing category weights for: {sorted(c.value for c in missing)}")
        for category, weight in v.items():
            if not 0 <= weight <= 1:
                raise ValueError(f"Weight for '{category.value}' must be between 0 and 1, got {weight}")
        return v

    @model_validator(mode="after")
    def _validate_weight_sum(self) -> ScoringConfig:
        """Ensure category weights add up to 1.0.

        * Hard error if total deviation > ``_TOLERANCE_HARD`` (0.005).
        * Warning if deviation > ``_TOLERANCE_SOFT`` (0.001).
        """
        total_weight = sum(self.category_weights.values())
        deviation = abs(total_weight - 1.0)

        if deviation > _TOLERANCE_HARD:
            raise ValueError(
                f"Category weights must sum to 1.0 ± {_TOLERANCE_HARD}. "
                f"Current total={total_weight:.4f} (deviation={deviation:.4f})."
            )

        if deviation > _TOLERANCE_SOFT:
            _logger.warning(
                "category_weights_outside_soft_tolerance",
                extra={"total_weight": total_weight, "deviation": deviation},
            )
        return self

    def weight(self, category: ScoreCategory) -> float:
        return self.category_weights[ScoreCategory(category)]


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------


@lru_cache(maxsize=8)
def load_scoring_config(path: Optional[str] = None) -> ScoringConfig:
    """Load a YAML file and return a validated ``ScoringConfig`` instance.

    Args:
        path: Path to a YAML file; defaults to ``settings.scoring_config_path``.

    Raises:
        ConfigurationError: If the file is missing, unparsable, or does not
            match the schema (including the weight-sum rule).
    """
    path_obj = settings.resolve_path(path or settings.scoring_config_path)
    if not path_obj.exists():
        raise ConfigurationError(f"Scoring config file not found: {path_obj}", setting="scoring_config_path")

    try:
        with path_obj.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        raise ConfigurationError(
            f"Scoring config file '{path_obj}' is not valid YAML: {exc}", setting="scoring_config_path"
        ) from exc

    try:
        config = ScoringConfig.model_validate(data or {})
    except ValidationError as exc:
        raise ConfigurationError(
            f"Validation failed for scoring config file '{path_obj}': {exc}", setting="scoring_config_path"
        ) from exc

    _logger.info("Loaded scoring config", extra={"path": str(path_obj), "config_version": config.version})
    return config


def get_scoring_config() -> ScoringConfig:
    """Scoring configuration for the configured path"""
    return load_scoring_config(settings.scoring_config_path)
