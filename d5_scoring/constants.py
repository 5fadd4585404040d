"""Constants for scoring configuration validation and processing."""

# Weight sum validation thresholds
WEIGHT_SUM_WARNING_THRESHOLD = 0.001  # Warning if |Σ-1.0| > 0.001 AND ≤ 0.005
WEIGHT_SUM_ERROR_THRESHOLD = 0.005  # Error if |Σ-1.0| > 0.005

# Score bounds
MIN_SCORE = 0
MAX_SCORE = 100

# Decimal places kept for the estimated conversion loss
CONVERSION_LOSS_DECIMALS = 1
