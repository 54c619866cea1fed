"""
Memory model: FSRS parameters, numeric guards and the scheduling engine.
"""

from cadence.scheduler.fsrs import (
    FSRSScheduler,
    ScheduleResult,
    calculate_optimal_interval,
    calculate_retention,
)
from cadence.scheduler.normalization import (
    clamp,
    normalize_difficulty,
    normalize_interval,
    normalize_percentage,
    normalize_response_time,
    normalize_retention,
    normalize_stability,
)
from cadence.scheduler.optimizer import (
    OptimizationMetrics,
    ReviewRecord,
    calculate_optimization_metrics,
    predict_retention,
    suggest_parameter_adjustments,
)
from cadence.scheduler.parameters import (
    DEFAULT_PARAMETERS,
    DEFAULT_WEIGHTS,
    WEIGHT_COUNT,
    FSRSParameters,
)

__all__ = [
    # Engine
    "FSRSScheduler",
    "ScheduleResult",
    "calculate_retention",
    "calculate_optimal_interval",
    # Parameters
    "FSRSParameters",
    "DEFAULT_PARAMETERS",
    "DEFAULT_WEIGHTS",
    "WEIGHT_COUNT",
    # Normalization
    "clamp",
    "normalize_stability",
    "normalize_difficulty",
    "normalize_interval",
    "normalize_retention",
    "normalize_response_time",
    "normalize_percentage",
    # Optimizer
    "ReviewRecord",
    "OptimizationMetrics",
    "predict_retention",
    "calculate_optimization_metrics",
    "suggest_parameter_adjustments",
]
