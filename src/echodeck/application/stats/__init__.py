# Application Stats Package
from .metrics_calculator import (
    ForecastDay,
    MetricsCalculator,
    OverallStats,
    round_half_up,
)

__all__ = ["ForecastDay", "MetricsCalculator", "OverallStats", "round_half_up"]
