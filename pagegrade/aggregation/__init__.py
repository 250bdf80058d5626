"""Aggregation stage."""

from .aggregator import AggregatedSignals, aggregate
from .result import Gap, Ok, Signal

__all__ = ["AggregatedSignals", "Gap", "Ok", "Signal", "aggregate"]
