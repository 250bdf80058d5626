"""Running performance metrics across pipeline runs."""

from dataclasses import dataclass


@dataclass
class MetricsAccumulator:
    """Monotonic counters and running averages for one service instance.

    Owned by whoever constructs the orchestrator; there is no reset.
    """

    runs: int = 0
    successes: int = 0
    failures: int = 0
    cache_hits: int = 0
    average_duration_ms: float = 0.0

    def record(self, duration_ms: float, *, success: bool, cache_hit: bool = False) -> None:
        self.runs += 1
        if success:
            self.successes += 1
        else:
            self.failures += 1
        if cache_hit:
            self.cache_hits += 1
        self.average_duration_ms += (duration_ms - self.average_duration_ms) / self.runs

    @property
    def success_rate(self) -> float:
        """Percentage of successful runs."""
        return round(self.successes / self.runs * 100, 2) if self.runs else 0.0

    @property
    def cache_hit_rate(self) -> float:
        return round(self.cache_hits / self.runs * 100, 2) if self.runs else 0.0

    def snapshot(self) -> dict:
        return {
            "runs": self.runs,
            "successes": self.successes,
            "failures": self.failures,
            "cache_hits": self.cache_hits,
            "average_duration_ms": round(self.average_duration_ms, 2),
            "success_rate": self.success_rate,
            "cache_hit_rate": self.cache_hit_rate,
        }
