"""Signal lookup result: a payload or an explicit gap."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Ok:
    value: dict[str, Any]


@dataclass(frozen=True)
class Gap:
    detector_id: str
    reason: str


Signal = Ok | Gap
