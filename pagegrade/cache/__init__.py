"""Pipeline result cache."""

from .fingerprint import Fingerprint, build_fingerprint
from .store import ResultCache

__all__ = ["Fingerprint", "ResultCache", "build_fingerprint"]
