"""Staged analysis pipeline: orchestration, config, metrics and reports."""

from typing import Any

__all__ = ["audit_url", "run_analysis"]


def run_analysis(*args: Any, **kwargs: Any):
    from .service import run_analysis as _run_analysis

    return _run_analysis(*args, **kwargs)


def audit_url(*args: Any, **kwargs: Any):
    from .service import audit_url as _audit_url

    return _audit_url(*args, **kwargs)
