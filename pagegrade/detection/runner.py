"""Concurrent detector execution with per-detector failure isolation."""

import asyncio
import logging
import time
from collections.abc import Mapping
from typing import Iterable

from .context import AnalysisContext
from .types import Detector, SignalBundle

log = logging.getLogger(__name__)

DEADLINE_ERROR = "cancelled: pipeline deadline exceeded"


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


async def _invoke(
    detector: Detector,
    context: AnalysisContext,
    timeout: float | None,
) -> SignalBundle:
    started = time.perf_counter()
    detector_id = detector.detector_id
    domain = detector.domain
    try:
        if timeout is None:
            payload = await detector.detect(context)
        else:
            payload = await asyncio.wait_for(detector.detect(context), timeout)
    except asyncio.TimeoutError:
        log.warning(f"Detector {detector_id} timed out after {timeout}s")
        return SignalBundle.failed(
            detector_id, domain, f"timeout after {timeout}s", _elapsed_ms(started)
        )
    except Exception as e:
        log.warning(f"Detector {detector_id} failed: {e}")
        return SignalBundle.failed(
            detector_id,
            domain,
            f"{type(e).__name__}: {e}",
            _elapsed_ms(started),
        )

    if not isinstance(payload, Mapping):
        return SignalBundle.failed(
            detector_id,
            domain,
            f"invalid payload type: {type(payload).__name__}",
            _elapsed_ms(started),
        )
    return SignalBundle.ok(detector_id, domain, dict(payload), _elapsed_ms(started))


async def run_detectors(
    context: AnalysisContext,
    detectors: Iterable[Detector],
    *,
    timeout: float | None = 5.0,
    stage_timeout: float | None = None,
) -> list[SignalBundle]:
    """Run every detector concurrently and wait until all have settled.

    Args:
        context: Shared read-only analysis context.
        detectors: Detectors to run; bundles come back in this order.
        timeout: Per-detector time limit in seconds.
        stage_timeout: Remaining pipeline budget. Detectors still running
            when it expires are cancelled and recorded as failed.

    Returns:
        One bundle per detector. Never raises for detector errors.
    """
    ordered = list(detectors)
    if not ordered:
        return []

    started = time.perf_counter()
    tasks = [
        asyncio.create_task(_invoke(detector, context, timeout))
        for detector in ordered
    ]
    _, pending = await asyncio.wait(tasks, timeout=stage_timeout)

    if pending:
        log.warning(f"Cancelling {len(pending)} detector(s) at pipeline deadline")
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    bundles: list[SignalBundle] = []
    for detector, task in zip(ordered, tasks):
        if task in pending or task.cancelled():
            bundles.append(
                SignalBundle.failed(
                    detector.detector_id,
                    detector.domain,
                    DEADLINE_ERROR,
                    _elapsed_ms(started),
                )
            )
        else:
            bundles.append(task.result())

    failed = sum(1 for bundle in bundles if not bundle.succeeded)
    log.info(f"Detection settled: {len(bundles) - failed} ok, {failed} failed")
    return bundles
