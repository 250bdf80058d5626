"""Read-only analysis context shared by every detector in a run."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
import hashlib
from types import MappingProxyType
from typing import Any, Mapping

from bs4 import BeautifulSoup


def soup_of(html: str) -> BeautifulSoup:
    try:
        return BeautifulSoup(html, "lxml")
    except Exception:
        return BeautifulSoup(html, "html.parser")


def structure_digest(document: BeautifulSoup) -> str:
    """SHA256 over the ordered sequence of element names."""
    names = [tag.name for tag in document.find_all(True)]
    return hashlib.sha256(" ".join(names).encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class AnalysisContext:
    """Page handle plus fetch metadata.

    Detectors read from it concurrently and must never mutate it,
    including the parsed ``document``.
    """

    url: str
    html: str
    document: BeautifulSoup = field(compare=False, repr=False)
    title: str
    structure_digest: str
    metadata: Mapping[str, Any] = field(compare=False)


def build_context(
    url: str,
    html: str,
    metadata: Mapping[str, Any] | None = None,
) -> AnalysisContext:
    """Parse ``html`` once and freeze everything detectors need."""
    document = soup_of(html or "")
    title = document.title.get_text(" ", strip=True) if document.title else ""
    meta = dict(metadata or {})
    meta.setdefault("fetched_at", datetime.now(timezone.utc).isoformat())
    return AnalysisContext(
        url=url,
        html=html or "",
        document=document,
        title=title,
        structure_digest=structure_digest(document),
        metadata=MappingProxyType(meta),
    )
