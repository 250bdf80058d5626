"""Structured cache keys: page identity, content digest and time bucket."""

from dataclasses import dataclass
import hashlib
import time
from urllib.parse import urlparse, urlunparse

from ..detection.context import AnalysisContext

DEFAULT_BUCKET_SECONDS = 300


@dataclass(frozen=True)
class Fingerprint:
    identity: str
    content_digest: str
    bucket: int

    @property
    def key(self) -> str:
        return f"{self.identity}|{self.content_digest[:16]}|{self.bucket}"


def normalize_identity(url: str) -> str:
    """Lowercase scheme and host, drop fragment, default empty path to '/'."""
    parsed = urlparse(url.strip())
    scheme = (parsed.scheme or "https").lower()
    netloc = parsed.netloc.lower()
    path = parsed.path or "/"
    return urlunparse((scheme, netloc, path, "", parsed.query, ""))


def hash_content(content: str) -> str:
    """SHA256 hash of content string."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def time_bucket(now: float, bucket_seconds: int = DEFAULT_BUCKET_SECONDS) -> int:
    if bucket_seconds <= 0:
        raise ValueError(f"bucket_seconds must be positive: {bucket_seconds}")
    return int(now // bucket_seconds)


def build_fingerprint(
    context: AnalysisContext,
    *,
    bucket_seconds: int = DEFAULT_BUCKET_SECONDS,
    now: float | None = None,
) -> Fingerprint:
    """Fingerprint for ``context`` valid within the current time bucket.

    Content changes inside one bucket are not detected; results may be up
    to one bucket width stale.
    """
    return Fingerprint(
        identity=normalize_identity(context.url),
        content_digest=hash_content(f"{context.title}\n{context.structure_digest}"),
        bucket=time_bucket(time.time() if now is None else now, bucket_seconds),
    )
