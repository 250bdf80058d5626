"""Page acquisition over HTTP."""

import ipaddress
import logging
import socket
import time
from typing import Any
from urllib.parse import urljoin, urlparse, urlunparse

import requests

from .context import AnalysisContext, build_context

log = logging.getLogger(__name__)

HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; pagegrade/0.1)",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.8",
}
MAX_REDIRECT_HOPS = 10


class FetchError(RuntimeError):
    """Raised when a page cannot be acquired."""


def normalize_url(raw: str) -> str:
    value = raw.strip()
    parsed = urlparse(value)
    if not parsed.scheme:
        value = f"https://{value}"
        parsed = urlparse(value)
    if parsed.scheme not in ("http", "https"):
        raise ValueError(f"Unsupported URL scheme: {parsed.scheme}")
    netloc = parsed.netloc or (parsed.hostname or "")
    path = parsed.path or "/"
    return urlunparse((parsed.scheme, netloc, path, "", parsed.query, ""))


def is_public_target(url: str) -> bool:
    host = urlparse(url).hostname
    if not host:
        return False
    try:
        info = socket.getaddrinfo(host, None)
    except socket.gaierror:
        return False
    for _, _, _, _, sockaddr in info:
        try:
            ip = ipaddress.ip_address(sockaddr[0])
        except ValueError:
            continue
        if ip.is_private or ip.is_loopback or ip.is_reserved or ip.is_link_local or ip.is_multicast:
            continue
        return True
    return False


def fetch_page(
    url: str,
    timeout: float = 20.0,
    session: requests.Session | None = None,
) -> dict[str, Any]:
    """GET ``url`` following at most MAX_REDIRECT_HOPS public redirects.

    Raises:
        FetchError: invalid URL, non-public host, transport error or
            non-2xx status.
    """
    try:
        current_url = normalize_url(url)
    except ValueError as e:
        raise FetchError(str(e)) from e

    http = session or requests.Session()
    started = time.perf_counter()
    redirects = 0
    try:
        while True:
            if not is_public_target(current_url):
                raise FetchError(f"Target resolves to non-public or invalid host: {current_url}")
            resp = http.get(current_url, headers=HEADERS, timeout=timeout, allow_redirects=False)
            if 300 <= resp.status_code < 400:
                location = (resp.headers.get("Location") or "").strip()
                if not location:
                    break
                if redirects >= MAX_REDIRECT_HOPS:
                    raise FetchError(f"Too many redirects (>{MAX_REDIRECT_HOPS})")
                try:
                    current_url = normalize_url(urljoin(current_url, location))
                except ValueError as e:
                    raise FetchError(f"Invalid redirect URL: {e}") from e
                redirects += 1
                continue
            break
    except requests.exceptions.RequestException as e:
        raise FetchError(str(e)) from e
    finally:
        if session is None:
            http.close()

    if resp.status_code < 200 or resp.status_code >= 300:
        raise FetchError(f"Non-success HTTP status from target: {resp.status_code}")

    log.info(f"Fetched {current_url} ({resp.status_code}, {redirects} redirects)")
    return {
        "status_code": resp.status_code,
        "final_url": current_url,
        "headers": dict(resp.headers),
        "text": resp.text,
        "response_ms": round((time.perf_counter() - started) * 1000, 2),
        "redirect_hops": redirects,
    }


def load_page_context(
    url: str,
    timeout: float = 20.0,
    session: requests.Session | None = None,
) -> AnalysisContext:
    """Fetch ``url`` and build the analysis context for it."""
    fetched = fetch_page(url, timeout=timeout, session=session)
    return build_context(
        fetched["final_url"],
        fetched["text"],
        {
            "status_code": fetched["status_code"],
            "response_ms": fetched["response_ms"],
            "headers": fetched["headers"],
            "redirect_hops": fetched["redirect_hops"],
        },
    )
