"""Bundled DOM detectors.

Each detector is a small selector/regex matcher over the parsed document
that returns a plain dict payload. They never modify the context.
"""

from datetime import datetime, timezone
import json
import re
from typing import Any
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from .context import AnalysisContext

STOPWORDS = {
    "a",
    "an",
    "and",
    "are",
    "as",
    "at",
    "be",
    "by",
    "for",
    "from",
    "in",
    "is",
    "it",
    "of",
    "on",
    "or",
    "that",
    "the",
    "to",
    "with",
    "you",
    "your",
}

CTA_PATTERN = re.compile(
    r"\b(buy|shop|order|sign up|subscribe|get started|contact us|book|"
    r"download|try|learn more|request a quote|call)\b",
    re.IGNORECASE,
)
SOCIAL_HOSTS = (
    "facebook.com",
    "twitter.com",
    "x.com",
    "linkedin.com",
    "instagram.com",
    "youtube.com",
    "tiktok.com",
    "pinterest.com",
)
OPEN_GRAPH_FIELDS = ("og:title", "og:description", "og:image", "og:url")
TWITTER_FIELDS = ("twitter:card", "twitter:title", "twitter:description")


def tokenize(text: str) -> list[str]:
    return re.findall(r"[a-zA-Z0-9']+", text.lower())


def meta_content(
    soup: BeautifulSoup, name: str | None = None, prop: str | None = None
) -> str | None:
    tag = None
    if name:
        tag = soup.find("meta", attrs={"name": name})
    elif prop:
        tag = soup.find("meta", attrs={"property": prop})
    if tag and tag.get("content"):
        return str(tag.get("content")).strip()
    return None


def canonical_host(host: str | None) -> str:
    normalized = (host or "").strip().lower().rstrip(".")
    if normalized.startswith("www."):
        return normalized[4:]
    return normalized


def extract_content_text(soup: BeautifulSoup) -> str:
    """Visible main-content text, read from a detached copy of the region."""
    region = soup.find("main") or soup.find("article") or soup.body or soup
    clone = BeautifulSoup(str(region), "html.parser")
    for node in clone(
        ["script", "style", "noscript", "svg", "canvas", "nav", "header", "footer", "aside"]
    ):
        node.decompose()
    text = clone.get_text(" ", strip=True)
    return re.sub(r"\s+", " ", text).strip()


def syllables(word: str) -> int:
    w = re.sub(r"[^a-z]", "", word.lower())
    if not w:
        return 1
    count = len(re.findall(r"[aeiouy]+", w))
    if w.endswith("e") and count > 1:
        count -= 1
    return max(1, count)


def flesch_reading_ease(text: str) -> float | None:
    words = tokenize(text)
    if not words:
        return None
    sentences = max(1, len(re.findall(r"[.!?]+", text)))
    spw = sum(syllables(w) for w in words) / len(words)
    wps = len(words) / sentences
    return round(206.835 - (1.015 * wps) - (84.6 * spw), 2)


def infer_keyword(title: str | None, h1: str | None, url: str) -> str | None:
    blob = " ".join(filter(None, [title, h1, urlparse(url).path.replace("/", " ")]))
    tokens = [t for t in tokenize(blob) if len(t) > 2 and t not in STOPWORDS]
    if not tokens:
        return None
    counts: dict[str, int] = {}
    for tok in tokens:
        counts[tok] = counts.get(tok, 0) + 1
    ordered = sorted(counts.items(), key=lambda x: (-x[1], tokens.index(x[0])))
    return ordered[0][0]


def _parse_datetime(raw: str | None) -> datetime | None:
    if not raw:
        return None
    try:
        parsed = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class MetaTagDetector:
    detector_id = "meta_tags"
    domain = "technical"

    async def detect(self, context: AnalysisContext) -> dict[str, Any]:
        soup = context.document
        description = meta_content(soup, name="description")
        robots = meta_content(soup, name="robots") or ""
        canonical = soup.find("link", rel="canonical")
        viewport = meta_content(soup, name="viewport") or ""
        html_tag = soup.find("html")
        hreflangs = [
            str(link.get("hreflang"))
            for link in soup.find_all("link", rel="alternate")
            if link.get("hreflang")
        ]
        return {
            "title": {"present": bool(context.title), "text": context.title, "length": len(context.title)},
            "meta_description": {
                "present": bool(description),
                "text": description,
                "length": len(description or ""),
            },
            "canonical": {
                "present": bool(canonical and canonical.get("href")),
                "href": canonical.get("href") if canonical else None,
            },
            "robots": {"content": robots, "noindex": "noindex" in robots.lower()},
            "viewport": {
                "present": bool(viewport),
                "device_width": "width=device-width" in viewport.replace(" ", "").lower(),
            },
            "lang": (html_tag.get("lang") or None) if html_tag else None,
            "hreflang": hreflangs,
            "geo_region": meta_content(soup, name="geo.region"),
        }


class HeadingStructureDetector:
    detector_id = "headings"
    domain = "structure"

    async def detect(self, context: AnalysisContext) -> dict[str, Any]:
        tags = context.document.find_all(re.compile("^h[1-6]$"))
        sequence = [int(tag.name[1]) for tag in tags]
        skips = sum(
            1 for i in range(1, len(sequence)) if sequence[i] > sequence[i - 1] + 1
        )
        counts = {f"h{level}": sequence.count(level) for level in range(1, 7)}
        return {
            "h1": {
                "count": counts["h1"],
                "texts": [t.get_text(" ", strip=True) for t in tags if t.name == "h1"],
            },
            "counts": counts,
            "sequence": sequence,
            "skips": skips,
            "texts": [t.get_text(" ", strip=True) for t in tags],
        }


class ContentDetector:
    detector_id = "content"
    domain = "content"

    async def detect(self, context: AnalysisContext) -> dict[str, Any]:
        soup = context.document
        text = extract_content_text(soup)
        words = tokenize(text)
        h1 = soup.find("h1")
        h1_text = h1.get_text(" ", strip=True) if h1 else None
        keyword = infer_keyword(context.title, h1_text, context.url)
        description = meta_content(soup, name="description") or ""
        headings = " ".join(
            t.get_text(" ", strip=True) for t in soup.find_all(re.compile("^h[1-6]$"))
        )

        density = None
        if keyword and words:
            occurrences = sum(1 for w in words if w == keyword)
            density = round((occurrences / len(words)) * 100, 2)

        meaningful = {w for w in words if len(w) > 3 and w not in STOPWORDS}
        cta_texts = [
            el.get_text(" ", strip=True)
            for el in soup.find_all(["a", "button"])
            if CTA_PATTERN.search(el.get_text(" ", strip=True) or "")
        ]

        modified = _parse_datetime(
            meta_content(soup, prop="article:modified_time")
            or meta_content(soup, prop="article:published_time")
            or (soup.find("time").get("datetime") if soup.find("time") else None)
        )
        fetched = _parse_datetime(context.metadata.get("fetched_at"))
        age_days = None
        if modified and fetched:
            age_days = max(0, (fetched - modified).days)

        return {
            "word_count": len(words),
            "flesch": flesch_reading_ease(text),
            "keyword": keyword,
            "keyword_density_pct": density,
            "keyword_in_title": bool(keyword and keyword in context.title.lower()),
            "keyword_in_meta": bool(keyword and keyword in description.lower()),
            "keyword_in_headings": bool(keyword and keyword in headings.lower()),
            "distinct_terms": len(meaningful),
            "cta_count": len(cta_texts),
            "description_has_cta": bool(CTA_PATTERN.search(description)),
            "age_days": age_days,
        }


class LinkStructureDetector:
    detector_id = "links"
    domain = "structure"

    async def detect(self, context: AnalysisContext) -> dict[str, Any]:
        soup = context.document
        host = canonical_host(urlparse(context.url).hostname)
        internal = 0
        external = 0
        nofollow = 0
        empty_anchor = 0
        for a in soup.find_all("a", href=True):
            href = urljoin(context.url, a.get("href", ""))
            target = canonical_host(urlparse(href).hostname)
            if target == host:
                internal += 1
            elif target:
                external += 1
            if "nofollow" in (a.get("rel") or []):
                nofollow += 1
            if not a.get_text(strip=True) and not a.find("img"):
                empty_anchor += 1
        return {
            "internal": internal,
            "external": external,
            "nofollow": nofollow,
            "empty_anchor": empty_anchor,
            "has_nav": soup.find("nav") is not None,
            "path": urlparse(context.url).path or "/",
            "query_present": bool(urlparse(context.url).query),
        }


class StructuredDataDetector:
    detector_id = "structured_data"
    domain = "technical"

    async def detect(self, context: AnalysisContext) -> dict[str, Any]:
        blocks = context.document.find_all("script", type="application/ld+json")
        types: list[str] = []
        invalid = 0
        for block in blocks:
            raw = (block.string or "").strip()
            if not raw:
                continue
            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                invalid += 1
                continue
            stack = [data]
            while stack:
                node = stack.pop()
                if isinstance(node, list):
                    stack.extend(node)
                elif isinstance(node, dict):
                    if "@type" in node:
                        t = node["@type"]
                        if isinstance(t, list):
                            types.extend(str(x) for x in t)
                        else:
                            types.append(str(t))
                    if "@graph" in node:
                        stack.append(node["@graph"])
        return {
            "count": len(blocks),
            "invalid": invalid,
            "types": sorted(set(t.strip() for t in types if t.strip())),
        }


class SocialDetector:
    detector_id = "social"
    domain = "social"

    async def detect(self, context: AnalysisContext) -> dict[str, Any]:
        soup = context.document
        open_graph = {key: meta_content(soup, prop=key) for key in OPEN_GRAPH_FIELDS}
        twitter = {key: meta_content(soup, name=key) for key in TWITTER_FIELDS}
        profiles = sorted(
            {
                canonical_host(urlparse(a["href"]).hostname)
                for a in soup.find_all("a", href=True)
                if canonical_host(urlparse(a["href"]).hostname) in SOCIAL_HOSTS
            }
        )
        return {
            "open_graph": open_graph,
            "open_graph_present": sum(1 for v in open_graph.values() if v),
            "twitter": twitter,
            "twitter_present": sum(1 for v in twitter.values() if v),
            "profiles": profiles,
        }


class ImageDetector:
    detector_id = "images"
    domain = "performance"

    async def detect(self, context: AnalysisContext) -> dict[str, Any]:
        imgs = context.document.find_all("img")
        missing_alt = 0
        missing_dims = 0
        lazy = 0
        modern = 0
        for img in imgs:
            src = (img.get("src") or "").lower()
            if src.split("?")[0].endswith((".webp", ".avif")):
                modern += 1
            if not (img.get("alt") and str(img.get("alt")).strip()):
                missing_alt += 1
            if not img.get("width") or not img.get("height"):
                missing_dims += 1
            if str(img.get("loading") or "").lower() == "lazy":
                lazy += 1
        return {
            "count": len(imgs),
            "missing_alt": missing_alt,
            "missing_dimensions": missing_dims,
            "lazy": lazy,
            "modern_format": modern,
        }


class HttpResponseDetector:
    """Reads fetch metadata; fields stay None when the page was not fetched."""

    detector_id = "http_response"
    domain = "performance"

    async def detect(self, context: AnalysisContext) -> dict[str, Any]:
        meta = context.metadata
        headers = {str(k).lower(): str(v) for k, v in (meta.get("headers") or {}).items()}
        encoding = headers.get("content-encoding")
        return {
            "status_code": meta.get("status_code"),
            "response_ms": meta.get("response_ms"),
            "compressed": (
                any(x in encoding.lower() for x in ("gzip", "br", "deflate", "zstd"))
                if encoding is not None
                else (False if headers else None)
            ),
            "https": urlparse(context.url).scheme == "https",
            "web_vitals": dict(meta.get("web_vitals") or {}) or None,
        }


BUNDLED_DETECTORS = (
    MetaTagDetector,
    HeadingStructureDetector,
    ContentDetector,
    LinkStructureDetector,
    StructuredDataDetector,
    SocialDetector,
    ImageDetector,
    HttpResponseDetector,
)
