"""Static weighted scoring framework.

The framework is a fixed tree of categories. Leaves name the detector whose
payload they measure and a ``measure`` callable turning that payload into a
0-100 score, or None when the payload holds no applicable signal.
"""

from dataclasses import dataclass
import math
from typing import Any, Callable

WEIGHT_TOLERANCE = 1e-6

Measure = Callable[[dict[str, Any]], float | None]


class FrameworkError(ValueError):
    """Raised at startup when the framework or rule catalog is malformed."""


@dataclass(frozen=True)
class CategorySpec:
    name: str
    weight: float
    children: tuple["CategorySpec", ...] = ()
    detector: str | None = None
    measure: Measure | None = None
    acceptable: float | None = None
    advice: str = ""
    effort: str | None = None

    @property
    def is_leaf(self) -> bool:
        return not self.children


def leaf(
    name: str,
    weight: float,
    detector: str,
    measure: Measure,
    advice: str,
    *,
    acceptable: float | None = None,
    effort: str | None = "low",
) -> CategorySpec:
    return CategorySpec(
        name=name,
        weight=weight,
        detector=detector,
        measure=measure,
        acceptable=acceptable,
        advice=advice,
        effort=effort,
    )


def group(name: str, weight: float, *children: CategorySpec) -> CategorySpec:
    return CategorySpec(name=name, weight=weight, children=tuple(children))


def validate_framework(spec: CategorySpec, *, path: str = "") -> None:
    """Check weights and leaf wiring across the whole tree.

    Raises:
        FrameworkError: on the first violation found.
    """
    where = f"{path}/{spec.name}" if path else spec.name
    if not isinstance(spec.weight, (int, float)) or not 0 < spec.weight <= 1:
        raise FrameworkError(f"{where}: weight must be in (0, 1], got {spec.weight}")

    if spec.is_leaf:
        if not spec.detector or spec.measure is None:
            raise FrameworkError(f"{where}: leaf needs a detector and a measure")
        return

    names = [child.name for child in spec.children]
    if len(set(names)) != len(names):
        raise FrameworkError(f"{where}: duplicate child names {names}")
    total = math.fsum(child.weight for child in spec.children)
    if abs(total - 1.0) > WEIGHT_TOLERANCE:
        raise FrameworkError(f"{where}: child weights sum to {total}, expected 1.0")
    for child in spec.children:
        validate_framework(child, path=where)


def iter_leaves(spec: CategorySpec) -> list[CategorySpec]:
    if spec.is_leaf:
        return [spec]
    found: list[CategorySpec] = []
    for child in spec.children:
        found.extend(iter_leaves(child))
    return found


def framework_outline(spec: CategorySpec) -> dict[str, Any]:
    """JSON-friendly view of the tree (no callables)."""
    node: dict[str, Any] = {"name": spec.name, "weight": spec.weight}
    if spec.is_leaf:
        node["detector"] = spec.detector
    else:
        node["children"] = [framework_outline(child) for child in spec.children]
    return node


# Measures over bundled detector payloads.


def _flag(value: Any) -> float | None:
    if value is None:
        return None
    return 100.0 if value else 0.0


def _title_present(p: dict) -> float | None:
    return _flag((p.get("title") or {}).get("present"))


def _title_length(p: dict) -> float | None:
    length = (p.get("title") or {}).get("length")
    if length is None:
        return None
    if 30 <= length <= 60:
        return 100.0
    if 20 <= length <= 70:
        return 60.0
    return 20.0 if length else 0.0


def _title_descriptive(p: dict) -> float | None:
    text = ((p.get("title") or {}).get("text") or "").strip().lower()
    if not text:
        return 0.0
    if text in {"home", "index", "untitled", "welcome", "new page"}:
        return 10.0
    return 100.0 if len(text.split()) >= 3 else 50.0


def _description_present(p: dict) -> float | None:
    return _flag((p.get("meta_description") or {}).get("present"))


def _description_length(p: dict) -> float | None:
    length = (p.get("meta_description") or {}).get("length")
    if length is None:
        return None
    if 120 <= length <= 160:
        return 100.0
    if 70 <= length <= 180:
        return 60.0
    return 20.0 if length else 0.0


def _keyword_flag(key: str) -> Measure:
    def measure(p: dict) -> float | None:
        if not p.get("keyword"):
            return None
        return _flag(p.get(key))

    return measure


def _description_cta(p: dict) -> float | None:
    return _flag(p.get("description_has_cta"))


def _h1_present(p: dict) -> float | None:
    count = (p.get("h1") or {}).get("count")
    if count is None:
        return None
    return 100.0 if count >= 1 else 0.0


def _h1_unique(p: dict) -> float | None:
    count = (p.get("h1") or {}).get("count")
    if not count:
        return None
    return 100.0 if count == 1 else 30.0


def _heading_hierarchy(p: dict) -> float | None:
    if not p.get("sequence"):
        return None
    return max(0.0, 100.0 - 25.0 * int(p.get("skips") or 0))


def _content_length(p: dict) -> float | None:
    words = p.get("word_count")
    if words is None:
        return None
    if words >= 1000:
        return 100.0
    if words >= 300:
        return 80.0
    return round(words / 300 * 60, 2)


def _keyword_density(p: dict) -> float | None:
    density = p.get("keyword_density_pct")
    if density is None:
        return None
    if 0.5 <= density <= 2.5:
        return 100.0
    if density < 0.5:
        return 40.0 + density * 100
    if density <= 5.0:
        return 60.0
    return 20.0


def _readability(p: dict) -> float | None:
    flesch = p.get("flesch")
    if flesch is None:
        return None
    return 100.0 if flesch >= 60 else max(0.0, flesch / 60 * 100)


def _semantic_terms(p: dict) -> float | None:
    terms = p.get("distinct_terms")
    if terms is None:
        return None
    return min(100.0, terms / 3 * 100) if terms < 3 else 100.0


def _freshness(p: dict) -> float | None:
    age = p.get("age_days")
    if age is None:
        return None
    return 100.0 if age <= 365 else 50.0


def _url_structure(p: dict) -> float | None:
    path = p.get("path")
    if path is None:
        return None
    score = 100.0
    if p.get("query_present"):
        score -= 30
    if path != path.lower():
        score -= 20
    if "_" in path:
        score -= 20
    if len(path) > 100:
        score -= 20
    return score


def _canonical(p: dict) -> float | None:
    return _flag((p.get("canonical") or {}).get("present"))


def _robots(p: dict) -> float | None:
    noindex = (p.get("robots") or {}).get("noindex")
    if noindex is None:
        return None
    return 0.0 if noindex else 100.0


def _structured_data(p: dict) -> float | None:
    count = p.get("count")
    if count is None:
        return None
    if count == 0:
        return 0.0
    return 40.0 if p.get("invalid") else 100.0


def _page_speed(p: dict) -> float | None:
    ms = p.get("response_ms")
    if ms is None:
        return None
    if ms <= 1000:
        return 100.0
    if ms <= 2000:
        return 80.0
    if ms <= 3000:
        return 60.0
    return 30.0


def _open_graph(p: dict) -> float | None:
    present = p.get("open_graph_present")
    return None if present is None else present / 4 * 100


def _twitter(p: dict) -> float | None:
    present = p.get("twitter_present")
    return None if present is None else present / 3 * 100


def _social_links(p: dict) -> float | None:
    profiles = p.get("profiles")
    return None if profiles is None else _flag(len(profiles) > 0)


def _hreflang(p: dict) -> float | None:
    return 100.0 if p.get("hreflang") else None


def _language(p: dict) -> float | None:
    return _flag(bool(p.get("lang")))


def _geo_targeting(p: dict) -> float | None:
    if p.get("geo_region") or any("-" in str(x) for x in p.get("hreflang") or []):
        return 100.0
    return None


def _mobile(p: dict) -> float | None:
    viewport = p.get("viewport") or {}
    if not viewport.get("present"):
        return 0.0
    return 100.0 if viewport.get("device_width") else 60.0


def _navigation(p: dict) -> float | None:
    has_nav = p.get("has_nav")
    return None if has_nav is None else (100.0 if has_nav else 40.0)


def _internal_links(p: dict) -> float | None:
    internal = p.get("internal")
    if internal is None:
        return None
    return 100.0 if internal >= 3 else internal / 3 * 100


def _cta(p: dict) -> float | None:
    count = p.get("cta_count")
    return None if count is None else _flag(count > 0)


def _web_vitals(p: dict) -> float | None:
    vitals = p.get("web_vitals") or {}
    checks = []
    if vitals.get("lcp") is not None:
        checks.append(vitals["lcp"] <= 2.5)
    if vitals.get("inp") is not None:
        checks.append(vitals["inp"] <= 200)
    elif vitals.get("fid") is not None:
        checks.append(vitals["fid"] <= 100)
    if vitals.get("cls") is not None:
        checks.append(vitals["cls"] <= 0.1)
    if not checks:
        return None
    return sum(checks) / len(checks) * 100


def _image_optimization(p: dict) -> float | None:
    count = p.get("count")
    if not count:
        return None
    penalty = (p.get("missing_alt", 0) / count) * 50 + (
        p.get("missing_dimensions", 0) / count
    ) * 30
    penalty += 20 if not p.get("modern_format") and not p.get("lazy") else 0
    return max(0.0, 100.0 - penalty)


def _compression(p: dict) -> float | None:
    return _flag(p.get("compressed"))


DEFAULT_FRAMEWORK = group(
    "overall",
    1.0,
    group(
        "primary_factors",
        0.80,
        group(
            "title_optimization",
            0.20,
            leaf("title_present", 0.30, "meta_tags", _title_present, "Add a descriptive <title> tag."),
            leaf("title_length_optimal", 0.25, "meta_tags", _title_length, "Keep the title between 30 and 60 characters."),
            leaf("keyword_in_title", 0.25, "content", _keyword_flag("keyword_in_title"), "Use the page's primary keyword in the title."),
            leaf("title_descriptive", 0.20, "meta_tags", _title_descriptive, "Replace generic titles with a specific description of the page."),
        ),
        group(
            "meta_description",
            0.15,
            leaf("meta_description_present", 0.30, "meta_tags", _description_present, "Add a meta description summarizing the page."),
            leaf("meta_description_length", 0.25, "meta_tags", _description_length, "Keep the meta description between 120 and 160 characters."),
            leaf("keyword_in_meta", 0.25, "content", _keyword_flag("keyword_in_meta"), "Mention the primary keyword in the meta description."),
            leaf("call_to_action_present", 0.20, "content", _description_cta, "End the meta description with a clear call to action.", acceptable=50.0),
        ),
        group(
            "heading_structure",
            0.15,
            leaf("h1_present", 0.35, "headings", _h1_present, "Add an H1 heading that states the page topic."),
            leaf("h1_unique", 0.25, "headings", _h1_unique, "Use exactly one H1 per page."),
            leaf("heading_hierarchy", 0.25, "headings", _heading_hierarchy, "Avoid skipping heading levels (e.g. H2 to H4).", effort="medium"),
            leaf("keyword_in_headings", 0.15, "content", _keyword_flag("keyword_in_headings"), "Work the primary keyword into at least one heading."),
        ),
        group(
            "content_quality",
            0.20,
            leaf("content_length_adequate", 0.25, "content", _content_length, "Expand the main content to at least 300 words.", effort="high"),
            leaf("keyword_density_optimal", 0.25, "content", _keyword_density, "Keep primary keyword density between 0.5% and 2.5%.", effort="medium"),
            leaf("content_readability", 0.20, "content", _readability, "Shorten sentences and prefer simpler words.", effort="medium"),
            leaf("semantic_keywords_present", 0.15, "content", _semantic_terms, "Cover related terms and subtopics.", effort="medium"),
            leaf("content_freshness", 0.15, "content", _freshness, "Review and update content older than a year.", effort="medium"),
        ),
        group(
            "technical_seo",
            0.30,
            leaf("url_structure_optimized", 0.20, "links", _url_structure, "Use short, lowercase, hyphenated URLs without query strings.", effort="medium"),
            leaf("canonical_url_present", 0.20, "meta_tags", _canonical, "Add a rel=canonical link."),
            leaf("meta_robots_appropriate", 0.15, "meta_tags", _robots, "Remove noindex if the page should rank."),
            leaf("structured_data_present", 0.20, "structured_data", _structured_data, "Add valid JSON-LD schema for the page type.", effort="medium"),
            leaf("page_speed_acceptable", 0.25, "http_response", _page_speed, "Reduce server response time below one second.", effort="high"),
        ),
    ),
    group(
        "secondary_factors",
        0.20,
        group(
            "social_media",
            0.25,
            leaf("open_graph_complete", 0.50, "social", _open_graph, "Add og:title, og:description, og:image and og:url."),
            leaf("twitter_cards_present", 0.30, "social", _twitter, "Add twitter:card, twitter:title and twitter:description."),
            leaf("social_media_links", 0.20, "social", _social_links, "Link to the brand's social profiles.", acceptable=50.0),
        ),
        group(
            "international_seo",
            0.20,
            leaf("hreflang_implemented", 0.40, "meta_tags", _hreflang, "Declare hreflang alternates for translated pages."),
            leaf("language_declared", 0.35, "meta_tags", _language, "Set the lang attribute on the <html> element."),
            leaf("geo_targeting_setup", 0.25, "meta_tags", _geo_targeting, "Declare regional targeting where relevant."),
        ),
        group(
            "user_experience",
            0.30,
            leaf("mobile_friendly", 0.35, "meta_tags", _mobile, "Add <meta name=viewport content='width=device-width, initial-scale=1'>."),
            leaf("navigation_clear", 0.25, "links", _navigation, "Wrap primary navigation in a <nav> element.", effort="medium"),
            leaf("internal_linking", 0.20, "links", _internal_links, "Link to at least three related internal pages."),
            leaf("cta_present", 0.20, "content", _cta, "Add a visible call-to-action link or button."),
        ),
        group(
            "performance",
            0.25,
            leaf("core_web_vitals", 0.40, "http_response", _web_vitals, "Improve LCP, INP and CLS to pass Core Web Vitals.", effort="high"),
            leaf("image_optimization", 0.30, "images", _image_optimization, "Add alt text and dimensions; serve WebP/AVIF or lazy-load images.", effort="medium"),
            leaf("compression_enabled", 0.30, "http_response", _compression, "Enable gzip or Brotli compression on the server.", effort="medium"),
        ),
    ),
)
