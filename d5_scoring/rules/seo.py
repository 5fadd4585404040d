"""
SEO rules
"""
from d3_assessment.types import Effort, ScoreCategory, Severity

from .base import known_false, rule

CATEGORY = ScoreCategory.SEO


def _indexability(audit):
    return audit.seo.indexability if audit.seo else None


def _meta(audit):
    return audit.seo.meta if audit.seo else None


def _schema(audit):
    return audit.seo.schema_ if audit.seo else None


def _count_rule(audit, name, label):
    meta = _meta(audit)
    count = getattr(meta, name) if meta else None
    if not count:
        return None
    return [f"{count} {label}"]


@rule(
    "money-pages-noindexed",
    title="Key pages are hidden from search engines",
    category=CATEGORY,
    severity=Severity.BLOCKER,
    effort=Effort.LOW,
    impact=0.7,
    confidence=0.9,
    penalty=30,
    fix="Remove the noindex directive from the home, property and booking pages.",
    tags=("indexing",),
)
def money_pages_noindexed(audit):
    indexability = _indexability(audit)
    if indexability is None or not indexability.has_noindex_on_money_pages:
        return None
    return ["A noindex directive is set on revenue-generating pages"]


@rule(
    "robots-txt-missing",
    title="No robots.txt file",
    category=CATEGORY,
    severity=Severity.MINOR,
    effort=Effort.LOW,
    impact=0.05,
    confidence=0.9,
    penalty=4,
    fix="Publish a robots.txt that references the sitemap.",
    tags=("indexing",),
)
def robots_txt_missing(audit):
    indexability = _indexability(audit)
    if indexability is None or indexability.robots_txt_present is not False:
        return None
    return ["/robots.txt returned no file"]


@rule(
    "sitemap-missing",
    title="No XML sitemap",
    category=CATEGORY,
    severity=Severity.MINOR,
    effort=Effort.LOW,
    impact=0.1,
    confidence=0.9,
    penalty=5,
    fix="Generate an XML sitemap and submit it in Google Search Console.",
    tags=("indexing",),
)
def sitemap_missing(audit):
    indexability = _indexability(audit)
    if indexability is None or indexability.sitemap_present is not False:
        return None
    return ["No sitemap found"]


@rule(
    "missing-titles",
    title="Pages without a title tag",
    category=CATEGORY,
    severity=Severity.MAJOR,
    effort=Effort.LOW,
    impact=0.25,
    confidence=0.9,
    penalty=10,
    fix="Give every page a unique, descriptive title under 60 characters.",
    tags=("meta",),
)
def missing_titles(audit):
    return _count_rule(audit, "missing_titles_count", "pages have no <title>")


@rule(
    "duplicate-titles",
    title="Duplicate page titles",
    category=CATEGORY,
    severity=Severity.MINOR,
    effort=Effort.LOW,
    impact=0.1,
    confidence=0.9,
    penalty=5,
    fix="Rewrite duplicated titles so each page targets its own query.",
    tags=("meta",),
)
def duplicate_titles(audit):
    return _count_rule(audit, "duplicate_titles_count", "pages share a duplicated title")


@rule(
    "missing-descriptions",
    title="Pages without a meta description",
    category=CATEGORY,
    severity=Severity.MINOR,
    effort=Effort.LOW,
    impact=0.1,
    confidence=0.9,
    penalty=5,
    fix="Write a meta description for each page that sells the stay.",
    tags=("meta",),
)
def missing_descriptions(audit):
    return _count_rule(audit, "missing_descriptions_count", "pages have no meta description")


@rule(
    "no-business-schema",
    title="No LocalBusiness or LodgingBusiness structured data",
    category=CATEGORY,
    severity=Severity.MINOR,
    effort=Effort.MEDIUM,
    impact=0.15,
    confidence=0.8,
    penalty=6,
    fix="Add LodgingBusiness JSON-LD with address, phone and price range.",
    tags=("structured-data",),
)
def no_business_schema(audit):
    schema = _schema(audit)
    if schema is None or not known_false(schema.has_local_business, schema.has_lodging_business):
        return None
    return ["No LocalBusiness or LodgingBusiness JSON-LD found"]


@rule(
    "no-review-schema",
    title="Reviews are not marked up as structured data",
    category=CATEGORY,
    severity=Severity.TRIVIAL,
    effort=Effort.MEDIUM,
    impact=0.05,
    confidence=0.8,
    penalty=2,
    fix="Mark up ratings with AggregateRating so stars can show in search results.",
    tags=("structured-data", "reviews"),
)
def no_review_schema(audit):
    schema = _schema(audit)
    if schema is None or schema.has_review is not False:
        return None
    return ["No Review or AggregateRating structured data found"]
