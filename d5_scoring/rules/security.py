"""
Security rules
"""
from d3_assessment.types import Effort, ScoreCategory, Severity

from .base import rule

CATEGORY = ScoreCategory.SECURITY
ACCEPTABLE_SSL_GRADES = ("A", "B")


def _tls(audit):
    return audit.security.tls if audit.security else None


def _headers(audit):
    return audit.security.headers if audit.security else None


@rule(
    "no-https",
    title="Site is not served over HTTPS",
    category=CATEGORY,
    severity=Severity.BLOCKER,
    effort=Effort.MEDIUM,
    impact=0.6,
    confidence=0.95,
    penalty=50,
    fix="Install a TLS certificate and redirect all HTTP traffic to HTTPS.",
    tags=("tls",),
)
def no_https(audit):
    tls = _tls(audit)
    if tls is None or tls.has_https is not False:
        return None
    return ["Pages load over plain HTTP; browsers mark the site 'Not secure'"]


@rule(
    "mixed-content",
    title="Secure pages load insecure resources",
    category=CATEGORY,
    severity=Severity.MAJOR,
    effort=Effort.MEDIUM,
    impact=0.2,
    confidence=0.9,
    penalty=20,
    fix="Load every image, script and stylesheet over HTTPS.",
    tags=("tls",),
)
def mixed_content(audit):
    tls = _tls(audit)
    if tls is None or not tls.mixed_content:
        return None
    return ["HTTP resources are requested from HTTPS pages"]


@rule(
    "weak-ssl-grade",
    title="Weak TLS configuration",
    category=CATEGORY,
    severity=Severity.MAJOR,
    effort=Effort.MEDIUM,
    impact=0.1,
    confidence=0.9,
    penalty=15,
    fix="Disable legacy protocols and weak ciphers on the web server.",
    tags=("tls",),
)
def weak_ssl_grade(audit):
    tls = _tls(audit)
    grade = tls.ssl_labs_grade if tls else None
    if not grade or grade.strip().upper().startswith(ACCEPTABLE_SSL_GRADES):
        return None
    return [f"SSL Labs grade is {grade.strip()}"]


@rule(
    "no-hsts",
    title="No HTTP Strict Transport Security header",
    category=CATEGORY,
    severity=Severity.MINOR,
    effort=Effort.LOW,
    impact=0.05,
    confidence=0.9,
    penalty=8,
    fix="Send a Strict-Transport-Security header with a long max-age.",
    tags=("headers",),
)
def no_hsts(audit):
    headers = _headers(audit)
    if headers is None or headers.hsts is not False:
        return None
    return ["Strict-Transport-Security header is missing"]


@rule(
    "no-csp",
    title="No Content Security Policy",
    category=CATEGORY,
    severity=Severity.TRIVIAL,
    effort=Effort.MEDIUM,
    impact=0.02,
    confidence=0.9,
    penalty=4,
    fix="Add a Content-Security-Policy header, starting in report-only mode.",
    tags=("headers",),
)
def no_csp(audit):
    headers = _headers(audit)
    if headers is None or headers.csp is not False:
        return None
    return ["Content-Security-Policy header is missing"]
