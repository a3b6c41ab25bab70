"""Lightweight compliance helpers used outside the full engine.

``quick_compliance_check`` and ``generate_compliance_disclaimers`` back the
content validation endpoints; ``score_content_risk`` gates LinkedIn
publishing.
"""

from __future__ import annotations

from src.app.compliance.rules import (
    CLIENT_NAME_PATTERN,
    GUARANTEE_DISCLAIMER,
    GUARANTEE_KEYWORDS,
    INVESTMENT_ADVICE_PHRASES,
    INVESTMENT_DISCLAIMER,
    INVESTMENT_KEYWORDS,
    PERCENT_CLAIM_PATTERN,
    PERFORMANCE_DISCLAIMER,
    PERFORMANCE_KEYWORDS,
    PRODUCT_KEYWORDS,
    contains_any,
)
from src.app.compliance.schemas import ContentRiskResult, QuickCheckResult, Severity


def quick_compliance_check(content: str | None) -> QuickCheckResult:
    """Cheap first-pass check.

    Investment wording rates high and client names critical. Performance
    and guarantee wording only raise the level when nothing else has.
    """
    content = content or ""
    issues: list[str] = []
    level = Severity.LOW

    if contains_any(content, INVESTMENT_KEYWORDS):
        issues.append("Content may contain investment advice")
        level = Severity.HIGH

    if CLIENT_NAME_PATTERN.search(content):
        issues.append("Content may contain client names")
        level = Severity.CRITICAL

    if contains_any(content, PERFORMANCE_KEYWORDS):
        issues.append("Content may contain performance claims")
        if level == Severity.LOW:
            level = Severity.MEDIUM

    if contains_any(content, GUARANTEE_KEYWORDS):
        issues.append("Content may contain guarantee language")
        if level == Severity.LOW:
            level = Severity.HIGH

    return QuickCheckResult(is_compliant=not issues, issues=issues, risk_level=level)


def generate_compliance_disclaimers(content: str | None) -> list[str]:
    content = content or ""
    disclaimers = []
    if contains_any(content, INVESTMENT_KEYWORDS):
        disclaimers.append(INVESTMENT_DISCLAIMER)
    if contains_any(content, PERFORMANCE_KEYWORDS):
        disclaimers.append(PERFORMANCE_DISCLAIMER)
    if contains_any(content, ("guaranteed", "guarantee", "promise", "assured", "certain")):
        disclaimers.append(GUARANTEE_DISCLAIMER)
    return disclaimers


def score_content_risk(content: str | None) -> ContentRiskResult:
    """Score a post 0-100 before it goes to LinkedIn.

    Product mentions add to the score without producing an issue, so a
    post can be valid with a non-zero score.
    """
    content = content or ""
    lowered = content.lower()
    issues: list[str] = []
    score = 0

    if contains_any(content, INVESTMENT_ADVICE_PHRASES):
        issues.append("Content may contain investment advice - requires compliance review")
        score += 40

    if contains_any(content, PRODUCT_KEYWORDS):
        score += 20

    if CLIENT_NAME_PATTERN.search(content):
        issues.append("Content may contain client names - requires privacy review")
        score += 30

    investment_related = "investment" in lowered and (
        "advice" in lowered or "recommendation" in lowered
    )
    if investment_related and "not investment advice" not in lowered:
        issues.append("Investment-related content requires disclaimer")
        score += 25

    if PERCENT_CLAIM_PATTERN.search(content):
        issues.append("Content may contain specific performance claims")
        score += 25

    if "guarantee" in lowered:
        issues.append("Content may contain guarantee language")
        score += 25

    return ContentRiskResult(is_valid=not issues, issues=issues, risk_score=min(score, 100))
