"""Regulatory keyword rules and shared patterns.

Keyword matching is a case-insensitive substring test; "invest" therefore
also matches "investment". These tables are deliberately coarse: a hit means
"a human should look at this", not "this violates the rule".
"""

from __future__ import annotations

import re

from src.app.compliance.schemas import ComplianceRule, Severity

FINRA_RULES: tuple[ComplianceRule, ...] = (
    ComplianceRule(
        id="FINRA_2210",
        description="Communications with the Public must be fair and balanced",
        keywords=("guaranteed", "guarantee", "promise", "assured", "certain"),
        severity=Severity.HIGH,
    ),
    ComplianceRule(
        id="FINRA_2211",
        description="Variable insurance communications must include required disclosures",
        keywords=("variable annuity", "variable life", "insurance"),
        severity=Severity.HIGH,
    ),
    ComplianceRule(
        id="FINRA_2212",
        description="Investment advice must include appropriate disclaimers",
        keywords=("buy", "sell", "invest", "recommend", "suggest"),
        severity=Severity.CRITICAL,
    ),
    ComplianceRule(
        id="FINRA_2213",
        description="Performance claims must be substantiated and include disclaimers",
        keywords=("return", "performance", "yield", "gain", "profit"),
        severity=Severity.HIGH,
    ),
    ComplianceRule(
        id="FINRA_2214",
        description="Testimonials must include required disclosures",
        keywords=("testimonial", "review", "client said", "customer"),
        severity=Severity.MEDIUM,
    ),
)

SEC_RULES: tuple[ComplianceRule, ...] = (
    ComplianceRule(
        id="SEC_17a4",
        description="All communications must be properly recorded and preserved",
        keywords=("record", "preserve", "maintain"),
        severity=Severity.HIGH,
    ),
    ComplianceRule(
        id="SEC_17a3",
        description="All communications must be properly recorded",
        keywords=("record", "document", "log"),
        severity=Severity.HIGH,
    ),
    ComplianceRule(
        id="SEC_17a8",
        description="Customer information must be protected and not disclosed",
        keywords=("client", "customer", "account", "personal"),
        severity=Severity.CRITICAL,
    ),
    ComplianceRule(
        id="SEC_17a9",
        description="Customer consent required for certain communications",
        keywords=("consent", "permission", "authorization"),
        severity=Severity.HIGH,
    ),
)

# State rule hits always rate "medium" regardless of the per-rule severity.
STATE_RULES: tuple[ComplianceRule, ...] = (
    ComplianceRule(
        id="STATE_CCPA",
        description="California Consumer Privacy Act compliance",
        keywords=("california", "ccpa", "privacy"),
        severity=Severity.HIGH,
    ),
    ComplianceRule(
        id="STATE_NY",
        description="New York State financial regulations",
        keywords=("new york", "ny", "state"),
        severity=Severity.MEDIUM,
    ),
)

# Two capitalised words in a row, e.g. "John Smith".
CLIENT_NAME_PATTERN = re.compile(r"\b[A-Z][a-z]+ [A-Z][a-z]+\b")

SENSITIVE_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"\b\d{4}-\d{4}-\d{4}-\d{4}\b"),  # card number
    re.compile(r"\b\d{3}-\d{2}-\d{4}\b"),  # SSN
    re.compile(r"\b\d{9}\b"),  # SSN without dashes
)

# "12% return", "8.5 percent gain"
PERCENT_CLAIM_PATTERN = re.compile(
    r"\d+(?:\.\d+)?\s*(?:%|percent)\s*(?:annual\s+)?(?:return|gain|yield|growth|profit)s?",
    re.IGNORECASE,
)

INVESTMENT_KEYWORDS = ("buy", "sell", "invest", "recommend", "suggest")
PERFORMANCE_KEYWORDS = ("return", "performance", "yield", "gain", "profit")
GUARANTEE_KEYWORDS = ("guarantee", "guaranteed", "promise", "assure", "assured", "certain")

INVESTMENT_ADVICE_PHRASES = ("buy", "sell", "invest in", "guaranteed returns", "stock tip")
PRODUCT_KEYWORDS = ("401k", "ira", "mutual fund", "etf", "bond", "stock")

INVESTMENT_DISCLAIMER = (
    "This is not investment advice. Please consult with a qualified financial advisor."
)
PERFORMANCE_DISCLAIMER = "Past performance does not guarantee future results."
GUARANTEE_DISCLAIMER = "No investment is guaranteed. All investments carry risk."


def contains_any(content: str, keywords: tuple[str, ...]) -> bool:
    lowered = (content or "").lower()
    return any(k.lower() in lowered for k in keywords)
