"""FINRA/SEC compliance review for advisor-authored social content."""

from src.app.compliance.checks import (
    generate_compliance_disclaimers,
    quick_compliance_check,
    score_content_risk,
)
from src.app.compliance.engine import ComplianceEngine, validate_content_compliance

__all__ = [
    "ComplianceEngine",
    "generate_compliance_disclaimers",
    "quick_compliance_check",
    "score_content_risk",
    "validate_content_compliance",
]
