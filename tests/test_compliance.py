"""Tests for the compliance engine and the lightweight compliance checks.

Covers the five check families, risk scoring and status rules of
ComplianceEngine, escalation, suggested disclaimers, the quick check used by
the validation endpoint and the LinkedIn publishing risk score.
"""

from __future__ import annotations

import pytest

from src.app.compliance import (
    ComplianceEngine,
    generate_compliance_disclaimers,
    quick_compliance_check,
    score_content_risk,
    validate_content_compliance,
)
from src.app.compliance.rules import (
    GUARANTEE_DISCLAIMER,
    INVESTMENT_DISCLAIMER,
    PERFORMANCE_DISCLAIMER,
    contains_any,
)
from src.app.compliance.schemas import ComplianceResult, Severity, ValidationStatus


CLEAN = "Great team lunch today with colleagues."


# ── Fixtures ─────────────────────────────────────────────────────────────────


@pytest.fixture
def engine() -> ComplianceEngine:
    return ComplianceEngine()


# ── Engine ───────────────────────────────────────────────────────────────────


class TestComplianceEngine:
    """Full pre-publication review."""

    def test_clean_content_is_approved(self, engine):
        """Five passing families rate low: score 25, approved, no escalation."""
        result = engine.validate_content(CLEAN, "advisor-1")

        assert result.status == ValidationStatus.APPROVED
        assert result.risk_assessment.overall_risk_score == 25
        assert result.risk_assessment.risk_level == Severity.LOW
        assert result.risk_assessment.mitigation_required is False
        assert result.approval_workflow.escalated_to is None
        assert result.content_modifications.injected_disclaimers == []

    def test_investment_advice_is_rejected(self, engine):
        """'buy' triggers FINRA_2212 (critical) and the investment disclaimer."""
        result = engine.validate_content("You should buy this fund now.", "advisor-1")

        finra = result.compliance_checks.finra_compliance
        assert finra.passed is False
        assert "FINRA_2212" in finra.rule_violations
        assert finra.severity == Severity.CRITICAL
        assert result.status == ValidationStatus.REJECTED
        assert result.risk_assessment.overall_risk_score == 60
        assert result.risk_assessment.mitigation_required is True
        assert result.content_modifications.injected_disclaimers == [INVESTMENT_DISCLAIMER]
        # Score 60 and not requires_modification: no escalation
        assert result.approval_workflow.escalated_to is None

    def test_performance_claim_requires_modification_and_escalates(self, engine):
        result = engine.validate_content(
            "Our portfolio had strong performance this year.", "advisor-1"
        )

        assert result.compliance_checks.finra_compliance.rule_violations == ["FINRA_2213"]
        assert result.status == ValidationStatus.REQUIRES_MODIFICATION
        assert result.risk_assessment.overall_risk_score == 45
        assert result.content_modifications.injected_disclaimers == [PERFORMANCE_DISCLAIMER]
        assert result.approval_workflow.escalated_to == "compliance-team"
        assert result.approval_workflow.escalation_reason == "High risk content requires review"

    def test_high_score_escalates(self, engine):
        """FINRA and SEC both critical: 40 + 40 + 3 * 5 = 95."""
        result = engine.validate_content("Tell every client to buy now.", "advisor-1")

        assert result.risk_assessment.overall_risk_score == 95
        assert result.status == ValidationStatus.REJECTED
        assert "SEC_17a8" in result.compliance_checks.sec_compliance.rule_violations
        assert result.approval_workflow.escalated_to == "compliance-team"

    def test_client_name_is_privacy_violation(self, engine):
        result = engine.validate_content("Met with John Smith today.", "advisor-1")

        privacy = result.compliance_checks.client_privacy_compliance
        assert privacy.rule_violations == ["CLIENT_PRIVACY_001"]
        assert privacy.severity == Severity.CRITICAL
        assert result.status == ValidationStatus.REJECTED
        assert result.content_modifications.removed_content == [
            "Remove or anonymize client names"
        ]

    def test_sensitive_number_is_privacy_violation(self, engine):
        result = engine.validate_content("SSN 123-45-6789 on file.", "advisor-1")

        privacy = result.compliance_checks.client_privacy_compliance
        assert privacy.rule_violations == ["CLIENT_PRIVACY_002"]
        assert "Remove sensitive financial information" in (
            result.content_modifications.removed_content
        )

    def test_state_hits_rate_medium_and_stay_pending(self, engine):
        """STATE_CCPA is 'high' per rule, but state hits always rate medium."""
        result = engine.validate_content("Moving to California soon.", "advisor-1")

        state = result.compliance_checks.state_regulation_compliance
        assert state.rule_violations == ["STATE_CCPA"]
        assert state.severity == Severity.MEDIUM
        assert state.required_actions == []
        assert result.status == ValidationStatus.PENDING
        assert result.risk_assessment.overall_risk_score == 35

    def test_none_content_is_treated_as_empty(self, engine):
        result = engine.validate_content(None, "advisor-1")
        assert result.status == ValidationStatus.APPROVED
        assert result.content_modifications.original_content == ""

    def test_record_carries_ids_and_audit_entry(self, engine):
        result = validate_content_compliance(CLEAN, "advisor-1", meeting_id="meeting-9")

        assert result.id.startswith("compliance-")
        assert result.content_id.startswith("content-")
        assert result.meeting_id == "meeting-9"
        assert result.validation_type == "pre_publication"
        assert len(result.audit_trail) == 1
        assert result.audit_trail[0].action == "created"
        assert result.audit_trail[0].performed_by == "system"

    def test_firm_policy_always_passes(self, engine):
        result = engine.validate_content("You should buy this fund now.", "advisor-1")
        assert result.compliance_checks.firm_policy_compliance.passed is True


class TestDetermineStatus:
    """Status rules applied to hand-built results."""

    def test_more_than_two_failures_require_modification(self):
        failing = ComplianceResult(passed=False, issues=["x"], severity=Severity.MEDIUM)
        results = [failing, failing, failing, ComplianceResult(passed=True)]
        assert ComplianceEngine.determine_status(results) == ValidationStatus.REQUIRES_MODIFICATION

    def test_two_medium_failures_are_pending(self):
        failing = ComplianceResult(passed=False, issues=["x"], severity=Severity.MEDIUM)
        results = [failing, failing, ComplianceResult(passed=True)]
        assert ComplianceEngine.determine_status(results) == ValidationStatus.PENDING

    def test_score_is_capped_at_100(self):
        critical = ComplianceResult(passed=False, issues=["x"], severity=Severity.CRITICAL)
        risk = ComplianceEngine.assess_risk([critical] * 5)
        assert risk.overall_risk_score == 100
        assert risk.risk_factors == ["x"] * 5


# ── Quick check & disclaimers ────────────────────────────────────────────────


class TestQuickCheck:
    def test_clean_content_is_compliant(self):
        result = quick_compliance_check(CLEAN)
        assert result.is_compliant is True
        assert result.issues == []
        assert result.risk_level == Severity.LOW

    def test_investment_wording_rates_high(self):
        result = quick_compliance_check("We recommend bonds for a 5% return")
        assert result.is_compliant is False
        assert result.risk_level == Severity.HIGH
        assert len(result.issues) == 2

    def test_client_names_rate_critical(self):
        assert quick_compliance_check("John Smith joined us").risk_level == Severity.CRITICAL

    def test_performance_alone_rates_medium(self):
        assert quick_compliance_check("Steady performance").risk_level == Severity.MEDIUM

    def test_guarantee_alone_rates_high(self):
        result = quick_compliance_check("We promise results")
        assert result.risk_level == Severity.HIGH
        assert result.issues == ["Content may contain guarantee language"]

    def test_none_is_compliant(self):
        assert quick_compliance_check(None).is_compliant is True


class TestDisclaimers:
    def test_all_three_disclaimers(self):
        disclaimers = generate_compliance_disclaimers("buy with guaranteed return")
        assert disclaimers == [INVESTMENT_DISCLAIMER, PERFORMANCE_DISCLAIMER, GUARANTEE_DISCLAIMER]

    def test_clean_content_needs_none(self):
        assert generate_compliance_disclaimers(CLEAN) == []


# ── Publishing risk score ────────────────────────────────────────────────────


class TestScoreContentRisk:
    def test_stock_tip_is_invalid(self):
        result = score_content_risk("Consider the stock tip I shared")
        assert result.is_valid is False
        assert result.risk_score == 60
        assert len(result.issues) == 1

    def test_product_mention_scores_without_issue(self):
        result = score_content_risk("Ask about IRA options.")
        assert result.is_valid is True
        assert result.risk_score == 20
        assert result.issues == []

    def test_percent_claim(self):
        result = score_content_risk("Expect a 12% return")
        assert result.risk_score == 25
        assert result.issues == ["Content may contain specific performance claims"]

    def test_disclaimer_phrase_suppresses_disclaimer_issue(self):
        result = score_content_risk("General investment advice. This is not investment advice.")
        assert "Investment-related content requires disclaimer" not in result.issues

    def test_score_is_capped(self):
        content = (
            "Buy this stock tip from Jane Doe: guaranteed returns with investment "
            "advice and a 12% return guarantee"
        )
        result = score_content_risk(content)
        assert result.risk_score == 100
        assert result.is_valid is False


def test_contains_any_is_case_insensitive_substring():
    assert contains_any("INVESTMENT strategy", ("invest",)) is True
    assert contains_any("", ("invest",)) is False
