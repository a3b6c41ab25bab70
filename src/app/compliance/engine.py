"""ComplianceEngine -- pre-publication review of advisor content.

Runs five families of checks over a piece of text and folds them into a
single ComplianceValidation: a risk score, an overall status, suggested
disclaimers and required edits, an escalation decision and an audit entry.

The engine is pure and deterministic apart from generated ids and
timestamps; it never calls an LLM or touches storage.

Exports:
    ComplianceEngine: The review engine.
    validate_content_compliance: Module-level convenience wrapper.
"""

from __future__ import annotations

import secrets
import time

import structlog

from src.app.compliance.rules import (
    CLIENT_NAME_PATTERN,
    FINRA_RULES,
    INVESTMENT_DISCLAIMER,
    PERFORMANCE_DISCLAIMER,
    SEC_RULES,
    SENSITIVE_PATTERNS,
    STATE_RULES,
    contains_any,
)
from src.app.compliance.schemas import (
    ApprovalWorkflow,
    AuditEntry,
    ComplianceChecks,
    ComplianceResult,
    ComplianceRule,
    ComplianceValidation,
    ContentModifications,
    RiskAssessment,
    Severity,
    ValidationStatus,
)
from src.app.core.dates import now_iso

logger = structlog.get_logger(__name__)

ESCALATION_TEAM = "compliance-team"
ESCALATION_THRESHOLD = 70

_SEVERITY_WEIGHTS = {
    Severity.CRITICAL: 40,
    Severity.HIGH: 25,
    Severity.MEDIUM: 15,
    Severity.LOW: 5,
}


def _generate_id(prefix: str) -> str:
    return f"{prefix}-{int(time.time() * 1000)}-{secrets.token_hex(5)[:9]}"


class ComplianceEngine:
    """Keyword and pattern based compliance reviewer.

    Scoring weights each check family by its severity, including passing
    checks (which rate "low"):

        score = min(100, 40*critical + 25*high + 15*medium + 5*low)

    Clean content therefore scores 25 (five low checks).

    Status:
        - rejected: any family rated critical
        - requires_modification: any high, or more than two failed families
        - pending: at least one failed family
        - approved: everything passed

    Content is escalated to the compliance team when the score exceeds 70
    or modification is required.
    """

    def validate_content(
        self,
        content: str | None,
        advisor_id: str,
        meeting_id: str | None = None,
    ) -> ComplianceValidation:
        """Review ``content`` and return the full validation record.

        Args:
            content: Text to review. None is treated as empty.
            advisor_id: Advisor the content belongs to.
            meeting_id: Optional meeting the content was generated from.

        Returns:
            ComplianceValidation with all checks, risk and workflow filled.
        """
        content = content or ""
        validation_id = _generate_id("compliance")

        checks = ComplianceChecks(
            finra_compliance=self._check_rules(content, FINRA_RULES),
            sec_compliance=self._check_rules(content, SEC_RULES),
            firm_policy_compliance=self._check_firm_policy(content, advisor_id),
            client_privacy_compliance=self._check_client_privacy(content),
            state_regulation_compliance=self._check_state_regulations(content),
        )
        results = checks.results()

        risk = self.assess_risk(results)
        status = self.determine_status(results)
        timestamp = now_iso()

        validation = ComplianceValidation(
            id=validation_id,
            content_id=_generate_id("content"),
            advisor_id=advisor_id,
            meeting_id=meeting_id,
            status=status,
            compliance_checks=checks,
            risk_assessment=risk,
            content_modifications=self._suggest_modifications(content, results),
            approval_workflow=self._approval_workflow(risk, status),
            audit_trail=[
                AuditEntry(
                    id=_generate_id("audit"),
                    action="created",
                    performed_by="system",
                    performed_at=timestamp,
                    details="Compliance validation created",
                )
            ],
            created_at=timestamp,
            updated_at=timestamp,
        )

        logger.info(
            "compliance.validation_completed",
            validation_id=validation_id,
            advisor_id=advisor_id,
            status=status.value,
            risk_score=risk.overall_risk_score,
        )
        return validation

    # ── Check families ──────────────────────────────────────────────────

    @staticmethod
    def _check_rules(content: str, rules: tuple[ComplianceRule, ...]) -> ComplianceResult:
        issues: list[str] = []
        violations: list[str] = []
        recommendations: list[str] = []
        severity = Severity.LOW

        for rule in rules:
            if not contains_any(content, rule.keywords):
                continue
            issues.append(rule.description)
            violations.append(rule.id)
            recommendations.append(f"Review content for {rule.description.lower()}")
            if rule.severity.rank > severity.rank:
                severity = rule.severity

        return ComplianceResult(
            passed=not issues,
            issues=issues,
            severity=severity,
            recommendations=recommendations,
            rule_violations=violations,
            required_actions=["Review and address compliance issues"] if issues else [],
        )

    @staticmethod
    def _check_firm_policy(content: str, advisor_id: str) -> ComplianceResult:
        # No per-firm policy source exists yet; every advisor passes.
        return ComplianceResult(passed=True)

    @staticmethod
    def _check_client_privacy(content: str) -> ComplianceResult:
        issues: list[str] = []
        violations: list[str] = []
        recommendations: list[str] = []

        if CLIENT_NAME_PATTERN.search(content):
            issues.append("Content may contain client names")
            violations.append("CLIENT_PRIVACY_001")
            recommendations.append("Remove or anonymize client names before publishing")

        if any(p.search(content) for p in SENSITIVE_PATTERNS):
            issues.append("Content may contain sensitive financial information")
            violations.append("CLIENT_PRIVACY_002")
            recommendations.append("Remove sensitive financial information before publishing")

        return ComplianceResult(
            passed=not issues,
            issues=issues,
            severity=Severity.CRITICAL if issues else Severity.LOW,
            recommendations=recommendations,
            rule_violations=violations,
        )

    @staticmethod
    def _check_state_regulations(content: str) -> ComplianceResult:
        result = ComplianceEngine._check_rules(content, STATE_RULES)
        return result.model_copy(
            update={
                "severity": Severity.MEDIUM if result.issues else Severity.LOW,
                "required_actions": [],
            }
        )

    # ── Aggregation ─────────────────────────────────────────────────────

    @staticmethod
    def assess_risk(results: list[ComplianceResult]) -> RiskAssessment:
        score = min(100, sum(_SEVERITY_WEIGHTS[r.severity] for r in results))
        level = max((r.severity for r in results), key=lambda s: s.rank, default=Severity.LOW)
        return RiskAssessment(
            overall_risk_score=score,
            risk_level=level,
            risk_factors=[issue for r in results if not r.passed for issue in r.issues],
            mitigation_required=level in (Severity.CRITICAL, Severity.HIGH),
        )

    @staticmethod
    def determine_status(results: list[ComplianceResult]) -> ValidationStatus:
        severities = [r.severity for r in results]
        failed = sum(1 for r in results if not r.passed)

        if Severity.CRITICAL in severities:
            return ValidationStatus.REJECTED
        if Severity.HIGH in severities or failed > 2:
            return ValidationStatus.REQUIRES_MODIFICATION
        if failed > 0:
            return ValidationStatus.PENDING
        return ValidationStatus.APPROVED

    @staticmethod
    def _suggest_modifications(
        content: str, results: list[ComplianceResult]
    ) -> ContentModifications:
        violations = {v for r in results for v in r.rule_violations}

        disclaimers = []
        if "FINRA_2212" in violations:
            disclaimers.append(INVESTMENT_DISCLAIMER)
        if "FINRA_2213" in violations:
            disclaimers.append(PERFORMANCE_DISCLAIMER)

        required_changes = []
        if "CLIENT_PRIVACY_001" in violations:
            required_changes.append("Remove or anonymize client names")
        if "CLIENT_PRIVACY_002" in violations:
            required_changes.append("Remove sensitive financial information")

        return ContentModifications(
            original_content=content,
            modified_content=content,
            injected_disclaimers=disclaimers,
            removed_content=required_changes,
        )

    @staticmethod
    def _approval_workflow(risk: RiskAssessment, status: ValidationStatus) -> ApprovalWorkflow:
        escalate = (
            risk.overall_risk_score > ESCALATION_THRESHOLD
            or status == ValidationStatus.REQUIRES_MODIFICATION
        )
        if not escalate:
            return ApprovalWorkflow()
        return ApprovalWorkflow(
            escalated_to=ESCALATION_TEAM,
            escalation_reason="High risk content requires review",
        )


_engine = ComplianceEngine()


def validate_content_compliance(
    content: str | None, advisor_id: str, meeting_id: str | None = None
) -> ComplianceValidation:
    return _engine.validate_content(content, advisor_id, meeting_id)
