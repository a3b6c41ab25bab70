"""Pydantic v2 schemas for compliance validation results."""

from __future__ import annotations

from enum import Enum

from pydantic import Field

from src.app.core.schemas import CamelModel


class Severity(str, Enum):
    """Severity of a single check, ordered low < medium < high < critical."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.LOW: 0,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}


class ValidationStatus(str, Enum):
    APPROVED = "approved"
    PENDING = "pending"
    REQUIRES_MODIFICATION = "requires_modification"
    REJECTED = "rejected"


class ComplianceRule(CamelModel):
    """A keyword rule: any keyword found (case-insensitive) is a violation."""

    id: str
    description: str
    keywords: tuple[str, ...]
    severity: Severity


class ComplianceResult(CamelModel):
    """Outcome of one family of checks (FINRA, SEC, ...)."""

    passed: bool
    issues: list[str] = Field(default_factory=list)
    severity: Severity = Severity.LOW
    recommendations: list[str] = Field(default_factory=list)
    rule_violations: list[str] = Field(default_factory=list)
    required_actions: list[str] = Field(default_factory=list)


class ComplianceChecks(CamelModel):
    finra_compliance: ComplianceResult
    sec_compliance: ComplianceResult
    firm_policy_compliance: ComplianceResult
    client_privacy_compliance: ComplianceResult
    state_regulation_compliance: ComplianceResult

    def results(self) -> list[ComplianceResult]:
        return [
            self.finra_compliance,
            self.sec_compliance,
            self.firm_policy_compliance,
            self.client_privacy_compliance,
            self.state_regulation_compliance,
        ]


class RiskAssessment(CamelModel):
    overall_risk_score: int
    risk_level: Severity
    risk_factors: list[str] = Field(default_factory=list)
    mitigation_required: bool = False


class ContentModifications(CamelModel):
    original_content: str
    modified_content: str
    injected_disclaimers: list[str] = Field(default_factory=list)
    removed_content: list[str] = Field(default_factory=list)
    added_warnings: list[str] = Field(default_factory=list)


class ApprovalWorkflow(CamelModel):
    approved_by: str | None = None
    approved_at: str | None = None
    reviewed_by: str | None = None
    reviewed_at: str | None = None
    escalated_to: str | None = None
    escalation_reason: str | None = None


class AuditEntry(CamelModel):
    id: str
    action: str
    performed_by: str
    performed_at: str
    details: str


class ComplianceValidation(CamelModel):
    """Full pre-publication review of one piece of content."""

    id: str
    content_id: str
    advisor_id: str
    meeting_id: str | None = None
    validation_type: str = "pre_publication"
    status: ValidationStatus
    compliance_checks: ComplianceChecks
    risk_assessment: RiskAssessment
    content_modifications: ContentModifications
    approval_workflow: ApprovalWorkflow
    audit_trail: list[AuditEntry] = Field(default_factory=list)
    created_at: str
    updated_at: str


class QuickCheckResult(CamelModel):
    is_compliant: bool
    issues: list[str] = Field(default_factory=list)
    risk_level: Severity = Severity.LOW


class ContentRiskResult(CamelModel):
    """Publishing-gate score used before posting to LinkedIn."""

    is_valid: bool
    issues: list[str] = Field(default_factory=list)
    risk_score: int = 0
