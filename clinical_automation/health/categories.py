"""The six category checks behind the platform health score.

Each check looks at a ``PlatformSnapshot`` and returns ``Finding`` values.
A finding pairs an issue (whose severity is only a display label) with the
points it costs; ``score_findings`` turns findings into a 0-100 score.
"""

from collections import Counter
from collections.abc import Callable, Iterable

from pydantic import BaseModel, ConfigDict

from clinical_automation.compliance.validator import ComplianceValidator
from clinical_automation.graph.step_graph import StepGraph
from clinical_automation.models.health import (
    CategoryReport,
    HealthCategory,
    PlatformSnapshot,
)
from clinical_automation.models.validation import Severity, ValidationIssue
from clinical_automation.models.workflow import StepStatus
from clinical_automation.utils.exceptions import WorkflowConfigurationError

MAX_SCORE = 100


class Finding(BaseModel):
    model_config = ConfigDict(frozen=True)

    issue: ValidationIssue
    penalty: int
    recommendation: str | None = None


def finding(
    category: HealthCategory,
    kind: str,
    severity: Severity,
    message: str,
    penalty: int,
    recommendation: str | None = None,
) -> Finding:
    return Finding(
        issue=ValidationIssue(
            kind=kind,
            severity=severity,
            message=message,
            component=category.value,
            suggestion=recommendation,
        ),
        penalty=penalty,
        recommendation=recommendation,
    )


def score_findings(findings: Iterable[Finding]) -> int:
    return max(0, MAX_SCORE - sum(f.penalty for f in findings))


def dedupe(items: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(items))


def build_report(findings: list[Finding]) -> CategoryReport:
    return CategoryReport(
        score=score_findings(findings),
        issues=tuple(f.issue for f in findings),
        recommendations=dedupe(f.recommendation for f in findings if f.recommendation),
    )


CategoryCheck = Callable[[PlatformSnapshot], list[Finding]]


# --- Records integrity ---

def records_integrity(
    snapshot: PlatformSnapshot, validator: ComplianceValidator | None = None
) -> list[Finding]:
    cat = HealthCategory.RECORDS_INTEGRITY
    validator = validator or ComplianceValidator()
    findings: list[Finding] = []

    if not snapshot.config.audit_trail_enabled:
        findings.append(finding(
            cat, "audit_trail_disabled", Severity.CRITICAL,
            "Audit trail is disabled for clinical records", 20,
            "Enable the clinical record audit trail",
        ))
    if not snapshot.config.backup_enabled:
        findings.append(finding(
            cat, "backup_disabled", Severity.HIGH,
            "Automated record backup is disabled", 15,
            "Enable automated backup and recovery for clinical records",
        ))

    ids = Counter(r.get("id") for r in snapshot.records if r.get("id"))
    for record_id, count in ids.items():
        if count > 1:
            findings.append(finding(
                cat, "duplicate_record", Severity.HIGH,
                f"Record {record_id} appears {count} times", 15,
                "Merge or remove duplicate clinical records",
            ))

    for record in snapshot.records:
        result = validator.validate(record)
        if not result.passed:
            label = record.get("id") or record.get("patient_id") or "<unidentified>"
            findings.append(finding(
                cat, "non_compliant_record", Severity.HIGH,
                f"Record {label} has {len(result.issues)} compliance issue(s)", 5,
                "Correct records that fail DOH documentation rules",
            ))
    return findings


# --- Forms integration ---

REQUIRED_FORMS = (
    "referral",
    "assessment",
    "homebound_assessment",
    "monitoring",
    "care_plan",
)

OPTIONAL_FEATURES = (
    "voice_input",
    "camera_capture",
    "offline_sync",
    "electronic_signature",
)


def forms_integration(snapshot: PlatformSnapshot) -> list[Finding]:
    cat = HealthCategory.FORMS_INTEGRATION
    findings: list[Finding] = []
    integrated = set(snapshot.integrated_forms)
    for form in REQUIRED_FORMS:
        if form not in integrated:
            findings.append(finding(
                cat, "missing_form_integration", Severity.HIGH,
                f"Required clinical form '{form}' is not integrated", 15,
                "Integrate every required DOH clinical form",
            ))
    enabled = set(snapshot.enabled_features)
    for feature in OPTIONAL_FEATURES:
        if feature not in enabled:
            findings.append(finding(
                cat, "missing_optional_feature", Severity.LOW,
                f"Optional documentation feature '{feature}' is not enabled", 5,
                f"Enable {feature.replace('_', ' ')} for faster documentation",
            ))
    return findings


# --- Workflow robustness ---

MANUAL_STEP_RATIO_LIMIT = 0.3


def workflow_robustness(snapshot: PlatformSnapshot) -> list[Finding]:
    cat = HealthCategory.WORKFLOW_ROBUSTNESS
    findings: list[Finding] = []

    if not snapshot.workflows:
        return [finding(
            cat, "no_workflows", Severity.CRITICAL,
            "No clinical workflows are configured", 30,
            "Instantiate the clinical documentation workflow",
        )]

    if not snapshot.automation_enabled:
        findings.append(finding(
            cat, "automation_disabled", Severity.MEDIUM,
            "Workflow automation is disabled", 10,
            "Enable workflow automation",
        ))

    steps = [s for w in snapshot.workflows for s in w.steps]
    manual = sum(1 for s in steps if not s.auto_trigger)
    if steps and manual > len(steps) * MANUAL_STEP_RATIO_LIMIT:
        findings.append(finding(
            cat, "manual_heavy", Severity.MEDIUM,
            f"{manual} of {len(steps)} workflow steps need manual completion", 8,
            "Automate repetitive manual workflow steps",
        ))

    for workflow in snapshot.workflows:
        try:
            StepGraph(workflow)
        except WorkflowConfigurationError as e:
            findings.append(finding(
                cat, "malformed_workflow", Severity.CRITICAL,
                f"Workflow {workflow.id} is malformed: {e}", 20,
                "Fix the dependency structure of malformed workflows",
            ))
            continue
        for step in workflow.steps:
            if step.status != StepStatus.PENDING:
                continue
            skipped = [d for d in step.dependencies
                       if workflow.status_of(d) == StepStatus.SKIPPED]
            if skipped:
                findings.append(finding(
                    cat, "blocked_step", Severity.HIGH,
                    f"Step {step.id} in workflow {workflow.id} can never start: "
                    f"{', '.join(skipped)} was skipped", 12,
                    "Complete or replace workflows with blocked steps",
                ))
    return findings


# --- Compliance alignment ---

FRAMEWORK_PENALTIES: dict[str, tuple[int, Severity]] = {
    "doh": (25, Severity.CRITICAL),
    "jawda": (10, Severity.HIGH),
    "daman": (10, Severity.HIGH),
    "adhics": (10, Severity.MEDIUM),
}

RECORD_PASS_RATE_TARGET = 0.95


def compliance_alignment(
    snapshot: PlatformSnapshot, validator: ComplianceValidator | None = None
) -> list[Finding]:
    cat = HealthCategory.COMPLIANCE_ALIGNMENT
    findings: list[Finding] = []
    enabled = {f.lower() for f in snapshot.config.compliance_frameworks}
    for framework, (penalty, severity) in FRAMEWORK_PENALTIES.items():
        if framework not in enabled:
            findings.append(finding(
                cat, "framework_not_enabled", severity,
                f"{framework.upper()} compliance monitoring is not enabled", penalty,
                f"Enable automated {framework.upper()} compliance monitoring",
            ))

    if snapshot.records:
        validator = validator or ComplianceValidator()
        passed = sum(1 for r in snapshot.records if validator.validate(r).passed)
        rate = passed / len(snapshot.records)
        if rate < RECORD_PASS_RATE_TARGET:
            findings.append(finding(
                cat, "low_record_pass_rate", Severity.HIGH,
                f"Only {rate:.0%} of records pass DOH validation", 15,
                "Ensure full DOH compliance and documentation",
            ))
    return findings


# --- Patient journey tracking ---

JOURNEY_STAGES = (
    "referral",
    "intake",
    "assessment",
    "care_plan",
    "service_delivery",
    "discharge",
)


def patient_journey_tracking(snapshot: PlatformSnapshot) -> list[Finding]:
    cat = HealthCategory.PATIENT_JOURNEY_TRACKING
    if not snapshot.config.journey_tracking_enabled:
        return [finding(
            cat, "journey_tracking_disabled", Severity.CRITICAL,
            "Patient journey tracking is disabled", 25,
            "Enable patient journey tracking",
        )]
    if not snapshot.journeys:
        return [finding(
            cat, "no_journeys", Severity.HIGH,
            "No patient journeys are being tracked", 20,
            "Record journey stages for active patients",
        )]

    findings: list[Finding] = []
    position = {stage: i for i, stage in enumerate(JOURNEY_STAGES)}
    for patient_id, stages in snapshot.journeys.items():
        unknown = [s for s in stages if s not in position]
        if unknown:
            findings.append(finding(
                cat, "unknown_journey_stage", Severity.LOW,
                f"Patient {patient_id} has unknown journey stage(s): {', '.join(unknown)}", 3,
                "Map custom journey stages onto the standard stages",
            ))
        indices = [position[s] for s in stages if s in position]
        if indices != sorted(indices):
            findings.append(finding(
                cat, "journey_out_of_order", Severity.MEDIUM,
                f"Patient {patient_id} journey stages are out of order", 5,
                "Review journey events recorded out of sequence",
            ))
        elif indices and set(range(indices[-1] + 1)) - set(indices):
            skipped = [JOURNEY_STAGES[i] for i in range(indices[-1] + 1) if i not in indices]
            findings.append(finding(
                cat, "journey_gap", Severity.MEDIUM,
                f"Patient {patient_id} journey skipped: {', '.join(skipped)}", 5,
                "Document every journey stage before moving on",
            ))
    return findings


# --- Bedside visit integration ---

def bedside_visit_integration(snapshot: PlatformSnapshot) -> list[Finding]:
    cat = HealthCategory.BEDSIDE_VISIT_INTEGRATION
    findings: list[Finding] = []
    if not snapshot.config.mobile_capture_enabled:
        findings.append(finding(
            cat, "mobile_capture_disabled", Severity.LOW,
            "Bedside mobile capture is disabled", 10,
            "Enable mobile capture for bedside documentation",
        ))
    if not snapshot.visits:
        findings.append(finding(
            cat, "no_visits", Severity.LOW,
            "No bedside visits are recorded", 5,
            "Log bedside visits against clinical records",
        ))
        return findings

    record_ids = {r.get("id") for r in snapshot.records if r.get("id")}
    for visit in snapshot.visits:
        if not visit.completed:
            continue
        if visit.record_id is None or visit.record_id not in record_ids:
            findings.append(finding(
                cat, "visit_without_record", Severity.HIGH,
                f"Visit {visit.visit_id} for patient {visit.patient_id} "
                "has no linked clinical record", 8,
                "Link every completed visit to its clinical record",
            ))
        if not visit.signature_captured:
            findings.append(finding(
                cat, "visit_without_signature", Severity.MEDIUM,
                f"Visit {visit.visit_id} has no bedside signature", 5,
                "Capture the patient signature at the bedside",
            ))
    return findings
