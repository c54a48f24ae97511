from datetime import datetime, timezone

import pytest

from clinical_automation.compliance.validator import ComplianceValidator
from clinical_automation.health.aggregator import HealthScoreAggregator
from clinical_automation.health.categories import OPTIONAL_FEATURES, REQUIRED_FORMS
from clinical_automation.models.health import HealthCategory, PlatformSnapshot, Visit
from clinical_automation.models.validation import IssueKind, Severity
from clinical_automation.models.workflow import ClinicalWorkflow, StepStatus, WorkflowStep
from clinical_automation.rules.doh import NINE_DOMAINS

NOW = datetime(2024, 5, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def validator():
    return ComplianceValidator(now=lambda: NOW)


@pytest.fixture
def snapshot():
    record = {
        "id": "rec-1",
        "patient_id": "P-001",
        "service_date": "2024-05-09",
        "service_time": "09:30",
        "provider_id": "PR-01",
        "service_location": "Patient home",
        "provider_name": "Dr. Amal Hassan",
        "provider_license": "DOH-12345",
        "patient_emirates_id": "784-1985-1234567-8",
        "clinical_findings": "Vital signs stable, wound healing well",
        "interventions_provided": "Wound dressing changed, caregiver educated",
        "electronic_signature": "signed:PR-01",
        "document_type": "assessment",
        "nine_domains_assessment": {d: "within normal limits" for d in NINE_DOMAINS},
    }
    return PlatformSnapshot(
        workflows=[ClinicalWorkflow(id="w1", name="w", steps=(
            WorkflowStep(id="A", auto_trigger=True, status=StepStatus.COMPLETED),
        ))],
        records=[record],
        integrated_forms=list(REQUIRED_FORMS),
        enabled_features=list(OPTIONAL_FEATURES),
        journeys={"P-001": ["referral", "intake"]},
        visits=[Visit(visit_id="v1", patient_id="P-001", record_id="rec-1", signature_captured=True)],
    )


def _boom(snapshot):
    raise RuntimeError("forms registry unavailable")


def test_healthy_platform_scores_100(validator, snapshot):
    report = HealthScoreAggregator(validator=validator).run(snapshot)
    assert list(report.categories) == list(HealthCategory)
    assert all(c.score == 100 for c in report.categories.values())
    assert report.overall_score == 100
    assert report.issues == ()


def test_failing_category_scores_zero_and_others_still_run(validator, snapshot):
    aggregator = HealthScoreAggregator(
        checks={HealthCategory.FORMS_INTEGRATION: _boom}, validator=validator
    )
    report = aggregator.run(snapshot)

    assert len(report.categories) == 6
    forms = report.categories[HealthCategory.FORMS_INTEGRATION]
    assert forms.score == 0
    assert len(forms.issues) == 1
    assert forms.issues[0].kind == IssueKind.SYSTEM_ERROR
    assert forms.issues[0].severity == Severity.CRITICAL
    assert "forms registry unavailable" in forms.issues[0].message

    assert report.overall_score == pytest.approx(500 / 6)
    assert report.display_score == 83


def test_overall_is_mean_of_category_scores(validator, snapshot):
    degraded = snapshot.model_copy(update={"integrated_forms": [], "enabled_features": []})
    report = HealthScoreAggregator(validator=validator).run(degraded)
    scores = [c.score for c in report.categories.values()]
    assert report.categories[HealthCategory.FORMS_INTEGRATION].score == 5
    assert report.overall_score == pytest.approx(sum(scores) / 6)
    assert report.display_score == 84  # 505 / 6 = 84.17


def test_recommendations_rolled_up_without_duplicates(validator, snapshot):
    def twice(_):
        from clinical_automation.health.categories import finding
        return [
            finding(HealthCategory.FORMS_INTEGRATION, "x", Severity.LOW, "one", 1, "Do it"),
            finding(HealthCategory.FORMS_INTEGRATION, "x", Severity.LOW, "two", 1, "Do it"),
        ]

    report = HealthScoreAggregator(
        checks={HealthCategory.FORMS_INTEGRATION: twice}, validator=validator
    ).run(snapshot)
    assert report.recommendations == ("Do it",)
    assert len(report.issues) == 2


def test_report_serializes_with_category_keys(validator, snapshot):
    data = HealthScoreAggregator(validator=validator).run(snapshot).model_dump(mode="json")
    assert set(data["categories"]) == {c.value for c in HealthCategory}
    assert data["display_score"] == 100
