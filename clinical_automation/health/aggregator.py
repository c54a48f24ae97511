from collections.abc import Mapping
from functools import partial

from loguru import logger

from clinical_automation.compliance.validator import ComplianceValidator
from clinical_automation.health.categories import (
    CategoryCheck,
    bedside_visit_integration,
    build_report,
    compliance_alignment,
    dedupe,
    forms_integration,
    patient_journey_tracking,
    records_integrity,
    workflow_robustness,
)
from clinical_automation.models.health import (
    CategoryReport,
    HealthCategory,
    HealthReport,
    PlatformSnapshot,
)
from clinical_automation.models.validation import system_error


def default_checks(validator: ComplianceValidator | None = None) -> dict[HealthCategory, CategoryCheck]:
    validator = validator or ComplianceValidator()
    return {
        HealthCategory.RECORDS_INTEGRITY: partial(records_integrity, validator=validator),
        HealthCategory.FORMS_INTEGRATION: forms_integration,
        HealthCategory.WORKFLOW_ROBUSTNESS: workflow_robustness,
        HealthCategory.COMPLIANCE_ALIGNMENT: partial(compliance_alignment, validator=validator),
        HealthCategory.PATIENT_JOURNEY_TRACKING: patient_journey_tracking,
        HealthCategory.BEDSIDE_VISIT_INTEGRATION: bedside_visit_integration,
    }


class HealthScoreAggregator:
    """Runs every category check and always returns a full six-category report.

    A check that raises scores 0 and contributes a single ``system_error``
    issue; the remaining categories are unaffected.
    """

    def __init__(
        self,
        checks: Mapping[HealthCategory, CategoryCheck] | None = None,
        validator: ComplianceValidator | None = None,
    ) -> None:
        resolved = default_checks(validator)
        if checks:
            resolved.update(checks)
        self._checks = resolved

    def run(self, snapshot: PlatformSnapshot) -> HealthReport:
        categories: dict[HealthCategory, CategoryReport] = {}
        for category in HealthCategory:
            categories[category] = self._run_category(category, snapshot)

        scores = [report.score for report in categories.values()]
        overall = sum(scores) / len(scores)
        report = HealthReport(
            categories=categories,
            overall_score=overall,
            issues=tuple(i for r in categories.values() for i in r.issues),
            recommendations=dedupe(rec for r in categories.values() for rec in r.recommendations),
        )
        logger.info(
            f"Health check: overall {report.display_score}% "
            f"({len(report.issues)} issue(s) across {len(categories)} categories)"
        )
        return report

    def _run_category(self, category: HealthCategory, snapshot: PlatformSnapshot) -> CategoryReport:
        try:
            findings = self._checks[category](snapshot)
            return build_report(list(findings))
        except Exception as e:
            logger.exception(f"Health check category {category.value} failed")
            return CategoryReport(
                score=0,
                issues=(system_error(category.value, e),),
                recommendations=(f"Investigate the failing {category.value} check",),
            )
