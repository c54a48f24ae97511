"""
Workflow: Clinical documentation for one home-care visit.

Graph:
    patient-verification (auto)
      └──→ form-selection (auto)
             └──→ ai-assistance (manual)
                    └──→ compliance-check (auto)
                           └──→ quality-review (manual)
                                  └──→ electronic-signature (manual)
                                         └──→ submission (auto)

Auto steps complete on a virtual clock; the script completes the manual
steps itself, then validates the visit record against the DOH rules.
"""

import json
from datetime import date

from clinical_automation.compliance.validator import ComplianceValidator
from clinical_automation.registry.template_registry import TemplateRegistry
from clinical_automation.rules.doh import NINE_DOMAINS
from clinical_automation.scheduler import VirtualClock, WorkflowScheduler
from clinical_automation.utils.logging_config import setup_logging

MANUAL_STEPS = ["ai-assistance", "quality-review", "electronic-signature"]


def build_record() -> dict:
    return {
        "id": "rec-0001",
        "patient_id": "P-1001",
        "patient_emirates_id": "784-1985-1234567-8",
        "service_date": date.today().isoformat(),
        "service_time": "10:15",
        "service_location": "Patient home, Al Reem Island",
        "provider_id": "PR-77",
        "provider_name": "Nurse Layla Saeed",
        "provider_license": "DOH-RN-55821",
        "provider_license_expiry": date(date.today().year + 2, 1, 31).isoformat(),
        "document_type": "assessment",
        "clinical_findings": "Surgical wound clean and dry, no signs of infection",
        "interventions_provided": "Dressing changed, medication reconciliation completed",
        "electronic_signature": "signed:PR-77",
        "nine_domains_assessment": {d: "within normal limits" for d in NINE_DOMAINS},
    }


def main():
    setup_logging("INFO")

    registry = TemplateRegistry.with_builtins()
    clock = VirtualClock()
    scheduler = WorkflowScheduler(
        registry.instantiate("clinical-doc-workflow", "visit-0001"),
        clock,
        on_change=lambda wf: print(f"t={clock.now:>6.0f}  {wf.completion_rate:>3}% complete"),
    )

    clock.run_until_idle()
    for step_id in MANUAL_STEPS:
        print(f"Completing manual step: {step_id}")
        scheduler.complete_step(step_id)
        clock.run_until_idle()

    print(json.dumps(scheduler.workflow.model_dump(mode="json"), indent=2))

    result = ComplianceValidator().validate(build_record())
    print(f"DOH compliance passed: {result.passed}")
    for issue in result.issues:
        print(f"  [{issue.severity.value}] {issue.message}")


if __name__ == "__main__":
    main()
