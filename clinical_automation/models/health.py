from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, computed_field

from clinical_automation.models.validation import ValidationIssue
from clinical_automation.models.workflow import ClinicalWorkflow, round_half_up


class HealthCategory(str, Enum):
    RECORDS_INTEGRITY = "records_integrity"
    FORMS_INTEGRATION = "forms_integration"
    WORKFLOW_ROBUSTNESS = "workflow_robustness"
    COMPLIANCE_ALIGNMENT = "compliance_alignment"
    PATIENT_JOURNEY_TRACKING = "patient_journey_tracking"
    BEDSIDE_VISIT_INTEGRATION = "bedside_visit_integration"


class PlatformConfig(BaseModel):
    audit_trail_enabled: bool = True
    backup_enabled: bool = True
    journey_tracking_enabled: bool = True
    mobile_capture_enabled: bool = True
    compliance_frameworks: list[str] = ["doh", "jawda", "daman", "adhics"]


class Visit(BaseModel):
    visit_id: str
    patient_id: str
    record_id: str | None = None
    signature_captured: bool = False
    completed: bool = True


class PlatformSnapshot(BaseModel):
    """Everything the category validators are allowed to look at."""

    config: PlatformConfig = PlatformConfig()
    automation_enabled: bool = True
    workflows: list[ClinicalWorkflow] = []
    records: list[dict[str, Any]] = []
    integrated_forms: list[str] = []
    enabled_features: list[str] = []
    journeys: dict[str, list[str]] = {}  # patient_id -> stages in the order they were reached
    visits: list[Visit] = []


class CategoryReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: int
    issues: tuple[ValidationIssue, ...] = ()
    recommendations: tuple[str, ...] = ()


class HealthReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    categories: dict[HealthCategory, CategoryReport]
    overall_score: float
    issues: tuple[ValidationIssue, ...] = ()
    recommendations: tuple[str, ...] = ()

    @computed_field  # type: ignore[prop-decorator]
    @property
    def display_score(self) -> int:
        return round_half_up(self.overall_score)
