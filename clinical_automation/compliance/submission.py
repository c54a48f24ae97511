from collections.abc import Mapping
from typing import Any

from loguru import logger

from clinical_automation.compliance.validator import ComplianceValidator
from clinical_automation.models.validation import ValidationResult, system_error
from clinical_automation.ports import PersistenceResult, PersistenceService


def submit_record(
    record: Mapping[str, Any],
    validator: ComplianceValidator,
    persistence: PersistenceService,
) -> ValidationResult:
    """Validate, then save. A failed save becomes one critical issue, never an exception."""
    result = validator.validate(record)
    if not result.passed:
        return result

    try:
        saved = persistence.save(record)
    except Exception as e:
        logger.exception(f"Saving record for patient {record.get('patient_id')} failed")
        return ValidationResult(issues=(system_error("persistence", e),))

    if not isinstance(saved, PersistenceResult):
        saved = PersistenceResult.model_validate(saved)
    if not saved.ok:
        logger.warning(f"Persistence rejected record: {saved.error}")
        return ValidationResult(issues=(system_error("persistence", saved.error or "unknown error"),))
    return result
