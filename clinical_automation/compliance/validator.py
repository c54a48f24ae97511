from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Any

from loguru import logger

from clinical_automation.config.settings import ComplianceConfig
from clinical_automation.models.validation import Severity, ValidationResult
from clinical_automation.rules.doh import build_doh_ruleset
from clinical_automation.rules.ruleset import RuleContext, RuleSet


class ComplianceValidator:
    """Runs a RuleSet over a clinical record and reports every issue found.

    No rule short-circuits another, so a record with five problems gets
    five issues back in rule order. ``on_ready`` is called with the record
    when it passes (the "ready for submission" signal).
    """

    def __init__(
        self,
        ruleset: RuleSet | None = None,
        config: ComplianceConfig | None = None,
        now: Callable[[], datetime] | None = None,
        on_ready: Callable[[Mapping[str, Any]], None] | None = None,
    ) -> None:
        self.config = config or ComplianceConfig()
        if ruleset is None:
            ruleset = build_doh_ruleset(self.config.emirates_id_pattern)
        self.ruleset = ruleset
        self._now = now or (lambda: datetime.now(timezone.utc))
        self._on_ready = on_ready

    def validate(self, record: Mapping[str, Any]) -> ValidationResult:
        context = RuleContext(now=self._now(), config=self.config)
        issues = self.ruleset.run(record, context)
        # Any issue at all, info included, blocks submission
        result = ValidationResult(issues=tuple(issues), threshold=Severity.INFO)
        if result.passed:
            logger.debug(f"Record {record.get('patient_id')} passed compliance validation")
            if self._on_ready:
                self._on_ready(record)
        else:
            logger.debug(
                f"Record {record.get('patient_id')} failed compliance validation "
                f"with {len(issues)} issue(s)"
            )
        return result
