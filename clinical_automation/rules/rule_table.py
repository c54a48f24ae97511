"""Declarative field rules: one table row per field, checked uniformly."""

import re
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict

from clinical_automation.models.validation import IssueKind, Severity, ValidationIssue


class FieldRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    label: str
    required: bool = True
    min_length: int | None = None
    text_only: bool = False  # reject non-string values instead of coercing them
    pattern: str | None = None
    pattern_hint: str = ""  # shown in the format_error message, e.g. "HH:MM"
    message: str = ""  # custom message for a missing value
    severity: Severity = Severity.HIGH
    custom: Callable[[Any], str | None] | None = None  # extra check on a present value


def is_blank(value: Any) -> bool:
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    return False


def check_field(rule: FieldRule, record: Mapping[str, Any]) -> list[ValidationIssue]:
    """Run one table row against the record. At most one issue per row."""
    value = record.get(rule.field)

    if is_blank(value):
        if not rule.required:
            return []
        return [_issue(
            rule,
            IssueKind.MISSING_REQUIRED_FIELD,
            rule.message or f"{rule.label} is required for DOH compliance",
            f"Provide {rule.label.lower()}",
        )]

    if rule.text_only and not isinstance(value, str):
        return [_issue(
            rule,
            IssueKind.FORMAT_ERROR,
            f"{rule.label} must be text",
            f"Enter {rule.label.lower()} as text",
        )]

    text = value.strip() if isinstance(value, str) else str(value)

    if rule.min_length is not None and len(text) < rule.min_length:
        return [_issue(
            rule,
            IssueKind.LENGTH_ERROR,
            f"{rule.label} must be at least {rule.min_length} characters",
            f"Expand {rule.label.lower()} to {rule.min_length} or more characters",
        )]

    if rule.pattern is not None and not re.fullmatch(rule.pattern, text):
        hint = f". Expected: {rule.pattern_hint}" if rule.pattern_hint else ""
        return [_issue(
            rule,
            IssueKind.FORMAT_ERROR,
            f"Invalid {rule.label} format{hint}",
            f"Correct {rule.label.lower()} to the expected format",
            severity=Severity.MEDIUM,
        )]

    if rule.custom is not None:
        err = rule.custom(value)
        if err:
            return [_issue(rule, IssueKind.FORMAT_ERROR, err, None, severity=Severity.MEDIUM)]

    return []


def _issue(
    rule: FieldRule,
    kind: IssueKind,
    message: str,
    suggestion: str | None,
    severity: Severity | None = None,
) -> ValidationIssue:
    return ValidationIssue(
        kind=kind.value,
        severity=severity or rule.severity,
        message=message,
        component=rule.field,
        suggestion=suggestion,
    )
