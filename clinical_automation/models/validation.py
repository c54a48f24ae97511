from enum import Enum

from pydantic import BaseModel, ConfigDict, computed_field, field_validator


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"

    @property
    def rank(self) -> int:
        """Higher is more severe."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.INFO: 0,
    Severity.LOW: 1,
    Severity.MEDIUM: 2,
    Severity.HIGH: 3,
    Severity.CRITICAL: 4,
}


class IssueKind(str, Enum):
    MISSING_REQUIRED_FIELD = "missing_required_field"
    LENGTH_ERROR = "length_error"
    FORMAT_ERROR = "format_error"
    RANGE_ERROR = "range_error"
    EXPIRED_CREDENTIAL = "expired_credential"
    INCOMPLETE_ASSESSMENT = "incomplete_assessment"
    SYSTEM_ERROR = "system_error"


class ValidationIssue(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: str
    severity: Severity
    message: str
    component: str | None = None
    suggestion: str | None = None

    @field_validator("severity", mode="before")
    @classmethod
    def _warning_is_info(cls, value):
        if value == "warning":
            return Severity.INFO
        return value


class ValidationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    issues: tuple[ValidationIssue, ...] = ()
    score: int | None = None
    threshold: Severity = Severity.LOW

    @computed_field  # type: ignore[prop-decorator]
    @property
    def passed(self) -> bool:
        return not any(i.severity.rank >= self.threshold.rank for i in self.issues)


def system_error(component: str, exc: BaseException | str) -> ValidationIssue:
    """The single synthetic issue that stands in for a unit that failed to run."""
    detail = exc if isinstance(exc, str) else f"{type(exc).__name__}: {exc}"
    return ValidationIssue(
        kind=IssueKind.SYSTEM_ERROR.value,
        severity=Severity.CRITICAL,
        message=f"{component} check failed to run ({detail})",
        component=component,
        suggestion="Investigate the failing check and re-run the validation",
    )


def sort_by_severity(issues) -> list[ValidationIssue]:
    """Most severe first; stable within a severity."""
    return sorted(issues, key=lambda i: -i.severity.rank)
