"""DOH documentation rules for a clinical record.

Field presence, length and format live in ``DOH_FIELD_RULES``; checks that
need "now" or look across several keys are plain rule functions below.
"""

from collections.abc import Mapping
from datetime import date, datetime, timedelta, timezone
from typing import Any

from clinical_automation.config.settings import EMIRATES_ID_PATTERN
from clinical_automation.models.validation import IssueKind, Severity, ValidationIssue
from clinical_automation.rules.rule_table import FieldRule, is_blank
from clinical_automation.rules.ruleset import RuleContext, RuleSet

TIME_24H_PATTERN = r"([01]?[0-9]|2[0-3]):[0-5][0-9]"

NINE_DOMAINS = (
    "cardiovascular",
    "respiratory",
    "neurological",
    "musculoskeletal",
    "genitourinary",
    "integumentary",
    "gastrointestinal",
    "psychosocial",
    "cognitive",
)


def doh_field_rules(emirates_id_pattern: str) -> list[FieldRule]:
    return [
        FieldRule(field="patient_id", label="Patient ID"),
        FieldRule(field="service_date", label="Service date"),
        FieldRule(
            field="service_time",
            label="Service time",
            pattern=TIME_24H_PATTERN,
            pattern_hint="HH:MM (24-hour)",
        ),
        FieldRule(field="provider_id", label="Provider ID"),
        FieldRule(field="service_location", label="Service location"),
        FieldRule(field="provider_name", label="Provider name", min_length=2, text_only=True),
        FieldRule(
            field="provider_license",
            label="Provider license number",
            min_length=5,
            text_only=True,
        ),
        FieldRule(
            field="patient_emirates_id",
            label="Patient Emirates ID",
            pattern=emirates_id_pattern,
            pattern_hint="784-YYYY-XXXXXXX-X",
        ),
        FieldRule(
            field="clinical_findings",
            label="Clinical findings",
            min_length=10,
            text_only=True,
            message="Clinical findings must be documented for DOH compliance",
        ),
        FieldRule(
            field="interventions_provided",
            label="Interventions provided",
            min_length=10,
            text_only=True,
            message="Interventions provided must be documented for DOH compliance",
        ),
        FieldRule(
            field="electronic_signature",
            label="Electronic signature",
            severity=Severity.CRITICAL,
        ),
        FieldRule(
            field="document_type",
            label="Document type",
            message="Document type must be specified for DOH compliance",
        ),
    ]


DOH_FIELD_RULES = doh_field_rules(EMIRATES_ID_PATTERN)


def parse_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def parse_datetime(value: Any) -> datetime | None:
    """Parse to an aware datetime; date-only values become midnight UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def years_before(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year - years)
    except ValueError:  # 29 February
        return day.replace(year=day.year - years, day=28)


def service_date_window(record: Mapping[str, Any], context: RuleContext) -> list[ValidationIssue]:
    value = record.get("service_date")
    if is_blank(value):
        return []  # reported by the field table
    service_date = parse_date(value)
    if service_date is None:
        return [ValidationIssue(
            kind=IssueKind.FORMAT_ERROR.value,
            severity=Severity.MEDIUM,
            message="Invalid service date format",
            component="service_date",
            suggestion="Use an ISO date such as 2024-05-01",
        )]

    today = context.now.date()
    cfg = context.config
    if service_date > today + timedelta(days=cfg.max_future_days):
        return [ValidationIssue(
            kind=IssueKind.RANGE_ERROR.value,
            severity=Severity.MEDIUM,
            message=f"Service date cannot be more than {cfg.max_future_days} days in the future",
            component="service_date",
            suggestion="Check the service date",
        )]
    if service_date < years_before(today, cfg.max_past_years):
        unit = "year" if cfg.max_past_years == 1 else "years"
        return [ValidationIssue(
            kind=IssueKind.RANGE_ERROR.value,
            severity=Severity.MEDIUM,
            message=f"Service date cannot be more than {cfg.max_past_years} {unit} in the past",
            component="service_date",
            suggestion="Check the service date",
        )]
    return []


def license_expiry(record: Mapping[str, Any], context: RuleContext) -> list[ValidationIssue]:
    value = record.get("provider_license_expiry")
    if is_blank(value):
        return []
    expiry = parse_datetime(value)
    if expiry is None:
        return [ValidationIssue(
            kind=IssueKind.FORMAT_ERROR.value,
            severity=Severity.MEDIUM,
            message="Invalid provider license expiry date format",
            component="provider_license_expiry",
        )]
    if expiry <= context.now:
        return [ValidationIssue(
            kind=IssueKind.EXPIRED_CREDENTIAL.value,
            severity=Severity.CRITICAL,
            message=(
                "Provider license has expired. "
                "Cannot create documentation with expired license."
            ),
            component="provider_license_expiry",
            suggestion="Renew the provider license before documenting",
        )]
    return []


def nine_domains(record: Mapping[str, Any], context: RuleContext) -> list[ValidationIssue]:
    assessment = record.get("nine_domains_assessment")
    if not isinstance(assessment, Mapping):
        assessment = {}
    missing = [d for d in NINE_DOMAINS if is_blank(assessment.get(d))]
    if not missing:
        return []
    return [ValidationIssue(
        kind=IssueKind.INCOMPLETE_ASSESSMENT.value,
        severity=Severity.HIGH,
        message=f"DOH Nine Domains Assessment incomplete. Missing: {', '.join(missing)}",
        component="nine_domains_assessment",
        suggestion="Document an assessment for every domain",
    )]


def build_doh_ruleset(emirates_id_pattern: str | None = None) -> RuleSet:
    table = doh_field_rules(emirates_id_pattern) if emirates_id_pattern else DOH_FIELD_RULES
    return RuleSet.from_table(table).extend([service_date_window, license_expiry, nine_domains])
