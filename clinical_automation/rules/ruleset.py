from collections.abc import Callable, Iterable, Iterator, Mapping
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict

from clinical_automation.config.settings import ComplianceConfig
from clinical_automation.models.validation import ValidationIssue
from clinical_automation.rules.rule_table import FieldRule, check_field


class RuleContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    now: datetime
    config: ComplianceConfig = ComplianceConfig()

    @classmethod
    def current(cls, config: ComplianceConfig | None = None) -> "RuleContext":
        return cls(now=datetime.now(timezone.utc), config=config or ComplianceConfig())


Rule = Callable[[Mapping[str, Any], RuleContext], Iterable[ValidationIssue]]


def field_rule(row: FieldRule) -> Rule:
    def rule(record: Mapping[str, Any], context: RuleContext) -> list[ValidationIssue]:
        return check_field(row, record)

    rule.__name__ = f"field:{row.field}"
    return rule


class RuleSet:
    """Ordered, independent rules. Every rule runs; issue order follows rule order."""

    def __init__(self, rules: Iterable[Rule] = ()) -> None:
        self._rules: list[Rule] = list(rules)

    @classmethod
    def from_table(cls, table: Iterable[FieldRule]) -> "RuleSet":
        return cls(field_rule(row) for row in table)

    def add(self, rule: Rule) -> "RuleSet":
        self._rules.append(rule)
        return self

    def extend(self, rules: Iterable[Rule]) -> "RuleSet":
        self._rules.extend(rules)
        return self

    def run(self, record: Mapping[str, Any], context: RuleContext) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        for rule in self._rules:
            issues.extend(rule(record, context))
        return issues

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)
