"""Dependency graph over the steps of one workflow template."""

from collections.abc import Callable

from clinical_automation.graph.topological_sort import sort as topo_sort
from clinical_automation.graph.validator import validate
from clinical_automation.models.workflow import ClinicalWorkflow, StepStatus, WorkflowStep


StatusLookup = Callable[[str], StepStatus | None]


class StepGraph:
    """Validated view of a workflow's dependencies.

    Construction raises ``WorkflowConfigurationError`` for duplicate ids,
    unknown dependencies and cycles, so a graph that exists is a DAG.
    Statuses are not part of the graph; queries take a lookup instead.
    """

    def __init__(self, workflow: ClinicalWorkflow) -> None:
        validate(workflow)
        self._steps: tuple[WorkflowStep, ...] = workflow.steps
        self._dependents: dict[str, list[str]] = {s.id: [] for s in workflow.steps}
        for step in workflow.steps:
            for dep in step.dependencies:
                self._dependents[dep].append(step.id)
        self._order = topo_sort(workflow)

    @staticmethod
    def is_satisfied(step: WorkflowStep, status_of: StatusLookup) -> bool:
        return all(status_of(dep) == StepStatus.COMPLETED for dep in step.dependencies)

    def roots(self) -> list[WorkflowStep]:
        return [s for s in self._steps if not s.dependencies]

    def dependents(self, step_id: str) -> list[str]:
        return list(self._dependents.get(step_id, []))

    def order(self) -> list[str]:
        return list(self._order)

    def __contains__(self, step_id: str) -> bool:
        return step_id in self._dependents

    def __len__(self) -> int:
        return len(self._steps)
