from clinical_automation.models.workflow import ClinicalWorkflow
from clinical_automation.utils.exceptions import WorkflowConfigurationError


def validate(workflow: ClinicalWorkflow) -> None:
    _check_unique_step_ids(workflow)
    _check_valid_dependencies(workflow)
    _check_no_cycles(workflow)


def _check_unique_step_ids(workflow: ClinicalWorkflow) -> None:
    seen: set[str] = set()
    for step in workflow.steps:
        if step.id in seen:
            raise WorkflowConfigurationError(
                f"Workflow {workflow.id} has duplicate step id: {step.id}"
            )
        seen.add(step.id)


def _check_valid_dependencies(workflow: ClinicalWorkflow) -> None:
    step_ids = {s.id for s in workflow.steps}
    for step in workflow.steps:
        for dep in step.dependencies:
            if dep not in step_ids:
                raise WorkflowConfigurationError(
                    f"Step {step.id} depends on unknown step: {dep}"
                )


def _check_no_cycles(workflow: ClinicalWorkflow) -> None:
    # Edges run dependency -> dependent
    adj: dict[str, list[str]] = {s.id: [] for s in workflow.steps}
    for step in workflow.steps:
        for dep in step.dependencies:
            adj[dep].append(step.id)

    WHITE, GRAY, BLACK = 0, 1, 2
    color = {s.id: WHITE for s in workflow.steps}

    def dfs(node: str) -> None:
        color[node] = GRAY
        for neighbor in adj[node]:
            if color[neighbor] == GRAY:
                raise WorkflowConfigurationError(
                    f"Cycle detected in workflow {workflow.id} at step {neighbor}"
                )
            if color[neighbor] == WHITE:
                dfs(neighbor)
        color[node] = BLACK

    for step in workflow.steps:
        if color[step.id] == WHITE:
            dfs(step.id)
