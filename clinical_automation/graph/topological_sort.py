from collections import deque

from clinical_automation.models.workflow import ClinicalWorkflow


def sort(workflow: ClinicalWorkflow) -> list[str]:
    in_degree: dict[str, int] = {s.id: 0 for s in workflow.steps}
    adj: dict[str, list[str]] = {s.id: [] for s in workflow.steps}

    for step in workflow.steps:
        for dep in step.dependencies:
            adj[dep].append(step.id)
            in_degree[step.id] += 1

    queue = deque(sorted(s_id for s_id, deg in in_degree.items() if deg == 0))
    result: list[str] = []

    while queue:
        node = queue.popleft()
        result.append(node)
        for neighbor in sorted(adj[node]):
            in_degree[neighbor] -= 1
            if in_degree[neighbor] == 0:
                queue.append(neighbor)

    return result
