import pytest

from clinical_automation.graph.step_graph import StepGraph
from clinical_automation.models.workflow import ClinicalWorkflow, StepStatus, WorkflowStep
from clinical_automation.utils.exceptions import WorkflowConfigurationError


def _make_workflow():
    return ClinicalWorkflow(id="w1", name="test", steps=(
        WorkflowStep(id="A"),
        WorkflowStep(id="B", dependencies=("A",)),
        WorkflowStep(id="C", dependencies=("A", "B")),
    ))


def test_construction_validates():
    bad = ClinicalWorkflow(id="w", name="bad", steps=(WorkflowStep(id="A", dependencies=("X",)),))
    with pytest.raises(WorkflowConfigurationError):
        StepGraph(bad)


def test_roots_and_dependents():
    graph = StepGraph(_make_workflow())
    assert [s.id for s in graph.roots()] == ["A"]
    assert graph.dependents("A") == ["B", "C"]
    assert graph.dependents("C") == []
    assert graph.order() == ["A", "B", "C"]
    assert "B" in graph
    assert len(graph) == 3


def test_is_satisfied_requires_all_dependencies_completed():
    wf = _make_workflow().with_step_status("A", StepStatus.COMPLETED)
    step_c = wf.get_step("C")
    assert not StepGraph.is_satisfied(step_c, wf.status_of)

    wf = wf.with_step_status("B", StepStatus.COMPLETED)
    assert StepGraph.is_satisfied(step_c, wf.status_of)


def test_skipped_dependency_is_not_satisfied():
    wf = _make_workflow().with_step_status("A", StepStatus.SKIPPED)
    assert not StepGraph.is_satisfied(wf.get_step("B"), wf.status_of)


def test_step_without_dependencies_is_satisfied():
    wf = _make_workflow()
    assert StepGraph.is_satisfied(wf.get_step("A"), wf.status_of)
