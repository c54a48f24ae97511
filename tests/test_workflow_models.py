import pytest
from pydantic import ValidationError

from clinical_automation.models.workflow import (
    ClinicalWorkflow,
    StepStatus,
    WorkflowPriority,
    WorkflowStep,
    round_half_up,
)


def _make_workflow(n=3):
    return ClinicalWorkflow(
        id="w1", name="test", steps=tuple(WorkflowStep(id=f"s{i}") for i in range(n))
    )


def test_completion_rate_empty_workflow_is_zero():
    assert _make_workflow(0).completion_rate == 0


def test_completion_rate_rounds_half_up():
    wf = _make_workflow(3).with_step_status("s0", StepStatus.COMPLETED)
    assert wf.completion_rate == 33
    wf = wf.with_step_status("s1", StepStatus.COMPLETED)
    assert wf.completion_rate == 67

    wf8 = _make_workflow(8).with_step_status("s0", StepStatus.COMPLETED)
    assert wf8.completion_rate == 13  # 12.5


def test_in_progress_and_skipped_do_not_count():
    wf = (
        _make_workflow(2)
        .with_step_status("s0", StepStatus.IN_PROGRESS)
        .with_step_status("s1", StepStatus.SKIPPED)
    )
    assert wf.completion_rate == 0
    assert not wf.is_complete


def test_with_step_status_leaves_original_untouched():
    wf = _make_workflow()
    updated = wf.with_step_status("s1", StepStatus.COMPLETED)
    assert wf.get_step("s1").status == StepStatus.PENDING
    assert updated.get_step("s1").status == StepStatus.COMPLETED
    assert updated.get_step("s0") is wf.get_step("s0")


def test_with_all_completed():
    wf = _make_workflow().with_all_completed()
    assert wf.is_complete
    assert wf.completion_rate == 100


def test_models_are_frozen():
    wf = _make_workflow()
    with pytest.raises(ValidationError):
        wf.name = "changed"
    with pytest.raises(ValidationError):
        wf.steps[0].status = StepStatus.COMPLETED


def test_camel_case_aliases_accepted():
    wf = ClinicalWorkflow.model_validate({
        "id": "w",
        "name": "n",
        "totalEstimatedTime": 3,
        "priority": "high",
        "steps": [{"id": "a", "estimatedTime": 3, "autoTrigger": True, "status": "in-progress"}],
    })
    step = wf.steps[0]
    assert step.estimated_time == 3
    assert step.auto_trigger is True
    assert step.status == StepStatus.IN_PROGRESS
    assert wf.priority == WorkflowPriority.HIGH
    assert wf.total_estimated_time == 3


def test_negative_estimated_time_rejected():
    with pytest.raises(ValidationError):
        WorkflowStep(id="a", estimated_time=-1)


def test_status_of_unknown_step():
    assert _make_workflow().status_of("nope") is None


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(0.5) == 1
    assert round_half_up(66.666) == 67
    assert round_half_up(83.3) == 83
