from clinical_automation.models.workflow import ClinicalWorkflow, StepStatus, WorkflowStep
from clinical_automation.scheduler import (
    AutomationToggled,
    CompletionDue,
    Refresh,
    SchedulerState,
    StepCompleted,
    WorkflowReplaced,
    next_auto_step,
    reduce,
)
from clinical_automation.scheduler.reducer import CancelCompletion, ScheduleCompletion


def _make_workflow(*steps):
    return ClinicalWorkflow(id="w1", name="test", steps=steps)


def _abc():
    return _make_workflow(
        WorkflowStep(id="A", estimated_time=1, auto_trigger=True),
        WorkflowStep(id="B", estimated_time=2, auto_trigger=True, dependencies=("A",)),
        WorkflowStep(id="C", estimated_time=3, auto_trigger=False, dependencies=("B",)),
    )


def test_refresh_schedules_first_ready_auto_step():
    t = reduce(SchedulerState(workflow=_abc()), Refresh())
    assert t.effects == (ScheduleCompletion(step_id="A", token=1, delay=100.0),)
    assert t.state.workflow.status_of("A") == StepStatus.IN_PROGRESS
    assert t.state.workflow.status_of("B") == StepStatus.PENDING
    assert t.state.scheduled.step_id == "A"


def test_delay_uses_delay_factor():
    t = reduce(SchedulerState(workflow=_abc()), Refresh(), delay_factor=10)
    assert t.effects[0].delay == 10


def test_reduce_is_idempotent_for_identical_inputs():
    state = SchedulerState(workflow=_abc())
    assert reduce(state, Refresh()) == reduce(state, Refresh())


def test_refresh_while_scheduled_does_nothing():
    first = reduce(SchedulerState(workflow=_abc()), Refresh())
    second = reduce(first.state, Refresh())
    assert second.effects == ()
    assert second.state == first.state


def test_completion_due_completes_and_advances():
    first = reduce(SchedulerState(workflow=_abc()), Refresh())
    t = reduce(first.state, CompletionDue(step_id="A", token=1))
    assert t.state.workflow.status_of("A") == StepStatus.COMPLETED
    assert t.state.workflow.status_of("B") == StepStatus.IN_PROGRESS
    assert t.effects == (ScheduleCompletion(step_id="B", token=2, delay=200.0),)


def test_stale_token_is_ignored():
    first = reduce(SchedulerState(workflow=_abc()), Refresh())
    t = reduce(first.state, CompletionDue(step_id="A", token=99))
    assert t.state == first.state
    assert t.effects == ()


def test_manual_step_is_never_auto_completed():
    wf = _make_workflow(WorkflowStep(id="M", estimated_time=1, auto_trigger=False))
    t = reduce(SchedulerState(workflow=wf), Refresh())
    assert t.effects == ()
    assert t.state.workflow.status_of("M") == StepStatus.PENDING
    assert next_auto_step(wf) is None


def test_auto_step_waits_for_manual_dependency():
    wf = _make_workflow(
        WorkflowStep(id="M"),
        WorkflowStep(id="X", auto_trigger=True, dependencies=("M",)),
    )
    assert reduce(SchedulerState(workflow=wf), Refresh()).effects == ()

    t = reduce(SchedulerState(workflow=wf), StepCompleted(step_id="M"))
    assert t.state.workflow.status_of("M") == StepStatus.COMPLETED
    assert t.effects[0].step_id == "X"


def test_skipped_dependency_blocks_dependents():
    wf = _make_workflow(
        WorkflowStep(id="A", status=StepStatus.SKIPPED),
        WorkflowStep(id="B", auto_trigger=True, dependencies=("A",)),
    )
    t = reduce(SchedulerState(workflow=wf), Refresh())
    assert t.effects == ()


def test_disable_cancels_scheduled_completion_without_rollback():
    first = reduce(SchedulerState(workflow=_abc()), Refresh())
    t = reduce(first.state, AutomationToggled(enabled=False))
    assert t.effects == (CancelCompletion(token=1),)
    assert t.state.scheduled is None
    assert t.state.automation_enabled is False
    assert t.state.workflow.status_of("A") == StepStatus.IN_PROGRESS

    # The old timer firing after disable is stale
    late = reduce(t.state, CompletionDue(step_id="A", token=1))
    assert late.state == t.state


def test_reenable_resumes_in_progress_step_with_new_token():
    first = reduce(SchedulerState(workflow=_abc()), Refresh())
    disabled = reduce(first.state, AutomationToggled(enabled=False)).state
    t = reduce(disabled, AutomationToggled(enabled=True))
    assert t.effects == (ScheduleCompletion(step_id="A", token=2, delay=100.0),)


def test_no_scheduling_while_disabled():
    state = SchedulerState(workflow=_abc(), automation_enabled=False)
    t = reduce(state, Refresh())
    assert t.effects == ()
    assert t.state.workflow.status_of("A") == StepStatus.PENDING


def test_manual_completion_of_scheduled_step_cancels_timer():
    first = reduce(SchedulerState(workflow=_abc()), Refresh())
    t = reduce(first.state, StepCompleted(step_id="A"))
    assert t.effects[0] == CancelCompletion(token=1)
    assert t.effects[1] == ScheduleCompletion(step_id="B", token=2, delay=200.0)
    assert t.state.workflow.status_of("A") == StepStatus.COMPLETED


def test_unknown_step_is_a_warning_and_no_op():
    state = reduce(SchedulerState(workflow=_abc()), Refresh()).state
    t = reduce(state, StepCompleted(step_id="nope"))
    assert t.state == state
    assert t.effects == ()
    assert "nope" in t.warnings[0]


def test_completing_an_already_completed_step_is_harmless():
    wf = _abc().with_step_status("A", StepStatus.COMPLETED).with_step_status("B", StepStatus.COMPLETED)
    state = SchedulerState(workflow=wf)
    t = reduce(state, StepCompleted(step_id="A"))
    assert t.state.workflow == wf
    assert t.effects == ()


def test_workflow_replaced_cancels_and_restarts():
    first = reduce(SchedulerState(workflow=_abc()), Refresh())
    t = reduce(first.state, WorkflowReplaced(workflow=_abc().with_all_completed()))
    assert t.effects == (CancelCompletion(token=1),)
    assert t.state.scheduled is None
    assert t.state.workflow.is_complete


def test_input_state_is_not_mutated():
    state = SchedulerState(workflow=_abc())
    reduce(state, Refresh())
    assert state.workflow.status_of("A") == StepStatus.PENDING
    assert state.scheduled is None
