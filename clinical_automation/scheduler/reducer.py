"""Pure scheduling logic: ``(state, event) -> Transition``.

Nothing here touches a clock. Timers are requested as effects and come
back as ``CompletionDue`` events carrying the token they were issued with;
a token that no longer matches the scheduled completion is stale and ignored.
"""

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from clinical_automation.graph.step_graph import StepGraph
from clinical_automation.models.workflow import ClinicalWorkflow, StepStatus, WorkflowStep

DEFAULT_DELAY_FACTOR = 100.0


# --- Events ---

class Refresh(BaseModel):
    kind: Literal["refresh"] = "refresh"


class StepCompleted(BaseModel):
    kind: Literal["step_completed"] = "step_completed"
    step_id: str


class AutomationToggled(BaseModel):
    kind: Literal["automation_toggled"] = "automation_toggled"
    enabled: bool


class CompletionDue(BaseModel):
    kind: Literal["completion_due"] = "completion_due"
    step_id: str
    token: int


class WorkflowReplaced(BaseModel):
    kind: Literal["workflow_replaced"] = "workflow_replaced"
    workflow: ClinicalWorkflow


SchedulerEvent = Annotated[
    Refresh | StepCompleted | AutomationToggled | CompletionDue | WorkflowReplaced,
    Field(discriminator="kind"),
]


# --- Effects ---

class ScheduleCompletion(BaseModel):
    kind: Literal["schedule"] = "schedule"
    step_id: str
    token: int
    delay: float


class CancelCompletion(BaseModel):
    kind: Literal["cancel"] = "cancel"
    token: int


Effect = ScheduleCompletion | CancelCompletion


# --- State ---

class ScheduledCompletion(BaseModel):
    model_config = ConfigDict(frozen=True)

    step_id: str
    token: int


class SchedulerState(BaseModel):
    model_config = ConfigDict(frozen=True)

    workflow: ClinicalWorkflow
    automation_enabled: bool = True
    scheduled: ScheduledCompletion | None = None
    next_token: int = 1


class Transition(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: SchedulerState
    effects: tuple[Effect, ...] = ()
    warnings: tuple[str, ...] = ()


def next_auto_step(workflow: ClinicalWorkflow) -> WorkflowStep | None:
    """First step, in template order, the scheduler may advance on its own.

    An in-progress auto-trigger step is picked up too: it can only be
    unscheduled if its timer was cancelled, and it resumes rather than
    being left half-done.
    """
    for step in workflow.steps:
        if not step.auto_trigger:
            continue
        if step.status not in (StepStatus.PENDING, StepStatus.IN_PROGRESS):
            continue
        if StepGraph.is_satisfied(step, workflow.status_of):
            return step
    return None


def reduce(
    state: SchedulerState,
    event: SchedulerEvent,
    delay_factor: float = DEFAULT_DELAY_FACTOR,
) -> Transition:
    if isinstance(event, StepCompleted):
        return _on_step_completed(state, event, delay_factor)
    if isinstance(event, CompletionDue):
        return _on_completion_due(state, event, delay_factor)
    if isinstance(event, AutomationToggled):
        return _on_automation_toggled(state, event, delay_factor)
    if isinstance(event, WorkflowReplaced):
        effects = _cancel_scheduled(state)
        state = SchedulerState(
            workflow=event.workflow,
            automation_enabled=state.automation_enabled,
            next_token=state.next_token,
        )
        return _advance(state, effects, (), delay_factor)
    return _advance(state, (), (), delay_factor)


def _on_step_completed(
    state: SchedulerState, event: StepCompleted, delay_factor: float
) -> Transition:
    step = state.workflow.get_step(event.step_id)
    if step is None:
        return Transition(
            state=state,
            warnings=(f"Unknown step '{event.step_id}' in workflow {state.workflow.id}",),
        )
    effects: tuple[Effect, ...] = ()
    if state.scheduled is not None and state.scheduled.step_id == step.id:
        effects = _cancel_scheduled(state)
        state = state.model_copy(update={"scheduled": None})
    if step.status != StepStatus.COMPLETED:
        state = state.model_copy(
            update={"workflow": state.workflow.with_step_status(step.id, StepStatus.COMPLETED)}
        )
    return _advance(state, effects, (), delay_factor)


def _on_completion_due(
    state: SchedulerState, event: CompletionDue, delay_factor: float
) -> Transition:
    scheduled = state.scheduled
    if scheduled is None or scheduled.token != event.token or scheduled.step_id != event.step_id:
        return Transition(state=state)
    state = state.model_copy(
        update={
            "workflow": state.workflow.with_step_status(event.step_id, StepStatus.COMPLETED),
            "scheduled": None,
        }
    )
    return _advance(state, (), (), delay_factor)


def _on_automation_toggled(
    state: SchedulerState, event: AutomationToggled, delay_factor: float
) -> Transition:
    if event.enabled:
        state = state.model_copy(update={"automation_enabled": True})
        return _advance(state, (), (), delay_factor)
    # In-progress steps keep their status; only the pending timer goes away.
    effects = _cancel_scheduled(state)
    state = state.model_copy(update={"automation_enabled": False, "scheduled": None})
    return Transition(state=state, effects=effects)


def _cancel_scheduled(state: SchedulerState) -> tuple[Effect, ...]:
    if state.scheduled is None:
        return ()
    return (CancelCompletion(token=state.scheduled.token),)


def _advance(
    state: SchedulerState,
    effects: tuple[Effect, ...],
    warnings: tuple[str, ...],
    delay_factor: float,
) -> Transition:
    if not state.automation_enabled or state.scheduled is not None:
        return Transition(state=state, effects=effects, warnings=warnings)

    step = next_auto_step(state.workflow)
    if step is None:
        return Transition(state=state, effects=effects, warnings=warnings)

    token = state.next_token
    workflow = state.workflow
    if step.status != StepStatus.IN_PROGRESS:
        workflow = workflow.with_step_status(step.id, StepStatus.IN_PROGRESS)
    state = state.model_copy(
        update={
            "workflow": workflow,
            "scheduled": ScheduledCompletion(step_id=step.id, token=token),
            "next_token": token + 1,
        }
    )
    schedule = ScheduleCompletion(
        step_id=step.id, token=token, delay=step.estimated_time * delay_factor
    )
    return Transition(state=state, effects=effects + (schedule,), warnings=warnings)
