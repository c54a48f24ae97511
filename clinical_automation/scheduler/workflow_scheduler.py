from collections.abc import Callable

from loguru import logger
from pydantic import BaseModel, ConfigDict

from clinical_automation.graph.step_graph import StepGraph
from clinical_automation.models.workflow import ClinicalWorkflow
from clinical_automation.scheduler.clock import Clock, TimerHandle
from clinical_automation.scheduler.reducer import (
    DEFAULT_DELAY_FACTOR,
    AutomationToggled,
    CancelCompletion,
    CompletionDue,
    Refresh,
    ScheduleCompletion,
    SchedulerEvent,
    SchedulerState,
    StepCompleted,
    WorkflowReplaced,
    reduce,
)
from clinical_automation.utils.exceptions import UnknownWorkflowError


class StepCommandResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    workflow: ClinicalWorkflow
    accepted: bool = True
    message: str | None = None


class WorkflowScheduler:
    """Drives one workflow: feeds events to the reducer and applies its effects."""

    def __init__(
        self,
        workflow: ClinicalWorkflow,
        clock: Clock,
        automation_enabled: bool = True,
        delay_factor: float = DEFAULT_DELAY_FACTOR,
        on_change: Callable[[ClinicalWorkflow], None] | None = None,
    ) -> None:
        StepGraph(workflow)
        self._clock = clock
        self._delay_factor = delay_factor
        self._on_change = on_change
        self._timers: dict[int, TimerHandle] = {}
        self._state = SchedulerState(workflow=workflow, automation_enabled=automation_enabled)
        self.dispatch(Refresh())

    @property
    def workflow(self) -> ClinicalWorkflow:
        return self._state.workflow

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def automation_enabled(self) -> bool:
        return self._state.automation_enabled

    def dispatch(self, event: SchedulerEvent) -> ClinicalWorkflow:
        previous = self._state
        transition = reduce(previous, event, self._delay_factor)
        self._state = transition.state

        for warning in transition.warnings:
            logger.warning(warning)
        for effect in transition.effects:
            self._apply(effect)

        if transition.state.workflow != previous.workflow:
            logger.debug(
                f"Workflow {self.workflow.id} after {event.kind}: "
                f"{self.workflow.completion_rate}% complete"
            )
            if self._on_change:
                self._on_change(self.workflow)
        return self.workflow

    def refresh(self) -> ClinicalWorkflow:
        return self.dispatch(Refresh())

    def complete_step(self, step_id: str) -> StepCommandResult:
        if self.workflow.get_step(step_id) is None:
            message = f"Unknown step '{step_id}' in workflow {self.workflow.id}"
            logger.warning(message)
            return StepCommandResult(workflow=self.workflow, accepted=False, message=message)
        return StepCommandResult(workflow=self.dispatch(StepCompleted(step_id=step_id)))

    def set_automation(self, enabled: bool) -> ClinicalWorkflow:
        return self.dispatch(AutomationToggled(enabled=enabled))

    def replace_workflow(self, workflow: ClinicalWorkflow) -> ClinicalWorkflow:
        StepGraph(workflow)
        return self.dispatch(WorkflowReplaced(workflow=workflow))

    def complete_all(self) -> ClinicalWorkflow:
        """Mark every step completed (manual 'complete workflow' action)."""
        return self.replace_workflow(self.workflow.with_all_completed())

    def _apply(self, effect: ScheduleCompletion | CancelCompletion) -> None:
        if isinstance(effect, ScheduleCompletion):
            event = CompletionDue(step_id=effect.step_id, token=effect.token)

            def fire(token: int = effect.token) -> None:
                self._timers.pop(token, None)
                self.dispatch(event)

            self._timers[effect.token] = self._clock.call_later(effect.delay, fire)
            logger.debug(
                f"Scheduled {effect.step_id} in workflow {self.workflow.id} "
                f"after {effect.delay} units"
            )
        else:
            handle = self._timers.pop(effect.token, None)
            if handle is not None:
                handle.cancel()


class SchedulerRegistry:
    """Schedulers keyed by workflow id; the boundary for step-complete commands."""

    def __init__(
        self,
        clock: Clock,
        delay_factor: float = DEFAULT_DELAY_FACTOR,
        automation_enabled: bool = True,
        on_change: Callable[[ClinicalWorkflow], None] | None = None,
    ) -> None:
        self._clock = clock
        self._delay_factor = delay_factor
        self._automation_enabled = automation_enabled
        self._on_change = on_change
        self._schedulers: dict[str, WorkflowScheduler] = {}

    def start(self, workflow: ClinicalWorkflow) -> WorkflowScheduler:
        existing = self._schedulers.get(workflow.id)
        if existing is not None:
            existing.replace_workflow(workflow)
            return existing
        scheduler = WorkflowScheduler(
            workflow,
            self._clock,
            automation_enabled=self._automation_enabled,
            delay_factor=self._delay_factor,
            on_change=self._on_change,
        )
        self._schedulers[workflow.id] = scheduler
        return scheduler

    def get(self, workflow_id: str) -> WorkflowScheduler:
        if workflow_id not in self._schedulers:
            raise UnknownWorkflowError(f"Workflow '{workflow_id}' not found")
        return self._schedulers[workflow_id]

    def list_workflows(self) -> list[ClinicalWorkflow]:
        return [s.workflow for s in self._schedulers.values()]

    def complete_step(self, workflow_id: str, step_id: str) -> StepCommandResult:
        return self.get(workflow_id).complete_step(step_id)

    def __contains__(self, workflow_id: str) -> bool:
        return workflow_id in self._schedulers
