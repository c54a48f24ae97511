from clinical_automation.scheduler.clock import AsyncioClock, Clock, VirtualClock
from clinical_automation.scheduler.reducer import (
    AutomationToggled,
    CompletionDue,
    Refresh,
    SchedulerState,
    StepCompleted,
    WorkflowReplaced,
    next_auto_step,
    reduce,
)
from clinical_automation.scheduler.workflow_scheduler import (
    SchedulerRegistry,
    StepCommandResult,
    WorkflowScheduler,
)

__all__ = [
    "AsyncioClock",
    "AutomationToggled",
    "Clock",
    "CompletionDue",
    "Refresh",
    "SchedulerRegistry",
    "SchedulerState",
    "StepCommandResult",
    "StepCompleted",
    "VirtualClock",
    "WorkflowReplaced",
    "WorkflowScheduler",
    "next_auto_step",
    "reduce",
]
