from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field


class StepStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    SKIPPED = "skipped"


class WorkflowPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


def round_half_up(value: float) -> int:
    """Round to the nearest integer, .5 going up (display rounding)."""
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)


class WorkflowStep(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str = ""
    status: StepStatus = StepStatus.PENDING
    required: bool = True
    estimated_time: int = Field(default=0, ge=0, alias="estimatedTime")  # minutes
    dependencies: tuple[str, ...] = ()
    auto_trigger: bool = Field(default=False, alias="autoTrigger")


class ClinicalWorkflow(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str
    description: str = ""
    steps: tuple[WorkflowStep, ...] = ()
    total_estimated_time: int = Field(default=0, alias="totalEstimatedTime")
    priority: WorkflowPriority = WorkflowPriority.MEDIUM

    @computed_field  # type: ignore[prop-decorator]
    @property
    def completion_rate(self) -> int:
        if not self.steps:
            return 0
        return round_half_up(100 * self.completed_count / len(self.steps))

    @property
    def completed_count(self) -> int:
        return sum(1 for s in self.steps if s.status == StepStatus.COMPLETED)

    @property
    def is_complete(self) -> bool:
        return bool(self.steps) and self.completed_count == len(self.steps)

    def get_step(self, step_id: str) -> WorkflowStep | None:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    def status_of(self, step_id: str) -> StepStatus | None:
        step = self.get_step(step_id)
        return step.status if step is not None else None

    def with_step_status(self, step_id: str, status: StepStatus) -> "ClinicalWorkflow":
        """Return a copy with one step's status replaced; the receiver is untouched."""
        steps = tuple(
            s.model_copy(update={"status": status}) if s.id == step_id else s
            for s in self.steps
        )
        return self.model_copy(update={"steps": steps})

    def with_all_completed(self) -> "ClinicalWorkflow":
        steps = tuple(s.model_copy(update={"status": StepStatus.COMPLETED}) for s in self.steps)
        return self.model_copy(update={"steps": steps})
