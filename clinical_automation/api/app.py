from fastapi import FastAPI

from clinical_automation.api.notifications import InProcessChannel
from clinical_automation.api.routes import router
from clinical_automation.compliance.validator import ComplianceValidator
from clinical_automation.config.settings import Settings, load_settings
from clinical_automation.health.aggregator import HealthScoreAggregator
from clinical_automation.models.workflow import ClinicalWorkflow
from clinical_automation.registry.template_registry import TemplateRegistry
from clinical_automation.scheduler import AsyncioClock, Clock, SchedulerRegistry


def create_app(
    templates_dir: str | None = None,
    clock: Clock | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    settings = settings or load_settings()
    app = FastAPI(title="Clinical Workflow Automation")
    app.include_router(router)

    channel = InProcessChannel()

    def publish(workflow: ClinicalWorkflow) -> None:
        channel.notify(workflow.id, workflow.model_dump(mode="json"))

    validator = ComplianceValidator(config=settings.compliance)
    app.state.settings = settings
    app.state.channel = channel
    app.state.registry = TemplateRegistry.with_builtins(templates_dir or settings.templates_dir)
    app.state.schedulers = SchedulerRegistry(
        clock or AsyncioClock(settings.scheduler.time_unit_seconds),
        delay_factor=settings.scheduler.delay_factor,
        automation_enabled=settings.scheduler.automation_enabled,
        on_change=publish,
    )
    app.state.validator = validator
    app.state.aggregator = HealthScoreAggregator(validator=validator)
    return app
