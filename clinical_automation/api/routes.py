import json
import queue
from typing import Any

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from clinical_automation.models.health import PlatformSnapshot
from clinical_automation.scheduler import WorkflowScheduler
from clinical_automation.utils.exceptions import (
    TemplateNotFoundError,
    UnknownWorkflowError,
    WorkflowConfigurationError,
)

router = APIRouter(prefix="/api")


class CreateWorkflowRequest(BaseModel):
    template_id: str
    workflow_id: str | None = None


class AutomationRequest(BaseModel):
    enabled: bool


def _scheduler(request: Request, workflow_id: str) -> WorkflowScheduler:
    try:
        return request.app.state.schedulers.get(workflow_id)
    except UnknownWorkflowError:
        raise HTTPException(404, f"Workflow '{workflow_id}' not found")


# --- Templates ---

@router.get("/templates")
async def list_templates(request: Request):
    registry = request.app.state.registry
    return [t.model_dump(mode="json") for t in registry.list_templates()]


# --- Workflows ---
# Handlers are async so scheduler timers land on the serving event loop.

@router.post("/workflows")
async def create_workflow(body: CreateWorkflowRequest, request: Request):
    registry = request.app.state.registry
    try:
        workflow = registry.instantiate(body.template_id, body.workflow_id)
        scheduler = request.app.state.schedulers.start(workflow)
    except TemplateNotFoundError:
        raise HTTPException(404, f"Template '{body.template_id}' not found")
    except WorkflowConfigurationError as e:
        raise HTTPException(422, str(e))
    return scheduler.workflow.model_dump(mode="json")


@router.get("/workflows")
async def list_workflows(request: Request):
    schedulers = request.app.state.schedulers
    return [w.model_dump(mode="json") for w in schedulers.list_workflows()]


@router.get("/workflows/{workflow_id}")
async def get_workflow(workflow_id: str, request: Request):
    return _scheduler(request, workflow_id).workflow.model_dump(mode="json")


@router.post("/workflows/{workflow_id}/steps/{step_id}/complete")
async def complete_step(workflow_id: str, step_id: str, request: Request):
    result = _scheduler(request, workflow_id).complete_step(step_id)
    if not result.accepted:
        raise HTTPException(400, result.message)
    return result.workflow.model_dump(mode="json")


@router.post("/workflows/{workflow_id}/automation")
async def set_automation(workflow_id: str, body: AutomationRequest, request: Request):
    scheduler = _scheduler(request, workflow_id)
    workflow = scheduler.set_automation(body.enabled)
    return {"automation_enabled": scheduler.automation_enabled, "workflow": workflow.model_dump(mode="json")}


@router.post("/workflows/{workflow_id}/complete")
async def complete_workflow(workflow_id: str, request: Request):
    return _scheduler(request, workflow_id).complete_all().model_dump(mode="json")


@router.get("/workflows/{workflow_id}/stream")
async def stream_workflow(workflow_id: str, request: Request):
    scheduler = _scheduler(request, workflow_id)
    channel = request.app.state.channel
    subscription, q = channel.subscribe_queue(workflow_id)
    initial = scheduler.workflow.model_dump(mode="json")

    def event_generator():
        try:
            data = initial
            while True:
                yield f"data: {json.dumps(data, default=str)}\n\n"
                if data.get("completion_rate") == 100:
                    return
                while True:
                    try:
                        data = q.get(timeout=30)
                        break
                    except queue.Empty:
                        yield ": keepalive\n\n"
        finally:
            channel.unsubscribe(subscription)

    return StreamingResponse(event_generator(), media_type="text/event-stream")


# --- Compliance & health ---

@router.post("/records/validate")
async def validate_record(record: dict[str, Any], request: Request):
    result = request.app.state.validator.validate(record)
    return result.model_dump(mode="json")


@router.post("/health-report")
async def health_report(snapshot: PlatformSnapshot, request: Request):
    report = request.app.state.aggregator.run(snapshot)
    return report.model_dump(mode="json")
