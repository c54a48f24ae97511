import argparse
import json
import sys

import yaml

from clinical_automation.config.settings import load_settings
from clinical_automation.utils.logging_config import setup_logging


def _load_document(path: str):
    with open(path) as f:
        if path.endswith((".yaml", ".yml")):
            return yaml.safe_load(f)
        return json.load(f)


def cmd_serve(args, settings):
    import uvicorn

    from clinical_automation.api.app import create_app

    app = create_app(templates_dir=args.templates_dir, settings=settings)
    uvicorn.run(app, host=args.host, port=args.port)


def cmd_templates(args, settings):
    from clinical_automation.registry.template_registry import TemplateRegistry

    registry = TemplateRegistry.with_builtins(args.templates_dir or settings.templates_dir)
    for template in registry.list_templates():
        auto = sum(1 for s in template.steps if s.auto_trigger)
        print(
            f"{template.id}: {template.name} "
            f"({len(template.steps)} steps, {auto} automatic, ~{template.total_estimated_time} min)"
        )


def cmd_validate(args, settings):
    from clinical_automation.compliance.validator import ComplianceValidator
    from clinical_automation.models.validation import sort_by_severity

    validator = ComplianceValidator(config=settings.compliance)
    result = validator.validate(_load_document(args.file))
    if result.passed:
        print("Record passed DOH compliance validation")
        return
    print(f"Record failed with {len(result.issues)} issue(s):")
    for issue in sort_by_severity(result.issues):
        print(f"  [{issue.severity.value}] {issue.kind}: {issue.message}")
    sys.exit(1)


def cmd_health(args, settings):
    from clinical_automation.compliance.validator import ComplianceValidator
    from clinical_automation.health.aggregator import HealthScoreAggregator
    from clinical_automation.models.health import PlatformSnapshot

    snapshot = PlatformSnapshot.model_validate(_load_document(args.file))
    aggregator = HealthScoreAggregator(validator=ComplianceValidator(config=settings.compliance))
    report = aggregator.run(snapshot)

    if args.json:
        print(json.dumps(report.model_dump(mode="json"), indent=2))
        return
    print(f"Overall health: {report.display_score}%")
    for category, category_report in report.categories.items():
        print(f"  {category.value}: {category_report.score}")
    for recommendation in report.recommendations:
        print(f"  - {recommendation}")


def cmd_simulate(args, settings):
    from clinical_automation.graph.step_graph import StepGraph
    from clinical_automation.models.workflow import StepStatus
    from clinical_automation.registry.template_registry import TemplateRegistry
    from clinical_automation.scheduler import VirtualClock, WorkflowScheduler

    registry = TemplateRegistry.with_builtins(args.templates_dir or settings.templates_dir)
    clock = VirtualClock()

    def show(workflow):
        states = ", ".join(f"{s.id}={s.status.value}" for s in workflow.steps)
        print(f"t={clock.now:>8.0f}  {workflow.completion_rate:>3}%  {states}")

    scheduler = WorkflowScheduler(
        registry.instantiate(args.template_id),
        clock,
        automation_enabled=settings.scheduler.automation_enabled,
        delay_factor=settings.scheduler.delay_factor,
        on_change=show,
    )
    while not scheduler.workflow.is_complete:
        clock.run_until_idle()
        if scheduler.workflow.is_complete:
            break
        workflow = scheduler.workflow
        waiting = [
            s for s in workflow.steps
            if not s.auto_trigger
            and s.status == StepStatus.PENDING
            and StepGraph.is_satisfied(s, workflow.status_of)
        ]
        if not waiting:
            print(f"Workflow stalled at {workflow.completion_rate}%: no step can advance")
            return
        if not args.complete_manual:
            print("Waiting on manual steps: " + ", ".join(s.id for s in waiting))
            return
        scheduler.complete_step(waiting[0].id)


def main():
    parser = argparse.ArgumentParser(
        prog="clinical-automation", description="Clinical Workflow Automation"
    )
    parser.add_argument("--config", help="Path to a settings YAML file")
    sub = parser.add_subparsers(dest="command")

    serve_p = sub.add_parser("serve", help="Start the web server")
    serve_p.add_argument("--host", default="0.0.0.0")
    serve_p.add_argument("--port", type=int, default=8000)
    serve_p.add_argument("--templates-dir")

    tpl_p = sub.add_parser("templates", help="List workflow templates")
    tpl_p.add_argument("--templates-dir")

    val_p = sub.add_parser("validate", help="Validate a clinical record (JSON or YAML)")
    val_p.add_argument("file", help="Path to the record file")

    health_p = sub.add_parser("health", help="Score a platform snapshot (JSON or YAML)")
    health_p.add_argument("file", help="Path to the snapshot file")
    health_p.add_argument("--json", action="store_true", help="Print the full report as JSON")

    sim_p = sub.add_parser("simulate", help="Run a workflow template on a virtual clock")
    sim_p.add_argument("template_id")
    sim_p.add_argument("--templates-dir")
    sim_p.add_argument(
        "--complete-manual", action="store_true", help="Complete manual steps as they become ready"
    )

    args = parser.parse_args()
    settings = load_settings(args.config)
    setup_logging(settings.logging.level, settings.logging.serialize)

    commands = {
        "serve": cmd_serve,
        "templates": cmd_templates,
        "validate": cmd_validate,
        "health": cmd_health,
        "simulate": cmd_simulate,
    }
    if args.command not in commands:
        parser.print_help()
        sys.exit(1)
    commands[args.command](args, settings)


if __name__ == "__main__":
    main()
