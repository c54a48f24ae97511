import uuid
from pathlib import Path

from loguru import logger

from clinical_automation.graph.step_graph import StepGraph
from clinical_automation.models.workflow import ClinicalWorkflow
from clinical_automation.registry.loader import load_from_yaml
from clinical_automation.utils.exceptions import TemplateNotFoundError

BUILTIN_TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"


class TemplateRegistry:
    """Workflow templates, validated once when they are registered."""

    def __init__(self) -> None:
        self._templates: dict[str, ClinicalWorkflow] = {}

    @classmethod
    def with_builtins(cls, extra_dir: str | Path | None = None) -> "TemplateRegistry":
        registry = cls()
        registry.load_directory(BUILTIN_TEMPLATES_DIR)
        if extra_dir is not None and Path(extra_dir).is_dir():
            registry.load_directory(extra_dir)
        return registry

    def load_directory(self, directory: str | Path) -> None:
        directory = Path(directory)
        for yaml_file in sorted(directory.glob("*.yaml")):
            self.register(load_from_yaml(yaml_file))
            logger.info(f"Loaded workflow template from {yaml_file.name}")

    def register(self, template: ClinicalWorkflow) -> None:
        StepGraph(template)
        self._templates[template.id] = template

    def get_template(self, template_id: str) -> ClinicalWorkflow:
        if template_id not in self._templates:
            raise TemplateNotFoundError(f"Template not found: {template_id}")
        return self._templates[template_id]

    def list_templates(self) -> list[ClinicalWorkflow]:
        return list(self._templates.values())

    def instantiate(self, template_id: str, workflow_id: str | None = None) -> ClinicalWorkflow:
        """New workflow instance from a template; statuses start as the template declares them."""
        template = self.get_template(template_id)
        return template.model_copy(
            update={"id": workflow_id or f"{template.id}-{uuid.uuid4().hex[:8]}"}
        )
