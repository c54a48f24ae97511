class ClinicalAutomationError(Exception):
    """Base class for errors raised by clinical_automation."""


class WorkflowConfigurationError(ClinicalAutomationError):
    """A workflow template is malformed (unknown dependency, cycle, duplicate id)."""


class TemplateNotFoundError(ClinicalAutomationError, KeyError):
    pass


class UnknownWorkflowError(ClinicalAutomationError, KeyError):
    pass
