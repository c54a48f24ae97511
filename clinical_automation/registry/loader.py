from pathlib import Path

import yaml

from clinical_automation.models.workflow import ClinicalWorkflow


def load_from_yaml(path: str | Path) -> ClinicalWorkflow:
    with open(path) as f:
        data = yaml.safe_load(f)
    return ClinicalWorkflow.model_validate(data)
