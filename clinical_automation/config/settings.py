"""Configuration loading: YAML file -> env vars -> Pydantic defaults."""

import os
from pathlib import Path

import yaml
from pydantic import BaseModel

EMIRATES_ID_PATTERN = r"784-[0-9]{4}-[0-9]{7}-[0-9]"


class SchedulerConfig(BaseModel):
    # Simulated processing delay per step is estimated_time * delay_factor units
    delay_factor: float = 100.0
    time_unit_seconds: float = 0.001
    automation_enabled: bool = True


class ComplianceConfig(BaseModel):
    max_future_days: int = 30
    max_past_years: int = 1
    emirates_id_pattern: str = EMIRATES_ID_PATTERN


class LoggingConfig(BaseModel):
    level: str = "INFO"
    serialize: bool = False


class Settings(BaseModel):
    scheduler: SchedulerConfig = SchedulerConfig()
    compliance: ComplianceConfig = ComplianceConfig()
    logging: LoggingConfig = LoggingConfig()
    templates_dir: str | None = None


def _to_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


_ENV_MAP: dict[str, tuple[str | None, str, type]] = {
    "CA_SCHEDULER_DELAY_FACTOR": ("scheduler", "delay_factor", float),
    "CA_SCHEDULER_TIME_UNIT": ("scheduler", "time_unit_seconds", float),
    "CA_AUTOMATION_ENABLED": ("scheduler", "automation_enabled", _to_bool),
    "CA_COMPLIANCE_MAX_FUTURE_DAYS": ("compliance", "max_future_days", int),
    "CA_COMPLIANCE_MAX_PAST_YEARS": ("compliance", "max_past_years", int),
    "CA_LOG_LEVEL": ("logging", "level", str),
    "CA_LOG_SERIALIZE": ("logging", "serialize", _to_bool),
    "CA_TEMPLATES_DIR": (None, "templates_dir", str),
}


def load_settings(config_path: str | None = None) -> Settings:
    """Load settings: YAML file -> env var overrides -> Pydantic defaults."""
    yaml_data: dict = {}

    # 1. Resolve config file path
    path = _resolve_config_path(config_path)
    if path and path.is_file():
        with open(path) as f:
            yaml_data = yaml.safe_load(f) or {}

    # 2. Overlay env vars onto the YAML data, section by section
    merged = Settings.model_validate(yaml_data).model_dump()
    for env_key, (section, field_name, field_type) in _ENV_MAP.items():
        val = os.environ.get(env_key)
        if val is None:
            continue
        if section is None:
            merged[field_name] = field_type(val)
        else:
            merged[section][field_name] = field_type(val)

    # 3. Validate the result (fills Pydantic defaults)
    return Settings.model_validate(merged)


def _resolve_config_path(explicit_path: str | None) -> Path | None:
    if explicit_path:
        return Path(explicit_path)

    env_path = os.environ.get("CA_CONFIG_FILE")
    if env_path:
        return Path(env_path)

    # Default: config.yaml next to this module
    pkg_dir = Path(__file__).parent
    default = pkg_dir / "config.yaml"
    if default.is_file():
        return default

    return None
