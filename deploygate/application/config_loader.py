import os
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import ValidationError

from deploygate.application.config_models import GateConfig


CONFIG_DIRNAME = ".deploygate"
CONFIG_FILENAME = "config.yml"

# Environment variable -> config key
ENV_OVERRIDES: dict[str, str] = {
    "DEPLOYGATE_DEPLOY_CALLBACK": "deploy_callback",
    "DEPLOYGATE_NOTICE_CALLBACK": "notice_callback",
    "DEPLOYGATE_LOAD_EXECUTIONS_TIMEOUT": "load_executions_timeout",
    "DEPLOYGATE_RUNS_ROOT": "runs_root",
}


class ConfigLoadError(Exception):
    def __init__(self, message: str, *, path: Path | None = None, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.path = path
        self.cause = cause

    def __str__(self) -> str:
        if self.path is None:
            return self.message
        return f"{self.message}: {self.path}"


def _defaults() -> dict[str, Any]:
    return GateConfig().model_dump(mode="json")


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """
    Deep-merge mapping keys. For non-dict values, overlay wins.
    """
    merged: dict[str, Any] = dict(base)
    for k, v in overlay.items():
        if isinstance(v, dict) and isinstance(merged.get(k), dict):
            merged[k] = _deep_merge(merged[k], v)  # type: ignore[arg-type]
        else:
            merged[k] = v
    return merged


def _load_yaml_mapping(path: Path) -> dict[str, Any]:
    """
    Load YAML file and ensure root is a mapping.
    """
    # Protect against TOCTOU race conditions.
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except Exception as e:  # pragma: no cover
        raise ConfigLoadError("Failed to read config file", path=path, cause=e) from e

    try:
        data = yaml.safe_load(raw)
    except Exception as e:
        raise ConfigLoadError("Malformed YAML", path=path, cause=e) from e

    if data is None:
        return {}

    if not isinstance(data, dict):
        raise ConfigLoadError("YAML root must be a mapping", path=path)

    return data


def _env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    return {
        key: environ[var]
        for var, key in ENV_OVERRIDES.items()
        if environ.get(var)
    }


def load_config(
    *,
    project_root: Path | None = None,
    user_home: Path | None = None,
    environ: Mapping[str, str] | None = None,
    overrides: dict[str, Any] | None = None,
) -> GateConfig:
    """
    Load and merge config with precedence (highest wins):
    overrides (CLI) > environment > project > user > defaults.

    Files:
      - user:    user_home/.deploygate/config.yml
      - project: project_root/.deploygate/config.yml

    Raises:
        ConfigLoadError: If a config file is malformed or the merged config is invalid
    """
    project_root = project_root or Path.cwd()
    user_home = user_home or Path.home()
    environ = os.environ if environ is None else environ

    cfg: dict[str, Any] = _defaults()

    user_path = user_home / CONFIG_DIRNAME / CONFIG_FILENAME
    cfg = _deep_merge(cfg, _load_yaml_mapping(user_path))

    project_path = project_root / CONFIG_DIRNAME / CONFIG_FILENAME
    cfg = _deep_merge(cfg, _load_yaml_mapping(project_path))

    cfg = _deep_merge(cfg, _env_overrides(environ))
    cfg = _deep_merge(cfg, {k: v for k, v in (overrides or {}).items() if v is not None})

    try:
        return GateConfig.model_validate(cfg)
    except ValidationError as e:
        raise ConfigLoadError(f"Invalid configuration: {e}", cause=e) from e
