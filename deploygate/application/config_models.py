"""Gate configuration models.

Config structure (.deploygate/config.yml):
    deploy_callback: https://deploy.example.com
    notice_callback: https://notice.example.com/api/notice
    load_executions_timeout: 60
    notify_workers: 4
    http:
      read_timeout: 60
    security:
      enabled: true
      user_id_strategy: case-insensitive
      grants:
        release-managers: [Job/Build, Job/Cancel]
"""

from pathlib import Path
from string import Formatter
from typing import Any, Mapping
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field, field_validator

from deploygate.domain.constants import (
    DEFAULT_DEPLOY_PATH,
    DEFAULT_RUNS_ROOT,
    LOAD_EXECUTIONS_TIMEOUT,
)
from deploygate.domain.security import (
    Permission,
    StaticAuthorizationPolicy,
    id_strategy_for,
)


# Placeholder name -> submitted deploy field
DEPLOY_URL_FIELDS: dict[str, str] = {
    "tenant_id": "tenantId",
    "project_id": "projectId",
    "app_id": "appId",
    "tpl_id": "tplId",
    "env": "env",
}


class HttpSettings(BaseModel):
    """Pooled HTTP client settings shared by every gate in the process."""

    model_config = ConfigDict(extra="forbid")

    max_connections: int = Field(default=600, ge=1)
    max_keepalive_connections: int = Field(default=150, ge=0)
    connect_timeout: float = Field(default=3.0, gt=0)
    pool_timeout: float = Field(default=3.0, gt=0)
    read_timeout: float = Field(default=60.0, gt=0)
    write_timeout: float = Field(default=60.0, gt=0)
    retries: int = Field(default=3, ge=0)


class SecuritySettings(BaseModel):
    """Static authorization table used by the bundled server."""

    model_config = ConfigDict(extra="forbid")

    enabled: bool = False
    user_id_strategy: str = "case-insensitive"
    group_id_strategy: str = "case-insensitive"
    grants: dict[str, list[Permission]] = Field(default_factory=dict)

    @field_validator("user_id_strategy", "group_id_strategy")
    @classmethod
    def _known_strategy(cls, v: str) -> str:
        try:
            id_strategy_for(v)
        except KeyError as e:
            raise ValueError(e.args[0]) from e
        return v

    def build_policy(self) -> StaticAuthorizationPolicy:
        return StaticAuthorizationPolicy(
            use_security=self.enabled,
            grants={k: set(v) for k, v in self.grants.items()},
            user_id_strategy=id_strategy_for(self.user_id_strategy),
            group_id_strategy=id_strategy_for(self.group_id_strategy),
        )


class GateConfig(BaseModel):
    """Resolved configuration for deploy gates."""

    model_config = ConfigDict(extra="forbid")

    deploy_callback: str = ""
    notice_callback: str = ""
    load_executions_timeout: float = Field(default=LOAD_EXECUTIONS_TIMEOUT, gt=0)
    notify_workers: int = Field(default=4, ge=1)
    runs_root: Path = DEFAULT_RUNS_ROOT
    http: HttpSettings = Field(default_factory=HttpSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)

    @field_validator("deploy_callback", "notice_callback", mode="before")
    @classmethod
    def _strip_url(cls, v: Any) -> str:
        if v is None:
            return ""
        return str(v).strip()

    def resolve_deploy_url(self, params: Mapping[str, Any]) -> str:
        """Build the deploy request URL for a submission.

        The configured callback may carry {tenant_id}, {project_id}, {app_id},
        {tpl_id} and {env} placeholders. A callback without placeholders is a
        base URL and gets the default deploy path appended.

        Raises:
            ValueError: If no deploy callback is configured or the template is
                malformed or names an unknown placeholder
        """
        if not self.deploy_callback:
            raise ValueError("Deploy callback is not configured")

        template = self.deploy_callback
        try:
            placeholders = {
                name for _, name, _, _ in Formatter().parse(template) if name
            }
        except ValueError as e:
            raise ValueError(f"Malformed deploy callback template: {e}") from e
        if not placeholders:
            template = template.rstrip("/") + DEFAULT_DEPLOY_PATH

        values = {
            placeholder: quote(str(params.get(field, "")), safe="")
            for placeholder, field in DEPLOY_URL_FIELDS.items()
        }
        try:
            return template.format(**values)
        except KeyError as e:
            raise ValueError(f"Unknown placeholder in deploy callback: {e.args[0]}") from e
        except (IndexError, ValueError) as e:
            # Positional fields or a bad format spec
            raise ValueError(f"Malformed deploy callback template: {e}") from e
