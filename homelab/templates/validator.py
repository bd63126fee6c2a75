"""Shape validation for service blueprints."""

import json
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..exceptions import TemplateError
from .engine import Template


class BlueprintCommands(BaseModel):
    """Shell commands that bring a service up."""
    model_config = ConfigDict(extra="forbid")

    install: List[str] = Field(default_factory=list, description="Commands preparing the host")
    setup: List[str] = Field(default_factory=list, description="Commands preparing directories and images")
    run: Optional[str] = Field(default=None, description="Command starting the container")

    @field_validator('install', 'setup', mode='before')
    @classmethod
    def coerce_single_command(cls, v):
        """Accept a single command where a list is expected."""
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return v

    def ordered(self) -> List[str]:
        """All commands in execution order."""
        commands = list(self.install) + list(self.setup)
        if self.run:
            commands.append(self.run)
        return commands


class ServiceBlueprint(BaseModel):
    """A service blueprint loaded from ``services/<type>``."""
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    description: Optional[str] = None
    container_name: Optional[str] = None
    commands: BlueprintCommands = Field(default_factory=BlueprintCommands)


def parse_service_blueprint(template: Template) -> ServiceBlueprint:
    """
    Validate a service template's content as a ServiceBlueprint.

    Raises:
        TemplateError: If the content is not JSON or does not match the shape
    """
    try:
        data: Any = json.loads(template.content)
    except json.JSONDecodeError as e:
        raise TemplateError(template.name, "service blueprint must be structured data", cause=e)

    if not isinstance(data, dict):
        raise TemplateError(template.name, "service blueprint must be a mapping")

    try:
        return ServiceBlueprint(**data)
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise TemplateError(template.name, f"validation failed: {errors}", cause=e)
