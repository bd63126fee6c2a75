"""Blueprint loading, validation and rendering."""

from .loader import TemplateLoader
from .engine import Template, TemplateEngine, extract_placeholders, stringify
from .validator import ServiceBlueprint, BlueprintCommands, parse_service_blueprint

__all__ = [
    "TemplateLoader",
    "Template",
    "TemplateEngine",
    "extract_placeholders",
    "stringify",
    "ServiceBlueprint",
    "BlueprintCommands",
    "parse_service_blueprint",
]
