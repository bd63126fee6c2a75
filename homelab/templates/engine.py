"""
Template engine for generated configuration.

Placeholders have the form ``{{NAME}}`` where NAME is made of ASCII letters,
digits and underscores. Anything else between braces (``{{.Names}}`` in a
docker format string, for instance) is left untouched.
"""

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePath
from typing import Any, Dict, Iterator, List, Optional, Tuple

from ..exceptions import TemplateError
from ..utils.logging import get_logger
from .loader import TemplateLoader

logger = get_logger(__name__)

OPEN_TOKEN = "{{"
CLOSE_TOKEN = "}}"


@dataclass(frozen=True)
class Template:
    """A validated blueprint ready for rendering."""
    name: str
    content: str
    variables: Dict[str, str] = field(default_factory=dict)

    @property
    def placeholders(self) -> List[str]:
        return extract_placeholders(self.content)


def _is_placeholder_name(text: str) -> bool:
    return bool(text) and all(c.isascii() and (c.isalnum() or c == "_") for c in text)


def _scan(content: str) -> Iterator[Tuple[int, int, str]]:
    """Yield (start, end, name) for every placeholder, left to right.

    ``end`` is the index just past the closing braces.
    """
    position = 0
    while True:
        start = content.find(OPEN_TOKEN, position)
        if start < 0:
            return
        close = content.find(CLOSE_TOKEN, start + len(OPEN_TOKEN))
        if close < 0:
            return

        name = content[start + len(OPEN_TOKEN):close]
        if _is_placeholder_name(name):
            end = close + len(CLOSE_TOKEN)
            yield start, end, name
            position = end
        else:
            # Retry one character later so "{{{x}}}" still finds "{{x}}"
            position = start + 1


def extract_placeholders(content: str) -> List[str]:
    """Return distinct placeholder names in order of first appearance."""
    names = []
    for _, _, name in _scan(content):
        if name not in names:
            names.append(name)
    return names


def stringify(value: Any) -> str:
    """Convert a context value to its canonical text form."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float, str)):
        return str(value)
    if isinstance(value, PurePath):
        return str(value)
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value, default=str)
    return str(value)


class TemplateEngine:
    """Loads, validates, caches and renders templates."""

    def __init__(self, loader: Optional[TemplateLoader] = None):
        self.loader = loader or TemplateLoader()
        self._cache: Dict[str, Template] = {}

    async def load(self, name: str) -> Template:
        """Return the cached template for name, loading it on first use."""
        cached = self._cache.get(name)
        if cached is not None:
            return cached

        raw = await self.loader.load(name)
        template = self.validate(name, raw)
        self._cache[name] = template
        logger.debug(f"Cached template {name}", extra={'template': name})
        return template

    def validate(self, name: str, raw: Any) -> Template:
        """
        Turn raw blueprint data into a Template.

        A string ``content`` field is used as-is. Structured content, or the
        whole raw value when there is no ``content`` field, is serialized to
        JSON so structured files can be generated from one blueprint.

        Raises:
            TemplateError: If raw is not a mapping or a field has the wrong shape
        """
        if not isinstance(raw, Mapping):
            raise TemplateError(name, f"template must be a mapping, got {type(raw).__name__}")

        if "content" in raw:
            content = raw["content"]
            if isinstance(content, (Mapping, list)):
                content = json.dumps(content, indent=2, default=str)
            elif not isinstance(content, str):
                raise TemplateError(name, "'content' must be a string or a structured value")
        else:
            content = json.dumps(raw, indent=2, default=str)

        variables = raw.get("variables") or {}
        if not isinstance(variables, Mapping):
            raise TemplateError(name, "'variables' must be a mapping of names to type tags")
        for var_name, type_tag in variables.items():
            if not isinstance(var_name, str) or not isinstance(type_tag, str):
                raise TemplateError(name, f"invalid variable declaration: {var_name!r}: {type_tag!r}")

        template = Template(name=name, content=content, variables=dict(variables))

        if variables:
            undeclared = [p for p in template.placeholders if p not in variables]
            if undeclared:
                logger.warning(
                    f"Template {name} uses undeclared placeholders: {', '.join(undeclared)}",
                    extra={'template': name, 'undeclared': undeclared}
                )

        return template

    def render(self, template: Template, context: Mapping) -> str:
        """
        Substitute every placeholder in the template.

        Raises:
            TemplateError: Naming the first placeholder with no value in context
        """
        values = {}
        for name in template.placeholders:
            value = context.get(name)
            if value is None:
                raise TemplateError(
                    template.name,
                    f"missing value for placeholder '{name}'",
                    placeholder=name
                )
            values[name] = stringify(value)

        content = template.content
        parts = []
        position = 0
        for start, end, name in _scan(content):
            parts.append(content[position:start])
            parts.append(values[name])
            position = end
        parts.append(content[position:])
        return "".join(parts)

    def render_text(self, name: str, text: str, context: Mapping) -> str:
        """Render a bare string, reporting failures under the given name."""
        return self.render(Template(name=name, content=text), context)

    def get_cached_templates(self) -> List[str]:
        return list(self._cache.keys())

    def clear_cache(self) -> None:
        self._cache.clear()
