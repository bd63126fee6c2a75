"""
Filesystem loader for YAML and JSON blueprints.

Template names are paths relative to the blueprint directory without an
extension, e.g. ``services/caddy`` or ``config/copyparty``.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import aiofiles
import yaml

from ..config import get_settings
from ..exceptions import TemplateError, TemplateNotFoundError, TemplateFormatError
from ..utils.logging import get_logger

logger = get_logger(__name__)


class TemplateLoader:
    """Reads raw blueprint data, preferring YAML over JSON."""

    def __init__(self, template_dir: Optional[Path] = None, extensions: Optional[Sequence[str]] = None):
        settings = get_settings()
        self.template_dir = Path(template_dir or settings.templates.directory)
        self.extensions = tuple(extensions or settings.templates.extensions)

    def _candidates(self, name: str) -> List[Path]:
        base = self.template_dir.resolve()
        candidates = []
        for ext in self.extensions:
            path = (base / f"{name}{ext}").resolve()
            # Names must stay inside the blueprint directory
            if base in path.parents:
                candidates.append(path)
        return candidates

    def resolve(self, name: str) -> Optional[Path]:
        """Return the first existing file for a template name."""
        for path in self._candidates(name):
            if path.is_file():
                return path
        return None

    def template_exists(self, name: str) -> bool:
        return self.resolve(name) is not None

    async def load(self, name: str) -> Any:
        """
        Load and parse a blueprint.

        Args:
            name: Template name without extension

        Returns:
            The parsed structured value

        Raises:
            TemplateNotFoundError: If no file exists for the name
            TemplateFormatError: If the file is not valid YAML or JSON
        """
        path = self.resolve(name)
        if path is None:
            raise TemplateNotFoundError(name, searched=[f"{name}{ext}" for ext in self.extensions])

        try:
            async with aiofiles.open(path, 'r', encoding='utf-8') as f:
                text = await f.read()
        except OSError as e:
            raise TemplateError(name, f"failed to read {path}", cause=e)

        try:
            if path.suffix == '.json':
                data = json.loads(text)
            else:
                data = yaml.safe_load(text)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise TemplateFormatError(name, str(e), cause=e)

        if data is None:
            raise TemplateFormatError(name, "template file is empty")

        logger.debug(f"Loaded template {name} from {path}")
        return data

    async def load_all(self, subdirectory: str = "") -> Dict[str, Any]:
        """Load every template under a subdirectory.

        Templates that fail to load are logged and skipped.
        """
        templates = {}
        for name in self.list_templates(subdirectory):
            try:
                templates[name] = await self.load(name)
            except TemplateError as e:
                logger.warning(f"Skipping template {name}: {e.message}")
        return templates

    def list_templates(self, subdirectory: str = "") -> List[str]:
        """List template names available under a subdirectory."""
        target = self.template_dir / subdirectory if subdirectory else self.template_dir
        if not target.is_dir():
            raise TemplateNotFoundError(subdirectory or str(self.template_dir))

        names = []
        for path in sorted(target.rglob("*")):
            if path.is_file() and path.suffix in self.extensions:
                name = path.relative_to(self.template_dir).with_suffix("").as_posix()
                if name not in names:
                    names.append(name)
        return names
