"""Template registry and renderer for project scaffolding.

Provides the TemplateEngine class which keeps a registry of named templates,
seeded from the ``*.template`` files under ``qcli/scaffolder/templates/``, and
renders them against a render model.

Marker language::

    {{Name}}                          variable reference
    {{#if Name}} ... {{/if}}          kept when Name is truthy
    {{#each Items}} ... {{/each}}     repeated per item; inner {{Field}}
                                      markers read the current item

Passes run in that order over the output of the previous pass.  Regions do
not nest: the first ``{{/if}}`` (or ``{{/each}}``) closes the nearest opener.
Markers that match no field are left in the output verbatim.
"""

from __future__ import annotations

import logging
import re
import threading
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

from jinja2 import Environment, FileSystemLoader

from qcli.scaffolder.models import is_sequence, is_truthy, render_fields, to_text

if TYPE_CHECKING:
    from qcli.config import Config

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Template directory discovery
# ---------------------------------------------------------------------------

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"

TEMPLATE_SUFFIX = ".template"

_CONDITIONAL_RE = re.compile(r"\{\{#if\s+(\w+)\}\}(.*?)\{\{/if\}\}", re.DOTALL)
_LOOP_RE = re.compile(r"\{\{#each\s+(\w+)\}\}(.*?)\{\{/each\}\}", re.DOTALL)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class TemplateError(Exception):
    """Base class for template engine failures."""


class TemplateNotFound(TemplateError):
    """The requested template name is not registered."""

    def __init__(self, template_name: str) -> None:
        super().__init__(f"Template '{template_name}' not found")
        self.template_name = template_name


class TemplateRenderError(TemplateError):
    """Rendering failed; the original exception is kept as ``inner``."""

    def __init__(self, template_name: str, inner: BaseException) -> None:
        super().__init__(f"Error processing template '{template_name}': {inner}")
        self.template_name = template_name
        self.inner = inner


# ---------------------------------------------------------------------------
# TemplateEngine
# ---------------------------------------------------------------------------


class TemplateEngine:
    """Registry of named templates plus the marker-language renderer.

    A fresh engine is seeded with the built-in templates shipped with the
    package.  Registration is last-write-wins; the registry is guarded by a
    lock so ``register`` may race with ``render`` from other threads.
    """

    def __init__(self, template_dir: str | Path | None = _DEFAULT_TEMPLATE_DIR) -> None:
        self._templates: dict[str, str] = {}
        self._lock = threading.RLock()
        if template_dir is not None:
            self.load_directory(template_dir)

    @classmethod
    def from_config(cls, config: "Config") -> "TemplateEngine":
        """Build an engine honouring the config's template settings.

        Custom templates (when enabled) replace same-named built-ins, then
        ``template_overrides`` maps each name onto another template's body.
        """
        engine = cls()
        settings = config.template_settings

        if settings.enable_custom_templates:
            custom_dir = config.project_paths.get_full_path(settings.custom_templates_path)
            if custom_dir.is_dir():
                engine.load_directory(custom_dir)
            else:
                logger.warning("Custom templates directory %s does not exist", custom_dir)

        for name, target in settings.template_overrides.items():
            body = engine.get_source(target)
            if body is None:
                logger.warning("Template override %s -> %s: target not registered", name, target)
                continue
            engine.register(name, body)

        return engine

    # -- Registry ------------------------------------------------------------

    def register(self, name: str, body: str) -> None:
        """Insert or replace the template stored under *name*."""
        with self._lock:
            self._templates[name] = body

    def exists(self, name: str) -> bool:
        """Return ``True`` if *name* is registered."""
        with self._lock:
            return name in self._templates

    def get_source(self, name: str) -> str | None:
        """Return the registered body for *name*, or ``None``."""
        with self._lock:
            return self._templates.get(name)

    def list_templates(self) -> list[str]:
        """Return a sorted list of all registered template names."""
        with self._lock:
            return sorted(self._templates)

    def load_directory(self, template_dir: str | Path, *, suffix: str = TEMPLATE_SUFFIX) -> list[str]:
        """Register every ``*<suffix>`` file under *template_dir*.

        Files are keyed by base name without the suffix (``api/entity.template``
        registers as ``entity``).  Later files with the same key overwrite
        earlier ones; files are visited in sorted path order.

        Returns:
            The registered names, in load order.
        """
        loader = FileSystemLoader(str(template_dir))
        env = Environment()

        loaded: list[str] = []
        for template_path in loader.list_templates():
            if not template_path.endswith(suffix):
                continue
            body, _filename, _uptodate = loader.get_source(env, template_path)
            name = Path(template_path).name[: -len(suffix)]
            self.register(name, body)
            loaded.append(name)

        logger.debug("Loaded %d template(s) from %s", len(loaded), template_dir)
        return loaded

    # -- Rendering -----------------------------------------------------------

    def render(self, template_name: str, model: Any) -> str:
        """Render the registered template *template_name* against *model*.

        Raises:
            TemplateNotFound: If no template is registered under the name.
            TemplateRenderError: If anything else goes wrong.
        """
        try:
            body = self.get_source(template_name)
        except Exception as exc:
            raise TemplateRenderError(template_name, exc) from exc
        if body is None:
            raise TemplateNotFound(template_name)
        return self.render_string(body, model, template_name)

    def render_string(self, template_body: str, model: Any, template_name: str = "<string>") -> str:
        """Render an unregistered template body.

        *template_name* only appears in error messages.
        """
        try:
            fields = render_fields(model)
            result = _substitute(template_body, fields)
            result = _CONDITIONAL_RE.sub(lambda match: _expand_conditional(match, fields), result)
            result = _LOOP_RE.sub(lambda match: _expand_loop(match, fields), result)
            return result
        except Exception as exc:
            raise TemplateRenderError(template_name, exc) from exc


# ---------------------------------------------------------------------------
# Rendering passes
# ---------------------------------------------------------------------------

def _substitute(content: str, fields: Mapping[str, Any]) -> str:
    """Replace ``{{Field}}`` for each field in enumeration order."""
    for name, value in fields.items():
        content = content.replace("{{" + name + "}}", to_text(value))
    return content


def _expand_conditional(match: re.Match[str], fields: Mapping[str, Any]) -> str:
    name, inner = match.group(1), match.group(2)
    if name in fields and is_truthy(fields[name]):
        return inner
    return ""


def _expand_loop(match: re.Match[str], fields: Mapping[str, Any]) -> str:
    name, body = match.group(1), match.group(2)
    items = fields.get(name)
    if not is_sequence(items):
        return ""
    return "".join(_substitute(body, render_fields(item)) for item in items)
