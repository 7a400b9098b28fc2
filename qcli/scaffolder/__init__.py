"""qcli scaffolder -- template registry and marker-language renderer.

Quick usage::

    from qcli.config import Config
    from qcli.scaffolder import RenderContext, TemplateEngine

    config = Config.load()
    engine = TemplateEngine.from_config(config)
    text = engine.render("readme", RenderContext(ProjectName="Shop"))
"""

from qcli.scaffolder.models import Renderable, RenderContext, render_fields
from qcli.scaffolder.templates import (
    TemplateEngine,
    TemplateError,
    TemplateNotFound,
    TemplateRenderError,
)

__all__ = [
    "RenderContext",
    "Renderable",
    "TemplateEngine",
    "TemplateError",
    "TemplateNotFound",
    "TemplateRenderError",
    "render_fields",
]
