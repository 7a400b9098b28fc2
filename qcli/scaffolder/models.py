"""Render models for the template engine.

The engine never inspects arbitrary attributes.  A model exposes its fields
through ``Renderable.render_fields()``; mappings, Pydantic models and
dataclasses are adapted through their statically declared fields.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel


@runtime_checkable
class Renderable(Protocol):
    """Anything that can enumerate its template fields."""

    def render_fields(self) -> Mapping[str, Any]:
        """Return ``{field name: value}`` in substitution order."""
        ...


class RenderContext:
    """A ready-made ``Renderable`` built from keyword arguments.

    Example::

        RenderContext(EntityName="Order", Namespace="Shop.Domain",
                      Properties=[RenderContext(Name="Id", Type="Guid")])
    """

    def __init__(self, fields: Mapping[str, Any] | None = None, **kwargs: Any) -> None:
        self._fields: dict[str, Any] = dict(fields or {})
        self._fields.update(kwargs)

    def render_fields(self) -> Mapping[str, Any]:
        return self._fields

    def __repr__(self) -> str:
        return f"RenderContext({self._fields!r})"


def render_fields(model: Any) -> Mapping[str, Any]:
    """Return the substitutable fields of *model*.

    Supported shapes, in order of precedence: ``Renderable``, ``Mapping``
    (string keys only), Pydantic ``BaseModel`` and dataclass instances.
    Anything else has no fields.
    """
    if model is None:
        return {}
    if isinstance(model, Renderable):
        return model.render_fields()
    if isinstance(model, Mapping):
        return {key: value for key, value in model.items() if isinstance(key, str)}
    if isinstance(model, BaseModel):
        return {name: getattr(model, name) for name in type(model).model_fields}
    if dataclasses.is_dataclass(model) and not isinstance(model, type):
        return {field.name: getattr(model, field.name) for field in dataclasses.fields(model)}
    return {}


def to_text(value: Any) -> str:
    """Textual form of a field value; ``None`` renders as the empty string."""
    if value is None:
        return ""
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def is_truthy(value: Any) -> bool:
    """Guard semantics for ``{{#if}}`` regions.

    ``True`` passes and ``False`` fails.  Any other non-``None`` value passes
    when its text is non-empty, so an empty list (``"[]"``) still passes.
    """
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    return to_text(value) != ""


def is_sequence(value: Any) -> bool:
    """``True`` for lists and tuples; strings and bytes are not iterated."""
    return isinstance(value, (list, tuple))
