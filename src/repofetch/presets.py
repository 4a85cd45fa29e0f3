"""Schema validation for imported preset files.

A preset file is a JSON array of :class:`~repofetch.models.Preset` objects.
:func:`validate_presets` checks arbitrary decoded JSON against that schema
and reports problems as ``path: message`` pairs, e.g.
``0.parameters.1.type: Input should be 'queryParam', 'cookie' or 'localStorage'``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from pydantic import TypeAdapter, ValidationError

from repofetch.models import Preset

_PRESETS_ADAPTER = TypeAdapter(list[Preset])

PRESET_SCHEMA_DESCRIPTION = """\
Preset files must be a JSON array containing preset objects.

Each preset must have:
  name (string)       - The display name of the preset
  parameters (array)  - List of parameters to apply

Each parameter must have:
  type   - One of: "queryParam", "cookie", or "localStorage"
  key    - The parameter name
  value  - The value to set

Optional fields:
  id, description, createdAt, updatedAt for presets
  id, description, primitiveType for parameters"""


@dataclass(frozen=True)
class PresetValidation:
    """Result of :func:`validate_presets`: either ``presets`` or ``error`` is set."""

    success: bool
    presets: Optional[list[Preset]] = None
    error: Optional[str] = None


def _format_errors(exc: ValidationError) -> str:
    messages = []
    for issue in exc.errors():
        path = ".".join(str(part) for part in issue["loc"])
        messages.append(f"{path}: {issue['msg']}" if path else issue["msg"])
    return "; ".join(messages)


def validate_presets(data: Any) -> PresetValidation:
    """Validate decoded JSON against the preset array schema."""
    try:
        presets = _PRESETS_ADAPTER.validate_python(data)
    except ValidationError as exc:
        return PresetValidation(success=False, error=_format_errors(exc))
    return PresetValidation(success=True, presets=presets)
