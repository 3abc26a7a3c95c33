"""
Result serializers.

A serializer turns the ordered ``{action: bool}`` mapping produced by the
resolver into whatever shape is embedded in the output representation.

- `AbilitySerializer` (default): the mapping itself.
- `GrantedAbilitiesSerializer`: list of granted action names.
- `DeniedAbilitiesSerializer`: list of denied action names.

Serializers are pure and stateless, so a single instance can be shared by
every request in the process.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from pydantic import ImportString, TypeAdapter


@runtime_checkable
class ResultSerializer(Protocol):
    def format(self, abilities: Mapping[str, bool]) -> Any: ...


class AbilitySerializer:
    """Return the mapping unchanged (action name -> bool), preserving order."""

    def format(self, abilities: Mapping[str, bool]) -> dict[str, bool]:
        return {action: bool(allowed) for action, allowed in abilities.items()}


class GrantedAbilitiesSerializer:
    """Return only the names of granted actions."""

    def format(self, abilities: Mapping[str, bool]) -> list[str]:
        return [action for action, allowed in abilities.items() if allowed]


class DeniedAbilitiesSerializer:
    """Return only the names of denied actions."""

    def format(self, abilities: Mapping[str, bool]) -> list[str]:
        return [action for action, allowed in abilities.items() if not allowed]


_import_string = TypeAdapter(ImportString)


def load_serializer(reference: Any) -> ResultSerializer:
    """
    Build a serializer from a configuration value.

    Accepts an import string (``"package.module:ClassName"``), a serializer
    class, or an already constructed serializer instance.
    """

    if isinstance(reference, str):
        reference = _import_string.validate_python(reference)

    if isinstance(reference, type):
        reference = reference()

    if not isinstance(reference, ResultSerializer):
        raise TypeError(f"{reference!r} does not implement format(abilities)")

    return reference
