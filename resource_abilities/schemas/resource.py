"""
Serialization hook.

`ResourceModel` is the base for output models built from ORM entities.
Validating an entity with an `AbilityContext` in the validation context
resolves the entity's abilities and embeds them under ``abilities_key``:

    PostOut.model_validate(post, context=ability_context.validation_context())

Relationship fields declared with `when_loaded()` are only read when the
relationship is already loaded; otherwise they are left out of the output
(no lazy loads while serializing). Nested resources resolve their own
declarations with the same context.
"""

from __future__ import annotations

import logging
from typing import Any, ClassVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializerFunctionWrapHandler,
    ValidationInfo,
    ValidatorFunctionWrapHandler,
    model_serializer,
    model_validator,
)
from pydantic.fields import FieldInfo
from sqlalchemy import inspect
from sqlalchemy.orm import InstanceState

from resource_abilities.abilities.exceptions import PolicyNotFound
from resource_abilities.security.context import ABILITIES_CONTEXT_KEY

logger = logging.getLogger(__name__)

_WHEN_LOADED = "when_loaded"


def when_loaded(default: Any = None) -> Any:
    """Field for a relationship that is only serialized when already loaded."""
    return Field(default=default, json_schema_extra={_WHEN_LOADED: True})


def _is_when_loaded(field_info: FieldInfo) -> bool:
    extra = field_info.json_schema_extra
    return isinstance(extra, dict) and bool(extra.get(_WHEN_LOADED))


class ResourceModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    # Output key for the resolved abilities.
    abilities_key: ClassVar[str] = "abilities"
    # Actions or policy resolved for every entity of this resource, merged
    # with whatever was declared on the entity.
    abilities_for: ClassVar[Any] = None

    abilities: Any = None

    @model_validator(mode="wrap")
    @classmethod
    def resolve_abilities(cls, data: Any, handler: ValidatorFunctionWrapHandler, info: ValidationInfo) -> Any:
        state = inspect(data, raiseerr=False)
        if not isinstance(state, InstanceState):
            return handler(data)

        model = handler(cls.loaded_attributes(data, state))

        ability_context = (info.context or {}).get(ABILITIES_CONTEXT_KEY)
        if ability_context is not None:
            try:
                model.abilities = ability_context.resolve(data, cls.abilities_for)
            except PolicyNotFound as exc:
                # Leave abilities unresolved: the key is omitted, the rest still serializes.
                logger.warning("Skipping abilities for %r: %s", data, exc)
        return model

    @classmethod
    def loaded_attributes(cls, entity: Any, state: InstanceState) -> dict[str, Any]:
        values: dict[str, Any] = {}
        unloaded = state.unloaded
        for name, field_info in cls.model_fields.items():
            if name == "abilities":
                continue
            if _is_when_loaded(field_info) and name in unloaded:
                continue
            if hasattr(entity, name):
                values[name] = getattr(entity, name)
        return values

    @model_serializer(mode="wrap")
    def embed_abilities(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        data = handler(self)
        abilities = data.pop("abilities", None)

        for name, field_info in type(self).model_fields.items():
            if _is_when_loaded(field_info) and name not in self.model_fields_set:
                data.pop(name, None)

        # None means "not resolved"; an empty result is still embedded.
        if self.abilities is not None:
            data[self.abilities_key] = abilities
        return data
