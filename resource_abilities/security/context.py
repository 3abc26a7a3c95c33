from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from resource_abilities.abilities.declaration import ActionsOrPolicy
from resource_abilities.abilities.resolver import AbilityResolver
from resource_abilities.abilities.serializers import ResultSerializer

# Key under which the context travels in pydantic's validation context.
ABILITIES_CONTEXT_KEY = "abilities"


@dataclass(frozen=True)
class AbilityContext:
    """
    Per-request ability context: the shared resolver plus the acting subject.

    Passed to `ResourceModel.model_validate(..., context=ctx.validation_context())`.
    ``subject`` is None for anonymous requests.
    """

    resolver: AbilityResolver
    subject: Any = None
    serializer: ResultSerializer | None = None

    def resolve(self, entity: Any, actions_or_policy: ActionsOrPolicy | None = None) -> Any:
        return self.resolver.resolve(entity, self.subject, actions_or_policy, self.serializer)

    def validation_context(self) -> dict[str, Any]:
        return {ABILITIES_CONTEXT_KEY: self}
