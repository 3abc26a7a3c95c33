"""
Ability resolution.

`AbilityResolver.resolve` turns an entity's declaration (plus an optional
call-site declaration) into a formatted ability result:

1. Explicit actions first, in declaration order, then each policy's
   instance checks in definition order. Duplicates collapse.
2. Each action is evaluated once through the authorization backend. A
   denied or unauthenticated action never stops the others.
3. The ordered ``{action: bool}`` mapping is handed to the serializer.

Nothing is cached: serializing the same entity twice evaluates twice.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
import logging
from typing import TYPE_CHECKING, Any, Literal

from resource_abilities.abilities.declaration import ActionsOrPolicy, AbilityDeclaration, as_declaration, declaration_of
from resource_abilities.abilities.exceptions import AbilityError, BackendEvaluationError, UnauthenticatedEvaluation
from resource_abilities.abilities.gate import AuthorizationBackend
from resource_abilities.abilities.policy import Policy
from resource_abilities.abilities.serializers import AbilitySerializer, ResultSerializer, load_serializer

if TYPE_CHECKING:
    from resource_abilities.settings import Settings

logger = logging.getLogger(__name__)

UnauthenticatedPolicy = Literal["deny", "raise"]


@dataclass(frozen=True)
class ResolverConfig:
    """
    Process-wide resolver configuration, built once at startup.

    - serializer: default result serializer (overridable per call)
    - unauthenticated: "deny" turns a guest-incompatible check into False,
      "raise" propagates UnauthenticatedEvaluation
    """

    serializer: ResultSerializer = field(default_factory=AbilitySerializer)
    unauthenticated: UnauthenticatedPolicy = "deny"

    @classmethod
    def from_settings(cls, settings: Settings) -> ResolverConfig:
        return cls(
            serializer=load_serializer(settings.ability_serializer),
            unauthenticated=settings.unauthenticated_abilities,
        )


class AbilityResolver:
    def __init__(self, backend: AuthorizationBackend, config: ResolverConfig | None = None):
        self.backend = backend
        self.config = config if config is not None else ResolverConfig()

    def resolve(
        self,
        entity: Any,
        subject: Any,
        actions_or_policy: ActionsOrPolicy | None = None,
        serializer: ResultSerializer | None = None,
    ) -> Any:
        declaration = self._declaration_for(entity, actions_or_policy)
        abilities: dict[str, bool] = {}
        for action, extra_args, policy in self.plan(declaration):
            abilities[action] = self._evaluate(subject, action, entity, extra_args, policy)

        active = serializer if serializer is not None else self.config.serializer
        return active.format(abilities)

    def resolve_many(
        self,
        entities: Iterable[Any],
        subject: Any,
        actions_or_policy: ActionsOrPolicy | None = None,
        serializer: ResultSerializer | None = None,
    ) -> list[Any]:
        return [self.resolve(entity, subject, actions_or_policy, serializer) for entity in entities]

    def plan(self, declaration: AbilityDeclaration) -> list[tuple[str, tuple[Any, ...], Policy | None]]:
        """
        Final (action, extra_args, policy) list for a declaration. ``policy``
        is the policy an action was expanded from, None for explicit actions.

        Raises PolicyNotFound for unknown policy references.
        """

        planned: dict[str, tuple[tuple[Any, ...], Policy | None]] = {
            action: (extra_args, None) for action, extra_args in declaration.actions.items()
        }
        for reference, extra_args in declaration.policies.items():
            policy = self.backend.resolve_policy(reference)
            for action in policy.instance_checks():
                planned.setdefault(action, (extra_args, policy))
        return [(action, extra_args, policy) for action, (extra_args, policy) in planned.items()]

    def _declaration_for(self, entity: Any, actions_or_policy: ActionsOrPolicy | None) -> AbilityDeclaration:
        declared = declaration_of(entity) or AbilityDeclaration()
        if actions_or_policy is None:
            return declared
        return declared.merged(as_declaration(actions_or_policy))

    def _evaluate(
        self,
        subject: Any,
        action: str,
        entity: Any,
        extra_args: tuple[Any, ...],
        policy: Policy | None = None,
    ) -> bool:
        try:
            allowed = bool(self.backend.evaluate(subject, action, entity, extra_args, policy))
        except UnauthenticatedEvaluation:
            if self.config.unauthenticated == "raise":
                raise
            logger.debug("No subject for ability %s on %r, denying", action, entity)
            return False
        except AbilityError:
            raise
        except Exception as exc:
            logger.warning("Authorization backend failed for ability %s on %r", action, entity)
            raise BackendEvaluationError(action, entity) from exc

        logger.debug("Ability %s on %r -> %s", action, entity, allowed)
        return allowed
