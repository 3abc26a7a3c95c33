"""
Authorization backend.

The resolver only needs the `AuthorizationBackend` protocol. `Gate` is the
in-repo implementation: policy checks looked up by the entity's type, plus
named gates (single ad-hoc checks not tied to a policy, e.g. role gates
loaded from YAML).

Evaluation of ``action`` for ``entity``:
1. the check of that name on the policy the action was expanded from;
2. else the check of that name on the entity's policy, if any;
3. else the gate of that name, if any;
4. else deny (undefined abilities are never granted).
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
import logging
from typing import TYPE_CHECKING, Any, Protocol

from resource_abilities.abilities.exceptions import UnauthenticatedEvaluation
from resource_abilities.abilities.policy import Check, Policy, PolicyLike, PolicyRegistry

if TYPE_CHECKING:
    from resource_abilities.security.config import AbilitiesConfig

logger = logging.getLogger(__name__)


class AuthorizationBackend(Protocol):
    def evaluate(
        self,
        subject: Any,
        action: str,
        entity: Any,
        extra_args: tuple[Any, ...] = (),
        policy: Policy | None = None,
    ) -> bool: ...

    def resolve_policy(self, reference: PolicyLike) -> Policy: ...


def role_names(subject: Any) -> frozenset[str]:
    """Role names of a subject whose ``roles`` are strings or objects with ``name``."""
    return frozenset(getattr(r, "name", r) for r in getattr(subject, "roles", None) or ())


class Gate:
    def __init__(self, registry: PolicyRegistry | None = None):
        self.registry = registry if registry is not None else PolicyRegistry()
        self._gates: dict[str, Check] = {}

    @classmethod
    def from_config(cls, config: AbilitiesConfig, registry: PolicyRegistry | None = None) -> Gate:
        gate = cls(registry)
        for name, rule in config.gates.items():
            gate.define_roles(name, rule.roles, guest=rule.guest)
        return gate

    def define(self, name: str, fn: Callable[..., Any], *, guest: bool = False) -> None:
        """Register a named gate. ``fn(subject, *extra_args)`` returns a bool."""
        self._gates[name] = Check(name, fn, requires_instance=False, allows_guest=guest)

    def define_roles(self, name: str, roles: Iterable[str], *, guest: bool = False) -> None:
        """Register a gate granted to subjects holding any of ``roles``."""
        allowed = frozenset(roles)

        def has_role(subject: Any, *_args: Any) -> bool:
            return bool(role_names(subject) & allowed)

        self.define(name, has_role, guest=guest)

    def has(self, name: str) -> bool:
        return name in self._gates

    def resolve_policy(self, reference: PolicyLike) -> Policy:
        return self.registry.resolve(reference)

    def evaluate(
        self,
        subject: Any,
        action: str,
        entity: Any,
        extra_args: tuple[Any, ...] = (),
        policy: Policy | None = None,
    ) -> bool:
        """
        ``policy`` is the policy the action was expanded from, if any; its
        check is used even when the policy does not guard the entity type.
        """

        check = policy.get(action) if policy is not None else None
        if check is None:
            check = self._find_check(action, entity)
        if check is None:
            logger.debug("Ability %s undefined for %s, denying", action, type(entity).__name__)
            return False

        if subject is None and not check.allows_guest:
            raise UnauthenticatedEvaluation(action)

        if check.requires_instance:
            return bool(check.fn(subject, entity, *extra_args))
        return bool(check.fn(subject, *extra_args))

    def _find_check(self, action: str, entity: Any) -> Check | None:
        policy = self.registry.policy_for(entity)
        if policy is not None:
            check = policy.get(action)
            if check is not None:
                return check
        return self._gates.get(action)
