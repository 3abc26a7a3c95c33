"""
Policies: named, ordered collections of ability checks for one entity type.

Checks are registered explicitly when the policy is defined:

    post_policy = Policy("PostPolicy", model=Post)

    @post_policy.check(guest=True)
    def view(user, post) -> bool: ...

    @post_policy.check(instance=False)
    def create(user) -> bool: ...

A policy expands to its *instance* checks when used as an ability
declaration. Checks registered with ``instance=False`` (create-style checks
that do not take an entity) are only evaluated when named explicitly.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
import logging
from typing import Any

from resource_abilities.abilities.exceptions import PolicyNotFound

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Check:
    """Single ability check registered on a policy."""

    name: str
    fn: Callable[..., Any]
    requires_instance: bool = True
    allows_guest: bool = False


@dataclass(frozen=True)
class PolicyReference:
    """Lazy, by-name reference to a policy resolved through a registry."""

    name: str


class Policy:
    def __init__(self, name: str, model: type | None = None):
        self.name = name
        self.model = model
        self._checks: dict[str, Check] = {}

    def __repr__(self) -> str:
        return f"Policy({self.name!r})"

    def check(
        self,
        name: str | None = None,
        *,
        instance: bool = True,
        guest: bool = False,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """
        Decorator registering a check under ``name`` (defaults to the
        function name).

        - instance=False: the check does not receive the entity.
        - guest=True: the check is evaluated for an absent subject (None)
          instead of failing as unauthenticated.
        """

        def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
            self.add_check(Check(name or fn.__name__, fn, requires_instance=instance, allows_guest=guest))
            return fn

        return decorator

    def add_check(self, check: Check) -> None:
        if check.name in self._checks:
            logger.debug("Replacing check %s on policy %s", check.name, self.name)
        self._checks[check.name] = check

    def get(self, name: str) -> Check | None:
        return self._checks.get(name)

    @property
    def checks(self) -> tuple[Check, ...]:
        return tuple(self._checks.values())

    def methods(self) -> dict[str, bool]:
        """Check name -> whether it is an instance check, in definition order."""
        return {c.name: c.requires_instance for c in self._checks.values()}

    def instance_checks(self) -> tuple[str, ...]:
        return tuple(c.name for c in self._checks.values() if c.requires_instance)


PolicyLike = Policy | PolicyReference


class PolicyRegistry:
    """Policies by name and by the model type they guard."""

    def __init__(self, policies: Iterable[Policy] = ()):
        self._by_name: dict[str, Policy] = {}
        self._by_model: dict[type, Policy] = {}
        for policy in policies:
            self.register(policy)

    def register(self, policy: Policy) -> Policy:
        self._by_name[policy.name] = policy
        if policy.model is not None:
            self._by_model[policy.model] = policy
        return policy

    def __contains__(self, policy: object) -> bool:
        return isinstance(policy, Policy) and self._by_name.get(policy.name) is policy

    def resolve(self, reference: PolicyLike) -> Policy:
        """
        Resolve a policy object or `PolicyReference` to a registered policy.

        Raises PolicyNotFound when the reference is unknown.
        """

        if isinstance(reference, Policy):
            if reference in self:
                return reference
            raise PolicyNotFound(reference)

        if isinstance(reference, PolicyReference):
            policy = self._by_name.get(reference.name)
            if policy is None:
                raise PolicyNotFound(reference.name)
            return policy

        raise PolicyNotFound(reference)

    def policy_for(self, entity: Any) -> Policy | None:
        """Policy guarding the entity's type (or the closest base class)."""
        for cls in type(entity).__mro__:
            policy = self._by_model.get(cls)
            if policy is not None:
                return policy
        return None
