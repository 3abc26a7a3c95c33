"""
Ability declarations.

A declaration records *which* abilities should be evaluated for an entity.
It is pure bookkeeping: nothing is evaluated and nothing can fail here.

Accepted forms for ``actions_or_policy``:
- a single action name: ``"update"``
- an iterable of action names and/or policies: ``["view", "update"]``
- a `Policy` object or a `PolicyReference` (expands at resolution time)
- another `AbilityDeclaration` (merged)

Declarations are additive: declaring twice unions the actions. What a bulk
load applies is kept apart and replaced by the next load of the entity.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, TypeVar, Union

from resource_abilities.abilities.policy import Policy, PolicyLike, PolicyReference

# Instance attributes holding declarations (transient, never persisted).
DECLARATION_ATTR = "_ability_declaration"
# (load token, declaration) applied by the most recent declared load.
LOADER_DECLARATION_ATTR = "_ability_loader_declaration"

ActionsOrPolicy = Union[str, Policy, PolicyReference, "AbilityDeclaration", Iterable[Union[str, Policy, PolicyReference]]]

E = TypeVar("E")


@dataclass
class AbilityDeclaration:
    """Ordered explicit actions and policy references, each with extra args."""

    actions: dict[str, tuple[Any, ...]] = field(default_factory=dict)
    policies: dict[PolicyLike, tuple[Any, ...]] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return bool(self.actions or self.policies)

    def add(self, actions_or_policy: ActionsOrPolicy, extra_args: tuple[Any, ...] = ()) -> AbilityDeclaration:
        if isinstance(actions_or_policy, AbilityDeclaration):
            self.actions.update(actions_or_policy.actions)
            self.policies.update(actions_or_policy.policies)
            return self

        if isinstance(actions_or_policy, (str, Policy, PolicyReference)):
            items: Iterable[Any] = (actions_or_policy,)
        else:
            items = actions_or_policy

        for item in items:
            if isinstance(item, (Policy, PolicyReference)):
                self.policies[item] = tuple(extra_args)
            else:
                self.actions[str(item)] = tuple(extra_args)
        return self

    def merged(self, other: AbilityDeclaration | None) -> AbilityDeclaration:
        """New declaration: self first, then other (other wins for extra args)."""
        result = self.copy()
        if other is not None:
            result.add(other)
        return result

    def copy(self) -> AbilityDeclaration:
        return AbilityDeclaration(dict(self.actions), dict(self.policies))


def as_declaration(actions_or_policy: ActionsOrPolicy | None, extra_args: tuple[Any, ...] = ()) -> AbilityDeclaration:
    if actions_or_policy is None:
        return AbilityDeclaration()
    if isinstance(actions_or_policy, AbilityDeclaration) and not extra_args:
        return actions_or_policy.copy()
    return AbilityDeclaration().add(actions_or_policy, extra_args)


def declaration_of(entity: Any) -> AbilityDeclaration | None:
    """
    Effective declaration: what the latest declared load applied, followed
    by what was declared on the entity itself.
    """

    own = getattr(entity, DECLARATION_ATTR, None)
    loaded = getattr(entity, LOADER_DECLARATION_ATTR, None)
    if loaded is None:
        return own
    return loaded[1].merged(own)


def declare_on_entity(entity: E, actions_or_policy: ActionsOrPolicy, *extra_args: Any) -> E:
    """
    Attach abilities to a single entity, unioning with anything already
    declared. ``extra_args`` are passed to every check declared by this call.

    Returns the entity so calls can be chained.
    """

    declaration = getattr(entity, DECLARATION_ATTR, None)
    if declaration is None:
        declaration = AbilityDeclaration()
        setattr(entity, DECLARATION_ATTR, declaration)
    declaration.add(actions_or_policy, extra_args)
    return entity


def declare_from_load(entity: E, declaration: AbilityDeclaration, load_token: object) -> E:
    """
    Apply a bulk-load declaration to an entity.

    Within one load (same ``load_token``) declarations union; a later load
    replaces what an earlier load applied. Entities live in the session's
    identity map, so without this two loads would share their actions.
    """

    current = getattr(entity, LOADER_DECLARATION_ATTR, None)
    if current is not None and current[0] is load_token:
        current[1].add(declaration)
    else:
        setattr(entity, LOADER_DECLARATION_ATTR, (load_token, declaration.copy()))
    return entity


def forget_abilities(entity: Any) -> None:
    """Drop the entity's declarations, if any."""
    for attr in (DECLARATION_ATTR, LOADER_DECLARATION_ATTR):
        if attr in getattr(entity, "__dict__", {}):
            delattr(entity, attr)
