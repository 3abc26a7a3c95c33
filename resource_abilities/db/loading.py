from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
import logging
from typing import Any, TypeVar

from sqlalchemy import event, inspect
from sqlalchemy.orm import InstanceState, ORMExecuteState, Session

from resource_abilities.abilities.declaration import ActionsOrPolicy, AbilityDeclaration, as_declaration, declare_from_load

logger = logging.getLogger(__name__)

EXECUTION_OPTION = "ability_declaration"

S = TypeVar("S")


@dataclass(frozen=True)
class LoaderDeclaration:
    """
    Abilities for every entity produced by one load.

    ``relations`` maps relationship keys to the declaration for the related
    entities; each level is independent of its parent.
    """

    declaration: AbilityDeclaration = field(default_factory=AbilityDeclaration)
    relations: Mapping[str, LoaderDeclaration] = field(default_factory=dict)

    def merged(self, other: LoaderDeclaration) -> LoaderDeclaration:
        relations = dict(self.relations)
        for key, child in other.relations.items():
            relations[key] = relations[key].merged(child) if key in relations else child
        return LoaderDeclaration(self.declaration.merged(other.declaration), relations)


def abilities(
    actions_or_policy: ActionsOrPolicy | None = None,
    *extra_args: Any,
    relations: Mapping[str, ActionsOrPolicy | LoaderDeclaration] | None = None,
) -> LoaderDeclaration:
    """
    Build a loader declaration, e.g. for a nested relation:

        declare_on_loader(stmt, "view", relations={"comments": abilities("update", relations={"author": "view"})})
    """

    nested: dict[str, LoaderDeclaration] = {}
    for key, value in (relations or {}).items():
        nested[key] = value if isinstance(value, LoaderDeclaration) else abilities(value)
    return LoaderDeclaration(as_declaration(actions_or_policy, extra_args), nested)


def declare_on_loader(
    statement: S,
    actions_or_policy: ActionsOrPolicy | None,
    *extra_args: Any,
    relations: Mapping[str, ActionsOrPolicy | LoaderDeclaration] | None = None,
) -> S:
    """
    Attach abilities to a pending `Select` (or legacy `Query`).

    Returns a new statement; the original is untouched, so independent loads
    never share a declaration. Declaring again on the returned statement
    merges with the earlier declaration.
    """

    loader = abilities(actions_or_policy, *extra_args, relations=relations)
    existing = statement.get_execution_options().get(EXECUTION_OPTION)
    if existing is not None:
        loader = existing.merged(loader)
    return statement.execution_options(**{EXECUTION_OPTION: loader})


def declare_on_collection(
    entities: Iterable[Any],
    actions_or_policy: ActionsOrPolicy | None,
    *extra_args: Any,
    relations: Mapping[str, ActionsOrPolicy | LoaderDeclaration] | None = None,
) -> list[Any]:
    """Same as declare_on_loader, for entities that are already loaded."""
    loaded = list(entities)
    apply_loader_declaration(loaded, abilities(actions_or_policy, *extra_args, relations=relations))
    return loaded


def apply_loader_declaration(entities: Iterable[Any], loader: LoaderDeclaration, load_token: object | None = None) -> None:
    """
    Declare ``loader`` on each entity, then on each already-loaded related
    entity for the declared relations. Never triggers a lazy load.

    Each call is one load: it replaces whatever an earlier load applied to
    the same (identity-mapped) entities.
    """

    if load_token is None:
        load_token = object()
    for entity in entities:
        if entity is None:
            continue
        declare_from_load(entity, loader.declaration, load_token)
        for key, child in loader.relations.items():
            related = _loaded_relation(entity, key)
            if related is None:
                logger.debug("Relation %s not loaded on %r, skipping abilities", key, entity)
                continue
            apply_loader_declaration(related, child, load_token)


def _loaded_relation(entity: Any, key: str) -> list[Any] | None:
    state = inspect(entity, raiseerr=False)
    if isinstance(state, InstanceState):
        if key in state.unloaded:
            return None
        value = state.dict.get(key)
    else:
        value = getattr(entity, key, None)

    if value is None:
        return None
    if isinstance(inspect(value, raiseerr=False), InstanceState):
        return [value]
    if isinstance(value, Mapping):
        return list(value.values())
    if isinstance(value, Iterable) and not isinstance(value, (str, bytes)):
        return list(value)
    return [value]


def _mapped_entities(rows: Iterable[Any]) -> Iterator[Any]:
    for row in rows:
        for element in row:
            if isinstance(inspect(element, raiseerr=False), InstanceState):
                yield element


@event.listens_for(Session, "do_orm_execute")
def _apply_loader_declarations(execute_state: ORMExecuteState) -> Any:
    """
    Copy a statement's loader declaration onto every entity it loads.

    Relationship loads (selectinload sub-queries, lazy loads) are skipped;
    related entities are reached by walking the parent's loaded relations
    once the whole result, eager loads included, has been materialized.
    """

    if not execute_state.is_select or execute_state.is_relationship_load:
        return None

    loader = execute_state.execution_options.get(EXECUTION_OPTION)
    if loader is None:
        return None

    result = execute_state.invoke_statement()
    frozen = result.freeze()
    apply_loader_declaration(_mapped_entities(frozen()), loader)

    replay = frozen()
    # Joined eager loads of collections still require unique(); freezing
    # reads the raw rows and would otherwise drop that requirement.
    replay._unique_filter_state = result._unique_filter_state
    return replay
