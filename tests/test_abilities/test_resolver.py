"""Tests for AbilityResolver against an in-memory Gate."""

from __future__ import annotations

import pytest

from resource_abilities.abilities.declaration import declare_on_entity
from resource_abilities.abilities.exceptions import (
    BackendEvaluationError,
    PolicyNotFound,
    UnauthenticatedEvaluation,
)
from resource_abilities.abilities.gate import Gate
from resource_abilities.abilities.policy import Policy, PolicyReference, PolicyRegistry
from resource_abilities.abilities.resolver import AbilityResolver, ResolverConfig
from resource_abilities.abilities.serializers import GrantedAbilitiesSerializer


class Post:
    def __init__(self, id: int, author_id: int = 1):
        self.id = id
        self.author_id = author_id

    def __repr__(self) -> str:
        return f"Post#{self.id}"


class Subject:
    def __init__(self, id: int, denied=()):
        self.id = id
        self.denied = set(denied)


class RecordingGate(Gate):
    """Gate that records each evaluation."""

    def __init__(self, registry):
        super().__init__(registry)
        self.calls = []

    def evaluate(self, subject, action, entity, extra_args=(), policy=None):
        self.calls.append((action, entity, extra_args))
        return super().evaluate(subject, action, entity, extra_args, policy)


def _post_policy() -> Policy:
    policy = Policy("PostPolicy", model=Post)

    @policy.check(guest=True)
    def view(user, post):
        return True

    @policy.check()
    def update(user, post):
        return "update" not in user.denied

    @policy.check()
    def delete(user, post):
        return "delete" not in user.denied

    @policy.check(instance=False)
    def create(user):
        return True

    return policy


@pytest.fixture
def post_policy():
    return _post_policy()


@pytest.fixture
def gate(post_policy):
    return RecordingGate(PolicyRegistry([post_policy]))


@pytest.fixture
def resolver(gate):
    return AbilityResolver(gate)


def test_policy_expands_to_instance_checks(resolver, post_policy):
    post = Post(10)
    subject = Subject(1, denied={"update"})

    result = resolver.resolve(post, subject, post_policy)

    assert result == {"view": True, "update": False, "delete": True}
    assert list(result) == ["view", "update", "delete"]


def test_non_instance_check_only_when_named(resolver, post_policy, gate):
    post = declare_on_entity(Post(1), ["create", post_policy])

    result = resolver.resolve(post, Subject(1))

    assert list(result) == ["create", "view", "update", "delete"]
    assert [action for action, _, _ in gate.calls] == ["create", "view", "update", "delete"]


def test_declared_actions_evaluated_once_each_in_order(resolver, gate):
    post = Post(1)
    declare_on_entity(post, ["update", "view"])
    declare_on_entity(post, ["view", "delete"])

    result = resolver.resolve(post, Subject(1))

    assert list(result) == ["update", "view", "delete"]
    assert [action for action, _, _ in gate.calls] == ["update", "view", "delete"]


def test_explicit_actions_come_before_policy_actions(resolver, post_policy):
    post = declare_on_entity(Post(1), [post_policy, "delete", "publish"])

    result = resolver.resolve(post, Subject(1))

    assert list(result) == ["delete", "publish", "view", "update"]
    assert result["publish"] is False


def test_no_declaration_resolves_to_empty_mapping(resolver, gate):
    assert resolver.resolve(Post(1), Subject(1)) == {}
    assert gate.calls == []


def test_call_site_actions_merge_with_declared(resolver):
    post = declare_on_entity(Post(1), "view")

    assert resolver.resolve(post, Subject(1), "update") == {"view": True, "update": True}
    # The call-site declaration is not stored on the entity.
    assert resolver.resolve(post, Subject(1)) == {"view": True}


def test_results_are_not_cached(resolver, gate):
    post = declare_on_entity(Post(1), "view")
    resolver.resolve(post, Subject(1))
    resolver.resolve(post, Subject(1))

    assert len(gate.calls) == 2


def test_extra_args_are_passed_to_backend(gate):
    policy = gate.registry.resolve(PolicyReference("PostPolicy"))

    @policy.check("pin")
    def pin(user, post, board):
        return board == "front"

    resolver = AbilityResolver(gate)
    post = declare_on_entity(Post(1), "pin", "front")

    assert resolver.resolve(post, Subject(1)) == {"pin": True}
    assert gate.calls[-1] == ("pin", post, ("front",))


def test_per_call_serializer_override(resolver):
    post = declare_on_entity(Post(1), ["view", "update"])

    assert resolver.resolve(post, Subject(1, denied={"update"}), serializer=GrantedAbilitiesSerializer()) == ["view"]
    assert resolver.resolve(post, Subject(1, denied={"update"})) == {"view": True, "update": False}


def test_configured_default_serializer(gate):
    resolver = AbilityResolver(gate, ResolverConfig(serializer=GrantedAbilitiesSerializer()))

    assert resolver.resolve(Post(1), Subject(1)) == []
    assert resolver.resolve(declare_on_entity(Post(2), "view"), Subject(1)) == ["view"]


def test_guest_denied_by_default_without_stopping_other_checks(resolver, post_policy):
    result = resolver.resolve(Post(1), None, post_policy)
    assert result == {"view": True, "update": False, "delete": False}


def test_guest_raises_in_strict_mode(gate, post_policy):
    resolver = AbilityResolver(gate, ResolverConfig(unauthenticated="raise"))

    with pytest.raises(UnauthenticatedEvaluation) as exc_info:
        resolver.resolve(Post(1), None, post_policy)
    assert exc_info.value.action == "update"


def test_unknown_policy_reference_raises(resolver):
    post = declare_on_entity(Post(1), ["view", PolicyReference("CommentPolicy")])

    with pytest.raises(PolicyNotFound):
        resolver.resolve(post, Subject(1))


def test_backend_errors_propagate(gate):
    def broken(user, *args):
        raise RuntimeError("policy store unavailable")

    gate.define("audit", broken)
    resolver = AbilityResolver(gate)
    post = declare_on_entity(Post(1), ["view", "audit"])

    with pytest.raises(BackendEvaluationError) as exc_info:
        resolver.resolve(post, Subject(1))
    assert exc_info.value.action == "audit"
    assert isinstance(exc_info.value.__cause__, RuntimeError)


def test_non_boolean_backend_results_are_coerced(gate):
    gate.define("count", lambda user, *args: 3)
    gate.define("nothing", lambda user, *args: None)
    resolver = AbilityResolver(gate)

    result = resolver.resolve(declare_on_entity(Post(1), ["count", "nothing"]), Subject(1))

    assert result == {"count": True, "nothing": False}


def test_resolve_many_resolves_each_entity_independently(resolver):
    first = declare_on_entity(Post(1), "view")
    second = declare_on_entity(Post(2), "delete")

    assert resolver.resolve_many([first, second, Post(3)], Subject(1)) == [
        {"view": True},
        {"delete": True},
        {},
    ]


def test_policy_not_guarding_the_entity_type_uses_its_own_checks(gate, resolver):
    moderation = gate.registry.register(Policy("Moderation"))

    @moderation.check()
    def pin(user, post):
        return True

    post = declare_on_entity(Post(1), PolicyReference("Moderation"))

    assert resolver.resolve(post, Subject(1)) == {"pin": True}
    assert resolver.resolve(Post(2), Subject(1), ["pin"]) == {"pin": False}
