"""Errors raised while resolving abilities. Declaring abilities never raises."""

from __future__ import annotations

from typing import Any


class AbilityError(Exception):
    """Base class for ability resolution errors."""


class PolicyNotFound(AbilityError, LookupError):
    """A declared policy reference does not match a registered policy."""

    def __init__(self, reference: Any):
        self.reference = reference
        super().__init__(f"No policy registered for reference {reference!r}")


class UnauthenticatedEvaluation(AbilityError):
    """An ability check needs an acting subject but none was given."""

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"Ability {action!r} requires an authenticated subject")


class BackendEvaluationError(AbilityError):
    """The authorization backend raised while evaluating an ability."""

    def __init__(self, action: str, entity: Any):
        self.action = action
        self.entity = entity
        super().__init__(f"Evaluating ability {action!r} for {entity!r} failed")
