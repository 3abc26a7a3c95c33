"""
Ability declaration and resolution.

This package has no dependency on the database or HTTP layers. Declare
abilities with declare_on_entity(), then resolve them with an
AbilityResolver backed by a Gate.
"""

from .declaration import AbilityDeclaration, declaration_of, declare_on_entity, forget_abilities
from .exceptions import AbilityError, BackendEvaluationError, PolicyNotFound, UnauthenticatedEvaluation
from .gate import AuthorizationBackend, Gate
from .policy import Check, Policy, PolicyReference, PolicyRegistry
from .resolver import AbilityResolver, ResolverConfig
from .serializers import (
    AbilitySerializer,
    DeniedAbilitiesSerializer,
    GrantedAbilitiesSerializer,
    ResultSerializer,
    load_serializer,
)

__all__ = [
    "AbilityDeclaration",
    "AbilityError",
    "AbilityResolver",
    "AbilitySerializer",
    "AuthorizationBackend",
    "BackendEvaluationError",
    "Check",
    "DeniedAbilitiesSerializer",
    "Gate",
    "GrantedAbilitiesSerializer",
    "Policy",
    "PolicyNotFound",
    "PolicyReference",
    "PolicyRegistry",
    "ResolverConfig",
    "ResultSerializer",
    "UnauthenticatedEvaluation",
    "declaration_of",
    "declare_on_entity",
    "forget_abilities",
    "load_serializer",
]
