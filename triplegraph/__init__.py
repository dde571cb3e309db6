"""Semantic triple graph engine.

Stores subject-predicate-object facts over a controlled business
vocabulary, with role-based capability checks, bidirectional edge storage,
bounded traversal and pattern queries.
"""

from triplegraph.core.errors import (
    CapabilityDeniedError,
    CycleDetectedError,
    DepthExceededError,
    InvalidPatternError,
    StoreUnavailableError,
    TripleGraphError,
    UnknownRoleError,
    UnknownVerbError,
    VocabularyError,
)
from triplegraph.core.schema import DangerLevel, Direction, EntityRef, RoleDef, VerbDef
from triplegraph.core.types import CapabilityResult, Triple, TripleContext, TripleID, TriplePattern
from triplegraph.engine import TripleGraphEngine

__all__ = [
    "TripleGraphEngine",
    "EntityRef",
    "Triple",
    "TripleID",
    "TripleContext",
    "TriplePattern",
    "VerbDef",
    "RoleDef",
    "DangerLevel",
    "Direction",
    "CapabilityResult",
    "TripleGraphError",
    "UnknownVerbError",
    "UnknownRoleError",
    "CapabilityDeniedError",
    "CycleDetectedError",
    "InvalidPatternError",
    "DepthExceededError",
    "StoreUnavailableError",
    "VocabularyError",
]
