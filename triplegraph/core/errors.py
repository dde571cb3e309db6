"""Error hierarchy for the triple graph engine.

All errors include retry semantics so callers can tell a forbidden or
malformed request from a transient infrastructure fault.
Check the .retryable attribute to determine if an operation can be retried.

Not-found is never an error: lookups return None, False or an empty list.
"""

from __future__ import annotations


class TripleGraphError(Exception):
    """Base error for the triple graph engine.

    All engine-specific errors inherit from this.
    """

    retryable: bool = False


# =============================================================================
# Vocabulary Errors
# =============================================================================


class UnknownVerbError(TripleGraphError):
    """Predicate is not in the verb registry.

    Attributes:
        verb_id: The unresolved verb id

    Retry: Never retryable - register the verb first.
    """

    def __init__(self, verb_id: str) -> None:
        self.verb_id = verb_id
        self.reason = "unknown verb"
        super().__init__(f"Unknown verb: {verb_id}")


class UnknownRoleError(TripleGraphError):
    """Role is not in the role registry.

    Attributes:
        role_id: The unresolved role id

    Retry: Never retryable - register the role first.
    """

    def __init__(self, role_id: str) -> None:
        self.role_id = role_id
        self.reason = "unknown role"
        super().__init__(f"Unknown role: {role_id}")


class CycleDetectedError(TripleGraphError):
    """Role inheritance reaches the role it started from.

    Attributes:
        role_id: The role whose ancestor chain loops
        chain: Role ids walked before the loop was found

    Retry: Never retryable - fix the role's inherits list.
    """

    def __init__(self, role_id: str, chain: list[str]) -> None:
        self.role_id = role_id
        self.chain = chain
        super().__init__(f"Role inheritance cycle at {role_id}: {' -> '.join(chain)}")


class VocabularyError(TripleGraphError):
    """Verb or role definitions could not be loaded.

    Attributes:
        source: File or store the definitions came from
        reason: Human-readable error description

    Retry: Never retryable - fix the vocabulary source.
    """

    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"Invalid vocabulary in {source}: {reason}")


# =============================================================================
# Authorization Errors
# =============================================================================


class CapabilityDeniedError(TripleGraphError):
    """Role may not exercise the verb.

    Attributes:
        role_id: The acting role
        verb_id: The requested verb
        reason: Why the check failed ("role lacks capability",
            "verb restricted to other roles")

    Retry: Never retryable - the same request fails identically.
    """

    def __init__(self, role_id: str, verb_id: str, reason: str) -> None:
        self.role_id = role_id
        self.verb_id = verb_id
        self.reason = reason
        super().__init__(f"Role {role_id} may not use {verb_id}: {reason}")


# =============================================================================
# Query Errors
# =============================================================================


class InvalidPatternError(TripleGraphError):
    """Pattern cannot be evaluated.

    Raised for fully-wildcard patterns (unindexed full scans) and for
    query strings that do not parse.

    Attributes:
        pattern: The rejected pattern, as text
        reason: Human-readable error description

    Retry: Never retryable - pin at least one field.
    """

    def __init__(self, pattern: str, reason: str) -> None:
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"Invalid pattern {pattern!r}: {reason}")


class DepthExceededError(TripleGraphError):
    """Requested traversal depth is above the engine-wide bound.

    Attributes:
        requested: Depth the caller asked for
        maximum: Configured MAX_TRAVERSAL_DEPTH

    Retry: Never retryable - request a smaller depth.
    """

    def __init__(self, requested: int, maximum: int) -> None:
        self.requested = requested
        self.maximum = maximum
        super().__init__(f"Depth {requested} exceeds maximum of {maximum}")


# =============================================================================
# Storage Errors
# =============================================================================


class StoreUnavailableError(TripleGraphError):
    """External relationship store failed.

    Attributes:
        operation: The operation that failed (upsert, query, delete, ...)
        reason: Human-readable error description
        retry_after_seconds: Suggested wait time before retry

    Retry: Retryable by the caller with backoff. The engine itself never
    retries; the whole logical operation must be repeated.
    """

    retryable = True

    def __init__(
        self,
        operation: str,
        reason: str,
        retry_after_seconds: int | None = None,
    ) -> None:
        self.operation = operation
        self.reason = reason
        self.retry_after_seconds = retry_after_seconds
        super().__init__(f"Store {operation} failed: {reason}")
