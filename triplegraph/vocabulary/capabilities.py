"""Capability resolution: may a role exercise a verb?

A pure function of registry state at call time. No I/O, no mutation.
"""

from __future__ import annotations

import logging

from triplegraph.config import WILDCARD
from triplegraph.core.errors import CycleDetectedError, UnknownRoleError
from triplegraph.core.types import CapabilityResult
from triplegraph.vocabulary.roles import RoleRegistry
from triplegraph.vocabulary.verbs import VerbRegistry

logger = logging.getLogger(__name__)

REASON_UNKNOWN_VERB = "unknown verb"
REASON_UNKNOWN_ROLE = "unknown role"
REASON_LACKS_CAPABILITY = "role lacks capability"
REASON_RESTRICTED = "verb restricted to other roles"


class CapabilityResolver:
    """Combines the verb and role registries into allow/deny decisions."""

    def __init__(self, verbs: VerbRegistry, roles: RoleRegistry) -> None:
        self._verbs = verbs
        self._roles = roles

    def check(self, role_id: str, verb_id: str) -> CapabilityResult:
        """Decide whether role_id may exercise verb_id.

        Order of checks:
            1. Verb must exist (a "*" role does not bypass this)
            2. Role must exist
            3. Effective capabilities must contain "*" or the verb; an
               inheritance cycle counts as no capabilities
            4. A non-empty required_role must contain the role or one of
               its ancestors

        Args:
            role_id: Acting role
            verb_id: Requested predicate

        Returns:
            CapabilityResult; reason is set on denial
        """
        verb = self._verbs.resolve(verb_id)
        if verb is None:
            return CapabilityResult(allowed=False, reason=REASON_UNKNOWN_VERB)

        try:
            lineage, capabilities = self._roles.resolve_lineage(role_id)
        except UnknownRoleError as e:
            if e.role_id == role_id:
                return CapabilityResult(allowed=False, reason=REASON_UNKNOWN_ROLE)
            logger.warning("role_parent_missing role=%s parent=%s", role_id, e.role_id)
            lineage, capabilities = [role_id], frozenset()
        except CycleDetectedError as e:
            logger.warning("role_cycle_detected role=%s chain=%s", role_id, "->".join(e.chain))
            lineage, capabilities = [role_id], frozenset()

        if WILDCARD not in capabilities and verb_id not in capabilities:
            return CapabilityResult(allowed=False, reason=REASON_LACKS_CAPABILITY)

        if verb.required_role and verb.required_role.isdisjoint(lineage):
            return CapabilityResult(allowed=False, reason=REASON_RESTRICTED)

        return CapabilityResult(allowed=True, requires_approval=verb.requires_approval)

    def role_capabilities(self, role_id: str) -> list[str]:
        """Sorted effective capabilities. Empty for unknown or cyclic roles."""
        try:
            return sorted(self._roles.effective_capabilities(role_id))
        except (UnknownRoleError, CycleDetectedError):
            return []

    def allowed_verbs(self, role_id: str) -> list[str]:
        """Registered verb ids the role may exercise, sorted."""
        return [v.id for v in self._verbs.list() if self.check(role_id, v.id).allowed]
