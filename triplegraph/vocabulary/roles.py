"""Role registry with inheritance flattening.

Same publication scheme as VerbRegistry: copy-on-write under a writer
lock, lock-free reads.
"""

from __future__ import annotations

import logging
import threading
from typing import Iterable

from triplegraph.core.errors import CycleDetectedError, UnknownRoleError
from triplegraph.core.schema import RoleDef

logger = logging.getLogger(__name__)


class RoleRegistry:
    """Catalog of roles and the verbs they may exercise."""

    def __init__(self, seed: Iterable[RoleDef] = ()) -> None:
        self._roles: dict[str, RoleDef] = {r.id: r for r in seed}
        self._write_lock = threading.Lock()

    def get_role(self, role_id: str) -> RoleDef | None:
        """Look up a role. None if unknown."""
        return self._roles.get(role_id)

    def register(self, role: RoleDef) -> RoleDef:
        """Add or replace a role definition.

        Parents need not exist yet; a missing parent surfaces when the
        role is resolved.
        """
        if not role.id:
            raise ValueError("Role id must be non-empty")
        with self._write_lock:
            self._roles = {**self._roles, role.id: role}
        logger.info("role_registered id=%s inherits=%s", role.id, ",".join(role.inherits) or "-")
        return role

    def list(self) -> list[RoleDef]:
        """All roles sorted by id."""
        return sorted(self._roles.values(), key=lambda r: r.id)

    def ancestors(self, role_id: str) -> list[str]:
        """The role followed by every role it inherits from.

        Depth-first over inherits, each role listed once. Diamond
        inheritance (two parents sharing a grandparent) is not a cycle; any
        loop reachable from role_id is.

        Args:
            role_id: Role to resolve

        Returns:
            Role ids, starting with role_id

        Raises:
            UnknownRoleError: role_id or one of its ancestors is not registered
            CycleDetectedError: inheritance loops somewhere above role_id
        """
        lineage, _ = self._walk(self._roles, role_id)
        return lineage

    def effective_capabilities(self, role_id: str) -> frozenset[str]:
        """Flattened, deduplicated capability set including inherited verbs.

        Raises:
            UnknownRoleError: role_id or an ancestor is not registered
            CycleDetectedError: inheritance loops
        """
        _, capabilities = self._walk(self._roles, role_id)
        return capabilities

    def resolve_lineage(self, role_id: str) -> tuple[list[str], frozenset[str]]:
        """Ancestors and effective capabilities read from one registry state.

        Raises:
            UnknownRoleError: role_id or an ancestor is not registered
            CycleDetectedError: inheritance loops
        """
        return self._walk(self._roles, role_id)

    @staticmethod
    def _walk(roles: dict[str, RoleDef], role_id: str) -> tuple[list[str], frozenset[str]]:
        order: list[str] = []
        capabilities: set[str] = set()
        done: set[str] = set()
        # (role, index of next parent to visit); the stack is the current chain
        stack: list[tuple[str, int]] = [(role_id, 0)]
        on_stack: set[str] = {role_id}
        while stack:
            current, next_parent = stack[-1]
            role = roles.get(current)
            if role is None:
                raise UnknownRoleError(current)
            if next_parent == 0:
                order.append(current)
                capabilities.update(role.capabilities)
            if next_parent == len(role.inherits):
                stack.pop()
                on_stack.discard(current)
                done.add(current)
                continue
            stack[-1] = (current, next_parent + 1)
            parent = role.inherits[next_parent]
            if parent in on_stack:
                chain = [rid for rid, _ in stack] + [parent]
                raise CycleDetectedError(role_id, chain)
            if parent not in done:
                stack.append((parent, 0))
                on_stack.add(parent)
        return order, frozenset(capabilities)

    def __contains__(self, role_id: object) -> bool:
        return role_id in self._roles

    def __len__(self) -> int:
        return len(self._roles)
