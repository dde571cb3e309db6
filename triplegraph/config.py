"""Engine constants and the seed vocabulary.

These tables ARE the vocabulary. Adding a business verb means adding one
row to SEED_VERBS; granting it means adding its id to a role in SEED_ROLES.
Registries are built from these at construction time and extended at
runtime with custom definitions.
"""

from __future__ import annotations

from triplegraph.core.schema import DangerLevel, RoleDef, VerbDef

# Namespace used when a caller passes a bare entity id
DEFAULT_NAMESPACE: str = "default"

# Traversal bounds
MAX_TRAVERSAL_DEPTH: int = 10  # Requests above this raise DepthExceededError
DEFAULT_TRAVERSAL_DEPTH: int = 2
DEFAULT_PATH_DEPTH: int = 5

# Query configuration
DEFAULT_QUERY_LIMIT: int = 100
WILDCARD: str = "*"  # Role capability granting every registered verb


def _verb(
    verb_id: str,
    category: str,
    danger: DangerLevel = DangerLevel.SAFE,
    required_role: tuple[str, ...] = (),
    requires_approval: bool = False,
    description: str = "",
) -> VerbDef:
    return VerbDef(
        id=verb_id,
        gerund=verb_id,
        category=category,
        danger_level=danger,
        required_role=frozenset(required_role),
        requires_approval=requires_approval,
        description=description,
    )


SEED_VERBS: dict[str, VerbDef] = {
    v.id: v
    for v in [
        # -- Finance --
        _verb("invoicing", "finance", DangerLevel.LOW, description="Issue an invoice"),
        _verb("paying", "finance", DangerLevel.HIGH, requires_approval=True, description="Release a payment"),
        _verb("reconciling", "finance", DangerLevel.LOW, description="Match ledger entries"),
        _verb("refunding", "finance", DangerLevel.HIGH, requires_approval=True, description="Return funds"),
        _verb("budgeting", "finance", DangerLevel.MEDIUM, ("finance_manager",), description="Allocate budget"),
        # -- Compliance --
        _verb("auditing", "compliance", DangerLevel.MEDIUM, ("auditor",), description="Audit records"),
        _verb("reporting", "compliance", DangerLevel.SAFE, description="Produce a report"),
        # -- Sales --
        _verb("quoting", "sales", DangerLevel.SAFE, description="Send a price quote"),
        _verb("selling", "sales", DangerLevel.LOW, description="Close a sale"),
        _verb("contracting", "sales", DangerLevel.MEDIUM, requires_approval=True, description="Sign a contract"),
        # -- Supply chain --
        _verb("purchasing", "supply-chain", DangerLevel.MEDIUM, description="Place a purchase order"),
        _verb("shipping", "supply-chain", DangerLevel.LOW, description="Dispatch goods"),
        _verb("receiving", "supply-chain", DangerLevel.LOW, description="Accept delivered goods"),
        _verb("stocking", "supply-chain", DangerLevel.SAFE, description="Update inventory"),
        # -- People --
        _verb("hiring", "people", DangerLevel.HIGH, ("hr_manager",), requires_approval=True, description="Hire staff"),
        _verb("onboarding", "people", DangerLevel.LOW, description="Onboard staff"),
        # -- General --
        _verb("relatesTo", "general", DangerLevel.SAFE, description="Generic association"),
        _verb("deleting", "general", DangerLevel.CRITICAL, ("admin",), requires_approval=True, description="Remove data"),
    ]
}


SEED_ROLES: dict[str, RoleDef] = {
    r.id: r
    for r in [
        RoleDef("admin", frozenset({WILDCARD}), description="Unrestricted operator"),
        RoleDef("system", frozenset({WILDCARD}), description="Internal producers"),
        RoleDef("viewer", frozenset({"reporting"}), description="Read-mostly staff"),
        RoleDef(
            "accountant",
            frozenset({"invoicing", "reconciling", "paying", "refunding", "auditing", "relatesTo"}),
            ("viewer",),
            description="Day-to-day bookkeeping",
        ),
        RoleDef("finance_manager", frozenset({"budgeting"}), ("accountant",), description="Owns budgets"),
        RoleDef("auditor", frozenset({"auditing"}), ("viewer",), description="Internal or external audit"),
        RoleDef("sales_rep", frozenset({"quoting", "selling", "relatesTo"}), ("viewer",)),
        RoleDef("sales_manager", frozenset({"contracting"}), ("sales_rep",)),
        RoleDef("procurement_officer", frozenset({"purchasing", "receiving"}), ("viewer",)),
        RoleDef("warehouse_clerk", frozenset({"shipping", "receiving", "stocking"})),
        RoleDef("hr_manager", frozenset({"hiring", "onboarding"}), ("viewer",)),
    ]
}
