"""Role-based access policies for every table in the platform."""

from carehome.policy.engine import PolicySet, as_row, build_policy_set, get_policy_set
from carehome.policy.types import (
    LEGACY_OPTIONS,
    Actor,
    Decision,
    Operation,
    Policy,
    PolicyOptions,
    Table,
)

__all__ = [
    "LEGACY_OPTIONS",
    "Actor",
    "Decision",
    "Operation",
    "Policy",
    "PolicyOptions",
    "PolicySet",
    "Table",
    "as_row",
    "build_policy_set",
    "get_policy_set",
]
