"""Access policy evaluation.

The engine is a pure function of (actor, table, operation, row): it does no
I/O and keeps no state besides the rule table it was built with. Callers
resolve the actor first (see ``carehome.services.identity``) and pass row
data as mappings or ORM instances.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from functools import lru_cache
from typing import Any, TypeVar

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import NoInspectionAvailable

from carehome.core.config import get_settings
from carehome.core.exceptions import PolicyDeniedError
from carehome.core.logging import get_logger

from .rules import build_rules
from .types import Actor, Decision, Operation, Policy, PolicyOptions, Row, Table

logger = get_logger(__name__)

T = TypeVar("T")


def as_row(obj: Any) -> Row:
    """Convert an ORM instance or mapping into a column-name mapping."""
    if obj is None:
        return {}
    if isinstance(obj, Mapping):
        return obj
    try:
        state = sa_inspect(obj)
    except NoInspectionAvailable:
        return dict(vars(obj))
    return {attr.key: getattr(obj, attr.key) for attr in state.mapper.column_attrs}


class PolicySet:
    """An ordered rule table plus the options it was built from."""

    def __init__(self, policies: Sequence[Policy], options: PolicyOptions):
        self.options = options
        self._policies = tuple(policies)
        self._index: dict[tuple[Table, Operation], tuple[Policy, ...]] = {}
        for table in Table:
            for operation in Operation:
                self._index[(table, operation)] = tuple(
                    p for p in self._policies if p.applies_to(table, operation)
                )

    @property
    def policies(self) -> tuple[Policy, ...]:
        return self._policies

    def policies_for(self, table: Table, operation: Operation) -> tuple[Policy, ...]:
        return self._index[(Table(table), Operation(operation))]

    def _match(self, actor: Actor, candidates: Iterable[Policy], row: Row) -> Policy | None:
        for policy in candidates:
            if policy.check(actor, row):
                return policy
        return None

    def evaluate(
        self,
        actor: Actor | None,
        table: Table | str,
        operation: Operation | str,
        row: Any = None,
        new_row: Any = None,
    ) -> Decision:
        """Decide whether ``actor`` may perform ``operation`` on ``row``.

        For UPDATE, ``row`` is the current row and ``new_row`` the row after
        the change; both must be accepted (by any policy each). When
        ``new_row`` is omitted the current row is checked twice.

        Args:
            actor: Caller, or None for an unauthenticated request
            table: Target table
            operation: SELECT, INSERT, UPDATE or DELETE
            row: Row being read, written or deleted
            new_row: Row after an UPDATE

        Returns:
            Decision, truthy when permitted
        """
        table = Table(table)
        operation = Operation(operation)

        if actor is None:
            return Decision(False, table, operation, reason="not authenticated")
        if self.options.enforce_soft_delete and not actor.is_active:
            return Decision(False, table, operation, reason="actor profile is inactive")

        candidates = self.policies_for(table, operation)
        if not candidates:
            return Decision(
                False,
                table,
                operation,
                reason=f"no policy grants {operation.value} on {table.value}",
            )

        current = as_row(row)
        matched = self._match(actor, candidates, current)
        if matched is None:
            return Decision(
                False,
                table,
                operation,
                reason=f"no {operation.value} policy on {table.value} matched",
            )

        if operation == Operation.UPDATE and new_row is not None:
            checked = self._match(actor, candidates, as_row(new_row))
            if checked is None:
                return Decision(
                    False,
                    table,
                    operation,
                    reason=f"updated row violates {table.value} policies",
                )

        return Decision(True, table, operation, policy=matched.name, reason=matched.description)

    def permits(
        self,
        actor: Actor | None,
        table: Table | str,
        operation: Operation | str,
        row: Any = None,
        new_row: Any = None,
    ) -> bool:
        return self.evaluate(actor, table, operation, row, new_row).allowed

    def require(
        self,
        actor: Actor | None,
        table: Table | str,
        operation: Operation | str,
        row: Any = None,
        new_row: Any = None,
    ) -> Decision:
        """Evaluate and raise PolicyDeniedError when the request is denied."""
        decision = self.evaluate(actor, table, operation, row, new_row)
        if not decision:
            actor_desc = f"{actor.role.value}:{actor.id}" if actor else "anonymous"
            logger.info(
                f"Denied {decision.operation.value} on {decision.table.value} "
                f"for {actor_desc}: {decision.reason}"
            )
            raise PolicyDeniedError(
                decision.table.value,
                decision.operation.value,
                reason=decision.reason,
            )
        return decision

    def filter_rows(self, actor: Actor | None, table: Table | str, rows: Iterable[T]) -> list[T]:
        """Keep only the rows ``actor`` may SELECT."""
        return [row for row in rows if self.permits(actor, table, Operation.SELECT, row)]

    def describe(self) -> list[dict[str, Any]]:
        """Return the rule table as plain dicts, in evaluation order."""
        return [
            {
                "name": p.name,
                "table": p.table.value,
                "operations": sorted(op.value for op in p.operations),
                "description": p.description,
            }
            for p in self._policies
        ]


def build_policy_set(options: PolicyOptions | None = None) -> PolicySet:
    """Build a policy set, warning about options that weaken confidentiality."""
    options = options or PolicyOptions()
    if options.profile_select_open:
        logger.warning("Profile SELECT is open to every authenticated user")
    if options.chat_select_open:
        logger.warning("Chat SELECT is open to every authenticated user")
    if not options.family_linked_only:
        logger.warning("FAMILY users can see every resident regardless of linkage")
    if not options.enforce_soft_delete:
        logger.warning("Soft delete is not enforced; inactive profiles remain visible")
    return PolicySet(build_rules(options), options)


@lru_cache
def get_policy_set() -> PolicySet:
    """Get the application-wide policy set built from settings."""
    return build_policy_set(PolicyOptions.from_settings(get_settings()))
