"""API routes for inspecting the access rule table."""

from dataclasses import asdict

from fastapi import APIRouter, Depends

from carehome.api.deps import get_current_actor, get_policies
from carehome.api.schemas.system import (
    DecisionResponse,
    PolicyEvaluateRequest,
    PolicyRuleResponse,
    PolicyTableResponse,
)
from carehome.policy import Actor, PolicySet

router = APIRouter(prefix="/api/policy", tags=["policy"])


@router.get("/rules", response_model=PolicyTableResponse)
async def list_rules(
    actor: Actor = Depends(get_current_actor),
    policies: PolicySet = Depends(get_policies),
) -> PolicyTableResponse:
    """Return the rule table in force and the options it was built from."""
    return PolicyTableResponse(
        options=asdict(policies.options),
        rules=[PolicyRuleResponse(**rule) for rule in policies.describe()],
    )


@router.post("/evaluate", response_model=DecisionResponse)
async def evaluate(
    request: PolicyEvaluateRequest,
    actor: Actor = Depends(get_current_actor),
    policies: PolicySet = Depends(get_policies),
) -> DecisionResponse:
    """Evaluate an operation for the caller against a supplied row."""
    decision = policies.evaluate(
        actor, request.table, request.operation, request.row, request.new_row
    )
    return DecisionResponse(**decision.to_dict())
