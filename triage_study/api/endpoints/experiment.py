"""
Static study material for participant clients: the decision tree, the
ticket catalog (without gold standards) and the scripted agent's steps.
"""

from fastapi import APIRouter, Depends, HTTPException

from ...services.ai_orchestrator import ScriptedAgent
from ...services.decision_tree import DecisionTree
from ...services.tickets import TicketCatalog
from ..deps import get_catalog, get_tree

router = APIRouter(prefix="/api/experiment", tags=["experiment"])


@router.get("/tree")
def decision_tree(tree: DecisionTree = Depends(get_tree)):
    return tree.to_dict()


@router.get("/tickets")
def tickets(catalog: TicketCatalog = Depends(get_catalog)):
    return {"tickets": [t.to_public_dict() for t in catalog]}


@router.get("/tickets/{ticket_id}/agent-steps")
def agent_steps(
    ticket_id: str,
    catalog: TicketCatalog = Depends(get_catalog),
    tree: DecisionTree = Depends(get_tree),
):
    ticket = catalog.get(ticket_id)
    if ticket is None:
        raise HTTPException(status_code=404, detail=f"Ticket {ticket_id} not found")
    agent = ScriptedAgent(tree)
    return {
        "ticketId": ticket_id,
        "steps": [s.to_dict() for s in agent.generate_steps(ticket)],
        "response": agent.complete_response(ticket),
    }
