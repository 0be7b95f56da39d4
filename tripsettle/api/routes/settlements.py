"""
Settlement calculation routes.

Every endpoint is stateless: the request body carries the trip's current
expenses and recorded settlements.
"""
from fastapi import APIRouter
from typing import List
from tripsettle.schemas.settlement import (
    SettlementRequest, DirectedBalance, SettlementSummary,
    SettlementSuggestion, ParticipantTotals, ParticipantSpending
)
from tripsettle.services.ledger_service import aggregate
from tripsettle.services import settlement_service

router = APIRouter(prefix="/settlement", tags=["settlement"])


@router.post("/{trip_id}/balances", response_model=List[DirectedBalance])
async def get_balances(trip_id: str, snapshot: SettlementRequest):
    """Get pairwise debtor -> creditor balances before simplification."""
    return aggregate(snapshot.expenses, snapshot.settlements, trip_id)


@router.post("/{trip_id}/calculate", response_model=SettlementSummary)
async def calculate_settlement(trip_id: str, snapshot: SettlementRequest):
    """Calculate the simplified settlement for a trip."""
    return settlement_service.calculate_settlement(
        snapshot.expenses, snapshot.settlements, trip_id
    )


@router.post("/{trip_id}/suggestions", response_model=List[SettlementSuggestion])
async def get_suggestions(trip_id: str, snapshot: SettlementRequest):
    """Get recommended payments with readable descriptions."""
    plan = settlement_service.calculate_balances(
        snapshot.expenses, snapshot.settlements, trip_id
    )
    return settlement_service.suggest_settlements(plan)


@router.post("/{trip_id}/spending", response_model=List[ParticipantSpending])
async def get_spending(trip_id: str, snapshot: SettlementRequest):
    """Get paid/share/settled totals per participant."""
    return settlement_service.participant_spending(
        snapshot.expenses, snapshot.settlements, trip_id
    )


@router.post("/{trip_id}/participants/{participant_id}", response_model=ParticipantTotals)
async def get_participant_totals(
    trip_id: str,
    participant_id: str,
    snapshot: SettlementRequest
):
    """Get how much a participant owes and is owed after simplification."""
    plan = settlement_service.calculate_balances(
        snapshot.expenses, snapshot.settlements, trip_id
    )
    return settlement_service.participant_totals(plan, participant_id)
