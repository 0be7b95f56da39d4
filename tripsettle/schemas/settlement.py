"""
Pydantic schemas for settlements, balances and settlement plans.
"""
from pydantic import BaseModel, Field
from typing import List, Dict, Optional
from decimal import Decimal
from tripsettle.schemas.expense import ExpenseSplit


class SettlementRecord(BaseModel):
    """A payment already made from one participant to another."""
    trip_id: str = Field(min_length=1)
    from_user_id: str = Field(alias="from", min_length=1)
    to_user_id: str = Field(alias="to", min_length=1)
    amount: Decimal = Field(ge=0)
    currency: Optional[str] = None
    notes: Optional[str] = None
    
    class Config:
        populate_by_name = True


class DirectedBalance(BaseModel):
    """Debtor owes creditor `amount`."""
    debtor: str
    creditor: str
    amount: Decimal  # Negative only under the "fold" policy
    currency: str


class NetBalance(BaseModel):
    """Signed position of a participant (positive = owed money)."""
    participant_id: str
    amount: Decimal


class PlannedPayment(BaseModel):
    """Schema for a single recommended payment."""
    from_user_id: str = Field(alias="from")
    to_user_id: str = Field(alias="to")
    amount: Decimal
    currency: str
    
    class Config:
        populate_by_name = True


class SettlementPlan(BaseModel):
    """Ordered payments that clear every net balance."""
    currency: str
    payments: List[PlannedPayment] = []


class SettlementSuggestion(BaseModel):
    """Schema for a payment with a readable description."""
    from_user_id: str = Field(alias="from")
    to_user_id: str = Field(alias="to")
    amount: Decimal
    description: str
    
    class Config:
        populate_by_name = True


class ParticipantSpending(BaseModel):
    """Schema for what a participant paid, consumed and settled."""
    participant_id: str
    total_paid: Decimal = Decimal(0)  # Full amount of expenses they paid for
    total_share: Decimal = Decimal(0)  # Their own share across all expenses
    settlements_paid: Decimal = Decimal(0)
    settlements_received: Decimal = Decimal(0)
    net_balance: Decimal = Decimal(0)


class ParticipantTotals(BaseModel):
    """Schema for the 'you owe' / 'owed to you' figures."""
    participant_id: str
    total_owed_by: Decimal
    total_owed_to: Decimal
    currency: str


class SettlementSummary(BaseModel):
    """Schema for settlement summary."""
    trip_id: str
    currency: str
    net_balances: Dict[str, Decimal]  # participant_id -> net balance
    transfers: List[PlannedPayment]
    total_expenses: Decimal
    participant_count: int
    summary: str


class SettlementRequest(BaseModel):
    """Snapshot of a trip's expenses and recorded settlements."""
    expenses: List[ExpenseSplit] = []
    settlements: List[SettlementRecord] = []
