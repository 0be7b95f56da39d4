"""
Pydantic schemas for expense splits supplied by the expense store.
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from decimal import Decimal


class SplitShare(BaseModel):
    """One participant's share of an expense, already computed by the caller."""
    user_id: str = Field(min_length=1)
    amount: Decimal = Field(ge=0)


class ExpenseSplit(BaseModel):
    """Schema for a single expense and how it is split."""
    trip_id: str = Field(min_length=1)
    paid_by: str = Field(min_length=1)
    split_between: List[SplitShare] = []
    currency: Optional[str] = None  # Falls back to DEFAULT_CURRENCY when missing
    
    @property
    def total(self) -> Decimal:
        """Sum of all shares, including the payer's own."""
        return sum((share.amount for share in self.split_between), Decimal(0))
