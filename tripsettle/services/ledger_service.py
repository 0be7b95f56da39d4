"""
Ledger aggregation: fold expense splits and settlements into directed balances.
"""
from typing import List, Dict, Optional, Tuple
from decimal import Decimal
import logging
from tripsettle.core.config import settings, NegativeBalancePolicy
from tripsettle.core.utils import round2
from tripsettle.schemas.expense import ExpenseSplit
from tripsettle.schemas.settlement import SettlementRecord, DirectedBalance

logger = logging.getLogger(__name__)


def trip_currency(expenses: List[ExpenseSplit]) -> str:
    """Currency of the first expense, or the configured default."""
    if expenses and expenses[0].currency:
        return expenses[0].currency.upper()
    return settings.DEFAULT_CURRENCY


def aggregate(
    expenses: List[ExpenseSplit],
    settlements: List[SettlementRecord],
    trip_id: str,
    tolerance: Optional[Decimal] = None,
    policy: Optional[NegativeBalancePolicy] = None
) -> List[DirectedBalance]:
    """
    Build debtor -> creditor balances for a trip.

    Every non-payer share of an expense means "participant owes payer";
    every settlement reduces what `from` owes `to`. Pairs within tolerance
    of zero are dropped. Output follows first-encounter order of debtors,
    then of creditors within each debtor.

    Args:
        expenses: Expense splits, possibly for several trips
        settlements: Recorded payments, possibly for several trips
        trip_id: Trip to aggregate
        tolerance: Override for SETTLEMENT_TOLERANCE
        policy: Override for NEGATIVE_BALANCE_POLICY

    Returns:
        Directed balances in the trip's currency
    """
    if tolerance is None:
        tolerance = settings.SETTLEMENT_TOLERANCE
    if policy is None:
        policy = settings.NEGATIVE_BALANCE_POLICY

    trip_expenses = [e for e in expenses if e.trip_id == trip_id]
    trip_settlements = [s for s in settlements if s.trip_id == trip_id]
    currency = trip_currency(trip_expenses)

    # debtor -> creditor -> amount, both levels in insertion order
    ledger: Dict[str, Dict[str, Decimal]] = {}

    for expense in trip_expenses:
        payer_id = expense.paid_by
        for share in expense.split_between:
            if share.user_id == payer_id:
                continue
            owed = ledger.setdefault(share.user_id, {})
            owed[payer_id] = owed.get(payer_id, Decimal(0)) + share.amount

    for settlement in trip_settlements:
        if settlement.from_user_id == settlement.to_user_id:
            continue
        owed = ledger.setdefault(settlement.from_user_id, {})
        to_id = settlement.to_user_id
        owed[to_id] = owed.get(to_id, Decimal(0)) - settlement.amount

    # (debtor, creditor) -> amount, overpaid pairs merged into the reversed pair
    pairs: Dict[Tuple[str, str], Decimal] = {}
    for debtor, owed in ledger.items():
        for creditor, amount in owed.items():
            if amount < 0 and policy == NegativeBalancePolicy.NORMALIZE:
                # Overpayment: the creditor now owes the debtor
                key = (creditor, debtor)
                amount = -amount
            else:
                key = (debtor, creditor)
            pairs[key] = pairs.get(key, Decimal(0)) + amount

    balances = [
        DirectedBalance(
            debtor=debtor_id,
            creditor=creditor_id,
            amount=round2(amount),
            currency=currency
        )
        for (debtor_id, creditor_id), amount in pairs.items()
        if abs(amount) >= tolerance
    ]

    logger.debug(
        f"Aggregated {len(trip_expenses)} expenses and {len(trip_settlements)} "
        f"settlements for trip {trip_id} into {len(balances)} balances"
    )
    return balances
