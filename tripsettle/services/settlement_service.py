"""
Settlement service: minimum cash-flow simplification of trip debts.
"""
from typing import List, Dict, Optional
from decimal import Decimal
import logging
from tripsettle.core.config import settings
from tripsettle.core.utils import CENT, round2, format_money
from tripsettle.schemas.expense import ExpenseSplit
from tripsettle.schemas.settlement import (
    SettlementRecord, DirectedBalance, NetBalance, PlannedPayment,
    SettlementPlan, SettlementSuggestion, ParticipantSpending,
    ParticipantTotals, SettlementSummary
)
from tripsettle.services.ledger_service import aggregate, trip_currency

logger = logging.getLogger(__name__)


def compute_net(balances: List[DirectedBalance]) -> Dict[str, Decimal]:
    """Net position per participant (positive = owed, negative = owes), in first-seen order."""
    net: Dict[str, Decimal] = {}
    for balance in balances:
        net[balance.debtor] = net.get(balance.debtor, Decimal(0)) - balance.amount
        net[balance.creditor] = net.get(balance.creditor, Decimal(0)) + balance.amount
    return net


def net_balances(balances: List[DirectedBalance]) -> List[NetBalance]:
    """Phase one of simplification, exposed as schema objects."""
    return [
        NetBalance(participant_id=participant_id, amount=amount)
        for participant_id, amount in compute_net(balances).items()
    ]


def simplify(
    balances: List[DirectedBalance],
    tolerance: Optional[Decimal] = None,
    currency: Optional[str] = None
) -> SettlementPlan:
    """
    Reduce directed balances to a short list of payments.

    Balances are netted per participant, then debtors are matched against
    creditors greedily. Both sides keep the order in which participants
    were first seen, so equal amounts always settle the same way. Yields at
    most (creditors + debtors - 1) payments; this is not guaranteed to be
    the global minimum number of payments.
    """
    if tolerance is None:
        tolerance = settings.SETTLEMENT_TOLERANCE
    if currency is None:
        currency = balances[0].currency if balances else settings.DEFAULT_CURRENCY

    net = compute_net(balances)

    # [participant_id, remaining] pairs, remaining kept positive on both sides
    creditors = [[pid, bal] for pid, bal in net.items() if bal > tolerance]
    debtors = [[pid, -bal] for pid, bal in net.items() if bal < -tolerance]

    payments = []
    cred_idx = 0
    debt_idx = 0

    while cred_idx < len(creditors) and debt_idx < len(debtors):
        creditor = creditors[cred_idx]
        debtor = debtors[debt_idx]

        transfer = min(creditor[1], debtor[1])
        amount = round2(transfer)
        # Sub-cent transfers only happen with a tolerance below one cent
        if amount >= CENT:
            payments.append(PlannedPayment(
                from_user_id=debtor[0],
                to_user_id=creditor[0],
                amount=amount,
                currency=currency
            ))

        creditor[1] -= transfer
        debtor[1] -= transfer

        if creditor[1] < tolerance:
            cred_idx += 1
        if debtor[1] < tolerance:
            debt_idx += 1

    logger.debug(
        f"Simplified {len(balances)} balances ({len(creditors)} creditors, "
        f"{len(debtors)} debtors) into {len(payments)} payments"
    )
    return SettlementPlan(currency=currency, payments=payments)


def total_owed_by(plan: SettlementPlan, participant_id: str) -> Decimal:
    """What `participant_id` still has to pay."""
    return sum(
        (p.amount for p in plan.payments if p.from_user_id == participant_id),
        Decimal(0)
    )


def total_owed_to(plan: SettlementPlan, participant_id: str) -> Decimal:
    """What others still have to pay `participant_id`."""
    return sum(
        (p.amount for p in plan.payments if p.to_user_id == participant_id),
        Decimal(0)
    )


def participant_totals(plan: SettlementPlan, participant_id: str) -> ParticipantTotals:
    return ParticipantTotals(
        participant_id=participant_id,
        total_owed_by=total_owed_by(plan, participant_id),
        total_owed_to=total_owed_to(plan, participant_id),
        currency=plan.currency
    )


def calculate_balances(
    expenses: List[ExpenseSplit],
    settlements: List[SettlementRecord],
    trip_id: str
) -> SettlementPlan:
    """Aggregate a trip's ledger and simplify it in one call."""
    trip_expenses = [e for e in expenses if e.trip_id == trip_id]
    balances = aggregate(trip_expenses, settlements, trip_id)
    return simplify(balances, currency=trip_currency(trip_expenses))


def suggest_settlements(plan: SettlementPlan) -> List[SettlementSuggestion]:
    """Attach a readable description to every payment of a plan."""
    return [
        SettlementSuggestion(
            from_user_id=p.from_user_id,
            to_user_id=p.to_user_id,
            amount=p.amount,
            description=f"{p.from_user_id} owes {p.to_user_id} {format_money(p.amount, p.currency)}"
        )
        for p in plan.payments
    ]


def participant_spending(
    expenses: List[ExpenseSplit],
    settlements: List[SettlementRecord],
    trip_id: str
) -> List[ParticipantSpending]:
    """
    Per-participant breakdown of a trip, highest net balance first.

    net_balance = total_paid - total_share + settlements_paid - settlements_received,
    which matches the netting done by simplify() on the aggregated ledger.
    """
    spending: Dict[str, ParticipantSpending] = {}

    def entry(participant_id: str) -> ParticipantSpending:
        if participant_id not in spending:
            spending[participant_id] = ParticipantSpending(participant_id=participant_id)
        return spending[participant_id]

    for expense in expenses:
        if expense.trip_id != trip_id:
            continue
        entry(expense.paid_by).total_paid += expense.total
        for share in expense.split_between:
            entry(share.user_id).total_share += share.amount

    for settlement in settlements:
        if settlement.trip_id != trip_id or settlement.from_user_id == settlement.to_user_id:
            continue
        entry(settlement.from_user_id).settlements_paid += settlement.amount
        entry(settlement.to_user_id).settlements_received += settlement.amount

    for item in spending.values():
        item.net_balance = round2(
            item.total_paid - item.total_share
            + item.settlements_paid - item.settlements_received
        )

    # sorted() is stable, ties keep first-seen order
    return sorted(spending.values(), key=lambda s: s.net_balance, reverse=True)


def calculate_settlement(
    expenses: List[ExpenseSplit],
    settlements: List[SettlementRecord],
    trip_id: str
) -> SettlementSummary:
    """
    Calculate the full settlement report for a trip.
    Returns SettlementSummary with net balances, transfers and a text summary.
    """
    trip_expenses = [e for e in expenses if e.trip_id == trip_id]
    currency = trip_currency(trip_expenses)
    plan = calculate_balances(trip_expenses, settlements, trip_id)
    spending = participant_spending(trip_expenses, settlements, trip_id)

    net = {s.participant_id: s.net_balance for s in spending}
    total_expenses = round2(sum((e.total for e in trip_expenses), Decimal(0)))

    # Create summary text
    summary_lines = []
    summary_lines.append(f"Total expenses: {format_money(total_expenses, currency)}")
    summary_lines.append(f"Participants: {len(net)}")
    summary_lines.append("\nNet balances:")
    for participant_id, balance in net.items():
        summary_lines.append(f"  {participant_id}: {balance:+.2f} {currency}")
    summary_lines.append("\nTransfers:")
    for payment in plan.payments:
        summary_lines.append(
            f"  {payment.from_user_id} -> {payment.to_user_id}: "
            f"{payment.amount:.2f} {currency}"
        )

    logger.info(f"Calculated settlement for trip {trip_id}: {len(plan.payments)} transfers")

    return SettlementSummary(
        trip_id=trip_id,
        currency=currency,
        net_balances=net,
        transfers=plan.payments,
        total_expenses=total_expenses,
        participant_count=len(net),
        summary="\n".join(summary_lines)
    )
