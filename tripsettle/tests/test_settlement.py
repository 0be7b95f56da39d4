"""
Tests for balance simplification and settlement reports.
"""
import pytest
from decimal import Decimal
from tripsettle.core.config import NegativeBalancePolicy
from tripsettle.schemas.expense import ExpenseSplit, SplitShare
from tripsettle.schemas.settlement import SettlementRecord, DirectedBalance
from tripsettle.services.ledger_service import aggregate
from tripsettle.services.settlement_service import (
    compute_net, net_balances, simplify, total_owed_by, total_owed_to,
    participant_totals, calculate_balances, suggest_settlements,
    participant_spending, calculate_settlement
)

TOLERANCE = Decimal("0.01")


def make_expense(paid_by, shares, trip_id="trip-1", currency="USD"):
    return ExpenseSplit(
        trip_id=trip_id,
        paid_by=paid_by,
        split_between=[SplitShare(user_id=uid, amount=Decimal(amt)) for uid, amt in shares],
        currency=currency
    )


def make_settlement(from_id, to_id, amount, trip_id="trip-1"):
    return SettlementRecord(trip_id=trip_id, from_user_id=from_id, to_user_id=to_id, amount=Decimal(amount))


def make_balance(debtor, creditor, amount, currency="USD"):
    return DirectedBalance(debtor=debtor, creditor=creditor, amount=Decimal(amount), currency=currency)


def as_tuples(plan):
    return [(p.from_user_id, p.to_user_id, p.amount) for p in plan.payments]


def assert_conserves(balances, plan):
    """Applying the plan brings every net balance back to zero."""
    net = compute_net(balances)
    for payment in plan.payments:
        net[payment.from_user_id] += payment.amount
        net[payment.to_user_id] -= payment.amount
    assert all(abs(amount) < TOLERANCE for amount in net.values())


@pytest.fixture
def group_expenses():
    """Five people, mixed payers and uneven shares."""
    return [
        make_expense("ana", [("ana", "40"), ("ben", "40"), ("cat", "40"), ("dan", "40")]),
        make_expense("ben", [("ana", "12.50"), ("eve", "37.50")]),
        make_expense("cat", [("dan", "90"), ("eve", "15.25"), ("cat", "10")]),
        make_expense("eve", [("ana", "8.80"), ("ben", "8.80"), ("eve", "8.80")]),
    ]


def test_empty_balances_give_empty_plan():
    plan = simplify([])
    assert plan.payments == []


def test_cycle_collapse():
    """A owes B and B owes C the same amount: A pays C directly."""
    expenses = [
        make_expense("B", [("A", "30")]),
        make_expense("C", [("B", "30")]),
    ]
    plan = calculate_balances(expenses, [], "trip-1")
    assert as_tuples(plan) == [("A", "C", Decimal("30"))]


def test_tie_break_follows_insertion_order():
    """Equal creditors are paid in the order they were first seen."""
    balances = [make_balance("Z", "X", "10"), make_balance("Z", "Y", "10")]
    plan = simplify(balances)
    assert as_tuples(plan) == [("Z", "X", Decimal("10")), ("Z", "Y", Decimal("10"))]


def test_settlement_absorption():
    expenses = [make_expense("B", [("A", "50")])]
    settlements = [make_settlement("A", "B", "50")]
    assert calculate_balances(expenses, settlements, "trip-1").payments == []


def test_three_way_split_rounding():
    """A three-way split of 100.00 nets to zero across the group."""
    expenses = [make_expense("payer", [("a", "33.34"), ("b", "33.33"), ("c", "33.33")])]
    balances = aggregate(expenses, [], "trip-1")
    plan = simplify(balances)
    assert sum(n.amount for n in net_balances(balances)) == 0
    assert total_owed_to(plan, "payer") == Decimal("100.00")
    assert_conserves(balances, plan)


def test_partial_matching_splits_a_debt():
    balances = [
        make_balance("dan", "ana", "25"),
        make_balance("eve", "ana", "5"),
        make_balance("eve", "ben", "20"),
    ]
    plan = simplify(balances)
    assert as_tuples(plan) == [
        ("dan", "ana", Decimal("25")),
        ("eve", "ana", Decimal("5")),
        ("eve", "ben", Decimal("20")),
    ]


def test_conservation(group_expenses):
    balances = aggregate(group_expenses, [], "trip-1")
    plan = simplify(balances)
    assert_conserves(balances, plan)


def test_payment_count_bound(group_expenses):
    balances = aggregate(group_expenses, [], "trip-1")
    plan = simplify(balances)
    net = compute_net(balances)
    creditors = [a for a in net.values() if a > TOLERANCE]
    debtors = [a for a in net.values() if a < -TOLERANCE]
    assert len(plan.payments) <= len(creditors) + len(debtors) - 1


def test_amounts_are_rounded_and_positive(group_expenses):
    balances = aggregate(group_expenses, [], "trip-1")
    plan = simplify(balances)
    for payment in plan.payments:
        assert payment.amount >= TOLERANCE
        assert payment.amount == payment.amount.quantize(Decimal("0.01"))


def test_resimplification_is_idempotent(group_expenses):
    plan = calculate_balances(group_expenses, [], "trip-1")
    again = simplify([
        make_balance(p.from_user_id, p.to_user_id, p.amount) for p in plan.payments
    ])
    assert as_tuples(again) == as_tuples(plan)


def test_drift_below_tolerance_is_ignored():
    balances = [make_balance("a", "b", "10.005"), make_balance("b", "a", "10")]
    assert simplify(balances).payments == []


def test_sub_cent_tolerance_emits_no_zero_payments():
    """A tolerance under one cent never produces 0.00 payments."""
    balances = [make_balance("a", "b", "0.004")]
    assert simplify(balances, tolerance=Decimal("0.001")).payments == []

    balances = [make_balance("a", "b", "10.004")]
    plan = simplify(balances, tolerance=Decimal("0.001"))
    assert as_tuples(plan) == [("a", "b", Decimal("10.00"))]
    assert all(p.amount >= TOLERANCE for p in plan.payments)


@pytest.mark.parametrize("policy", list(NegativeBalancePolicy))
def test_overpayment_conserves_under_both_policies(policy):
    """Overpaying a debt turns into a credit whichever policy is used."""
    expenses = [
        make_expense("B", [("A", "50")]),
        make_expense("C", [("A", "30")]),
    ]
    settlements = [make_settlement("A", "B", "80")]
    balances = aggregate(expenses, settlements, "trip-1", policy=policy)
    plan = simplify(balances)
    assert_conserves(balances, plan)
    assert as_tuples(plan) == [("B", "C", Decimal("30"))]


def test_plan_currency():
    balances = [make_balance("a", "b", "10", currency="EUR")]
    plan = simplify(balances)
    assert plan.currency == "EUR"
    assert plan.payments[0].currency == "EUR"
    assert simplify(balances, currency="GBP").currency == "GBP"


def test_query_helpers():
    balances = [
        make_balance("dan", "ana", "25"),
        make_balance("eve", "ana", "5"),
        make_balance("eve", "ben", "20"),
    ]
    plan = simplify(balances)
    assert total_owed_by(plan, "eve") == Decimal("25")
    assert total_owed_to(plan, "ana") == Decimal("30")
    assert total_owed_by(plan, "ana") == Decimal("0")
    assert total_owed_to(plan, "nobody") == Decimal("0")

    totals = participant_totals(plan, "ben")
    assert totals.total_owed_to == Decimal("20")
    assert totals.total_owed_by == Decimal("0")
    assert totals.currency == "USD"


def test_suggest_settlements():
    plan = simplify([make_balance("A", "C", "30")])
    suggestions = suggest_settlements(plan)
    assert len(suggestions) == 1
    assert suggestions[0].description == "A owes C USD 30.00"


def test_participant_spending_matches_netting(group_expenses):
    settlements = [make_settlement("dan", "cat", "40")]
    spending = participant_spending(group_expenses, settlements, "trip-1")
    net = compute_net(aggregate(group_expenses, settlements, "trip-1"))

    for item in spending:
        assert abs(item.net_balance - net.get(item.participant_id, Decimal(0))) < TOLERANCE
    assert [s.net_balance for s in spending] == sorted((s.net_balance for s in spending), reverse=True)


def test_participant_spending_totals():
    expenses = [make_expense("ana", [("ana", "10"), ("ben", "20")])]
    settlements = [make_settlement("ben", "ana", "5")]
    ana, ben = participant_spending(expenses, settlements, "trip-1")
    assert ana.participant_id == "ana"
    assert ana.total_paid == Decimal("30")
    assert ana.total_share == Decimal("10")
    assert ana.settlements_received == Decimal("5")
    assert ana.net_balance == Decimal("15")
    assert ben.settlements_paid == Decimal("5")
    assert ben.net_balance == Decimal("-15")


def test_calculate_settlement_summary():
    expenses = [
        make_expense("B", [("A", "30"), ("B", "30")]),
        make_expense("C", [("B", "30")]),
        make_expense("A", [("A", "5")], trip_id="trip-2"),
    ]
    result = calculate_settlement(expenses, [], "trip-1")
    assert result.trip_id == "trip-1"
    assert result.currency == "USD"
    assert result.total_expenses == Decimal("90.00")
    assert result.participant_count == 3
    assert result.net_balances == {"C": Decimal("30"), "B": Decimal("0"), "A": Decimal("-30")}
    assert [(t.from_user_id, t.to_user_id, t.amount) for t in result.transfers] == [
        ("A", "C", Decimal("30")),
    ]
    assert "Total expenses: USD 90.00" in result.summary
    assert "A -> C: 30.00 USD" in result.summary


def test_calculate_settlement_empty_trip():
    result = calculate_settlement([], [], "trip-1")
    assert result.transfers == []
    assert result.participant_count == 0
    assert result.total_expenses == Decimal("0")
