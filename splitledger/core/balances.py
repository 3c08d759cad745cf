"""Net balances and settlement suggestions, derived from the stored ledger.

Nothing here is cached. Every call re-sums the full set of expenses and
settlements it is given, and trusts that each expense's payments and
splits already add up to its amount (the allocator checks that on write).
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Mapping, Tuple, Union

from splitledger.schemas.ledger import LedgerExpense, LedgerSettlement

UNIT = Decimal("1")

Balances = Union[Mapping[int, int], Iterable[Tuple[int, int]]]


def qround(value) -> int:
    """Round to a whole number of minor units, halves away from zero."""
    return int(Decimal(str(value)).quantize(UNIT, rounding=ROUND_HALF_UP))


def compute_balances(
    expenses: Iterable[LedgerExpense],
    settlements: Iterable[LedgerSettlement],
    member_ids: Iterable[int] | None = None,
) -> List[Tuple[int, int]]:
    """Signed net balance per user, highest creditor first.

    Positive means the group owes the user, negative means the user owes
    the group. With ``member_ids`` every member is reported, at 0 when they
    have no activity; users with activity who are no longer members are
    kept too. Ties keep first-seen order.
    """
    net: Dict[int, int] = {}

    for uid in member_ids or ():
        net.setdefault(uid, 0)

    for expense in expenses:
        for payment in expense.payments:
            net[payment.user_id] = net.get(payment.user_id, 0) + payment.amount

        for split in expense.splits:
            net[split.user_id] = net.get(split.user_id, 0) - split.amount

    for settlement in settlements:
        # paying someone back reduces your debt, receiving it reduces your credit
        net[settlement.from_user] = net.get(settlement.from_user, 0) + settlement.amount
        net[settlement.to_user] = net.get(settlement.to_user, 0) - settlement.amount

    balances = [(uid, qround(amount)) for uid, amount in net.items()]
    balances.sort(key=lambda x: x[1], reverse=True)
    return balances


def suggest_settlements(balances: Balances) -> List[Tuple[int, int, int]]:
    """Greedy list of ``(from_id, to_id, amount)`` transfers that clear the balances.

    The largest remaining debtor always pays the largest remaining creditor.
    This is a heuristic: it usually needs few transfers, but it is not
    guaranteed to find the smallest possible number. Equal magnitudes keep
    their input order (``list.sort`` is stable). If debts and credits don't
    net to zero, whatever is left unmatched is dropped.
    """
    if isinstance(balances, Mapping):
        balances = balances.items()

    creditors = []
    debtors = []

    for uid, bal in balances:
        if bal > 0:
            creditors.append([uid, bal])
        elif bal < 0:
            debtors.append([uid, -bal])

    creditors.sort(key=lambda x: x[1], reverse=True)
    debtors.sort(key=lambda x: x[1], reverse=True)

    transfers: List[Tuple[int, int, int]] = []

    i = j = 0
    while i < len(debtors) and j < len(creditors):
        debtor = debtors[i]
        creditor = creditors[j]

        pay_amt = min(debtor[1], creditor[1])
        if pay_amt > 0:
            transfers.append((debtor[0], creditor[0], pay_amt))

        debtor[1] -= pay_amt
        creditor[1] -= pay_amt

        if debtor[1] == 0:
            i += 1
        if creditor[1] == 0:
            j += 1

    return transfers


def pairwise_balances(
    user_id: int,
    expenses: Iterable[LedgerExpense],
    settlements: Iterable[LedgerSettlement],
) -> List[Tuple[int, int]]:
    """What each other user owes ``user_id`` directly, as ``(other_id, balance)``.

    Each expense is apportioned between the pair in proportion to what one
    paid and the other owes, so with three or more people on an expense the
    result is an approximation and need not match ``compute_balances``.
    Intermediate values are floats, rounded once at the end. Zero entries
    are left out.
    """
    pairwise: Dict[int, float] = {}

    for expense in expenses:
        if expense.amount <= 0:
            continue

        paid: Dict[int, int] = {}
        for payment in expense.payments:
            paid[payment.user_id] = paid.get(payment.user_id, 0) + payment.amount

        owed: Dict[int, int] = {}
        for split in expense.splits:
            owed[split.user_id] = owed.get(split.user_id, 0) + split.amount

        my_payment = paid.get(user_id, 0)
        my_split = owed.get(user_id, 0)

        others = [uid for uid in owed if uid != user_id]
        others += [uid for uid in paid if uid != user_id and uid not in owed]

        for other in others:
            other_payment = paid.get(other, 0)
            other_split = owed.get(other, 0)

            if my_payment > 0 and other_split > 0:
                pairwise[other] = pairwise.get(other, 0) + my_payment * other_split / expense.amount

            if other_payment > 0 and my_split > 0:
                pairwise[other] = pairwise.get(other, 0) - other_payment * my_split / expense.amount

    for settlement in settlements:
        if settlement.from_user == user_id and settlement.to_user != user_id:
            pairwise[settlement.to_user] = pairwise.get(settlement.to_user, 0) + settlement.amount
        elif settlement.to_user == user_id and settlement.from_user != user_id:
            pairwise[settlement.from_user] = pairwise.get(settlement.from_user, 0) - settlement.amount

    result = [(uid, qround(amount)) for uid, amount in pairwise.items()]
    return [(uid, bal) for uid, bal in result if bal != 0]
