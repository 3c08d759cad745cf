"""Turns an expense total and a split rule into per-user owed amounts.

All amounts are integers in minor currency units. Whatever is left over
after flooring (equal and percentage splits) is handed out one unit at a
time to the participants in input order, so the shares always add up to
the total.
"""
from decimal import Decimal, ROUND_FLOOR
from typing import Iterable, List, Sequence, Tuple

from splitledger.core.exceptions import MembershipError, PaymentMismatchError, ValidationError
from splitledger.schemas.expense import PayerInput, SplitInput, SplitType

HUNDRED = Decimal("100")
PERCENT_TOLERANCE = Decimal("0.01")


def _spread(shares: List[int], leftover: int) -> List[int]:
    # a negative leftover takes units back, in the same order
    step = 1 if leftover > 0 else -1
    for i in range(abs(leftover)):
        shares[i % len(shares)] += step
    return shares


def _equal_shares(total_amount: int, n: int) -> List[int]:
    base = total_amount // n
    remainder = total_amount - base * n

    return _spread([base] * n, remainder)


def _value_of(p: SplitInput, what: str) -> Decimal:
    if p.value is None:
        raise ValidationError(f"Missing {what} for user {p.user_id}")

    value = Decimal(str(p.value))
    if not value.is_finite():
        raise ValidationError(f"The {what} for user {p.user_id} must be a finite number")
    return value


def _exact_shares(total_amount: int, participants: Sequence[SplitInput]) -> List[int]:
    shares = []
    for p in participants:
        value = _value_of(p, "split amount")
        if value < 0 or value != value.to_integral_value():
            raise ValidationError(
                f"Split amount for user {p.user_id} must be a non-negative whole number of minor units"
            )
        shares.append(int(value))

    if sum(shares) != total_amount:
        raise ValidationError("Sum of split amounts must equal total amount")

    return shares


def _percentage_shares(total_amount: int, participants: Sequence[SplitInput]) -> List[int]:
    percents = []
    for p in participants:
        pct = _value_of(p, "percentage")
        if pct < 0 or pct > HUNDRED:
            raise ValidationError(f"Percentage for user {p.user_id} must be between 0 and 100")
        percents.append(pct)

    if abs(sum(percents) - HUNDRED) > PERCENT_TOLERANCE:
        raise ValidationError("Percentages must add up to 100")

    shares = [
        int((total_amount * pct / HUNDRED).to_integral_value(rounding=ROUND_FLOOR))
        for pct in percents
    ]

    shares = _spread(shares, total_amount - sum(shares))
    # percentages slightly over 100 can take back more than a small share holds
    if min(shares) < 0:
        raise ValidationError("Percentages must add up to 100")

    return shares


def allocate(
    total_amount: int,
    split_type: SplitType,
    participants: Sequence[SplitInput],
) -> List[Tuple[int, int]]:
    """Split ``total_amount`` between ``participants``.

    Returns ``(user_id, amount)`` pairs in input order. The amounts are
    non-negative and sum to ``total_amount`` exactly. Raises
    ``ValidationError`` for a non-positive total, an empty or duplicated
    participant list, or values that don't add up.
    """
    if total_amount <= 0:
        raise ValidationError("Expense amount must be positive")

    if not participants:
        raise ValidationError("At least one participant is required")

    user_ids = [p.user_id for p in participants]
    if len(user_ids) != len(set(user_ids)):
        raise ValidationError("Duplicate users found in splits")

    if split_type == SplitType.EQUAL:
        shares = _equal_shares(total_amount, len(participants))
    elif split_type == SplitType.EXACT:
        shares = _exact_shares(total_amount, participants)
    elif split_type == SplitType.PERCENTAGE:
        shares = _percentage_shares(total_amount, participants)
    else:
        raise ValidationError(f"Unknown split type: {split_type}")

    return list(zip(user_ids, shares))


def validate_members(user_ids: Iterable[int], member_ids: Iterable[int], role: str = "split participant"):
    members = set(member_ids)
    for uid in user_ids:
        if uid not in members:
            raise MembershipError(f"User {uid} ({role}) is not a member of the group")


def validate_payments(total_amount: int, payments: Sequence[PayerInput], member_ids: Iterable[int]):
    """Check a multiple-payer list against the expense total.

    The sum is checked before membership so a mismatched total always
    surfaces as ``PaymentMismatchError``.
    """
    user_ids = [p.user_id for p in payments]
    if len(user_ids) != len(set(user_ids)):
        raise ValidationError("Duplicate users found in payers")

    if any(p.amount <= 0 for p in payments):
        raise ValidationError("Paid amounts must be positive")

    total_paid = sum(p.amount for p in payments)
    if total_paid != total_amount:
        raise PaymentMismatchError(
            f"Total paid amounts ({total_paid}) must equal expense amount ({total_amount})"
        )

    validate_members(user_ids, member_ids, role="payer")


def build_expense_rows(
    total_amount: int,
    paid_by: int,
    split_type: SplitType,
    participants: Sequence[SplitInput],
    payers: Sequence[PayerInput],
    member_ids: Iterable[int],
) -> Tuple[List[Tuple[int, int]], List[Tuple[int, int, bool]]]:
    """Validate a new expense and produce its payment and split rows.

    Payment rows are ``(user_id, amount)``; split rows are
    ``(user_id, amount, is_paid)`` where ``is_paid`` marks participants who
    are also payers. With a payer list, ``paid_by`` must be one of those
    payers. Nothing is returned unless every check passes.
    """
    member_ids = set(member_ids)

    validate_members((p.user_id for p in participants), member_ids)

    if payers:
        validate_payments(total_amount, payers, member_ids)
        payment_rows = [(p.user_id, p.amount) for p in payers]

        # the primary payer is stored on the expense, so it has to be one of them
        if paid_by not in {uid for uid, _ in payment_rows}:
            raise ValidationError(f"Primary payer {paid_by} is not one of the payers")
    else:
        validate_members([paid_by], member_ids, role="payer")
        payment_rows = [(paid_by, total_amount)]

    shares = allocate(total_amount, split_type, participants)

    payer_ids = {uid for uid, _ in payment_rows}
    split_rows = [(uid, amount, uid in payer_ids) for uid, amount in shares]

    return payment_rows, split_rows
