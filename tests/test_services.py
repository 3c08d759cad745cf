import pytest
from fastapi import HTTPException

from splitledger.core.exceptions import MembershipError, PaymentMismatchError, ValidationError
from splitledger.schemas.expense import ExpenseCreate, PayerInput, SplitInput, SplitType
from splitledger.schemas.settlements import SettlementCreate
from splitledger.services import expense_services
from splitledger.services.balance_services import (
    export_group_data,
    get_group_balances,
    get_pairwise_balances,
    load_group_ledger,
)
from splitledger.services.expense_services import (
    create_expense,
    delete_expense,
    get_expense_by_id,
    get_group_expenses,
)
from splitledger.services.settlement_services import (
    add_settlement,
    delete_settlement,
    get_group_settlements,
    get_user_settlements,
)

A, B, C, OUTSIDER = 1, 2, 3, 99


def equal_expense(group_id, amount, user_ids, **kwargs):
    return ExpenseCreate(
        group_id=group_id,
        description="Dinner",
        amount=amount,
        split_type=SplitType.EQUAL,
        splits=[SplitInput(user_id=uid) for uid in user_ids],
        **kwargs,
    )


@pytest.fixture
def group_id(make_group):
    return make_group([A, B, C])


@pytest.fixture
def scenario_group(run, group_id):
    async def seed(db):
        await create_expense(db, equal_expense(group_id, 3000, [A, B, C]), A)
        await create_expense(db, equal_expense(group_id, 600, [B, C]), B)

    run(seed)
    return group_id


def test_create_expense_writes_payments_and_splits(run, group_id):
    async def scenario(db):
        return await create_expense(db, equal_expense(group_id, 1000, [A, B, C]), A)

    expense = run(scenario)

    assert expense.id is not None
    assert expense.currency == "USD"
    assert expense.paid_by == A
    assert [(p.user_id, p.amount) for p in expense.payments] == [(A, 1000)]
    assert [(s.user_id, s.amount, s.is_paid) for s in expense.splits] == [
        (A, 334, True),
        (B, 333, False),
        (C, 333, False),
    ]


def test_create_expense_with_multiple_payers(run, group_id):
    data = ExpenseCreate(
        group_id=group_id,
        description="Cabin",
        amount=900,
        split_type=SplitType.PERCENTAGE,
        splits=[
            SplitInput(user_id=A, value=50),
            SplitInput(user_id=B, value=25),
            SplitInput(user_id=C, value=25),
        ],
        paid_by_multiple=[PayerInput(user_id=B, amount=400), PayerInput(user_id=C, amount=500)],
    )

    async def scenario(db):
        await create_expense(db, data, A)
        return await get_group_expenses(db, group_id)

    [expense] = run(scenario)

    assert expense.paid_by == B
    assert expense.created_by == A
    assert sorted((p.user_id, p.amount) for p in expense.payments) == [(B, 400), (C, 500)]
    assert sorted((s.user_id, s.amount, s.is_paid) for s in expense.splits) == [
        (A, 450, False),
        (B, 225, True),
        (C, 225, True),
    ]


def test_create_expense_rejects_payment_mismatch(run, group_id):
    data = equal_expense(
        group_id, 500, [A, B],
        paid_by_multiple=[PayerInput(user_id=A, amount=300), PayerInput(user_id=B, amount=300)],
    )

    async def scenario(db):
        with pytest.raises(PaymentMismatchError):
            await create_expense(db, data, A)
        return await get_group_expenses(db, group_id)

    # nothing was written
    assert run(scenario) == []


def test_create_expense_rejects_outsider_split(run, group_id):
    async def scenario(db):
        with pytest.raises(MembershipError):
            await create_expense(db, equal_expense(group_id, 500, [A, OUTSIDER]), A)

    run(scenario)


def test_create_expense_rejects_bad_exact_split(run, group_id):
    data = ExpenseCreate(
        group_id=group_id,
        description="Groceries",
        amount=100,
        split_type=SplitType.EXACT,
        splits=[SplitInput(user_id=A, value=40), SplitInput(user_id=B, value=59)],
    )

    async def scenario(db):
        with pytest.raises(ValidationError):
            await create_expense(db, data, A)

    run(scenario)


def test_create_expense_requires_membership(run, group_id):
    async def scenario(db):
        with pytest.raises(HTTPException) as exc:
            await create_expense(db, equal_expense(group_id, 500, [A, B]), OUTSIDER)
        return exc.value.status_code

    assert run(scenario) == 403


def test_create_expense_unknown_group(run):
    async def scenario(db):
        with pytest.raises(HTTPException) as exc:
            await create_expense(db, equal_expense(12345, 500, [A]), A)
        return exc.value.status_code

    assert run(scenario) == 404


def test_group_balances_for_scenario(run, scenario_group):
    report = run(lambda db: get_group_balances(db, scenario_group))

    assert [(b.user_id, b.balance) for b in report.balances] == [(A, 2000), (B, -700), (C, -1300)]
    assert [(s.from_id, s.to_id, s.amount) for s in report.settlements] == [(C, A, 1300), (B, A, 700)]


def test_group_balances_include_idle_members(run, make_group):
    group_id = make_group([A, B, C])

    async def scenario(db):
        await create_expense(db, equal_expense(group_id, 1000, [A, B]), A)
        return await get_group_balances(db, group_id)

    report = run(scenario)

    assert {b.user_id: b.balance for b in report.balances} == {A: 500, B: -500, C: 0}
    assert sum(b.balance for b in report.balances) == 0


def test_settlements_feed_into_balances(run, scenario_group):
    async def scenario(db):
        await add_settlement(db, scenario_group, SettlementCreate(from_user=C, to_user=A, amount=1300), C)
        return await get_group_balances(db, scenario_group)

    report = run(scenario)

    assert {b.user_id: b.balance for b in report.balances} == {A: 700, B: -700, C: 0}
    assert [(s.from_id, s.to_id, s.amount) for s in report.settlements] == [(B, A, 700)]


def test_settlement_defaults_to_group_currency(run, make_group):
    group_id = make_group([A, B], currency="EUR")

    async def scenario(db):
        return await add_settlement(db, group_id, SettlementCreate(from_user=B, to_user=A, amount=10), B)

    assert run(scenario).currency == "EUR"


@pytest.mark.parametrize("data, error", [
    (SettlementCreate(from_user=B, to_user=A, amount=0), ValidationError),
    (SettlementCreate(from_user=B, to_user=A, amount=-5), ValidationError),
    (SettlementCreate(from_user=A, to_user=A, amount=5), ValidationError),
    (SettlementCreate(from_user=B, to_user=OUTSIDER, amount=5), MembershipError),
])
def test_add_settlement_rejects_bad_input(run, group_id, data, error):
    async def scenario(db):
        with pytest.raises(error):
            await add_settlement(db, group_id, data, A)
        return await get_group_settlements(db, group_id)

    assert run(scenario) == []


def test_user_settlements_are_tagged(run, group_id):
    async def scenario(db):
        await add_settlement(db, group_id, SettlementCreate(from_user=A, to_user=B, amount=100), A)
        await add_settlement(db, group_id, SettlementCreate(from_user=C, to_user=A, amount=200), C)
        await add_settlement(db, group_id, SettlementCreate(from_user=B, to_user=C, amount=300), B)
        return await get_user_settlements(db, A)

    result = run(scenario)

    assert sorted((s["amount"], s["type"]) for s in result) == [(100, "paid"), (200, "received")]


def test_delete_settlement_permissions(run, group_id):
    async def scenario(db):
        settlement = await add_settlement(db, group_id, SettlementCreate(from_user=B, to_user=C, amount=100), B)

        # someone outside the group is refused outright
        with pytest.raises(HTTPException) as exc:
            await delete_settlement(db, group_id, settlement.id, OUTSIDER)
        assert exc.value.status_code == 403

        await delete_settlement(db, group_id, settlement.id, C)
        return await get_group_settlements(db, group_id)

    assert run(scenario) == []


def test_delete_settlement_by_uninvolved_member_is_refused(run, make_group):
    group_id = make_group([A, B, C, 4])

    async def scenario(db):
        settlement = await add_settlement(db, group_id, SettlementCreate(from_user=B, to_user=C, amount=100), B)
        with pytest.raises(HTTPException) as exc:
            await delete_settlement(db, group_id, settlement.id, 4)
        return exc.value.status_code

    assert run(scenario) == 403


def test_delete_settlement_wrong_group(run, group_id, make_group):
    other_group = make_group([A, B], name="Other")

    async def scenario(db):
        settlement = await add_settlement(db, group_id, SettlementCreate(from_user=B, to_user=A, amount=100), B)
        with pytest.raises(HTTPException) as exc:
            await delete_settlement(db, other_group, settlement.id, A)
        return exc.value.status_code

    assert run(scenario) == 404


def test_delete_expense_removes_rows(run, scenario_group):
    async def scenario(db):
        expenses = await get_group_expenses(db, scenario_group)
        # the 600 expense paid by B
        target = next(e for e in expenses if e.amount == 600)
        await delete_expense(db, target.id, B)
        return await get_group_balances(db, scenario_group)

    report = run(scenario)

    assert {b.user_id: b.balance for b in report.balances} == {A: 2000, B: -1000, C: -1000}


def test_delete_expense_permissions(run, scenario_group):
    async def scenario(db):
        expenses = await get_group_expenses(db, scenario_group)
        target = next(e for e in expenses if e.amount == 600)

        with pytest.raises(HTTPException) as exc:
            await delete_expense(db, target.id, C)
        assert exc.value.status_code == 403

        # admin may delete anything in the group
        await delete_expense(db, target.id, A)
        return len(await get_group_expenses(db, scenario_group))

    assert run(scenario) == 1


def test_get_expense_by_id_checks_membership(run, scenario_group):
    async def scenario(db):
        [first, *_] = await get_group_expenses(db, scenario_group)
        assert (await get_expense_by_id(db, first.id, C)).id == first.id

        with pytest.raises(HTTPException) as exc:
            await get_expense_by_id(db, first.id, OUTSIDER)
        return exc.value.status_code

    assert run(scenario) == 403


def test_load_group_ledger(run, scenario_group):
    expenses, settlements, member_ids = run(lambda db: load_group_ledger(db, scenario_group))

    assert member_ids == [A, B, C]
    assert settlements == []
    assert sorted(e.amount for e in expenses) == [600, 3000]
    assert all(sum(s.amount for s in e.splits) == e.amount for e in expenses)
    assert all(sum(p.amount for p in e.payments) == e.amount for e in expenses)


def test_pairwise_balances_service(run, scenario_group):
    result = run(lambda db: get_pairwise_balances(db, scenario_group, C))

    assert {r.user_id: r.balance for r in result} == {A: -1000, B: -300}


def test_create_expense_rejects_primary_payer_outside_payers(run, group_id):
    data = equal_expense(
        group_id, 500, [A, B],
        paid_by=C,
        paid_by_multiple=[PayerInput(user_id=A, amount=200), PayerInput(user_id=B, amount=300)],
    )

    async def scenario(db):
        with pytest.raises(ValidationError):
            await create_expense(db, data, C)
        return await get_group_expenses(db, group_id)

    assert run(scenario) == []


def test_delete_expense_checks_membership_once(run, scenario_group, monkeypatch):
    calls = []
    check = expense_services.check_group_membership

    async def counting_check(db, group_id, user_id):
        calls.append(user_id)
        return await check(db, group_id, user_id)

    monkeypatch.setattr(expense_services, "check_group_membership", counting_check)

    async def scenario(db):
        expenses = await get_group_expenses(db, scenario_group)
        target = next(e for e in expenses if e.amount == 600)
        await delete_expense(db, target.id, B)

    run(scenario)

    assert calls == [B]


def test_delete_expense_outsider_and_missing(run, scenario_group):
    async def scenario(db):
        [first, *_] = await get_group_expenses(db, scenario_group)
        codes = []

        for expense_id, user_id in [(first.id, OUTSIDER), (12345, A)]:
            with pytest.raises(HTTPException) as exc:
                await delete_expense(db, expense_id, user_id)
            codes.append(exc.value.status_code)

        return codes

    assert run(scenario) == [403, 404]


def test_export_group_data(run, scenario_group):
    async def scenario(db):
        await add_settlement(db, scenario_group, SettlementCreate(from_user=C, to_user=A, amount=300), C)
        return await export_group_data(db, scenario_group, B)

    export = run(scenario)

    assert export.group.id == scenario_group
    assert export.group.currency == "USD"
    assert [(m.user_id, m.role) for m in export.members] == [(A, "admin"), (B, "member"), (C, "member")]
    assert sorted(e.amount for e in export.expenses) == [600, 3000]
    assert all(sum(s.amount for s in e.splits) == e.amount for e in export.expenses)
    assert [(s.from_user, s.to_user, s.amount) for s in export.settlements] == [(C, A, 300)]
    assert [(b.user_id, b.balance) for b in export.balances] == [(A, 1700), (B, -700), (C, -1000)]
    assert export.exported_by == B
    assert export.exported_at is not None


def test_export_group_data_requires_membership(run, scenario_group):
    async def scenario(db):
        codes = []
        for group_id in (scenario_group, 12345):
            with pytest.raises(HTTPException) as exc:
                await export_group_data(db, group_id, OUTSIDER)
            codes.append(exc.value.status_code)
        return codes

    assert run(scenario) == [403, 404]
