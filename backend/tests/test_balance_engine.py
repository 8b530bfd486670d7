import pytest

from errors import InvalidScope
from utils.balances import ShareRecord, calculate_balances, build_balance_result
from utils.currency import EPSILON, amounts_match, is_settled

A, B, C = 1, 2, 3
NAMES = {A: "Alice", B: "Bob", C: "Carol"}
GROUPS = {10: "Trip", 20: "Flat"}


def expense(expense_id, payer, shares, expense_type="personal", group_id=None):
    """Participant rows of one expense: shares is {user_id: share}."""
    return [
        ShareRecord(
            expense_id=expense_id,
            payer_id=payer,
            participant_id=user_id,
            share=share,
            expense_type=expense_type,
            group_id=group_id
        )
        for user_id, share in shares.items()
    ]


def inputs_for(user_id, rows):
    """Split all rows into the two lists the engine takes for user_id."""
    owed = [r for r in rows if r.participant_id == user_id]
    paid = [r for r in rows if r.payer_id == user_id]
    return owed, paid


def balances_for(user_id, rows):
    return calculate_balances(user_id, *inputs_for(user_id, rows))


def test_personal_expense_split_evenly():
    rows = expense(1, A, {A: 25.0, B: 25.0})

    assert balances_for(A, rows).net_balance(B) == 25.0
    assert balances_for(B, rows).net_balance(A) == -25.0


def test_second_expense_paid_by_other_side_nets_out():
    rows = expense(1, A, {A: 25.0, B: 25.0}) + expense(2, B, {A: 5.0, B: 5.0})

    balances = balances_for(A, rows)
    pair = balances.scopes[None][B]
    assert pair.they_owe_me == 25.0
    assert pair.i_owe_them == 5.0
    assert balances.net_balance(B) == 20.0


def test_payer_never_owes_themselves():
    rows = expense(1, A, {A: 30.0})

    balances = balances_for(A, rows)
    assert balances.scopes == {}


def test_rows_not_involving_user_are_ignored():
    rows = expense(1, B, {B: 10.0, C: 10.0})

    # Even if handed rows that do not belong to A, nothing is accumulated
    balances = calculate_balances(A, rows, rows)
    assert balances.scopes == {}


def test_group_equal_split_between_three_members():
    rows = expense(1, A, {A: 10.0, B: 10.0, C: 10.0}, "group", 10)

    a = balances_for(A, rows)
    assert a.net_balance(B, scope=10) == 10.0
    assert a.net_balance(C, scope=10) == 10.0

    b = balances_for(B, rows)
    assert b.net_balance(C, scope=10) == 0.0
    result = build_balance_result(b, NAMES, GROUPS)
    assert [row.counterparty_id for row in result.group[0].balances] == [A]


def test_scopes_are_not_merged():
    rows = (
        expense(1, A, {A: 10.0, B: 10.0})
        + expense(2, B, {A: 10.0, B: 10.0}, "group", 10)
        + expense(3, A, {A: 4.0, B: 6.0}, "group", 20)
    )

    balances = balances_for(A, rows)
    assert balances.net_balance(B) == 10.0
    assert balances.net_balance(B, scope=10) == -10.0
    assert balances.net_balance(B, scope=20) == 6.0

    result = build_balance_result(balances, NAMES, GROUPS)
    assert [row.net_balance for row in result.personal] == [10.0]
    by_group = {g.group_id: g.balances[0].net_balance for g in result.group}
    assert by_group == {10: -10.0, 20: 6.0}


@pytest.mark.parametrize("scope_rows", [
    expense(1, A, {A: 12.5, B: 12.5, C: 5.0}),
    expense(1, A, {B: 7.25}, "group", 10) + expense(2, B, {A: 3.1, C: 2.0}, "group", 10),
])
def test_balances_are_zero_sum(scope_rows):
    for first, second in [(A, B), (A, C), (B, C)]:
        first_view = balances_for(first, scope_rows)
        second_view = balances_for(second, scope_rows)
        for scope in set(first_view.scopes) | set(second_view.scopes):
            assert first_view.net_balance(second, scope) == pytest.approx(
                -second_view.net_balance(first, scope)
            )


def test_calculation_is_idempotent():
    rows = expense(1, A, {A: 10.0, B: 20.0}) + expense(2, C, {A: 3.0, C: 3.0}, "group", 20)
    owed, paid = inputs_for(A, rows)

    first = build_balance_result(calculate_balances(A, owed, paid), NAMES, GROUPS)
    second = build_balance_result(calculate_balances(A, owed, paid), NAMES, GROUPS)
    assert first == second


def test_balances_within_epsilon_are_dropped():
    rows = expense(1, A, {A: 10.0, B: 10.0}) + expense(2, B, {A: 9.995, B: 10.005})

    balances = balances_for(A, rows)
    assert is_settled(balances.net_balance(B))

    result = build_balance_result(balances, NAMES, GROUPS)
    assert result.personal == []


def test_exactly_settled_pair_is_dropped():
    rows = expense(1, A, {B: 10.0}) + expense(2, B, {A: 10.0})

    result = build_balance_result(balances_for(A, rows), NAMES, GROUPS)
    assert result.personal == []
    assert result.group == []


def test_group_with_only_settled_pairs_is_omitted():
    rows = expense(1, A, {B: 5.0}, "group", 10) + expense(2, B, {A: 5.0}, "group", 10)

    result = build_balance_result(balances_for(A, rows), NAMES, GROUPS)
    assert result.group == []


def test_result_rows_are_sorted_and_named():
    rows = expense(1, A, {C: 4.0, B: 6.0})

    result = build_balance_result(balances_for(A, rows), NAMES, GROUPS)
    assert [(r.counterparty_name, r.net_balance) for r in result.personal] == [("Bob", 6.0), ("Carol", 4.0)]


def test_unknown_names_fall_back():
    rows = expense(1, A, {99: 4.0}, "group", 77)

    result = build_balance_result(balances_for(A, rows), {}, {})
    assert result.group[0].group_name == "Unknown Group"
    assert result.group[0].balances[0].counterparty_name == "User 99"


def test_filter_by_balance_type_and_group():
    rows = (
        expense(1, A, {B: 10.0})
        + expense(2, A, {B: 3.0}, "group", 10)
        + expense(3, A, {C: 4.0}, "group", 20)
    )
    balances = balances_for(A, rows)

    personal_only = build_balance_result(balances, NAMES, GROUPS, balance_type="personal")
    assert len(personal_only.personal) == 1
    assert personal_only.group == []

    groups_only = build_balance_result(balances, NAMES, GROUPS, balance_type="group")
    assert groups_only.personal == []
    assert [g.group_name for g in groups_only.group] == ["Flat", "Trip"]

    one_group = build_balance_result(balances, NAMES, GROUPS, balance_type="group", group_id=20)
    assert [g.group_id for g in one_group.group] == [20]

    missing_group = build_balance_result(balances, NAMES, GROUPS, balance_type="group", group_id=30)
    assert missing_group.group == []


def test_unknown_balance_type_is_rejected():
    with pytest.raises(InvalidScope):
        build_balance_result(balances_for(A, []), NAMES, GROUPS, balance_type="weekly")


def test_epsilon_helpers():
    assert EPSILON == 0.01
    assert amounts_match(50.0, 49.99)
    assert not amounts_match(50.0, 49.0)
    assert is_settled(-0.01)
    assert not is_settled(0.02)
