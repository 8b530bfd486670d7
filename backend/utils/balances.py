"""Balance calculation: who owes whom, per personal and per-group scope.

The calculation itself (`calculate_balances` and `build_balance_result`) is
pure and works on plain `ShareRecord` rows, so it can be tested without a
database. `load_share_records` and `get_user_balances` wrap it with the
store reads.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
from sqlalchemy.orm import Session

import models
import schemas
from errors import InvalidScope
from utils.currency import is_settled, round_amount
from utils.display import get_user_names, get_group_names
from utils.validation import is_group_member


PERSONAL = "personal"
GROUP = "group"
EXPENSE_TYPES = (PERSONAL, GROUP)


@dataclass(frozen=True)
class ShareRecord:
    """One participant row joined to its parent expense."""
    expense_id: int
    payer_id: int
    participant_id: int
    share: float
    expense_type: str
    group_id: Optional[int] = None

    @property
    def scope(self) -> Optional[int]:
        """None for personal expenses, the group id for group expenses."""
        return self.group_id if self.expense_type == GROUP else None


@dataclass
class PairTotals:
    they_owe_me: float = 0.0
    i_owe_them: float = 0.0

    @property
    def net(self) -> float:
        return self.they_owe_me - self.i_owe_them


@dataclass
class UserBalances:
    """Accumulated totals for one user, keyed by scope then counterparty."""
    user_id: int
    scopes: Dict[Optional[int], Dict[int, PairTotals]] = field(default_factory=dict)

    def totals(self, scope: Optional[int], counterparty_id: int) -> PairTotals:
        return self.scopes.setdefault(scope, {}).setdefault(counterparty_id, PairTotals())

    def net_balance(self, counterparty_id: int, scope: Optional[int] = None) -> float:
        pair = self.scopes.get(scope, {}).get(counterparty_id)
        return pair.net if pair else 0.0


def calculate_balances(
    user_id: int,
    owed_shares: List[ShareRecord],
    paid_shares: List[ShareRecord]
) -> UserBalances:
    """
    Accumulate what a user owes and is owed, per scope and counterparty.

    Args:
        user_id: The user the balances are computed for
        owed_shares: Participant rows where the user is the participant
        paid_shares: Participant rows of expenses the user paid

    Returns:
        UserBalances with one PairTotals per (scope, counterparty).
        Personal expenses are accumulated under scope None, group expenses
        under their group id. A user never owes themselves, so rows where the
        payer and participant are the same user are skipped.
    """
    balances = UserBalances(user_id=user_id)

    # Pass 1: liabilities - someone else paid, I participated
    for record in owed_shares:
        if record.participant_id != user_id or record.payer_id == user_id:
            continue
        balances.totals(record.scope, record.payer_id).i_owe_them += record.share

    # Pass 2: receivables - I paid, someone else participated
    for record in paid_shares:
        if record.payer_id != user_id or record.participant_id == user_id:
            continue
        balances.totals(record.scope, record.participant_id).they_owe_me += record.share

    return balances


def _balance_rows(pairs: Dict[int, PairTotals], user_names: Dict[int, str]) -> List[schemas.BalanceRow]:
    rows = []
    for counterparty_id, pair in pairs.items():
        if is_settled(pair.net):
            continue
        rows.append(schemas.BalanceRow(
            counterparty_id=counterparty_id,
            counterparty_name=user_names.get(counterparty_id, f"User {counterparty_id}"),
            net_balance=round_amount(pair.net),
            they_owe_me=round_amount(pair.they_owe_me),
            i_owe_them=round_amount(pair.i_owe_them)
        ))
    rows.sort(key=lambda r: (r.counterparty_name, r.counterparty_id))
    return rows


def build_balance_result(
    balances: UserBalances,
    user_names: Dict[int, str],
    group_names: Dict[int, str],
    balance_type: Optional[str] = None,
    group_id: Optional[int] = None
) -> schemas.BalanceResult:
    """
    Turn accumulated totals into the response shape, dropping settled pairs.

    balance_type selects the partitions returned: "personal", "group"
    (optionally narrowed to group_id), or None for both.
    """
    if balance_type is not None and balance_type not in EXPENSE_TYPES:
        raise InvalidScope("balance_type must be 'group' or 'personal'")

    result = schemas.BalanceResult()

    if balance_type in (None, PERSONAL):
        result.personal = _balance_rows(balances.scopes.get(None, {}), user_names)

    if balance_type in (None, GROUP):
        groups = []
        for scope, pairs in balances.scopes.items():
            if scope is None:
                continue
            if group_id is not None and scope != group_id:
                continue
            rows = _balance_rows(pairs, user_names)
            if not rows:
                continue
            groups.append(schemas.GroupBalances(
                group_id=scope,
                group_name=group_names.get(scope, "Unknown Group"),
                balances=rows
            ))
        groups.sort(key=lambda g: (g.group_name, g.group_id))
        result.group = groups

    return result


def _to_record(expense: models.Expense, participant: models.ExpenseParticipant) -> ShareRecord:
    return ShareRecord(
        expense_id=expense.id,
        payer_id=expense.payer_id,
        participant_id=participant.user_id,
        share=participant.share or 0.0,
        expense_type=expense.expense_type,
        group_id=expense.group_id
    )


def load_share_records(db: Session, user_id: int) -> Tuple[List[ShareRecord], List[ShareRecord]]:
    """
    Fetch the two inputs of calculate_balances for a user.

    Returns:
        (owed_shares, paid_shares)
    """
    # Rows where I participate and someone else paid
    owed_rows = db.query(models.ExpenseParticipant, models.Expense).join(
        models.Expense, models.ExpenseParticipant.expense_id == models.Expense.id
    ).filter(
        models.ExpenseParticipant.user_id == user_id,
        models.Expense.payer_id != user_id
    ).all()

    # Expenses I paid, joined to the other participants' rows
    paid_rows = db.query(models.ExpenseParticipant, models.Expense).join(
        models.Expense, models.ExpenseParticipant.expense_id == models.Expense.id
    ).filter(
        models.Expense.payer_id == user_id,
        models.ExpenseParticipant.user_id != user_id
    ).all()

    owed_shares = [_to_record(expense, p) for p, expense in owed_rows]
    paid_shares = [_to_record(expense, p) for p, expense in paid_rows]
    return owed_shares, paid_shares


def get_user_balances(
    db: Session,
    user_id: int,
    balance_type: Optional[str] = None,
    group_id: Optional[int] = None
) -> schemas.BalanceResult:
    """
    Load, calculate and format the balances of one user.

    A group_id naming a group the user is not a member of (or that does not
    exist) empties the group results rather than raising. Personal balances
    are unaffected by group_id.
    """
    if balance_type is not None and balance_type not in EXPENSE_TYPES:
        raise InvalidScope("balance_type must be 'group' or 'personal'")

    owed_shares, paid_shares = load_share_records(db, user_id)
    balances = calculate_balances(user_id, owed_shares, paid_shares)

    counterparty_ids = set()
    group_ids = set()
    for scope, pairs in balances.scopes.items():
        counterparty_ids.update(pairs.keys())
        if scope is not None:
            group_ids.add(scope)

    result = build_balance_result(
        balances,
        user_names=get_user_names(db, counterparty_ids),
        group_names=get_group_names(db, group_ids),
        balance_type=balance_type,
        group_id=group_id
    )
    if group_id is not None and not is_group_member(db, group_id, user_id):
        result.group = []
    return result
