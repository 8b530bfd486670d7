"""Money helpers shared by expense validation and balance calculation."""

# Amounts closer than this are considered equal. Used both when checking that
# participant shares add up to an expense amount and when dropping settled
# balances, so the two always agree.
EPSILON = 0.01


def round_amount(amount: float) -> float:
    """Round an amount to cents for display."""
    return round(amount, 2)


def amounts_match(a: float, b: float) -> bool:
    """True if two amounts differ by no more than EPSILON."""
    return round(abs(a - b), 9) <= EPSILON


def is_settled(amount: float) -> bool:
    """True if a net balance is small enough to count as zero."""
    return round(abs(amount), 9) <= EPSILON


def format_currency(amount: float, symbol: str = "$") -> str:
    """
    Format an amount as a currency string with symbol.

    Examples:
        format_currency(12.3) -> "$12.30"
        format_currency(-5) -> "-$5.00"
    """
    if amount < 0:
        return f"-{symbol}{abs(amount):.2f}"
    return f"{symbol}{amount:.2f}"
