"""
Money helpers

Amounts are handled in rupees as floats and converted to paise (minor
units) only at the payment gateway boundary.
"""


def to_minor_units(amount: float) -> int:
    """Rupees to paise, rounded to the nearest paisa (half away from zero)."""
    paise = abs(amount) * 100
    rounded = int(paise + 0.5)
    return rounded if amount >= 0 else -rounded


def from_minor_units(amount: int) -> float:
    return amount / 100


def format_inr(amount: float) -> str:
    """Format an amount with Indian digit grouping, e.g. ₹1,00,000."""
    negative = amount < 0
    whole, paise = divmod(to_minor_units(abs(amount)), 100)

    digits = str(whole)
    if len(digits) > 3:
        head, tail = digits[:-3], digits[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        digits = ",".join(groups + [tail])

    text = f"₹{digits}"
    if paise:
        text += f".{paise:02d}"
    return f"-{text}" if negative else text
