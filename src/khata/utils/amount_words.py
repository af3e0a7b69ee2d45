"""Render money amounts in words using the Indian numbering scale."""

from decimal import Decimal, ROUND_HALF_UP

from num2words import num2words


def number_to_words(number: int) -> str:
    """Spell a non-negative integer (thousand, lakh, crore)."""
    if number < 0:
        raise ValueError("number_to_words expects a non-negative integer")
    words = num2words(number, lang="en_IN").replace(",", "").replace("-", " ")
    return " ".join(w for w in words.split() if w != "and").title()


def amount_in_words(amount: Decimal) -> str:
    """Render an amount as e.g. ``One Thousand Fifty Rupees and Fifty Paise Only``.

    Negative amounts (net-return invoices) are prefixed with ``MINUS``.
    """
    amount = Decimal(amount).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    prefix = "MINUS " if amount < 0 else ""
    amount = abs(amount)

    rupees = int(amount)
    paise = int((amount - rupees) * 100)

    words = f"{number_to_words(rupees)} Rupees"
    if paise:
        words += f" and {number_to_words(paise)} Paise"
    return f"{prefix}{words} Only"
