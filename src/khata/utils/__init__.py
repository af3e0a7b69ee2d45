"""Utility functions for khata."""

from khata.utils.date_parser import parse_date, coerce_transaction_date
from khata.utils.amount_parser import parse_amount
from khata.utils.amount_words import amount_in_words

__all__ = ["parse_date", "coerce_transaction_date", "parse_amount", "amount_in_words"]
