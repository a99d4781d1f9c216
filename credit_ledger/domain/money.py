"""Minor-unit money helpers"""

from credit_ledger.config import settings


def format_money(amount_cents: int, symbol: str | None = None) -> str:
    """Render minor units as a display amount, e.g. 10050 -> ₹100.50"""
    symbol = settings.currency_symbol if symbol is None else symbol
    sign = "-" if amount_cents < 0 else ""
    whole, fraction = divmod(abs(amount_cents), 100)
    return f"{sign}{symbol}{whole:,}.{fraction:02d}"
