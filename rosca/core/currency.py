# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Currency display helpers (whole units, thousands separators)."""

from rosca.core.config import settings


def format_amount(amount: int) -> str:
    """150000 -> '₦150,000'."""
    return f"{settings.CURRENCY_SYMBOL}{amount:,.0f}"

