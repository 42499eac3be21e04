"""Display labels for dashboard figures."""
from decimal import Decimal
from typing import Union

Number = Union[int, float, Decimal]


def format_quantity_compact(amount: Number) -> str:
    """1500 -> "1.5K", 2300000 -> "2.3M", 950 -> "950"."""
    value = float(amount)
    if value >= 1_000_000:
        return f"{value / 1_000_000:.1f}M"
    if value >= 1000:
        return f"{value / 1000:.1f}K"
    return str(int(value)) if value == int(value) else str(value)


def format_rupees_compact(amount: Number) -> str:
    """Indian short scale: lakh (L) and thousand (K)."""
    value = float(amount)
    if value >= 100_000:
        return f"₹{value / 100_000:.1f}L"
    if value >= 1000:
        return f"₹{value / 1000:.1f}K"
    return f"₹{value:.0f}"


def format_rupees(amount: Number) -> str:
    return f"₹ {float(amount):,.2f}"
