"""
Token amount formatting
"""


def format_units(value: int | str, decimals: int) -> str:
    """Render a smallest-unit integer amount as a decimal string.

    format_units(1500000, 6) -> "1.5"
    """
    amount = int(value)
    sign = "-" if amount < 0 else ""
    whole, frac = divmod(abs(amount), 10**decimals)
    frac_text = str(frac).zfill(decimals).rstrip("0") if decimals else ""
    return f"{sign}{whole}.{frac_text}" if frac_text else f"{sign}{whole}"
