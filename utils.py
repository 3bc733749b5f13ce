def format_units(value: int | str, decimals: int) -> str:
    """Render a raw integer token amount as a decimal string.

    Exact (no float rounding) and always carries a fractional part:
    1500000 with 6 decimals -> "1.5", 1000000 -> "1.0".
    """
    value = int(value)
    sign = "-" if value < 0 else ""
    value = abs(value)
    if decimals <= 0:
        return f"{sign}{value * 10 ** -decimals}.0"

    whole, frac = divmod(value, 10 ** decimals)
    frac_str = str(frac).rjust(decimals, "0").rstrip("0") or "0"
    return f"{sign}{whole}.{frac_str}"


def short_address(address: str, chars: int = 6) -> str:
    """Truncate: 0x1234...abcd"""
    if len(address) <= chars * 2 + 3:
        return address
    return f"{address[:chars]}...{address[-chars:]}"
