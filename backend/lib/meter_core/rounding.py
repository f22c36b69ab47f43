from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")


def round_to(value: float, places: int = 2) -> float:
    """Half-up rounding (not banker's rounding) via the decimal string."""
    exp = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(exp, rounding=ROUND_HALF_UP))


def round_money(value: float) -> float:
    return float(Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP))


def round_int(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP))
