from decimal import ROUND_HALF_UP, Decimal


def round_half_up(value, digits=0):
    """Round like a scoreboard does: 0.05 -> 0.1, 2.5 -> 3"""
    quantum = Decimal(1).scaleb(-digits)
    rounded = Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    return float(rounded) if digits else int(rounded)


def percentage(part, whole, digits=0):
    """part / whole as a half-up rounded percentage, 0 when whole is empty"""
    if whole <= 0:
        return 0
    return round_half_up(part / whole * 100, digits)
