from decimal import Decimal, ROUND_HALF_UP, getcontext
from datetime import datetime, timezone

getcontext().prec = 28
CENTS = Decimal("0.01")

def to_decimal(value) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))

def qround(d: Decimal) -> Decimal:
    return d.quantize(CENTS, rounding=ROUND_HALF_UP)

def money(value) -> float:
    return float(qround(to_decimal(value)))

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def as_utc(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
