from decimal import ROUND_HALF_EVEN, Decimal

from sqlalchemy import BigInteger
from sqlalchemy.types import TypeDecorator

AMOUNT_PLACES = 8
AMOUNT_SCALE = Decimal(10) ** AMOUNT_PLACES
# largest amount whose unit count fits a signed 64-bit column
MAX_AMOUNT = Decimal(2**63 - 1).scaleb(-AMOUNT_PLACES)


def to_units(value) -> int:
    return int((Decimal(str(value)) * AMOUNT_SCALE).to_integral_value(rounding=ROUND_HALF_EVEN))


def from_units(units: int) -> Decimal:
    return Decimal(int(units)).scaleb(-AMOUNT_PLACES)


class CoinAmount(TypeDecorator):
    """
    Exact coin amount stored as an integer count of 1e-8 units.

    Comparisons and increments inside the database (`amount >= :x`,
    `amount + :x`) run on integers, so SQLite and Postgres agree to the
    last unit.
    """

    impl = BigInteger
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return to_units(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return from_units(value)
