from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class Tier:
    code: str
    daily_amount: Decimal
    duration_days: int
    bonus_amount: Decimal

    def as_dict(self) -> dict:
        return {
            "tier": self.code,
            "dailyAmount": float(self.daily_amount),
            "durationDays": self.duration_days,
            "bonusAmount": float(self.bonus_amount),
        }


TIERS = {
    tier.code: tier
    for tier in (
        Tier("V1", Decimal("10"), 5, Decimal("50")),
        Tier("V2", Decimal("25"), 7, Decimal("150")),
        Tier("V3", Decimal("60"), 10, Decimal("500")),
        Tier("V4", Decimal("150"), 15, Decimal("1500")),
        Tier("V5", Decimal("400"), 30, Decimal("5000")),
    )
}


def get_tier(code: str | None) -> Tier | None:
    if not code:
        return None
    return TIERS.get(str(code).strip().upper())
