from __future__ import annotations


def _require_int(name: str, value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    return value


class AllocationCalculator:
    """Secondary-token allocation for a primary-token contribution.

    derive(x) = ((x * 10**(secondary_decimals - primary_decimals)) // price) * claim_percent // 100

    Each step truncates, so the order of operations is fixed.
    """

    def __init__(
        self,
        price: int,
        claim_percent: int,
        *,
        primary_decimals: int = 6,
        secondary_decimals: int = 18,
    ) -> None:
        price = _require_int("price", price)
        claim_percent = _require_int("claim_percent", claim_percent)
        primary_decimals = _require_int("primary_decimals", primary_decimals)
        secondary_decimals = _require_int("secondary_decimals", secondary_decimals)
        if price <= 0:
            raise ValueError(f"price must be > 0, got {price}")
        if not 0 <= claim_percent <= 100:
            raise ValueError(f"claim_percent must be within 0..100, got {claim_percent}")
        if primary_decimals < 0 or secondary_decimals < 0:
            raise ValueError("decimals must be >= 0")
        if secondary_decimals < primary_decimals:
            raise ValueError(
                f"secondary_decimals ({secondary_decimals}) must be >= primary_decimals ({primary_decimals})"
            )
        self.price = price
        self.claim_percent = claim_percent
        self.primary_decimals = primary_decimals
        self.secondary_decimals = secondary_decimals
        self.scale = 10 ** (secondary_decimals - primary_decimals)

    def derive(self, primary_amount: int) -> int:
        primary_amount = _require_int("primary_amount", primary_amount)
        if primary_amount < 0:
            raise ValueError(f"primary_amount must be >= 0, got {primary_amount}")
        scaled = primary_amount * self.scale
        tokens = scaled // self.price
        return tokens * self.claim_percent // 100

    def describe(self) -> dict:
        return {
            "price": str(self.price),
            "claim_percent": self.claim_percent,
            "primary_decimals": self.primary_decimals,
            "secondary_decimals": self.secondary_decimals,
        }
