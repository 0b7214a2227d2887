# ==================================================
# 🏆 REWARD TIERS
# Cosmetic label derived from burn amount
# ==================================================

from decimal import Decimal
from typing import Tuple, Union

Number = Union[int, float, Decimal]

# Strictly descending; first match wins
REWARD_TIERS: Tuple[Tuple[int, str], ...] = (
    (100_000, "Whale Status"),
    (50_000, "Governance Rights"),
    (10_000, "Exclusive NFT"),
    (1_000, "Bonus Multiplier"),
)

NO_TIER = "None"


def determine_reward_tier(amount: Number) -> str:
    if amount < 0:
        raise ValueError(f"burn amount must be non-negative, got {amount}")

    for threshold, tier in REWARD_TIERS:
        if amount >= threshold:
            return tier
    return NO_TIER
