"""Domain services that contain pure business rules."""

from __future__ import annotations

import math
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Sequence

from lestream.domain.errors import InvalidInput
from lestream.domain.models import ShareAllocation, SongSplit
from lestream.domain.policies import DEFAULT_TIER_THRESHOLDS, BadgeTier, SplitPolicy, TierThresholds

CURRENCY_UNIT = Decimal("0.000001")
_HUNDRED = Decimal(100)
_CHAIN_ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")


def tier_for_seconds(seconds: float, thresholds: TierThresholds = DEFAULT_TIER_THRESHOLDS) -> int:
    """Map cumulative seconds to a badge tier; lower bounds are inclusive."""

    if seconds >= thresholds.gold_seconds:
        return BadgeTier.GOLD.value
    if seconds >= thresholds.silver_seconds:
        return BadgeTier.SILVER.value
    if seconds >= thresholds.bronze_seconds:
        return BadgeTier.BRONZE.value
    return BadgeTier.NONE.value


def tier_name(tier: int) -> str:
    try:
        return BadgeTier(tier).name.title()
    except ValueError:
        return BadgeTier.NONE.name.title()


def is_chain_address(value: str) -> bool:
    return bool(_CHAIN_ADDRESS_PATTERN.match(value or ""))


def is_alias(value: str, suffixes: Iterable[str]) -> bool:
    normalized = (value or "").strip().lower()
    return bool(normalized) and any(normalized.endswith(suffix) for suffix in suffixes)


def to_decimal(value: object, *, field: str = "amount") -> Decimal:
    """Parse numbers and numeric strings without binary float artefacts."""

    try:
        parsed = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise InvalidInput(f"{field} must be numeric, got {value!r}.") from exc
    if not parsed.is_finite():
        raise InvalidInput(f"{field} must be finite.")
    return parsed


def validate_seconds(seconds: float) -> float:
    if isinstance(seconds, bool) or not isinstance(seconds, (int, float)):
        raise InvalidInput("seconds must be a number.", code="invalid_seconds")
    if not math.isfinite(seconds) or seconds <= 0:
        raise InvalidInput("seconds must be a positive number.", code="invalid_seconds")
    return float(seconds)


def round_to_currency_unit(amount: Decimal) -> Decimal:
    """Round to six fractional digits, half away from zero."""

    return amount.quantize(CURRENCY_UNIT, rounding=ROUND_HALF_UP)


def compute_shares(
    total_amount: Decimal,
    splits: Sequence[SongSplit],
    policy: SplitPolicy = SplitPolicy.CONFIGURED_PERCENTAGE,
) -> tuple[ShareAllocation, ...]:
    """Turn a total owed amount into per-collaborator shares.

    Residual rounding error across the set is not reconciled, so the shares may
    differ from ``total_amount`` by a few currency units.
    """

    total = to_decimal(total_amount, field="total_amount")
    if total <= 0:
        raise InvalidInput("total_amount must be positive.", code="invalid_amount")

    if policy is SplitPolicy.EQUAL_SPLIT:
        eligible = [split for split in splits if split.recipient_identifier.strip()]
        if not eligible:
            raise InvalidInput("No collaborators to pay.", code="no_eligible_collaborators")
        percentage = _HUNDRED / len(eligible)
        return tuple(
            ShareAllocation(split=split, percentage=percentage, amount=round_to_currency_unit(total * percentage / _HUNDRED))
            for split in eligible
        )

    if not splits:
        raise InvalidInput("No collaborators to pay.", code="no_eligible_collaborators")
    return tuple(
        ShareAllocation(
            split=split,
            percentage=split.percentage,
            amount=round_to_currency_unit(total * split.percentage / _HUNDRED),
        )
        for split in splits
    )
