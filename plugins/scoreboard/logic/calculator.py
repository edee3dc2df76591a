from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Sequence

from .constants import PAYOUT_MULTIPLIERS, TWO_DIGIT_NO_DEDUCTION_STAKE
from .deduction import DeductionRule, apply_deduction


@dataclass(frozen=True)
class CalculationResult:
    """Signed points from the player's side. `error` results never count toward sums."""
    value: float = 0
    deduction: float = 0
    error: bool = False

    def to_dict(self):
        return {"value": self.value, "deduction": self.deduction, "error": self.error}


ERROR_RESULT = CalculationResult(value=0, deduction=0, error=True)


def _deducted(raw: float, rules: Sequence[DeductionRule]) -> CalculationResult:
    value, deduction = apply_deduction(raw, rules)
    return CalculationResult(value=value, deduction=deduction)


def calculate_payout(digits: Sequence[str], total: str, hit_number: str, is_special: bool,
                     rules: Sequence[DeductionRule]) -> CalculationResult:
    try:
        stake = int(total)
    except (TypeError, ValueError):
        return ERROR_RESULT

    is_hit = hit_number in digits
    width = len(digits)

    if width == 1:
        if not is_hit:
            return CalculationResult(value=-stake)
        return _deducted(stake * PAYOUT_MULTIPLIERS["SINGLE_HIT"], rules)

    if width == 2:
        raw = stake * PAYOUT_MULTIPLIERS["PAIR_HIT"] if is_hit else -stake
        if stake <= TWO_DIGIT_NO_DEDUCTION_STAKE:
            return CalculationResult(value=raw)
        return _deducted(raw, rules)

    if width == 3:
        counts = Counter(digits)
        if len(counts) == 3:
            return ERROR_RESULT
        if not is_hit:
            return CalculationResult(value=-stake)

        hit_count = counts[hit_number]
        if is_special:
            if hit_count >= 2:
                return _deducted(stake * PAYOUT_MULTIPLIERS["TRIPLE_REPEAT_HIT_SPECIAL"], rules)
            return CalculationResult(value=0)
        if hit_count >= 2:
            return _deducted(stake * PAYOUT_MULTIPLIERS["TRIPLE_REPEAT_HIT"], rules)
        # a single matching position among three is never deducted
        return CalculationResult(value=stake * PAYOUT_MULTIPLIERS["TRIPLE_SINGLE_HIT"])

    return CalculationResult(value=-stake)
