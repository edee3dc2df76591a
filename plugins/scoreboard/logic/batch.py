from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from .calculator import ERROR_RESULT, CalculationResult, calculate_payout
from .constants import HIT_DIGITS
from .deduction import parse_rules
from .normalizer import ProcessedItem, normalize_groups
from .parser import parse_wager_text


@dataclass
class BatchOutcome:
    """Result of scoring one pasted batch; `results[i]` belongs to `items[i]`."""
    hit_number: str
    items: List[ProcessedItem] = field(default_factory=list)
    results: List[CalculationResult] = field(default_factory=list)
    total_sum: float = 0
    positive_sum: float = 0
    negative_sum: float = 0
    max_digit_width: int = 0
    score_changes: Dict[str, float] = field(default_factory=dict)

    def summary(self) -> Dict[str, Any]:
        return {
            "totalSum": self.total_sum,
            "positiveSum": self.positive_sum,
            "negativeSum": self.negative_sum,
            "maxDigitWidth": self.max_digit_width,
        }


def score_batch(raw_text: str, hit_number: str, config: Dict[str, Any]) -> BatchOutcome:
    """
    Parse, normalize and score a pasted batch against one user's config.

    Bad fragments stay in the output flagged as errors; only scored wagers feed
    the sums and the per-label score changes.
    """
    if hit_number not in HIT_DIGITS:
        raise ValueError(f"hitNumber must be one of {', '.join(HIT_DIGITS)}.")

    special_chars = list(config.get("specialChars") or [])
    rules = parse_rules(config.get("deductionRules") or [])

    groups = parse_wager_text(raw_text, special_chars)
    outcome = BatchOutcome(hit_number=hit_number, items=normalize_groups(groups, special_chars))

    for item in outcome.items:
        if item.is_invalid:
            outcome.results.append(ERROR_RESULT)
            continue

        result = calculate_payout(item.digits, item.total, hit_number, item.is_special, rules)
        outcome.results.append(result)
        outcome.max_digit_width = max(outcome.max_digit_width, len(item.digits))
        if result.error:
            continue

        outcome.total_sum += result.value
        if result.value > 0:
            outcome.positive_sum += result.value
        elif result.value < 0:
            outcome.negative_sum += result.value
        outcome.score_changes[item.label] = outcome.score_changes.get(item.label, 0) + result.value

    return outcome
