from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .constants import NO_DEDUCTION_CEILING


class RuleFormatError(ValueError):
    """A deduction rule (or the table as a whole) is malformed."""


@dataclass(frozen=True)
class DeductionRule:
    min: float
    max: Optional[float]  # None means unbounded
    deduction: float
    increment: Optional[float] = None
    interval: Optional[float] = None

    @property
    def is_incremental(self) -> bool:
        return self.increment is not None and self.interval is not None

    def covers(self, profit: float) -> bool:
        return self.min <= profit and (self.max is None or profit <= self.max)

    def deduction_for(self, profit: float) -> float:
        if self.is_incremental:
            steps = math.floor((profit - self.min) / self.interval)
            return self.deduction + steps * self.increment
        return self.deduction

    def to_dict(self) -> Dict[str, Any]:
        payload = {"min": self.min, "max": self.max, "deduction": self.deduction}
        if self.is_incremental:
            payload["increment"] = self.increment
            payload["interval"] = self.interval
        return payload

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "DeductionRule":
        if not isinstance(raw, dict):
            raise RuleFormatError("Each deduction rule must be an object.")
        return cls(
            min=_number(raw.get("min"), "min"),
            max=_upper_bound(raw.get("max")),
            deduction=_number(raw.get("deduction"), "deduction"),
            increment=_optional_number(raw.get("increment"), "increment"),
            interval=_optional_number(raw.get("interval"), "interval"),
        )


def _number(value, field_name):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        if not isinstance(value, str):
            raise RuleFormatError(f"Rule field '{field_name}' must be a number.")
        try:
            value = float(value) if "." in value else int(value)
        except ValueError:
            raise RuleFormatError(f"Rule field '{field_name}' must be a number.")
    if not math.isfinite(value):
        raise RuleFormatError(f"Rule field '{field_name}' must be a finite number.")
    return value


def _optional_number(value, field_name):
    if value is None or value == "":
        return None
    return _number(value, field_name)


def _upper_bound(value):
    # JSON cannot carry Infinity, so null / missing / "Infinity" all mean unbounded.
    if value is None or value == "" or value in ("Infinity", "infinity", "inf"):
        return None
    if isinstance(value, float) and value == math.inf:
        return None
    return _number(value, "max")


def parse_rules(raw_rules: Iterable[Dict[str, Any]]) -> List[DeductionRule]:
    return [DeductionRule.from_dict(raw) for raw in raw_rules]


def apply_deduction(profit: float, rules: Iterable[DeductionRule]) -> Tuple[float, float]:
    """Return (final_value, deduction) for a payout; amounts up to the ceiling pass through."""
    if profit <= NO_DEDUCTION_CEILING:
        return profit, 0

    for rule in rules:
        if rule.covers(profit):
            deduction = rule.deduction_for(profit)
            return profit - deduction, deduction

    print(f"⚠️ [Scoreboard:Deduction] No deduction rule covers {profit}; applying zero deduction.")
    return profit, 0


def validate_rules(rules: List[DeductionRule]) -> Optional[str]:
    """
    Check a rule table before it is saved. Returns an error message, or None
    when the table is usable. Positions in messages are 1-based after sorting by min.
    """
    ordered = sorted(rules, key=lambda r: r.min)
    for i, rule in enumerate(ordered):
        position = i + 1
        if rule.min < 0:
            return f"Rule {position}: min must not be negative."
        if rule.max is not None and rule.max < rule.min:
            return f"Rule {position}: max must not be less than min."
        if rule.deduction < 0:
            return f"Rule {position}: deduction must not be negative."
        if (rule.increment is None) != (rule.interval is None):
            return f"Rule {position}: increment and interval must be set together."
        if rule.is_incremental and (rule.increment <= 0 or rule.interval <= 0):
            return f"Rule {position}: increment and interval must be greater than 0."

        if i < len(ordered) - 1:
            next_rule = ordered[i + 1]
            if rule.max is None:
                return f"Rules {position} and {position + 1} overlap."
            if rule.max + 1 < next_rule.min:
                return f"Rules {position} and {position + 1} leave a gap."
            if rule.max >= next_rule.min:
                return f"Rules {position} and {position + 1} overlap."
    return None
