from .batch import BatchOutcome, score_batch
from .calculator import CalculationResult, calculate_payout
from .deduction import DeductionRule, RuleFormatError, apply_deduction, parse_rules, validate_rules
from .normalizer import ProcessedItem, is_valid_hit_pattern, normalize_group, normalize_groups
from .parser import WagerGroup, parse_wager_text
from .report import format_score_list

__all__ = [
    "BatchOutcome",
    "score_batch",
    "CalculationResult",
    "calculate_payout",
    "DeductionRule",
    "RuleFormatError",
    "apply_deduction",
    "parse_rules",
    "validate_rules",
    "ProcessedItem",
    "is_valid_hit_pattern",
    "normalize_group",
    "normalize_groups",
    "WagerGroup",
    "parse_wager_text",
    "format_score_list",
]
