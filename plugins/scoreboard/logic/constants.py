# Central scoring configuration for the Scoreboard plugin.

HIT_DIGITS = ("1", "2", "3", "4")

# Payouts at or below this amount are never deducted.
NO_DEDUCTION_CEILING = 80

# 2-digit wagers with a stake at or below this are never deducted.
TWO_DIGIT_NO_DEDUCTION_STAKE = 70

PAYOUT_MULTIPLIERS = {
    "SINGLE_HIT": 3,
    "PAIR_HIT": 1,
    "TRIPLE_REPEAT_HIT": 1.5,
    "TRIPLE_REPEAT_HIT_SPECIAL": 2,
    "TRIPLE_SINGLE_HIT": 0.5,
}

DEFAULT_HISTORY_LIMIT = 100

# Alternate separator glyphs users type in place of "/".
FULLWIDTH_PERIODS = ("。", "．")

DEFAULT_CONFIG = {
    "specialChars": ["挖", "爬"],
    "deductionRules": [
        {"min": 81, "max": 199, "deduction": 5},
        {"min": 200, "max": 399, "deduction": 10},
        {"min": 400, "max": 599, "deduction": 20},
        {"min": 600, "max": 799, "deduction": 30},
        {"min": 800, "max": 1049, "deduction": 40},
        {"min": 1050, "max": 1999, "deduction": 50, "increment": 10, "interval": 200},
        {"min": 2000, "max": 2080, "deduction": 80},
        {"min": 2081, "max": 2400, "deduction": 100},
        {"min": 2401, "max": 3080, "deduction": 120},
        {"min": 3081, "max": 3800, "deduction": 150},
        {"min": 3801, "max": None, "deduction": 300},
    ],
}

HISTORY_TYPES = ("calculation", "manual_add", "manual_update", "manual_delete", "manual_edit")
