import copy
from typing import Any, Dict

from ..logic.constants import DEFAULT_CONFIG
from ..logic.deduction import RuleFormatError, parse_rules, validate_rules


class ConfigValidationError(ValueError):
    """Raised when a submitted scoring config is rejected; nothing is written."""


class ScoringConfigStore:
    """Persistence layer for per-user special markers and deduction tables."""

    filename = "scoreboard_config.json"

    def __init__(self, data_manager):
        self.data_manager = data_manager

    def get(self, user_hash: str) -> Dict[str, Any]:
        stored = self.data_manager.load_user_data(
            self.filename,
            user_hash,
            default_value=None,
            obfuscated=True,
        )
        config = copy.deepcopy(DEFAULT_CONFIG)
        if isinstance(stored, dict):
            for key in ("specialChars", "deductionRules"):
                if isinstance(stored.get(key), list):
                    config[key] = stored[key]
        return config

    def save(self, user_hash: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        config = self.validate(payload)
        self.data_manager.save_user_data(
            config,
            self.filename,
            user_hash,
            obfuscated=True,
        )
        print(f"[Scoreboard] Saved scoring config ({len(config['deductionRules'])} deduction rules).")
        return config

    @staticmethod
    def validate(payload: Any) -> Dict[str, Any]:
        """Normalize a submitted config or raise ConfigValidationError."""
        if not isinstance(payload, dict):
            raise ConfigValidationError("Config must be an object.")
        special_chars = payload.get("specialChars")
        raw_rules = payload.get("deductionRules")
        if not isinstance(special_chars, list) or not isinstance(raw_rules, list):
            raise ConfigValidationError("Config needs 'specialChars' and 'deductionRules' lists.")

        cleaned_chars = []
        for marker in special_chars:
            if not isinstance(marker, str) or not marker.strip():
                raise ConfigValidationError("Special characters must be non-empty strings.")
            if marker.strip() not in cleaned_chars:
                cleaned_chars.append(marker.strip())

        try:
            rules = parse_rules(raw_rules)
        except RuleFormatError as e:
            raise ConfigValidationError(str(e)) from e

        problem = validate_rules(rules)
        if problem:
            raise ConfigValidationError(problem)

        return {
            "specialChars": cleaned_chars,
            "deductionRules": [rule.to_dict() for rule in rules],
        }
