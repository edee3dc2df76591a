from .config_store import ConfigValidationError, ScoringConfigStore
from .ledger import LedgerResult, ScoreLedger

__all__ = [
    "ConfigValidationError",
    "ScoringConfigStore",
    "LedgerResult",
    "ScoreLedger",
]
