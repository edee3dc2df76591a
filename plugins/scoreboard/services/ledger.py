import copy
import hashlib
import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..logic.constants import DEFAULT_HISTORY_LIMIT

NOT_FOUND = "not_found"
NAME_CONFLICT = "name_conflict"
INVALID_NAME = "invalid_name"

_SAFE_ID = re.compile(r"[A-Za-z0-9_-]{1,128}")


@dataclass
class LedgerResult:
    """Typed outcome of a ledger operation; failures are values, not exceptions."""
    success: bool
    error: Optional[str] = None
    message: str = ""
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, message: str = "", **data) -> "LedgerResult":
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, error: str, message: str) -> "LedgerResult":
        return cls(success=False, error=error, message=message)


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ScoreLedger:
    """
    Per-user cumulative scores plus an append-only history of every mutation.

    Each user lives in their own JSON file so that concurrent requests for
    different users never wait on each other; all changes for one user go
    through `DataManager.transaction`, which serializes the read-merge-write.
    History is stored oldest-first and capped at `history_limit` entries.
    """

    directory = "scoreboard"

    def __init__(self, data_manager, history_limit: int = DEFAULT_HISTORY_LIMIT):
        self.data_manager = data_manager
        self.history_limit = max(1, int(history_limit))

    # ------------------------------------------------------------------ #
    # Storage helpers
    # ------------------------------------------------------------------ #

    def _filename(self, user_hash: str) -> str:
        safe_id = user_hash if _SAFE_ID.fullmatch(user_hash or "") else hashlib.sha256(
            (user_hash or "").encode("utf-8")
        ).hexdigest()
        return f"{self.directory}/ledger_{safe_id}.json"

    @staticmethod
    def _empty_record() -> Dict[str, Any]:
        return {"scores": {}, "history": [], "lastEntryId": 0}

    def _load(self, user_hash: str) -> Dict[str, Any]:
        record = self.data_manager.read_json(self._filename(user_hash), self._empty_record(), obfuscated=True)
        return self._ensure_shape(record)

    def _transaction(self, user_hash: str):
        return self.data_manager.transaction(self._filename(user_hash), self._empty_record(), obfuscated=True)

    @staticmethod
    def _ensure_shape(record: Dict[str, Any]) -> Dict[str, Any]:
        if not isinstance(record.get("scores"), dict):
            record["scores"] = {}
        if not isinstance(record.get("history"), list):
            record["history"] = []
        record.setdefault("lastEntryId", max((e.get("id", 0) for e in record["history"]), default=0))
        return record

    def _append_entry(self, record: Dict[str, Any], entry_type: str, operation: str,
                      scores_before: Dict[str, float], **details) -> Dict[str, Any]:
        # ids are creation-time based but never repeat or go backwards for a user
        entry_id = max(int(time.time() * 1000), int(record.get("lastEntryId") or 0) + 1)
        entry = {
            "id": entry_id,
            "timestamp": _iso_now(),
            "type": entry_type,
            "operation": operation,
            "scoresBeforeChange": copy.deepcopy(scores_before),
        }
        entry.update(details)
        record["lastEntryId"] = entry_id
        history = record["history"]
        history.append(entry)
        if len(history) > self.history_limit:
            del history[: len(history) - self.history_limit]
        return entry

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    def get_scores(self, user_hash: str) -> Dict[str, float]:
        return dict(self._load(user_hash)["scores"])

    def list_scores(self, user_hash: str) -> List[Dict[str, Any]]:
        scores = self._load(user_hash)["scores"]
        rows = [{"name": name, "score": score} for name, score in scores.items()]
        rows.sort(key=lambda r: r["name"])
        rows.sort(key=lambda r: r["score"], reverse=True)
        return rows

    def list_history(self, user_hash: str) -> List[Dict[str, Any]]:
        return list(reversed(self._load(user_hash)["history"]))

    # ------------------------------------------------------------------ #
    # Mutations
    # ------------------------------------------------------------------ #

    def apply_calculation(self, user_hash: str, score_changes: Dict[str, float],
                          hit_number: str, total_sum: float) -> Dict[str, float]:
        """Add per-label deltas and log a `calculation` entry. Returns the new totals of touched labels."""
        with self._transaction(user_hash) as record:
            self._ensure_shape(record)
            scores = record["scores"]
            before = copy.deepcopy(scores)
            for label, delta in score_changes.items():
                scores[label] = scores.get(label, 0) + delta
            self._append_entry(
                record,
                "calculation",
                f"Calculation (hit {hit_number})",
                before,
                scoreChanges=dict(score_changes),
                hitNumber=hit_number,
                totalSum=total_sum,
            )
            updated = {label: scores[label] for label in score_changes}
        print(f"[Scoreboard] Applied calculation for {len(score_changes)} label(s), total {total_sum:.2f}.")
        return updated

    def manual_set(self, user_hash: str, name: str, new_score: float) -> LedgerResult:
        name = (name or "").strip()
        if not name:
            return LedgerResult.fail(INVALID_NAME, "Name must not be empty.")
        new_score = float(new_score)

        with self._transaction(user_hash) as record:
            self._ensure_shape(record)
            scores = record["scores"]
            before = copy.deepcopy(scores)
            existed = name in scores
            old_score = float(scores.get(name, 0))
            scores[name] = new_score

            if existed or new_score != 0:
                entry_type = "manual_update" if existed else "manual_add"
                verb = "Manual update" if existed else "Manual add"
                self._append_entry(
                    record,
                    entry_type,
                    f"{verb}: {name}",
                    before,
                    changes={
                        "name": name,
                        "oldScore": old_score,
                        "newScore": new_score,
                        "scoreDiff": new_score - old_score,
                    },
                )
        return LedgerResult.ok(f"Score for {name} saved.", name=name, score=new_score, created=not existed)

    def manual_edit(self, user_hash: str, old_name: str, new_name: str, new_score: float) -> LedgerResult:
        """Rename a label and/or change its score in one step."""
        old_name = (old_name or "").strip()
        new_name = (new_name or "").strip()
        if not new_name:
            return LedgerResult.fail(INVALID_NAME, "Name must not be empty.")
        new_score = float(new_score)

        with self._transaction(user_hash) as record:
            self._ensure_shape(record)
            scores = record["scores"]
            if old_name not in scores:
                return LedgerResult.fail(NOT_FOUND, f"No score recorded for '{old_name}'.")
            if new_name != old_name and new_name in scores:
                return LedgerResult.fail(NAME_CONFLICT, f"'{new_name}' already has a score.")

            before = copy.deepcopy(scores)
            old_score = float(scores.pop(old_name))
            scores[new_name] = new_score
            operation = f"Manual edit: {old_name}" if old_name == new_name else f"Manual edit: {old_name} → {new_name}"
            self._append_entry(
                record,
                "manual_edit",
                operation,
                before,
                changes={
                    "oldName": old_name,
                    "newName": new_name,
                    "oldScore": old_score,
                    "newScore": new_score,
                    "scoreDiff": new_score - old_score,
                },
            )
        return LedgerResult.ok("Score updated.", name=new_name, score=new_score)

    def delete(self, user_hash: str, name: str) -> LedgerResult:
        name = (name or "").strip()
        if not name:
            return LedgerResult.fail(INVALID_NAME, "Name must not be empty.")
        with self._transaction(user_hash) as record:
            self._ensure_shape(record)
            scores = record["scores"]
            if name not in scores:
                return LedgerResult.ok("Nothing to delete.", deleted=False)
            before = copy.deepcopy(scores)
            removed = scores.pop(name)
            self._append_entry(
                record,
                "manual_delete",
                f"Manual delete: {name}",
                before,
                deletedUser={"name": name, "score": removed},
            )
        return LedgerResult.ok(f"Deleted {name}.", deleted=True)

    def clear(self, user_hash: str) -> LedgerResult:
        # TODO: log clears as a history entry once it is decided that a clear should be undoable.
        with self._transaction(user_hash) as record:
            self._ensure_shape(record)
            cleared = len(record["scores"])
            record["scores"] = {}
        print(f"[Scoreboard] Cleared {cleared} score(s).")
        return LedgerResult.ok("All scores cleared.", cleared=cleared)

    def rollback(self, user_hash: str, version_id: Any) -> LedgerResult:
        """Restore the scores captured before `version_id` and drop it plus every later entry."""
        try:
            version_id = int(version_id)
        except (TypeError, ValueError):
            return LedgerResult.fail(NOT_FOUND, "Version not found.")

        with self._transaction(user_hash) as record:
            self._ensure_shape(record)
            history = record["history"]
            position = next((i for i, entry in enumerate(history) if entry.get("id") == version_id), None)
            if position is None:
                return LedgerResult.fail(NOT_FOUND, "Version not found.")
            record["scores"] = copy.deepcopy(history[position].get("scoresBeforeChange") or {})
            dropped = len(history) - position
            del history[position:]
        print(f"[Scoreboard] Rolled back to before version {version_id} ({dropped} entries dropped).")
        return LedgerResult.ok("Rolled back.", removedEntries=dropped)
