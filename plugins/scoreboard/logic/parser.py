from __future__ import annotations

import re
from dataclasses import dataclass, asdict
from typing import Iterable, List, Pattern

_LABEL_SPLIT = re.compile(r"[:：]")


@dataclass(frozen=True)
class WagerGroup:
    """One raw wager fragment attributed to a label."""
    label: str
    data: str
    index: int

    def to_dict(self):
        return asdict(self)


def build_fragment_pattern(special_chars: Iterable[str]) -> Pattern[str]:
    """
    digits, a non-digit separator run, digits, then an optional special marker.

    Special markers are tried in configured order so the first one listed wins
    when several could match at the same position.
    """
    escaped = [re.escape(c) for c in special_chars if c]
    special_group = f"({'|'.join(escaped)})?" if escaped else "()?"
    return re.compile(rf"([0-9]+)\s*([^0-9\s]+)\s*([0-9]+)\s*{special_group}")


def _scan_fragments(text: str, pattern: Pattern[str]):
    for match in pattern.finditer(text):
        first, separator, second, special = match.groups()
        yield first + separator + second + (special or "")


def parse_wager_text(raw_text: str, special_chars: Iterable[str]) -> List[WagerGroup]:
    """
    Split pasted multi-line text into labelled wager fragments.

    A line "Name: 12/100 3/50" sets the current label to "Name"; following lines
    without a label keep it. The per-label index restarts at 1 whenever a new
    non-empty label appears.
    """
    pattern = build_fragment_pattern(special_chars)
    groups: List[WagerGroup] = []
    current_label = ""
    index_counter = 1

    lines = [line.strip() for line in (raw_text or "").splitlines()]
    for line in lines:
        if not line:
            continue

        colon = _LABEL_SPLIT.search(line)
        if colon:
            label = line[:colon.start()].strip()
            remainder = line[colon.end():].strip()
            if label:
                current_label = label
                index_counter = 1
            if not remainder:
                continue
            text = remainder
        else:
            text = line

        for data in _scan_fragments(text, pattern):
            groups.append(WagerGroup(label=current_label, data=data, index=index_counter))
            index_counter += 1

    return groups
