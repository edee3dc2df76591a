from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from .constants import FULLWIDTH_PERIODS, HIT_DIGITS
from .parser import WagerGroup

_NON_DIGITS = re.compile(r"[^0-9]+")


@dataclass
class ProcessedItem:
    label: str
    digits: List[str] = field(default_factory=list)
    total: str = ""
    is_invalid: bool = False
    is_special: bool = False
    special_char: str = ""
    original_data: str = ""
    index: int = 0

    def to_dict(self):
        return {
            "label": self.label,
            "digits": list(self.digits),
            "total": self.total,
            "isInvalid": self.is_invalid,
            "isSpecial": self.is_special,
            "specialChar": self.special_char,
            "originalData": self.original_data,
            "index": self.index,
        }


def is_valid_hit_pattern(candidate: str) -> bool:
    """1 to 3 digits from 1-4; a 3-digit pattern needs exactly two distinct digits."""
    if not candidate or len(candidate) > 3:
        return False
    if any(ch not in HIT_DIGITS for ch in candidate):
        return False
    if len(candidate) == 3:
        return len(set(candidate)) == 2
    return True


def find_special_char(data: str, special_chars: Sequence[str]) -> str:
    for marker in special_chars:
        if marker and marker in data:
            return marker
    return ""


def normalize_group(group: WagerGroup, special_chars: Sequence[str]) -> Optional[ProcessedItem]:
    """
    Turn a raw fragment into a hit pattern and a stake.

    Users sometimes type the stake first ("100/12"). If the first number is not a
    hit pattern but the second one looks like one, the two are swapped; otherwise
    the original order is kept. Returns None when fewer than two numbers exist.
    """
    text = group.data
    for glyph in FULLWIDTH_PERIODS:
        text = text.replace(glyph, "/")

    parts = [p for p in _NON_DIGITS.split(text) if p]
    if len(parts) < 2:
        return None

    first_number, second_number = parts[0], parts[1]
    first_valid = is_valid_hit_pattern(first_number)
    second_valid = is_valid_hit_pattern(second_number)
    if not first_valid and (second_valid or second_number in HIT_DIGITS):
        first_number, second_number = second_number, first_number

    if not is_valid_hit_pattern(first_number):
        return ProcessedItem(
            label=group.label,
            digits=[],
            total=second_number,
            is_invalid=True,
            original_data=group.data,
            index=group.index,
        )

    special_char = find_special_char(group.data, special_chars)
    return ProcessedItem(
        label=group.label,
        digits=list(first_number),
        total=second_number,
        is_special=bool(special_char),
        special_char=special_char,
        original_data=group.data,
        index=group.index,
    )


def normalize_groups(groups: Iterable[WagerGroup], special_chars: Sequence[str]) -> List[ProcessedItem]:
    items = []
    for group in groups:
        item = normalize_group(group, special_chars)
        if item is not None:
            items.append(item)
    return items
