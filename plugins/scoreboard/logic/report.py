from typing import Any, Dict, Iterable, List


def format_score(score: float) -> str:
    """Two decimals at most, trailing zeros dropped: 2130, 12.5, -20.25."""
    text = f"{round(float(score), 2):.2f}".rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


def format_score_list(rows: Iterable[Dict[str, Any]]) -> str:
    """Plain-text leaderboard for pasting into chat: winners under ➕, losers under ➖."""
    rows = list(rows)
    positive: List[Dict[str, Any]] = [r for r in rows if r["score"] >= 0]
    negative: List[Dict[str, Any]] = [r for r in rows if r["score"] < 0]

    lines = ["➕"]
    lines.extend(f"{r['name']} {format_score(r['score'])}" for r in positive)
    if negative:
        lines.append("➖")
        lines.extend(f"{r['name']} {format_score(r['score'])}" for r in negative)
    return "\n".join(lines) + "\n"
