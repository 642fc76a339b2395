from __future__ import annotations

from models import HandicapType


ASIAN_HANDICAP_LINES = [(i - 16) * 0.25 for i in range(33)]
EUROPEAN_HANDICAP_LINES = [float(i - 8) for i in range(17)]

# Accepted by request validation; wider than the listed lines.
MAX_ASIAN_LINE = 8.0
MAX_EUROPEAN_LINE = 8

DEFAULT_STAKE = 100.0
DEFAULT_ODDS = 1.95


def lines_for(handicap_type: HandicapType) -> list[float]:
    if handicap_type == HandicapType.ASIAN:
        return list(ASIAN_HANDICAP_LINES)
    return list(EUROPEAN_HANDICAP_LINES)


def fractional_part(line: float) -> float:
    return abs(line) % 1


def is_quarter_line(line: float) -> bool:
    return fractional_part(line) in (0.25, 0.75)


def is_valid_line(handicap_type: HandicapType, line: float) -> bool:
    """Whether ``line`` belongs to the type's accepted domain."""
    if handicap_type == HandicapType.EUROPEAN:
        return float(line).is_integer() and abs(line) <= MAX_EUROPEAN_LINE
    return (line * 4).is_integer() and abs(line) <= MAX_ASIAN_LINE


def format_european_line(line: float) -> str:
    """Render a 3-way line as a goal head start, e.g. -1 -> (0:1)."""
    n = int(abs(line))
    if line < 0:
        return f"(0:{n})"
    if line > 0:
        return f"({n}:0)"
    return "(0:0)"


def format_asian_line(line: float) -> str:
    prefix = "+" if line > 0 else ""
    text = f"{line:.2f}"
    if text.endswith(".00"):
        text = text[:-3]
    if text == "-0":
        text = "0"
    return f"{prefix}{text}"


def format_line(handicap_type: HandicapType, line: float) -> str:
    if handicap_type == HandicapType.EUROPEAN:
        return format_european_line(line)
    return format_asian_line(line)
