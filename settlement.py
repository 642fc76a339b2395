from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional

from lines import lines_for, is_quarter_line
from models import (
    BetRequest,
    BetSelection,
    CalculationPart,
    HandicapType,
    PartStatus,
    ResultStatus,
    SettlementResult,
)


class SettlementInvariantError(RuntimeError):
    """Raised when a quarter line produces a pairing that adjacent half-lines cannot."""


W = PartStatus.WIN
L = PartStatus.LOSS
PUSH = PartStatus.PUSH


# ═══════════════════════════════════════════════════════════════════════════════
#  Helpers
# ═══════════════════════════════════════════════════════════════════════════════


def _line_winner(adjusted_diff: float) -> BetSelection:
    if adjusted_diff > 0:
        return BetSelection.HOME
    if adjusted_diff < 0:
        return BetSelection.AWAY
    return BetSelection.DRAW


def _home_outcome(score_diff: int, line: float) -> PartStatus:
    adj = score_diff + line
    if adj > 0:
        return W
    if adj < 0:
        return L
    return PUSH


_AWAY_VIEW = {W: L, L: W, PUSH: PUSH}


def for_selection(home_outcome: PartStatus, selection: BetSelection) -> PartStatus:
    """Re-express a home-relative outcome from the bettor's side.

    Away wins exactly when home loses; a push stays a push.
    """
    if selection == BetSelection.AWAY:
        return _AWAY_VIEW[home_outcome]
    return home_outcome


def _multiplier(outcome: PartStatus, odds: float) -> float:
    if outcome == W:
        return odds
    if outcome == PUSH:
        return 1
    return 0


def _result(status: ResultStatus, payout: float, stake: float, parts=None) -> SettlementResult:
    return SettlementResult(status=status, payout=payout, net_profit=payout - stake, parts=parts)


# ═══════════════════════════════════════════════════════════════════════════════
#  European (3-way)
# ═══════════════════════════════════════════════════════════════════════════════


def _settle_european(req: BetRequest) -> SettlementResult:
    winner = _line_winner(req.score_diff + req.handicap_line)
    if req.selection == winner:
        return _result(ResultStatus.WIN, req.stake * req.odds, req.stake)
    return _result(ResultStatus.LOSS, 0, req.stake)


# ═══════════════════════════════════════════════════════════════════════════════
#  Asian (2-way, quarter lines split)
# ═══════════════════════════════════════════════════════════════════════════════


_SINGLE_STATUS = {
    W: ResultStatus.WIN,
    L: ResultStatus.LOSS,
    PUSH: ResultStatus.PUSH,
}

# Keyed by the unordered pair of part outcomes. No WIN/LOSS entry: two
# half-lines 0.5 apart cannot split that way.
_COMBINED_STATUS = {
    frozenset({W}): ResultStatus.WIN,
    frozenset({L}): ResultStatus.LOSS,
    frozenset({PUSH}): ResultStatus.PUSH,
    frozenset({W, PUSH}): ResultStatus.HALF_WIN,
    frozenset({L, PUSH}): ResultStatus.HALF_LOSS,
}


def evaluate_part(req: BetRequest, line: float, part_stake: float) -> CalculationPart:
    outcome = for_selection(_home_outcome(req.score_diff, line), req.selection)
    return CalculationPart(
        line=line,
        status=outcome,
        payout=part_stake * _multiplier(outcome, req.odds),
    )


def combine_parts(first: CalculationPart, second: CalculationPart) -> ResultStatus:
    key = frozenset({first.status, second.status})
    status = _COMBINED_STATUS.get(key)
    if status is None:
        raise SettlementInvariantError(
            f"Quarter line split produced {first.status.value}@{first.line} "
            f"and {second.status.value}@{second.line}"
        )
    return status


def _settle_asian(req: BetRequest) -> SettlementResult:
    line = req.handicap_line
    if not is_quarter_line(line):
        part = evaluate_part(req, line, req.stake)
        return _result(_SINGLE_STATUS[part.status], part.payout, req.stake)

    half = req.stake / 2
    first = evaluate_part(req, line - 0.25, half)
    second = evaluate_part(req, line + 0.25, half)
    return _result(
        combine_parts(first, second),
        first.payout + second.payout,
        req.stake,
        parts=(first, second),
    )


# ═══════════════════════════════════════════════════════════════════════════════
#  Entry points
# ═══════════════════════════════════════════════════════════════════════════════


def settle(request: BetRequest) -> SettlementResult:
    """Classify the bet outcome and compute its payout.

    Pure and deterministic. Out-of-contract input (DRAW on an Asian line,
    lines that are not multiples of 0.25) is not validated here; callers
    are expected to reject it first.
    """
    if request.handicap_type == HandicapType.EUROPEAN:
        return _settle_european(request)
    return _settle_asian(request)


@dataclass(frozen=True)
class MatrixRow:
    line: float
    home: SettlementResult
    away: SettlementResult
    draw: Optional[SettlementResult] = None

    def to_dict(self) -> dict:
        return {
            "line": self.line,
            "home": self.home.to_dict(),
            "draw": self.draw.to_dict() if self.draw is not None else None,
            "away": self.away.to_dict(),
        }


def settlement_matrix(
    handicap_type: HandicapType,
    home_score: int,
    away_score: int,
    odds: float,
    stake: float,
    lines: Optional[Iterable[float]] = None,
) -> List[MatrixRow]:
    """Settle every selection across a range of lines for one scoreline."""

    def _settle_for(line: float, selection: BetSelection) -> SettlementResult:
        return settle(BetRequest(
            handicap_type=handicap_type,
            home_score=home_score,
            away_score=away_score,
            handicap_line=line,
            selection=selection,
            odds=odds,
            stake=stake,
        ))

    rows: List[MatrixRow] = []
    for line in (lines if lines is not None else lines_for(handicap_type)):
        draw = None
        if handicap_type == HandicapType.EUROPEAN:
            draw = _settle_for(line, BetSelection.DRAW)
        rows.append(MatrixRow(
            line=line,
            home=_settle_for(line, BetSelection.HOME),
            away=_settle_for(line, BetSelection.AWAY),
            draw=draw,
        ))
    return rows
