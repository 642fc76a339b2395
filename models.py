from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class HandicapType(str, Enum):
    EUROPEAN = "EUROPEAN"
    ASIAN = "ASIAN"


class BetSelection(str, Enum):
    HOME = "HOME"
    DRAW = "DRAW"
    AWAY = "AWAY"


class ResultStatus(str, Enum):
    WIN = "WIN"
    HALF_WIN = "HALF_WIN"
    PUSH = "PUSH"
    HALF_LOSS = "HALF_LOSS"
    LOSS = "LOSS"


class PartStatus(str, Enum):
    """Outcome of a single whole/half line (no partial states)."""

    WIN = "WIN"
    LOSS = "LOSS"
    PUSH = "PUSH"


@dataclass(frozen=True)
class BetRequest:
    handicap_type: HandicapType
    home_score: int
    away_score: int
    handicap_line: float
    selection: BetSelection
    odds: float
    stake: float

    @property
    def score_diff(self) -> int:
        return self.home_score - self.away_score

    def to_dict(self) -> dict[str, Any]:
        return {
            "handicap_type": self.handicap_type.value,
            "home_score": self.home_score,
            "away_score": self.away_score,
            "handicap_line": self.handicap_line,
            "selection": self.selection.value,
            "odds": self.odds,
            "stake": self.stake,
        }


@dataclass(frozen=True)
class CalculationPart:
    line: float
    status: PartStatus
    payout: float

    def to_dict(self) -> dict[str, Any]:
        return {"line": self.line, "status": self.status.value, "payout": self.payout}


@dataclass(frozen=True)
class SettlementResult:
    status: ResultStatus
    payout: float
    net_profit: float
    parts: Optional[tuple[CalculationPart, CalculationPart]] = None

    @property
    def is_split(self) -> bool:
        return self.parts is not None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "status": self.status.value,
            "payout": self.payout,
            "net_profit": self.net_profit,
        }
        if self.parts is not None:
            data["parts"] = [p.to_dict() for p in self.parts]
        return data


@dataclass(frozen=True)
class HistoryItem:
    id: str
    timestamp: int           # epoch milliseconds
    request: BetRequest
    result: SettlementResult

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            **self.request.to_dict(),
            "result": self.result.to_dict(),
        }
