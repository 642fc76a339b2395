from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field, model_validator

from explainer import GeminiExplainer, explain_safely
from history import SettlementHistory
from lines import (
    DEFAULT_ODDS,
    DEFAULT_STAKE,
    MAX_ASIAN_LINE,
    MAX_EUROPEAN_LINE,
    format_line,
    is_valid_line,
    lines_for,
)
from models import BetRequest, BetSelection, HandicapType
from settlement import SettlementInvariantError, settle, settlement_matrix

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
#  Pydantic models
# ═══════════════════════════════════════════════════════════════════════════════


class BetRequestIn(BaseModel):
    handicap_type: HandicapType
    home_score: int = Field(ge=0)
    away_score: int = Field(ge=0)
    handicap_line: float = 0.0
    selection: BetSelection
    odds: float = Field(default=DEFAULT_ODDS, gt=0)
    stake: float = Field(default=DEFAULT_STAKE, ge=0)

    @model_validator(mode="after")
    def validate_line_and_selection(self) -> "BetRequestIn":
        if self.handicap_type == HandicapType.ASIAN:
            if self.selection == BetSelection.DRAW:
                raise ValueError("ASIAN handicap selection must be HOME or AWAY")
            if not is_valid_line(self.handicap_type, self.handicap_line):
                raise ValueError(
                    f"ASIAN handicap_line must be a multiple of 0.25 within ±{MAX_ASIAN_LINE}"
                )
        elif not is_valid_line(self.handicap_type, self.handicap_line):
            raise ValueError(
                f"EUROPEAN handicap_line must be a whole number within ±{MAX_EUROPEAN_LINE}"
            )
        return self

    def to_request(self) -> BetRequest:
        return BetRequest(
            handicap_type=self.handicap_type,
            home_score=self.home_score,
            away_score=self.away_score,
            handicap_line=self.handicap_line,
            selection=self.selection,
            odds=self.odds,
            stake=self.stake,
        )


class MatrixRequestIn(BaseModel):
    handicap_type: HandicapType
    home_score: int = Field(ge=0)
    away_score: int = Field(ge=0)
    odds: float = Field(default=DEFAULT_ODDS, gt=0)
    stake: float = Field(default=DEFAULT_STAKE, ge=0)
    lines: Optional[List[float]] = None

    @model_validator(mode="after")
    def validate_lines(self) -> "MatrixRequestIn":
        for line in self.lines or []:
            if not is_valid_line(self.handicap_type, line):
                raise ValueError(f"Line {line} is not valid for {self.handicap_type.value} handicap")
        return self


class ExplainRequestIn(BetRequestIn):
    api_key: Optional[str] = Field(default=None)
    model: Optional[str] = Field(default=None)


# ═══════════════════════════════════════════════════════════════════════════════
#  FastAPI app
# ═══════════════════════════════════════════════════════════════════════════════


def _run_settlement(request: BetRequest):
    logger.debug("Settling %s", request)
    try:
        return settle(request)
    except SettlementInvariantError as exc:
        logger.error("Settlement invariant violated for %s: %s", request, exc)
        raise HTTPException(status_code=500, detail=f"Unexpected settlement error: {exc}") from exc


app = FastAPI(title="Handicap Settlement API", version="1.0.0")
history = SettlementHistory()


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/lines")
def handicap_lines(handicap_type: HandicapType = HandicapType.ASIAN) -> dict:
    return {
        "handicap_type": handicap_type.value,
        "lines": [
            {"line": line, "label": format_line(handicap_type, line)}
            for line in lines_for(handicap_type)
        ],
        "default_odds": DEFAULT_ODDS,
        "default_stake": DEFAULT_STAKE,
    }


@app.post("/settle")
def settle_bet(payload: BetRequestIn) -> dict:
    request = payload.to_request()
    result = _run_settlement(request)
    item = history.record(request, result)
    return {
        "request": request.to_dict(),
        "result": result.to_dict(),
        "history_id": item.id,
    }


@app.post("/matrix")
def matrix(payload: MatrixRequestIn) -> dict:
    try:
        rows = settlement_matrix(
            payload.handicap_type,
            payload.home_score,
            payload.away_score,
            payload.odds,
            payload.stake,
            lines=payload.lines,
        )
    except SettlementInvariantError as exc:
        raise HTTPException(status_code=500, detail=f"Unexpected settlement error: {exc}") from exc
    return {
        "handicap_type": payload.handicap_type.value,
        "score": f"{payload.home_score}:{payload.away_score}",
        "rows": [
            {**row.to_dict(), "label": format_line(payload.handicap_type, row.line)}
            for row in rows
        ],
    }


@app.get("/history")
def list_history() -> dict:
    items = history.items()
    return {"count": len(items), "limit": history.limit, "items": [i.to_dict() for i in items]}


@app.delete("/history")
def clear_history() -> dict:
    history.clear()
    return {"count": 0}


@app.post("/explain")
def explain(payload: ExplainRequestIn) -> dict:
    """Settle the bet, then ask the text service for a rationale.

    The settlement result is returned even when the explanation fails.
    """
    request = payload.to_request()
    result = _run_settlement(request)
    explainer = GeminiExplainer(api_key=payload.api_key, model=payload.model)
    explanation = explain_safely(explainer, request, result)
    return {
        "request": request.to_dict(),
        "result": result.to_dict(),
        "explanation": explanation.text,
        "explanation_error": explanation.error,
        "explanation_detail": explanation.detail,
    }
