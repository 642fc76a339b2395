from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

import requests

from lines import format_line, is_quarter_line
from models import BetRequest, HandicapType, SettlementResult

logger = logging.getLogger(__name__)


DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-1.5-flash"

_CREDENTIAL_STATUSES = {401, 403, 404}


class ExplanationError(Exception):
    """Base class for explanation failures. Never affects settlement."""

    kind = "error"


class ExplanationUnavailable(ExplanationError):
    """No usable credential (missing, rejected, or unknown model/entity)."""

    kind = "unavailable"


class ExplanationFetchError(ExplanationError):
    """Transient failure talking to the text service."""

    kind = "fetch_failed"


class Explainer(Protocol):
    def explain(self, request: BetRequest, result: SettlementResult) -> str:
        ...


@dataclass(frozen=True)
class Explanation:
    text: Optional[str]
    error: Optional[str] = None
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


# ═══════════════════════════════════════════════════════════════════════════════
#  Prompt
# ═══════════════════════════════════════════════════════════════════════════════


def build_prompt(request: BetRequest, result: SettlementResult) -> str:
    line = request.handicap_line
    signed_line = f"+{line:g}" if line > 0 else f"{line:g}"
    if request.handicap_type == HandicapType.EUROPEAN:
        signed_line = f"{signed_line} {format_line(request.handicap_type, line)}"
    lines = [
        "Role: Professional betting calculator engine.",
        "",
        "Input match data:",
        f"- Handicap type: {request.handicap_type.value.title()}",
        f"- Scores: Home {request.home_score} - Away {request.away_score}",
        f"- Handicap line: {signed_line}",
        f"- Selection: {request.selection.value.title()}",
        f"- Odds: {request.odds}",
        f"- Stake: {request.stake}",
        "",
        "Calculated result:",
        f"- Status: {result.status.value.replace('_', ' ')}",
        f"- Payout: {result.payout:.2f}",
        f"- Net profit: {result.net_profit:.2f}",
    ]
    if result.parts is not None:
        for i, part in enumerate(result.parts, start=1):
            lines.append(
                f"- Half stake {i}: line {part.line:+g} -> {part.status.value}, payout {part.payout:.2f}"
            )
    lines += [
        "",
        "Task:",
        "Explain concisely and technically how the handicap line interacts with the score "
        "to produce this specific result.",
    ]
    if request.handicap_type == HandicapType.ASIAN and is_quarter_line(line):
        lines.append(
            "This is a quarter line: describe how the stake is split into two halves "
            "on the adjacent half-lines."
        )
    elif request.handicap_type == HandicapType.EUROPEAN:
        lines.append("This is a European line: explain the 3-way (home/draw/away) outcome.")
    return "\n".join(lines)


# ═══════════════════════════════════════════════════════════════════════════════
#  Gemini client
# ═══════════════════════════════════════════════════════════════════════════════


class GeminiExplainer:
    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        timeout: int = 20,
        session: Any = None,
    ) -> None:
        self.api_key = api_key or os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY")
        self.model = model or os.getenv("GEMINI_MODEL", DEFAULT_MODEL)
        self.base_url = (base_url or os.getenv("GEMINI_BASE_URL") or DEFAULT_BASE_URL).rstrip("/")
        self.timeout = timeout
        self.session = session

    def _send(self, url: str, body: Dict[str, Any]) -> Any:
        kwargs = {"json": body, "headers": {"x-goog-api-key": self.api_key}, "timeout": self.timeout}
        if self.session is not None:
            return self.session.post(url, **kwargs)
        with requests.Session() as session:
            return session.post(url, **kwargs)

    def _post(self, path: str, body: Dict[str, Any]) -> Any:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            response = self._send(url, body)
        except requests.RequestException as exc:
            raise ExplanationFetchError(f"Request to {url} failed: {exc}") from exc

        if response.status_code in _CREDENTIAL_STATUSES or (
            response.status_code == 400 and "API key" in (response.text or "")
        ):
            raise ExplanationUnavailable(
                f"Text service rejected the credential (HTTP {response.status_code})"
            )
        try:
            response.raise_for_status()
            return response.json()
        except requests.HTTPError as exc:
            raise ExplanationFetchError(str(exc)) from exc
        except ValueError as exc:
            raise ExplanationFetchError(f"Invalid JSON from {url}") from exc

    @staticmethod
    def _extract_text(payload: Any) -> str:
        if not isinstance(payload, dict):
            raise ExplanationFetchError(f"Unexpected response shape: {type(payload).__name__}")
        candidates = payload.get("candidates") or []
        if not isinstance(candidates, list):
            raise ExplanationFetchError("Unexpected response shape: candidates is not a list")
        if not candidates:
            raise ExplanationFetchError("Text service returned no candidates")
        first = candidates[0]
        if not isinstance(first, dict):
            raise ExplanationFetchError("Unexpected response shape: candidate is not an object")
        content = first.get("content") or {}
        if not isinstance(content, dict):
            raise ExplanationFetchError("Unexpected response shape: content is not an object")
        parts = content.get("parts") or []
        if not isinstance(parts, list) or not all(isinstance(p, dict) for p in parts):
            raise ExplanationFetchError("Unexpected response shape: parts is not a list of objects")
        texts = [p.get("text") for p in parts]
        text = "".join(t for t in texts if isinstance(t, str)).strip()
        if not text:
            raise ExplanationFetchError("Text service returned an empty explanation")
        return text

    def explain(self, request: BetRequest, result: SettlementResult) -> str:
        if not self.api_key:
            raise ExplanationUnavailable("Missing API key. Set GEMINI_API_KEY or pass api_key explicitly.")
        body = {
            "contents": [{"parts": [{"text": build_prompt(request, result)}]}],
            "generationConfig": {"temperature": 0.7, "topP": 0.95},
        }
        payload = self._post(f"models/{self.model}:generateContent", body)
        return self._extract_text(payload)


def explain_safely(
    explainer: Optional[Explainer], request: BetRequest, result: SettlementResult,
) -> Explanation:
    """Run ``explainer`` and fold any failure into the returned value."""
    if explainer is None:
        return Explanation(text=None, error=ExplanationUnavailable.kind, detail="No explainer configured")
    try:
        return Explanation(text=explainer.explain(request, result))
    except ExplanationError as exc:
        logger.warning("Explanation %s: %s", exc.kind, exc)
        return Explanation(text=None, error=exc.kind, detail=str(exc))
