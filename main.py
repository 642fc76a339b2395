from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from explainer import GeminiExplainer, explain_safely
from lines import DEFAULT_ODDS, DEFAULT_STAKE, format_line, is_valid_line
from models import BetRequest, BetSelection, HandicapType
from settlement import settle, settlement_matrix


def _parse_request(item: dict) -> BetRequest:
    handicap_type = HandicapType(str(item["handicap_type"]).upper())
    selection = BetSelection(str(item["selection"]).upper())
    home = int(item["home_score"])
    away = int(item["away_score"])
    line = float(item.get("handicap_line", 0))
    if home < 0 or away < 0:
        raise ValueError("Scores must be non-negative")
    if handicap_type == HandicapType.ASIAN and selection == BetSelection.DRAW:
        raise ValueError("ASIAN handicap selection must be HOME or AWAY")
    if not is_valid_line(handicap_type, line):
        raise ValueError(f"Line {line} is not valid for {handicap_type.value} handicap")
    odds = float(item.get("odds", DEFAULT_ODDS))
    stake = float(item.get("stake", DEFAULT_STAKE))
    if odds <= 0 or stake < 0:
        raise ValueError("Odds must be positive and stake non-negative")
    return BetRequest(
        handicap_type=handicap_type,
        home_score=home,
        away_score=away,
        handicap_line=line,
        selection=selection,
        odds=odds,
        stake=stake,
    )


def load_input(path: Path) -> list[BetRequest]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ValueError(f"Cannot read {path}: {exc}") from exc
    if isinstance(payload, dict):
        items = payload.get("bets", [payload])
    else:
        items = payload
    if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
        raise ValueError(f"{path} must hold a bet object, a list of bets, or {{\"bets\": [...]}}")
    return [_parse_request(item) for item in items]


def _add_bet_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--type", dest="handicap_type", choices=["asian", "european"], default="asian")
    parser.add_argument("--home", type=int, default=0, help="Home team goals")
    parser.add_argument("--away", type=int, default=0, help="Away team goals")
    parser.add_argument("--odds", type=float, default=DEFAULT_ODDS)
    parser.add_argument("--stake", type=float, default=DEFAULT_STAKE)


def _cmd_settle(args: argparse.Namespace, parser: argparse.ArgumentParser) -> list[dict]:
    try:
        if args.input:
            requests_ = load_input(Path(args.input))
        else:
            requests_ = [_parse_request({
                "handicap_type": args.handicap_type,
                "selection": args.selection,
                "home_score": args.home,
                "away_score": args.away,
                "handicap_line": args.line,
                "odds": args.odds,
                "stake": args.stake,
            })]
    except (KeyError, TypeError, ValueError) as exc:
        parser.error(str(exc))

    explainer = GeminiExplainer(api_key=args.api_key) if args.explain else None
    output = []
    for request in requests_:
        result = settle(request)
        entry = {"request": request.to_dict(), "result": result.to_dict()}
        if explainer is not None:
            explanation = explain_safely(explainer, request, result)
            entry["explanation"] = explanation.text
            entry["explanation_error"] = explanation.error
        output.append(entry)
    return output


def _cmd_matrix(args: argparse.Namespace, parser: argparse.ArgumentParser) -> list[dict]:
    handicap_type = HandicapType(args.handicap_type.upper())
    if args.home < 0 or args.away < 0:
        parser.error("Scores must be non-negative")
    rows = settlement_matrix(handicap_type, args.home, args.away, args.odds, args.stake)
    return [{**row.to_dict(), "label": format_line(handicap_type, row.line)} for row in rows]


def main() -> None:
    parser = argparse.ArgumentParser(description="Settle European and Asian handicap bets")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING)")
    sub = parser.add_subparsers(dest="command", required=True)

    p_settle = sub.add_parser("settle", help="Settle one bet, or every bet in --input")
    _add_bet_arguments(p_settle)
    p_settle.add_argument("--line", type=float, default=0.0, help="Handicap line applied to the home side")
    p_settle.add_argument("--selection", choices=["home", "draw", "away"], default="home")
    p_settle.add_argument("--input", help="Path to a JSON bet or list of bets")
    p_settle.add_argument("--explain", action="store_true", help="Ask the text service for a rationale")
    p_settle.add_argument("--api-key", required=False, help="Gemini key (optional if GEMINI_API_KEY is set)")

    p_matrix = sub.add_parser("matrix", help="Settle every selection across the line range")
    _add_bet_arguments(p_matrix)

    args = parser.parse_args()
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if args.command == "settle":
        result = _cmd_settle(args, parser)
    else:
        result = _cmd_matrix(args, parser)

    print(json.dumps(result, ensure_ascii=False, indent=2))


if __name__ == "__main__":
    main()
