from __future__ import annotations

import unittest

from lines import ASIAN_HANDICAP_LINES, EUROPEAN_HANDICAP_LINES, is_quarter_line
from models import (
    BetRequest,
    BetSelection,
    CalculationPart,
    HandicapType,
    PartStatus,
    ResultStatus,
)
from settlement import (
    SettlementInvariantError,
    combine_parts,
    for_selection,
    settle,
    settlement_matrix,
)

EU = HandicapType.EUROPEAN
AH = HandicapType.ASIAN
HOME = BetSelection.HOME
DRAW = BetSelection.DRAW
AWAY = BetSelection.AWAY


def bet(handicap_type, home, away, line, selection, odds=2.0, stake=100.0) -> BetRequest:
    return BetRequest(
        handicap_type=handicap_type,
        home_score=home,
        away_score=away,
        handicap_line=line,
        selection=selection,
        odds=odds,
        stake=stake,
    )


class EuropeanSettlementTests(unittest.TestCase):
    def test_draw_selection_wins_on_level_score(self) -> None:
        result = settle(bet(EU, 1, 1, 0, DRAW, odds=3.00, stake=100))

        self.assertEqual(result.status, ResultStatus.WIN)
        self.assertAlmostEqual(result.payout, 300.00)
        self.assertAlmostEqual(result.net_profit, 200.00)
        self.assertIsNone(result.parts)

    def test_home_selection_loses_on_level_score(self) -> None:
        result = settle(bet(EU, 1, 1, 0, HOME, odds=1.90, stake=50))

        self.assertEqual(result.status, ResultStatus.LOSS)
        self.assertEqual(result.payout, 0)
        self.assertEqual(result.net_profit, -50)

    def test_line_turns_home_win_into_draw(self) -> None:
        # 2:1 with home giving one goal, (0:1), ends level.
        self.assertEqual(settle(bet(EU, 2, 1, -1, DRAW)).status, ResultStatus.WIN)
        self.assertEqual(settle(bet(EU, 2, 1, -1, HOME)).status, ResultStatus.LOSS)
        self.assertEqual(settle(bet(EU, 2, 1, -1, AWAY)).status, ResultStatus.LOSS)

    def test_positive_line_gives_home_head_start(self) -> None:
        result = settle(bet(EU, 0, 1, 2, HOME, odds=1.5, stake=10))
        self.assertEqual(result.status, ResultStatus.WIN)
        self.assertAlmostEqual(result.payout, 15.0)

    def test_only_win_or_loss_across_domain(self) -> None:
        for home in range(4):
            for away in range(4):
                for line in EUROPEAN_HANDICAP_LINES:
                    winners = 0
                    for selection in BetSelection:
                        result = settle(bet(EU, home, away, line, selection))
                        self.assertIn(result.status, {ResultStatus.WIN, ResultStatus.LOSS})
                        self.assertIsNone(result.parts)
                        winners += result.status == ResultStatus.WIN
                    self.assertEqual(winners, 1)


class AsianSettlementTests(unittest.TestCase):
    def test_half_line_win(self) -> None:
        result = settle(bet(AH, 2, 0, -0.5, HOME, odds=1.95, stake=100))

        self.assertEqual(result.status, ResultStatus.WIN)
        self.assertAlmostEqual(result.payout, 195.00)
        self.assertAlmostEqual(result.net_profit, 95.00)
        self.assertIsNone(result.parts)

    def test_away_perspective_inverts_home_win(self) -> None:
        result = settle(bet(AH, 1, 0, -0.5, AWAY, odds=1.95, stake=100))

        self.assertEqual(result.status, ResultStatus.LOSS)
        self.assertEqual(result.payout, 0)
        self.assertEqual(result.net_profit, -100)

    def test_whole_line_push_returns_stake(self) -> None:
        result = settle(bet(AH, 1, 0, -1, HOME, odds=1.8, stake=40))

        self.assertEqual(result.status, ResultStatus.PUSH)
        self.assertEqual(result.payout, 40)
        self.assertEqual(result.net_profit, 0)
        self.assertIsNone(result.parts)

    def test_quarter_line_both_halves_win(self) -> None:
        result = settle(bet(AH, 1, 0, -0.25, HOME, odds=2.00, stake=100))

        self.assertEqual(result.status, ResultStatus.WIN)
        self.assertAlmostEqual(result.payout, 200.00)
        self.assertEqual([p.line for p in result.parts], [-0.5, 0.0])
        self.assertEqual([p.status for p in result.parts], [PartStatus.WIN, PartStatus.WIN])

    def test_quarter_line_half_loss(self) -> None:
        result = settle(bet(AH, 0, 0, -0.25, HOME, odds=2.00, stake=100))

        self.assertEqual(result.status, ResultStatus.HALF_LOSS)
        self.assertEqual(result.payout, 50.00)
        self.assertEqual(result.net_profit, -50.00)
        first, second = result.parts
        self.assertEqual((first.line, first.status, first.payout), (-0.5, PartStatus.LOSS, 0))
        self.assertEqual((second.line, second.status, second.payout), (0.0, PartStatus.PUSH, 50))

    def test_quarter_line_half_win(self) -> None:
        result = settle(bet(AH, 0, 0, 0.25, HOME, odds=2.00, stake=100))

        self.assertEqual(result.status, ResultStatus.HALF_WIN)
        self.assertEqual(result.payout, 150.00)
        self.assertEqual(result.net_profit, 50.00)

    def test_quarter_line_away_side_half_win(self) -> None:
        result = settle(bet(AH, 0, 0, -0.25, AWAY, odds=2.00, stake=100))

        self.assertEqual(result.status, ResultStatus.HALF_WIN)
        self.assertEqual(result.payout, 150.00)
        self.assertEqual([p.status for p in result.parts], [PartStatus.WIN, PartStatus.PUSH])

    def test_three_quarter_line_half_win(self) -> None:
        # -0.75 splits into -1.0 (push at 1:0) and -0.5 (win).
        result = settle(bet(AH, 1, 0, -0.75, HOME, odds=1.9, stake=100))

        self.assertEqual(result.status, ResultStatus.HALF_WIN)
        self.assertEqual([p.line for p in result.parts], [-1.0, -0.5])
        self.assertAlmostEqual(result.payout, 50 + 95)

    def test_zero_stake_split(self) -> None:
        result = settle(bet(AH, 0, 0, -0.25, HOME, stake=0))

        self.assertEqual(result.status, ResultStatus.HALF_LOSS)
        self.assertEqual(result.payout, 0)
        self.assertEqual(result.net_profit, 0)

    def test_payout_properties_across_domain(self) -> None:
        for home in range(4):
            for away in range(4):
                for line in ASIAN_HANDICAP_LINES:
                    for selection in (HOME, AWAY):
                        request = bet(AH, home, away, line, selection, odds=1.85, stake=80)
                        result = settle(request)
                        self.assertEqual(result.net_profit, result.payout - request.stake)
                        if is_quarter_line(line):
                            self.assertEqual(len(result.parts), 2)
                            self.assertEqual(
                                result.payout, result.parts[0].payout + result.parts[1].payout
                            )
                        else:
                            self.assertIsNone(result.parts)
                            self.assertIn(result.payout, {0, 80, 80 * 1.85})

    def test_home_and_away_mirror_each_other(self) -> None:
        mirror = {
            ResultStatus.WIN: ResultStatus.LOSS,
            ResultStatus.HALF_WIN: ResultStatus.HALF_LOSS,
            ResultStatus.PUSH: ResultStatus.PUSH,
            ResultStatus.HALF_LOSS: ResultStatus.HALF_WIN,
            ResultStatus.LOSS: ResultStatus.WIN,
        }
        for line in ASIAN_HANDICAP_LINES:
            home = settle(bet(AH, 2, 1, line, HOME))
            away = settle(bet(AH, 2, 1, line, AWAY))
            self.assertEqual(away.status, mirror[home.status])

    def test_idempotent(self) -> None:
        request = bet(AH, 3, 1, -1.75, HOME, odds=2.1, stake=33.3)
        self.assertEqual(settle(request), settle(request))


class PerspectiveTests(unittest.TestCase):
    def test_home_keeps_outcome(self) -> None:
        for status in PartStatus:
            self.assertEqual(for_selection(status, HOME), status)

    def test_away_swaps_win_and_loss(self) -> None:
        self.assertEqual(for_selection(PartStatus.WIN, AWAY), PartStatus.LOSS)
        self.assertEqual(for_selection(PartStatus.LOSS, AWAY), PartStatus.WIN)
        self.assertEqual(for_selection(PartStatus.PUSH, AWAY), PartStatus.PUSH)


class CombinePartsTests(unittest.TestCase):
    def _part(self, status: PartStatus, line: float = 0.0) -> CalculationPart:
        return CalculationPart(line=line, status=status, payout=0.0)

    def test_table_is_order_insensitive(self) -> None:
        expected = {
            (PartStatus.WIN, PartStatus.WIN): ResultStatus.WIN,
            (PartStatus.LOSS, PartStatus.LOSS): ResultStatus.LOSS,
            (PartStatus.PUSH, PartStatus.PUSH): ResultStatus.PUSH,
            (PartStatus.WIN, PartStatus.PUSH): ResultStatus.HALF_WIN,
            (PartStatus.PUSH, PartStatus.WIN): ResultStatus.HALF_WIN,
            (PartStatus.LOSS, PartStatus.PUSH): ResultStatus.HALF_LOSS,
            (PartStatus.PUSH, PartStatus.LOSS): ResultStatus.HALF_LOSS,
        }
        for (a, b), status in expected.items():
            self.assertEqual(combine_parts(self._part(a), self._part(b)), status)

    def test_win_loss_pair_is_an_internal_fault(self) -> None:
        with self.assertRaises(SettlementInvariantError):
            combine_parts(self._part(PartStatus.WIN, -0.5), self._part(PartStatus.LOSS, 0.0))
        with self.assertRaises(SettlementInvariantError):
            combine_parts(self._part(PartStatus.LOSS), self._part(PartStatus.WIN))


class SettlementMatrixTests(unittest.TestCase):
    def test_asian_matrix_has_no_draw_column(self) -> None:
        rows = settlement_matrix(AH, 1, 0, 1.95, 100)

        self.assertEqual(len(rows), len(ASIAN_HANDICAP_LINES))
        self.assertTrue(all(row.draw is None for row in rows))
        by_line = {row.line: row for row in rows}
        self.assertEqual(by_line[-0.5].home.status, ResultStatus.WIN)
        self.assertEqual(by_line[-0.5].away.status, ResultStatus.LOSS)
        self.assertEqual(by_line[-1.0].home.status, ResultStatus.PUSH)

    def test_european_matrix_has_exactly_one_winner_per_line(self) -> None:
        rows = settlement_matrix(EU, 1, 1, 3.0, 10)

        self.assertEqual(len(rows), len(EUROPEAN_HANDICAP_LINES))
        for row in rows:
            statuses = [row.home.status, row.draw.status, row.away.status]
            self.assertEqual(statuses.count(ResultStatus.WIN), 1)
        zero = next(row for row in rows if row.line == 0)
        self.assertEqual(zero.draw.status, ResultStatus.WIN)

    def test_custom_lines(self) -> None:
        rows = settlement_matrix(AH, 0, 0, 2.0, 100, lines=[0.25])

        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0].home.status, ResultStatus.HALF_WIN)
        self.assertEqual(rows[0].away.status, ResultStatus.HALF_LOSS)
        self.assertEqual(rows[0].to_dict()["draw"], None)


if __name__ == "__main__":
    unittest.main()
