import unittest
from datetime import date, datetime, timedelta
from types import SimpleNamespace

from sensus.services import scoring


def _evaluation(test_type, value, days_ago=0):
    return SimpleNamespace(
        test_type=test_type,
        score=value,
        completed_at=datetime(2025, 3, 31) - timedelta(days=days_ago),
    )


class ScoreTests(unittest.TestCase):
    def test_moderate_total(self):
        result = scoring.score([2, 1, 3, 0, 2, 1, 1])
        self.assertEqual(result.total, 10)
        self.assertEqual(result.severity, "Moderada")

    def test_all_zero_is_minimal(self):
        result = scoring.score([0, 0, 0, 0, 0, 0, 0])
        self.assertEqual(result.total, 0)
        self.assertEqual(result.severity, "Mínima")

    def test_all_max_is_severe(self):
        result = scoring.score([3, 3, 3, 3, 3, 3, 3])
        self.assertEqual(result.total, 21)
        self.assertEqual(result.severity, "Severa")

    def test_band_edges_are_inclusive(self):
        self.assertEqual(scoring.gad7_severity(4), "Mínima")
        self.assertEqual(scoring.gad7_severity(5), "Leve")
        self.assertEqual(scoring.gad7_severity(9), "Leve")
        self.assertEqual(scoring.gad7_severity(14), "Moderada")
        self.assertEqual(scoring.gad7_severity(15), "Severa")


class InterpretTests(unittest.TestCase):
    def test_phq9_moderately_severe(self):
        result = scoring.interpret(scoring.PHQ9, 17, 27)
        self.assertEqual(result.level, "moderately_severe")
        self.assertEqual(result.risk_level, "high")

    def test_pss_medium(self):
        result = scoring.interpret(scoring.PSS, 20, 40)
        self.assertEqual(result.level, "medium")
        self.assertEqual(result.description, "Estrés moderado")

    def test_wellness_uses_percentage(self):
        self.assertEqual(scoring.interpret(scoring.WELLNESS, 16, 20).level, "high")
        self.assertEqual(scoring.interpret(scoring.WELLNESS, 12, 20).level, "medium")
        self.assertEqual(scoring.interpret(scoring.WELLNESS, 5, 20).level, "low")

    def test_percentage_boundaries_are_not_rounded(self):
        result = scoring.interpret(scoring.WELLNESS, 159, 200)  # 79.5%
        self.assertEqual(result.level, "medium")
        self.assertEqual(result.severity, "Medio")
        self.assertEqual(result.description, "Buen bienestar general")
        self.assertEqual(scoring.interpret(scoring.WELLNESS, 160, 200).level, "high")

        result = scoring.interpret(scoring.SELFESTEEM, 119, 200)  # 59.5%
        self.assertEqual(result.level, "low")
        self.assertEqual(result.risk_level, "medium")
        self.assertEqual(scoring.interpret(scoring.SELFESTEEM, 120, 200).level, "medium")

    def test_gad7_recommendations_present(self):
        result = scoring.interpret(scoring.GAD7, 18, 21)
        self.assertEqual(result.severity, "Severa")
        self.assertTrue(result.recommendations)


class ValidateAnswersTests(unittest.TestCase):
    def test_gad7_needs_seven(self):
        self.assertEqual(scoring.validate_answers(scoring.GAD7, [0] * 7), [])
        self.assertTrue(scoring.validate_answers(scoring.GAD7, [0] * 6))

    def test_answer_range_checked(self):
        problems = scoring.validate_answers(scoring.PHQ9, [0] * 8 + [4])
        self.assertEqual(problems, ["Answer 9 must be between 0 and 3"])

    def test_pss_allows_four(self):
        self.assertEqual(scoring.validate_answers(scoring.PSS, [4] * 10), [])

    def test_free_length_needs_one(self):
        self.assertTrue(scoring.validate_answers(scoring.SELFESTEEM, []))
        self.assertEqual(scoring.validate_answers(scoring.SELFESTEEM, [2, 3]), [])


class CompareTests(unittest.TestCase):
    def test_lower_is_better_for_anxiety(self):
        result = scoring.compare(scoring.GAD7, _evaluation("gad7", 8), _evaluation("gad7", 12, days_ago=14))
        self.assertTrue(result["isImprovement"])
        self.assertEqual(result["scoreDifference"], -4)
        self.assertEqual(result["improvement"], 4)
        self.assertEqual(result["improvementPercentage"], 33.33)
        self.assertEqual(result["daysBetween"], 14)

    def test_higher_is_better_for_wellness(self):
        result = scoring.compare(scoring.WELLNESS, _evaluation("wellness", 10), _evaluation("wellness", 12, 7))
        self.assertFalse(result["isImprovement"])

    def test_zero_previous_score(self):
        result = scoring.compare(scoring.GAD7, _evaluation("gad7", 3), _evaluation("gad7", 0, 1))
        self.assertEqual(result["improvementPercentage"], 0.0)
        self.assertFalse(result["isImprovement"])

    def test_improvement_rate_averages_types(self):
        history = [
            _evaluation("gad7", 10, 20),
            _evaluation("gad7", 5, 10),
            _evaluation("wellness", 10, 20),
            _evaluation("wellness", 15, 10),
            _evaluation("pss", 20, 5),
        ]
        self.assertEqual(scoring.improvement_rate(history), 50.0)

    def test_trend(self):
        self.assertEqual(scoring.trend([10]), "insufficient_data")
        self.assertEqual(scoring.trend([10, 8]), "improving")
        self.assertEqual(scoring.trend([8, 10]), "worsening")
        self.assertEqual(scoring.trend([8, 10], lower_is_better=False), "improving")
        self.assertEqual(scoring.trend([8, 8]), "stable")


class StreakTests(unittest.TestCase):
    today = date(2025, 3, 31)

    def test_counts_back_from_today(self):
        days = [self.today - timedelta(days=i) for i in range(3)]
        self.assertEqual(scoring.calculate_streak(days, self.today), 3)

    def test_yesterday_keeps_streak(self):
        days = [self.today - timedelta(days=i) for i in (1, 2)]
        self.assertEqual(scoring.calculate_streak(days, self.today), 2)

    def test_gap_breaks_streak(self):
        days = [self.today, self.today - timedelta(days=2)]
        self.assertEqual(scoring.calculate_streak(days, self.today), 1)
        self.assertEqual(scoring.calculate_streak([], self.today), 0)

    def test_next_streak(self):
        yesterday = self.today - timedelta(days=1)
        self.assertEqual(scoring.next_streak(0, None, self.today), 1)
        self.assertEqual(scoring.next_streak(4, yesterday, self.today), 5)
        self.assertEqual(scoring.next_streak(4, self.today, self.today), 4)
        self.assertEqual(scoring.next_streak(4, self.today - timedelta(days=3), self.today), 1)
        self.assertEqual(scoring.next_streak(4, self.today, yesterday), 4)

    def test_achievement_rules(self):
        self.assertEqual(scoring.diary_achievements(1, 1), ["first_entry"])
        self.assertEqual(scoring.diary_achievements(9, 7), ["first_entry", "week_streak"])
        self.assertEqual(scoring.evaluation_achievements(0), [])
        self.assertEqual(scoring.evaluation_achievements(1), ["first_test"])


if __name__ == "__main__":
    unittest.main()
