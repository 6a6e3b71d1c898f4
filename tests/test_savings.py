"""Tests for savings scenarios and forecasts."""
import unittest
from datetime import date
from decimal import Decimal

from hormiwita.forecast.savings import (
    CutType,
    calculate_monthly_savings,
    generate_forecast_data,
    is_subscription,
    month_label,
    top_expense_categories,
)
from hormiwita.onboarding.state import UserProfile
from hormiwita.statements.models import (
    BankStatementSummary,
    CategorizedItem,
    EnhancedExpenseIncomeSummary,
    StatementStatus,
)


def item(name, amount, category):
    return CategorizedItem(name, Decimal(amount), 1, category)


class TestMonthlySavings(unittest.TestCase):
    """Test calculate_monthly_savings."""

    def setUp(self):
        """Set up test fixtures."""
        self.items = [
            item("Netflix", "15", "Entretenimiento"),
            item("La Tasca", "100", "Restaurantes y Ocio"),
            item("Mercadona", "300", "Alimentación: Supermercado y Comestibles"),
        ]

    def test_scenarios(self):
        """Test the three scenario totals."""
        savings = calculate_monthly_savings(self.items)

        self.assertEqual(savings.simple, Decimal("22.5"))
        self.assertEqual(savings.moderate, Decimal("52"))
        self.assertEqual(savings.max, Decimal("90"))

    def test_subscription_detected_before_category(self):
        """Test that a subscription is never counted as non-essential too."""
        savings = calculate_monthly_savings(self.items)
        netflix, tasca = savings.simple_details

        self.assertEqual(netflix.type, CutType.SUBSCRIPTION)
        self.assertEqual(netflix.description, "Suscripción: Netflix")
        self.assertEqual(netflix.amount_removed, Decimal("7.5"))
        self.assertEqual(tasca.type, CutType.NON_ESSENTIAL)
        self.assertEqual(tasca.amount_removed, Decimal("15"))
        self.assertEqual(len(savings.max_details), 2)

    def test_keyword_match_is_case_insensitive(self):
        """Test subscription keyword matching."""
        self.assertTrue(is_subscription(item("GIMNASIO Centro", "30", "Deporte")))
        self.assertFalse(is_subscription(item("Mercadona", "30", "Alimentación")))

    def test_idempotent(self):
        """Test that repeated calculations give the same scenario."""
        self.assertEqual(calculate_monthly_savings(self.items), calculate_monthly_savings(self.items))

    def test_monotonic_scenarios(self):
        """Test that each scenario saves at least as much as the previous one."""
        cases = [
            self.items,
            [item("Spotify", "10", "Entretenimiento"), item("Gimnasio", "40", "Deporte")],
            [item("Glovo", "60", "Comida a Domicilio"), item("La Tasca", "35.50", "Restaurantes y Ocio")],
            [item("Mercadona", "300", "Alimentación: Supermercado y Comestibles")],
            [item("Netflix", "0.01", "Entretenimiento"), item("Amazon", "999.99", "Compras Online")],
            [],
        ]
        for items in cases:
            with self.subTest(items=[i.provider_name for i in items]):
                savings = calculate_monthly_savings(items)
                self.assertLessEqual(Decimal("0"), savings.simple)
                self.assertLessEqual(savings.simple, savings.moderate)
                self.assertLessEqual(savings.moderate, savings.max)

    def test_no_items(self):
        """Test that missing items save nothing."""
        savings = calculate_monthly_savings(None)
        self.assertEqual(savings.simple, 0)
        self.assertEqual(savings.max_details, ())

    def test_to_dict(self):
        """Test the camelCase scenario export."""
        data = calculate_monthly_savings(self.items[:1]).to_dict()
        self.assertEqual(data["simple"], 7.5)
        self.assertEqual(data["simpleDetails"][0]["type"], "subscription")
        self.assertEqual(data["maxDetails"][0]["percentageRemoved"], 100.0)


class TestForecast(unittest.TestCase):
    """Test generate_forecast_data."""

    def _profile(self, items):
        summary = EnhancedExpenseIncomeSummary(
            original_summary=BankStatementSummary(StatementStatus.SUCCESS, "ok"),
            categorized_expense_items=items,
        )
        return UserProfile(name="Ana", expenses_income_summary=summary)

    def test_cumulative_months(self):
        """Test labels, length and rounding of the projection."""
        profile = self._profile([
            item("Netflix", "15", "Entretenimiento"),
            item("La Tasca", "100", "Restaurantes y Ocio"),
        ])
        data = generate_forecast_data(profile, today=date(2026, 10, 19))

        self.assertEqual(len(data), 12)
        self.assertEqual(data[0], {"month": "oct 26", "ahorroSimple": 23, "ahorroModerado": 52, "ahorroMaximo": 90})
        self.assertEqual(data[1]["ahorroSimple"], 45)
        self.assertEqual(data[2]["month"], "dic 26")
        self.assertEqual(data[3]["month"], "ene 27")
        self.assertEqual(data[-1]["month"], "sept 27")
        self.assertEqual(data[-1]["ahorroMaximo"], 1080)

    def test_profile_without_summary(self):
        """Test that a profile without statements projects zeros."""
        data = generate_forecast_data(UserProfile(), today=date(2026, 1, 31))

        self.assertEqual(data[0]["month"], "ene 26")
        self.assertTrue(all(entry["ahorroSimple"] == 0 for entry in data))

    def test_month_label(self):
        """Test the Spanish short month label."""
        self.assertEqual(month_label(date(2030, 5, 1)), "may 30")


class TestTopCategories(unittest.TestCase):
    """Test top_expense_categories."""

    def test_ranking(self):
        """Test category totals sorted largest first."""
        ranked = top_expense_categories([
            item("Bar", "20", "Restaurantes y Ocio"),
            item("Mercadona", "300", "Alimentación"),
            item("Tasca", "50", "Restaurantes y Ocio"),
        ], top_n=1)

        self.assertEqual(ranked, [("Alimentación", Decimal("300"))])


if __name__ == "__main__":
    unittest.main()
