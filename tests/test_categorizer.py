"""Tests for provider categorization."""
import unittest
from decimal import Decimal

from hormiwita.llm.categorizer import ProviderCategorizer, load_category_catalogue
from hormiwita.statements.models import (
    BankStatementSummary,
    ItemType,
    ProviderTransactionSummary,
    StatementStatus,
)
from hormiwita.utils.exceptions import LLMError, StatementNotCategorizableError


class FakeClient:
    """Returns canned payloads validated against the requested schema."""

    def __init__(self, *payloads, error=None):
        self.payloads = list(payloads)
        self.error = error
        self.prompts = []

    async def generate_json(self, prompt, schema, system_instruction=None):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return schema.model_validate(self.payloads.pop(0))


def summary(name, amount, count=1):
    return ProviderTransactionSummary(name, Decimal(amount), count)


class TestProviderCategorizer(unittest.IsolatedAsyncioTestCase):
    """Test ProviderCategorizer functionality."""

    def setUp(self):
        """Set up test fixtures."""
        self.expenses = [summary("Netflix", "15"), summary("Mercadona SA", "65.30", 3)]

    async def test_empty_batch_skips_client(self):
        """Test that an empty batch never calls the model."""
        client = FakeClient()
        result = await ProviderCategorizer(client).categorize([], ItemType.EXPENSE)

        self.assertEqual(result.categorized_items, ())
        self.assertFalse(result.degraded)
        self.assertEqual(client.prompts, [])

    async def test_results_matched_by_name(self):
        """Test out-of-order results mapped back in input order."""
        client = FakeClient({"categorizedItems": [
            {"providerName": "Mercadona SA", "totalAmount": 1, "transactionCount": 9,
             "suggestedCategory": "Alimentación: Supermercado y Comestibles"},
            {"providerName": "netflix", "suggestedCategory": "  Entretenimiento  "},
        ]})
        result = await ProviderCategorizer(client).categorize(self.expenses, ItemType.EXPENSE)

        self.assertFalse(result.degraded)
        self.assertEqual(len(client.prompts), 1)
        netflix, mercadona = result.categorized_items
        self.assertEqual(netflix.provider_name, "Netflix")
        self.assertEqual(netflix.suggested_category, "Entretenimiento")
        self.assertEqual(mercadona.total_amount, Decimal("65.30"))
        self.assertEqual(mercadona.transaction_count, 3)
        self.assertEqual(mercadona.suggested_category, "Alimentación: Supermercado y Comestibles")

    async def test_fuzzy_name_match(self):
        """Test that small spelling drift in returned names is tolerated."""
        client = FakeClient({"categorizedItems": [
            {"providerName": "Netflix", "suggestedCategory": "Entretenimiento"},
            {"providerName": "Mercadona S.A.", "suggestedCategory": "Alimentación: Supermercado y Comestibles"},
        ]})
        result = await ProviderCategorizer(client).categorize(self.expenses, ItemType.EXPENSE)

        self.assertFalse(result.degraded)
        self.assertEqual(result.categorized_items[1].suggested_category, "Alimentación: Supermercado y Comestibles")

    async def test_client_error_falls_back(self):
        """Test that a failing model labels every item with the fallback."""
        client = FakeClient(error=LLMError("boom"))
        result = await ProviderCategorizer(client).categorize(self.expenses, ItemType.EXPENSE)

        self.assertTrue(result.degraded)
        self.assertEqual([i.suggested_category for i in result.categorized_items], ["Otros Gastos"] * 2)
        self.assertEqual([i.provider_name for i in result.categorized_items], ["Netflix", "Mercadona SA"])
        self.assertEqual(result.categorized_items[1].total_amount, Decimal("65.30"))

    async def test_unexpected_client_error_falls_back(self):
        """Test that errors from outside the package also degrade to the fallback."""
        client = FakeClient(error=OSError("connection refused"))
        result = await ProviderCategorizer(client).categorize(self.expenses, ItemType.EXPENSE)

        self.assertTrue(result.degraded)
        self.assertEqual([i.suggested_category for i in result.categorized_items], ["Otros Gastos"] * 2)

    async def test_missing_item_list_falls_back(self):
        """Test that output without the expected list is treated as a failure."""
        client = FakeClient({"somethingElse": []})
        result = await ProviderCategorizer(client).categorize(self.expenses, ItemType.EXPENSE)

        self.assertTrue(result.degraded)
        self.assertEqual(result.categorized_items[0].suggested_category, "Otros Gastos")

    async def test_skipped_item_gets_fallback(self):
        """Test that items the model skipped get the fallback label."""
        client = FakeClient({"categorizedItems": [
            {"providerName": "Netflix", "suggestedCategory": "Entretenimiento"},
            {"providerName": "Iberdrola", "suggestedCategory": "Suministros: Luz"},
        ]})
        result = await ProviderCategorizer(client).categorize(self.expenses, ItemType.EXPENSE)

        self.assertTrue(result.degraded)
        self.assertEqual(result.categorized_items[0].suggested_category, "Entretenimiento")
        self.assertEqual(result.categorized_items[1].suggested_category, "Otros Gastos")

    async def test_income_fallback_without_client(self):
        """Test the income fallback label when no client is configured."""
        result = await ProviderCategorizer(None).categorize([summary("Empresa SL", "1200")], ItemType.INCOME)

        self.assertTrue(result.degraded)
        self.assertEqual(result.categorized_items[0].suggested_category, "Otros Ingresos")

    async def test_existing_categories_in_prompt(self):
        """Test that the preferred categories are sent with the batch."""
        client = FakeClient({"categorizedItems": []})
        await ProviderCategorizer(client).categorize(
            self.expenses, ItemType.EXPENSE, existing_categories=["Categoría Propia"]
        )
        self.assertIn("Categoría Propia", client.prompts[0])

    async def test_categorize_summary(self):
        """Test income then expense batches for a statement summary."""
        statement = BankStatementSummary(
            status=StatementStatus.PARTIAL_DATA,
            feedback="ok",
            income_by_provider=(summary("Empresa SL", "1200"),),
            expenses_by_provider=(summary("Netflix", "15"),),
        )
        client = FakeClient(
            {"categorizedItems": [{"providerName": "Empresa SL", "suggestedCategory": "Nómina / Salario"}]},
            {"categorizedItems": [{"providerName": "Netflix", "suggestedCategory": "Entretenimiento"}]},
        )
        enhanced, degraded = await ProviderCategorizer(client).categorize_summary(statement)

        self.assertFalse(degraded)
        self.assertIs(enhanced.original_summary, statement)
        self.assertEqual(enhanced.categorized_income_items[0].suggested_category, "Nómina / Salario")
        self.assertEqual(enhanced.categorized_expense_items[0].suggested_category, "Entretenimiento")
        self.assertIn("ingresos", client.prompts[0])
        self.assertIn("gastos", client.prompts[1])

    async def test_categorize_summary_requires_status(self):
        """Test that failed statements cannot be categorized."""
        statement = BankStatementSummary(status=StatementStatus.ERROR_PARSING, feedback="mal")
        with self.assertRaises(StatementNotCategorizableError) as ctx:
            await ProviderCategorizer(FakeClient()).categorize_summary(statement)

        self.assertEqual(ctx.exception.status, StatementStatus.ERROR_PARSING)
        self.assertIn("Error Parsing", str(ctx.exception))


class TestCategoryCatalogue(unittest.TestCase):
    """Test the reference category catalogue."""

    def test_catalogue_has_fallbacks(self):
        """Test that fallback labels are part of the catalogue."""
        catalogue = load_category_catalogue()
        self.assertIn("Otros Ingresos", catalogue[ItemType.INCOME])
        self.assertIn("Otros Gastos", catalogue[ItemType.EXPENSE])
        self.assertIn("Restaurantes y Ocio", catalogue[ItemType.EXPENSE])


if __name__ == "__main__":
    unittest.main()
