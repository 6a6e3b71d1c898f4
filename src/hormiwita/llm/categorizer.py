"""Batch categorization of provider summaries through the classification model."""
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .provider_matcher import ProviderMatcher
from ..statements.aggregator import normalize_provider_name, provider_key
from ..statements.models import (
    BankStatementSummary,
    CategorizedItem,
    EnhancedExpenseIncomeSummary,
    ItemType,
    ProviderTransactionSummary,
)
from ..utils.exceptions import LLMError, StatementNotCategorizableError
from ..utils.logger import get_logger

logger = get_logger()

DEFAULT_CATEGORIES_PATH = Path(__file__).parent.parent / "resources" / "categories.json"

FALLBACK_CATEGORIES = {
    ItemType.INCOME: "Otros Ingresos",
    ItemType.EXPENSE: "Otros Gastos",
}


class CategorizedItemSchema(BaseModel):
    """Pydantic schema for one categorized provider."""
    model_config = ConfigDict(populate_by_name=True)

    provider_name: str = Field(alias="providerName", description="Provider name exactly as given")
    suggested_category: str = Field(alias="suggestedCategory", description="Assigned category")
    total_amount: Optional[float] = Field(default=None, alias="totalAmount")
    transaction_count: Optional[int] = Field(default=None, alias="transactionCount")


class CategorizationResponse(BaseModel):
    """Pydantic schema for the classification response."""
    model_config = ConfigDict(populate_by_name=True)

    categorized_items: Optional[List[CategorizedItemSchema]] = Field(default=None, alias="categorizedItems")


@dataclass(frozen=True)
class CategorizationResult:
    """Categorized items in input order; degraded when any fallback label was used."""
    categorized_items: Tuple[CategorizedItem, ...] = ()
    degraded: bool = False


def load_category_catalogue(categories_path: Optional[Path] = None) -> Dict[ItemType, List[str]]:
    """Load reference category names from JSON file."""
    path = categories_path or DEFAULT_CATEGORIES_PATH
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise LLMError(f"Failed to load categories: {e}")

    return {
        ItemType.INCOME: [category["name"] for category in data.get("income", [])],
        ItemType.EXPENSE: [category["name"] for category in data.get("expenses", [])],
    }


def normalize_category(category: Optional[str]) -> str:
    return " ".join((category or "").split())


class ProviderCategorizer:
    """Assigns a category to each provider summary, one model call per batch."""

    def __init__(
        self,
        client=None,
        categories_path: Optional[Path] = None,
        fuzzy_threshold: int = 3
    ):
        """
        Initialize categorizer.

        Args:
            client: Object exposing async generate_json(prompt, schema), or None to
                always use fallback labels
            categories_path: Path to categories.json
            fuzzy_threshold: Maximum Levenshtein distance when matching returned names
        """
        self.client = client
        self.fuzzy_threshold = fuzzy_threshold
        self.categories = load_category_catalogue(categories_path)

    async def categorize(
        self,
        items: Sequence[ProviderTransactionSummary],
        item_type: ItemType,
        existing_categories: Optional[Sequence[str]] = None,
        language: str = "es"
    ) -> CategorizationResult:
        """
        Categorize one batch of providers.

        Args:
            items: Provider summaries, all of the same direction
            item_type: Whether the batch holds income or expense providers
            existing_categories: Preferred category names, defaults to the reference catalogue
            language: Language for category names

        Returns:
            CategorizationResult preserving input order, names, amounts and counts
        """
        item_type = ItemType(item_type)
        if not items:
            return CategorizationResult()

        fallback = FALLBACK_CATEGORIES[item_type]
        if self.client is None:
            logger.info(f"No classification client, using '{fallback}' for {len(items)} {item_type.value} items")
            return self._fallback(items, fallback)

        categories = list(existing_categories) if existing_categories else self.categories[item_type]
        prompt = self._build_prompt(items, item_type, categories, language)

        try:
            response = await self.client.generate_json(prompt, CategorizationResponse)
        except Exception as e:
            logger.warning(f"Categorization of {len(items)} {item_type.value} items failed: {e}")
            return self._fallback(items, fallback)

        if response is None or response.categorized_items is None:
            logger.warning(f"Categorization response for {item_type.value} items has no item list")
            return self._fallback(items, fallback)

        return self._merge(items, response.categorized_items, fallback)

    async def categorize_summary(
        self,
        summary: BankStatementSummary,
        language: str = "es"
    ) -> Tuple[EnhancedExpenseIncomeSummary, bool]:
        """
        Categorize income and expense providers of a statement summary.

        Returns:
            (EnhancedExpenseIncomeSummary, degraded)

        Raises:
            StatementNotCategorizableError: If the summary status does not allow it
        """
        if not summary.status.allows_categorization:
            raise StatementNotCategorizableError(summary.status)

        income = await self.categorize(summary.income_by_provider or (), ItemType.INCOME, language=language)
        expenses = await self.categorize(summary.expenses_by_provider or (), ItemType.EXPENSE, language=language)

        enhanced = EnhancedExpenseIncomeSummary(
            original_summary=summary,
            categorized_income_items=income.categorized_items,
            categorized_expense_items=expenses.categorized_items
        )
        return enhanced, income.degraded or expenses.degraded

    def _merge(
        self,
        items: Sequence[ProviderTransactionSummary],
        results: Sequence[CategorizedItemSchema],
        fallback: str
    ) -> CategorizationResult:
        matcher = ProviderMatcher(self.fuzzy_threshold)
        for result in results:
            category = normalize_category(result.suggested_category)
            if category:
                matcher.add_mapping(result.provider_name, category)

        # Names that exactly match some input are not offered to fuzzy lookups
        input_keys = {provider_key(item.provider_name) for item in items}
        claimed = input_keys & set(matcher.get_all_mappings())

        categorized = []
        degraded = False
        for item in items:
            key = provider_key(item.provider_name)
            category = matcher.lookup(item.provider_name, exclude=claimed - {key})
            if not category:
                logger.warning(f"No category returned for '{item.provider_name}', using '{fallback}'")
                category = fallback
                degraded = True
            categorized.append(CategorizedItem.from_summary(item, category))

        logger.info(
            f"Categorized {len(categorized)} items"
            f"{' (with fallback labels)' if degraded else ''}"
        )
        return CategorizationResult(categorized_items=tuple(categorized), degraded=degraded)

    @staticmethod
    def _fallback(items: Sequence[ProviderTransactionSummary], fallback: str) -> CategorizationResult:
        return CategorizationResult(
            categorized_items=tuple(CategorizedItem.from_summary(item, fallback) for item in items),
            degraded=True
        )

    @staticmethod
    def _build_prompt(
        items: Sequence[ProviderTransactionSummary],
        item_type: ItemType,
        categories: Sequence[str],
        language: str
    ) -> str:
        kind = "ingresos" if item_type == ItemType.INCOME else "gastos"
        payload = [
            {"providerName": normalize_provider_name(item.provider_name), "totalAmount": float(item.total_amount),
             "transactionCount": item.transaction_count}
            for item in items
        ]
        return f"""Eres un asistente financiero experto en categorizar transacciones.

Tarea: asigna una categoría a cada proveedor de {kind} de la lista.

Categorías preferidas (usa estos nombres cuando encajen; si ninguno encaja, propone una categoría breve y descriptiva):
{json.dumps(list(categories), ensure_ascii=False, indent=2)}

Proveedores:
{json.dumps(payload, ensure_ascii=False, indent=2)}

IMPORTANTE:
- Devuelve TODOS los proveedores, con providerName exactamente igual al recibido
- No modifiques totalAmount ni transactionCount
- Los nombres de categoría deben estar en el idioma '{language}'

Devuelve SOLO un objeto JSON válido con este formato:
{{
  "categorizedItems": [
    {{"providerName": "...", "totalAmount": 0.0, "transactionCount": 1, "suggestedCategory": "..."}}
  ]
}}
"""
