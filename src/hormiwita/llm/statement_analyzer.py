"""Statement analysis: ingestion, model analysis and local fallback."""
import math
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..statements.aggregator import Aggregator, ParsedStatement, parse_statement_rows
from ..statements.ingestor import DEFAULT_MAX_BYTES, ingest_data_uri
from ..statements.models import BankStatementSummary, StatementStatus
from ..utils.exceptions import ValidationError
from ..utils.logger import get_logger

logger = get_logger()


class ProviderSchema(BaseModel):
    """Pydantic schema for one provider total."""
    model_config = ConfigDict(populate_by_name=True)

    provider_name: str = Field(alias="providerName")
    total_amount: float = Field(alias="totalAmount")
    transaction_count: int = Field(default=1, alias="transactionCount")


class StatementAnalysisResponse(BaseModel):
    """Pydantic schema for the statement analysis response."""
    model_config = ConfigDict(populate_by_name=True)

    status: StatementStatus
    feedback: str = ""
    total_income: Optional[float] = Field(default=None, alias="totalIncome")
    total_expenses: Optional[float] = Field(default=None, alias="totalExpenses")
    detected_currency: Optional[str] = Field(default=None, alias="detectedCurrency")
    income_by_provider: List[ProviderSchema] = Field(default_factory=list, alias="incomeByProvider")
    expenses_by_provider: List[ProviderSchema] = Field(default_factory=list, alias="expensesByProvider")
    unassigned_transactions: Optional[int] = Field(default=None, alias="unassignedTransactions")


class StatementAnalyzer:
    """Turns an uploaded statement into a BankStatementSummary. Never raises."""

    def __init__(self, client=None, max_bytes: Optional[int] = DEFAULT_MAX_BYTES):
        """
        Initialize analyzer.

        Args:
            client: Object exposing async generate_json(prompt, schema), or None
                to aggregate locally only
            max_bytes: Upload size limit
        """
        self.client = client
        self.max_bytes = max_bytes
        self.aggregator = Aggregator()

    async def analyze(self, file_data_uri: str, original_file_name: Optional[str] = None) -> BankStatementSummary:
        """
        Analyze one statement file.

        Args:
            file_data_uri: File content as a base64 data URI
            original_file_name: Uploaded file name, for feedback

        Returns:
            BankStatementSummary with a terminal status
        """
        ingested = ingest_data_uri(file_data_uri, original_file_name, self.max_bytes)
        if not ingested.ok:
            logger.info(f"Statement {original_file_name} ended at ingestion: {ingested.summary.status.value}")
            return ingested.summary

        parsed = parse_statement_rows(ingested.text)

        if self.client is None:
            return self.aggregator.summarize(parsed, original_file_name)

        try:
            response = await self.client.generate_json(
                self._build_prompt(ingested.text, original_file_name),
                StatementAnalysisResponse
            )
            summary = self._to_summary(response)
        except Exception as e:
            logger.warning(f"Statement analysis for {original_file_name} failed, aggregating locally: {e}")
            return self._local_fallback(parsed, original_file_name)

        logger.info(
            f"Statement {original_file_name} analyzed: {summary.status.value}, "
            f"{len(summary.income_by_provider or ())} income and "
            f"{len(summary.expenses_by_provider or ())} expense providers"
        )
        return summary

    def _to_summary(self, response: StatementAnalysisResponse) -> BankStatementSummary:
        if response is None:
            raise ValidationError("Statement analysis returned no output")

        income = self.aggregator.merge_summaries(
            (p.provider_name, p.total_amount, p.transaction_count) for p in response.income_by_provider
        )
        expenses = self.aggregator.merge_summaries(
            (p.provider_name, p.total_amount, p.transaction_count) for p in response.expenses_by_provider
        )

        if not response.status.allows_categorization:
            return BankStatementSummary(status=response.status, feedback=response.feedback)

        total_income = response.total_income
        if total_income is None or not math.isfinite(total_income):
            total_income = sum((item.total_amount for item in income), Decimal("0"))
        total_expenses = response.total_expenses
        if total_expenses is None or not math.isfinite(total_expenses):
            total_expenses = sum((item.total_amount for item in expenses), Decimal("0"))

        return BankStatementSummary(
            status=response.status,
            feedback=response.feedback,
            total_income=abs(Decimal(str(total_income))),
            total_expenses=abs(Decimal(str(total_expenses))),
            detected_currency=response.detected_currency,
            income_by_provider=income,
            expenses_by_provider=expenses,
            unassigned_transactions=response.unassigned_transactions
        )

    def _local_fallback(self, parsed: ParsedStatement, original_file_name: Optional[str]) -> BankStatementSummary:
        name = original_file_name or "desconocido"
        local = self.aggregator.summarize(parsed, original_file_name)
        if not local.status.allows_categorization:
            return BankStatementSummary(
                status=StatementStatus.ERROR_PARSING,
                feedback=f"Ocurrió un error al analizar '{name}' y no se pudieron interpretar sus transacciones.",
                unassigned_transactions=local.unassigned_transactions
            )

        return BankStatementSummary(
            status=StatementStatus.PARTIAL_DATA,
            feedback=(
                f"El análisis automático de '{name}' no estuvo disponible; "
                f"se muestra una agregación local de las transacciones. {local.feedback}"
            ),
            total_income=local.total_income,
            total_expenses=local.total_expenses,
            detected_currency=local.detected_currency,
            income_by_provider=local.income_by_provider,
            expenses_by_provider=local.expenses_by_provider,
            unassigned_transactions=local.unassigned_transactions
        )

    @staticmethod
    def _build_prompt(text: str, original_file_name: Optional[str]) -> str:
        return f"""Eres un analista financiero experto en extractos bancarios.

Analiza el siguiente contenido del archivo '{original_file_name or "desconocido"}' (CSV o texto).

Para cada transacción determina si es un ingreso o un gasto y agrúpalas por proveedor
(contraparte). Para cada proveedor indica el importe total (siempre positivo) y el número
de transacciones.

Estados posibles para "status":
- "Success": todas las transacciones se identificaron
- "Partial Data": algunas transacciones no se pudieron asignar
- "Error Parsing": el contenido no se pudo interpretar
- "No Data Identified": el archivo no contiene transacciones financieras

El campo "feedback" debe ser un resumen breve en español para el usuario.

Devuelve SOLO un objeto JSON válido con este formato:
{{
  "status": "Success",
  "feedback": "...",
  "totalIncome": 0.0,
  "totalExpenses": 0.0,
  "detectedCurrency": "EUR",
  "incomeByProvider": [{{"providerName": "...", "totalAmount": 0.0, "transactionCount": 1}}],
  "expensesByProvider": [{{"providerName": "...", "totalAmount": 0.0, "transactionCount": 1}}],
  "unassignedTransactions": 0
}}

Contenido del archivo:
{text}
"""
