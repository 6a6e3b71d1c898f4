"""Statement pipeline: ingestion -> analysis -> categorization -> forecast."""
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

from .forecast.savings import SavingsScenario, calculate_monthly_savings, generate_forecast_data
from .llm.categorizer import ProviderCategorizer
from .llm.statement_analyzer import StatementAnalyzer
from .onboarding.state import UserProfile
from .statements.ingestor import to_data_uri
from .statements.models import BankStatementSummary, EnhancedExpenseIncomeSummary
from .utils.logger import get_logger

logger = get_logger()

MIME_BY_SUFFIX = {
    ".csv": "text/csv",
    ".txt": "text/plain",
    ".tsv": "text/tab-separated-values",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ".xls": "application/vnd.ms-excel",
}


@dataclass
class PipelineResult:
    file_name: str
    summary: BankStatementSummary
    enhanced: Optional[EnhancedExpenseIncomeSummary] = None
    degraded: bool = False
    savings: Optional[SavingsScenario] = None
    forecast: List[Dict[str, Any]] = field(default_factory=list)


class StatementPipeline:
    """Runs one statement file through analysis, categorization and forecast."""

    def __init__(self, analyzer: StatementAnalyzer, categorizer: ProviderCategorizer, language: str = "es"):
        self.analyzer = analyzer
        self.categorizer = categorizer
        self.language = language

    async def process_file(self, path: Path, today: Optional[date] = None) -> PipelineResult:
        """Read a local file and process it."""
        mime_type = MIME_BY_SUFFIX.get(path.suffix.lower(), "application/octet-stream")
        data_uri = to_data_uri(path.read_bytes(), mime_type)
        return await self.process(data_uri, path.name, today)

    async def process(self, data_uri: str, file_name: str, today: Optional[date] = None) -> PipelineResult:
        logger.info(f"Processing statement: {file_name}")
        summary = await self.analyzer.analyze(data_uri, file_name)
        result = PipelineResult(file_name=file_name, summary=summary)

        if not summary.status.allows_categorization:
            logger.info(f"Statement {file_name} not categorizable: {summary.status.value}")
            return result

        enhanced, degraded = await self.categorizer.categorize_summary(summary, self.language)
        result.enhanced = enhanced
        result.degraded = degraded
        result.savings = calculate_monthly_savings(enhanced.categorized_expense_items)
        result.forecast = generate_forecast_data(UserProfile(expenses_income_summary=enhanced), today)

        logger.info(
            f"Statement {file_name} complete: "
            f"{len(enhanced.categorized_income_items or ())} income items, "
            f"{len(enhanced.categorized_expense_items or ())} expense items, "
            f"monthly savings {result.savings.simple}/{result.savings.moderate}/{result.savings.max}"
        )
        return result
