"""Statement ingestion and aggregation module."""
from .models import (
    StatementStatus,
    ItemType,
    StatementRow,
    ProviderTransactionSummary,
    CategorizedItem,
    BankStatementSummary,
    EnhancedExpenseIncomeSummary
)
from .ingestor import IngestResult, ingest_data_uri, ingest_bytes, to_data_uri
from .aggregator import (
    Aggregator,
    AggregationResult,
    ParsedStatement,
    parse_statement_rows,
    normalize_provider_name,
    provider_key
)

__all__ = [
    "StatementStatus",
    "ItemType",
    "StatementRow",
    "ProviderTransactionSummary",
    "CategorizedItem",
    "BankStatementSummary",
    "EnhancedExpenseIncomeSummary",
    "IngestResult",
    "ingest_data_uri",
    "ingest_bytes",
    "to_data_uri",
    "Aggregator",
    "AggregationResult",
    "ParsedStatement",
    "parse_statement_rows",
    "normalize_provider_name",
    "provider_key"
]
