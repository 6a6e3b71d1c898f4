"""Data models for statement analysis."""
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple

from ..utils.exceptions import ValidationError


def to_decimal(value: Any) -> Decimal:
    """Convert JSON numbers and strings to Decimal without float noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"Invalid amount: {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(f"Invalid amount: {value!r}")


def _optional_decimal(value: Any) -> Optional[Decimal]:
    return None if value is None else to_decimal(value)


def _number(value: Optional[Decimal]) -> Optional[float]:
    return None if value is None else float(value)


class StatementStatus(str, Enum):
    """Terminal status of a statement analysis."""
    SUCCESS = "Success"
    PARTIAL_DATA = "Partial Data"
    ERROR_PARSING = "Error Parsing"
    NO_DATA_IDENTIFIED = "No Data Identified"
    UNSUPPORTED_FILE_TYPE = "Unsupported File Type"

    @property
    def allows_categorization(self) -> bool:
        return self in (StatementStatus.SUCCESS, StatementStatus.PARTIAL_DATA)


class ItemType(str, Enum):
    """Which side of the ledger a batch of providers belongs to."""
    INCOME = "income"
    EXPENSE = "expense"


@dataclass(frozen=True)
class StatementRow:
    """A single decoded statement line."""
    provider: str
    amount: Decimal
    is_income: bool
    date: str = ""


@dataclass(frozen=True)
class ProviderTransactionSummary:
    """Transactions of one counterparty, aggregated."""
    provider_name: str
    total_amount: Decimal
    transaction_count: int

    def __post_init__(self):
        object.__setattr__(self, "total_amount", to_decimal(self.total_amount))
        if not self.provider_name or not self.provider_name.strip():
            raise ValidationError("Provider name cannot be empty")
        if self.total_amount <= 0:
            raise ValidationError(
                f"Total amount for '{self.provider_name}' must be positive, got {self.total_amount}"
            )
        if self.transaction_count < 1:
            raise ValidationError(
                f"Transaction count for '{self.provider_name}' must be at least 1"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "providerName": self.provider_name,
            "totalAmount": float(self.total_amount),
            "transactionCount": self.transaction_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProviderTransactionSummary":
        return cls(
            provider_name=data["providerName"],
            total_amount=to_decimal(data["totalAmount"]),
            transaction_count=int(data["transactionCount"]),
        )


@dataclass(frozen=True)
class CategorizedItem(ProviderTransactionSummary):
    """Provider summary with the category assigned by the categorizer."""
    suggested_category: str = ""

    def __post_init__(self):
        super().__post_init__()
        if not self.suggested_category or not self.suggested_category.strip():
            raise ValidationError(f"Category for '{self.provider_name}' cannot be empty")

    @classmethod
    def from_summary(cls, summary: ProviderTransactionSummary, category: str) -> "CategorizedItem":
        return cls(
            provider_name=summary.provider_name,
            total_amount=summary.total_amount,
            transaction_count=summary.transaction_count,
            suggested_category=category,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["suggestedCategory"] = self.suggested_category
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CategorizedItem":
        return cls(
            provider_name=data["providerName"],
            total_amount=to_decimal(data["totalAmount"]),
            transaction_count=int(data["transactionCount"]),
            suggested_category=data["suggestedCategory"],
        )


def _as_tuple(items: Optional[Iterable]) -> Optional[tuple]:
    return None if items is None else tuple(items)


@dataclass(frozen=True)
class BankStatementSummary:
    """Result of analyzing one uploaded statement file."""
    status: StatementStatus
    feedback: str
    total_income: Optional[Decimal] = None
    total_expenses: Optional[Decimal] = None
    detected_currency: Optional[str] = None
    income_by_provider: Optional[Tuple[ProviderTransactionSummary, ...]] = None
    expenses_by_provider: Optional[Tuple[ProviderTransactionSummary, ...]] = None
    unassigned_transactions: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, "status", StatementStatus(self.status))
        object.__setattr__(self, "total_income", _optional_decimal(self.total_income))
        object.__setattr__(self, "total_expenses", _optional_decimal(self.total_expenses))
        object.__setattr__(self, "income_by_provider", _as_tuple(self.income_by_provider))
        object.__setattr__(self, "expenses_by_provider", _as_tuple(self.expenses_by_provider))

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"status": self.status.value, "feedback": self.feedback}
        if self.total_income is not None:
            data["totalIncome"] = _number(self.total_income)
        if self.total_expenses is not None:
            data["totalExpenses"] = _number(self.total_expenses)
        if self.detected_currency:
            data["detectedCurrency"] = self.detected_currency
        if self.income_by_provider is not None:
            data["incomeByProvider"] = [item.to_dict() for item in self.income_by_provider]
        if self.expenses_by_provider is not None:
            data["expensesByProvider"] = [item.to_dict() for item in self.expenses_by_provider]
        if self.unassigned_transactions is not None:
            data["unassignedTransactions"] = self.unassigned_transactions
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BankStatementSummary":
        try:
            status = StatementStatus(data["status"])
        except ValueError:
            raise ValidationError(f"Unknown statement status: {data.get('status')!r}")

        def _providers(key: str):
            items = data.get(key)
            if items is None:
                return None
            return tuple(ProviderTransactionSummary.from_dict(item) for item in items)

        return cls(
            status=status,
            feedback=data.get("feedback", ""),
            total_income=data.get("totalIncome"),
            total_expenses=data.get("totalExpenses"),
            detected_currency=data.get("detectedCurrency"),
            income_by_provider=_providers("incomeByProvider"),
            expenses_by_provider=_providers("expensesByProvider"),
            unassigned_transactions=data.get("unassignedTransactions"),
        )


@dataclass(frozen=True)
class EnhancedExpenseIncomeSummary:
    """Statement summary together with the categorized provider lists."""
    original_summary: BankStatementSummary
    categorized_income_items: Optional[Tuple[CategorizedItem, ...]] = None
    categorized_expense_items: Optional[Tuple[CategorizedItem, ...]] = None

    def __post_init__(self):
        object.__setattr__(self, "categorized_income_items", _as_tuple(self.categorized_income_items))
        object.__setattr__(self, "categorized_expense_items", _as_tuple(self.categorized_expense_items))

    def to_dict(self) -> Dict[str, Any]:
        def _items(items):
            return None if items is None else [item.to_dict() for item in items]

        return {
            "originalSummary": self.original_summary.to_dict(),
            "categorizedIncomeItems": _items(self.categorized_income_items),
            "categorizedExpenseItems": _items(self.categorized_expense_items),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EnhancedExpenseIncomeSummary":
        def _items(key: str):
            items = data.get(key)
            if items is None:
                return None
            return tuple(CategorizedItem.from_dict(item) for item in items)

        return cls(
            original_summary=BankStatementSummary.from_dict(data["originalSummary"]),
            categorized_income_items=_items("categorizedIncomeItems"),
            categorized_expense_items=_items("categorizedExpenseItems"),
        )
