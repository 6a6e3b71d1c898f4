"""Transaction aggregation by counterparty."""
import csv
import io
import re
import unicodedata
from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .models import (
    BankStatementSummary,
    ProviderTransactionSummary,
    StatementRow,
    StatementStatus,
)
from ..utils.logger import get_logger

logger = get_logger()

# Header aliases, accent-stripped and casefolded. Order sets priority.
HEADER_ALIASES: Dict[str, Tuple[str, ...]] = {
    "provider": (
        "proveedor", "beneficiario", "comercio", "payee", "merchant", "counterparty",
        "concepto", "descripcion", "description", "detalle", "movimiento", "name", "nombre",
    ),
    "amount": ("importe", "amount", "cantidad", "monto", "valor", "value"),
    "debit": ("cargo", "cargos", "debe", "debito", "debit", "gasto", "withdrawal", "salida"),
    "credit": ("abono", "abonos", "haber", "credito", "credit", "ingreso", "deposit", "entrada"),
    "type": ("tipo", "type", "direction", "sentido", "naturaleza"),
    "date": ("fecha", "date", "fecha valor", "fecha operacion"),
}

INCOME_MARKERS = frozenset({"ingreso", "abono", "credito", "credit", "income", "haber", "entrada", "deposit", "+"})
EXPENSE_MARKERS = frozenset({"gasto", "cargo", "debito", "debit", "expense", "debe", "salida", "withdrawal", "-"})

CURRENCY_MARKERS = (
    ("EUR", ("€", "eur")),
    ("USD", ("$", "usd")),
    ("GBP", ("£", "gbp")),
    ("MXN", ("mxn",)),
)

_DATE_LIKE = re.compile(r"^\d{1,4}[/.-]\d{1,2}[/.-]\d{1,4}$")
_AMOUNT_CLEAN = re.compile(r"[^\d,.\-+()]")
_COMMA_DECIMAL = re.compile(r"(?<![.\d])\d{1,3}(?:\.\d{3})*,\d{2}(?![\d,.])")
_DOT_DECIMAL = re.compile(r"(?<![,\d])\d{1,3}(?:,\d{3})*\.\d{2}(?![\d.,])")


def _strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def _normalize_header(cell: str) -> str:
    return " ".join(_strip_accents(cell).casefold().split())


def normalize_provider_name(name: str) -> str:
    """Trim and collapse internal whitespace."""
    return " ".join((name or "").split())


def provider_key(name: str) -> str:
    """Grouping key: normalized name, case-insensitive."""
    return normalize_provider_name(name).casefold()


def parse_amount(raw: str, decimal_comma: Optional[bool] = None) -> Optional[Decimal]:
    """
    Parse a statement amount in either '1.234,56' or '1,234.56' style.

    A lone '1.234' is ambiguous: it reads as 1.234 unless decimal_comma
    says the file writes decimals with a comma, then it reads as 1234.

    Args:
        raw: Cell text, may contain currency symbols and a sign
        decimal_comma: Decimal separator style of the whole file, None when unknown

    Returns:
        Signed Decimal, or None when the cell is not a number
    """
    if raw is None:
        return None
    text = raw.strip()
    if not text:
        return None

    negative = False
    if text.startswith("(") and text.endswith(")"):
        negative = True
        text = text[1:-1]
    if text.endswith("-"):
        negative = True
        text = text[:-1]

    text = _AMOUNT_CLEAN.sub("", text)
    if text.startswith("-"):
        negative = not negative
        text = text[1:]
    elif text.startswith("+"):
        text = text[1:]

    if not text or not any(ch.isdigit() for ch in text):
        return None

    if "," in text and "." in text:
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif "," in text:
        head, _, tail = text.rpartition(",")
        if text.count(",") == 1 and len(tail) in (1, 2):
            text = f"{head}.{tail}"
        else:
            text = text.replace(",", "")
    elif text.count(".") > 1:
        text = text.replace(".", "")
    elif decimal_comma and len(text.rpartition(".")[2]) == 3:
        text = text.replace(".", "")

    try:
        value = Decimal(text)
    except InvalidOperation:
        return None
    return -value if negative else value


def detect_decimal_comma(text: str) -> Optional[bool]:
    """True when the text mostly writes decimals as '12,50', False for '12.50', None when unclear."""
    commas = len(_COMMA_DECIMAL.findall(text))
    dots = len(_DOT_DECIMAL.findall(text))
    if commas == dots:
        return None
    return commas > dots


def detect_currency(text: str) -> Optional[str]:
    """Guess the main currency from symbols and ISO codes in the statement."""
    lowered = text.casefold()
    counts = Counter()
    for code, markers in CURRENCY_MARKERS:
        for marker in markers:
            if marker.isalpha():
                counts[code] += len(re.findall(rf"\b{marker}\b", lowered))
            else:
                counts[code] += lowered.count(marker)
    if not counts or counts.most_common(1)[0][1] == 0:
        return None
    return counts.most_common(1)[0][0]


@dataclass(frozen=True)
class ParsedStatement:
    """Rows decoded from a statement and the count of rows that could not be assigned."""
    rows: Tuple[StatementRow, ...] = ()
    unassigned: int = 0
    detected_currency: Optional[str] = None


@dataclass(frozen=True)
class AggregationResult:
    """Provider summaries split by direction."""
    income: Tuple[ProviderTransactionSummary, ...] = ()
    expenses: Tuple[ProviderTransactionSummary, ...] = ()

    @property
    def total_income(self) -> Decimal:
        return sum((item.total_amount for item in self.income), Decimal("0"))

    @property
    def total_expenses(self) -> Decimal:
        return sum((item.total_amount for item in self.expenses), Decimal("0"))


@dataclass
class _ColumnMap:
    provider: Optional[int] = None
    amount: Optional[int] = None
    debit: Optional[int] = None
    credit: Optional[int] = None
    type: Optional[int] = None
    date: Optional[int] = None
    extra: Dict[str, int] = field(default_factory=dict)

    @property
    def has_money(self) -> bool:
        return self.amount is not None or self.debit is not None or self.credit is not None


def _sniff_dialect(text: str):
    sample = "\n".join(text.splitlines()[:20])
    try:
        return csv.Sniffer().sniff(sample, delimiters=",;\t|")
    except csv.Error:
        delimiter = max(",;\t|", key=sample.count)
        return type("FallbackDialect", (csv.excel,), {"delimiter": delimiter})


def _map_columns(header: List[str]) -> _ColumnMap:
    normalized = [_normalize_header(cell) for cell in header]
    columns = _ColumnMap()
    taken = set()
    for field_name, aliases in HEADER_ALIASES.items():
        for alias in aliases:
            index = next(
                (
                    i for i, cell in enumerate(normalized)
                    if i not in taken and (cell == alias or cell.startswith(alias + " "))
                ),
                None
            )
            if index is not None:
                setattr(columns, field_name, index)
                taken.add(index)
                break
    return columns


def _cell(row: List[str], index: Optional[int]) -> str:
    if index is None or index >= len(row):
        return ""
    return row[index].strip()


def _direction_from_type(value: str) -> Optional[bool]:
    marker = _normalize_header(value)
    if marker in INCOME_MARKERS:
        return True
    if marker in EXPENSE_MARKERS:
        return False
    return None


def _row_from_columns(
    row: List[str],
    columns: _ColumnMap,
    decimal_comma: Optional[bool] = None
) -> Optional[StatementRow]:
    provider = normalize_provider_name(_cell(row, columns.provider))
    date = _cell(row, columns.date)

    if columns.debit is not None or columns.credit is not None:
        credit = parse_amount(_cell(row, columns.credit), decimal_comma)
        debit = parse_amount(_cell(row, columns.debit), decimal_comma)
        if credit:
            amount, is_income = abs(credit), True
        elif debit:
            amount, is_income = abs(debit), False
        elif columns.amount is not None:
            value = parse_amount(_cell(row, columns.amount), decimal_comma)
            if value is None:
                return None
            amount, is_income = abs(value), value > 0
        else:
            return None
    else:
        value = parse_amount(_cell(row, columns.amount), decimal_comma)
        if value is None:
            return None
        direction = _direction_from_type(_cell(row, columns.type)) if columns.type is not None else None
        is_income = direction if direction is not None else value > 0
        amount = abs(value)

    if not provider:
        return None
    return StatementRow(provider=provider, amount=amount, is_income=is_income, date=date)


def _row_without_header(row: List[str], decimal_comma: Optional[bool] = None) -> Optional[StatementRow]:
    """Headerless layout: first text cell is the provider, last numeric cell the amount."""
    provider = ""
    amount = None
    date = ""
    for cell in row:
        text = cell.strip()
        if not text:
            continue
        if _DATE_LIKE.match(text):
            date = date or text
            continue
        value = parse_amount(text, decimal_comma)
        if value is not None and not any(ch.isalpha() for ch in text):
            amount = value
        elif not provider:
            provider = normalize_provider_name(text)
    if not provider or amount is None:
        return None
    return StatementRow(provider=provider, amount=abs(amount), is_income=amount > 0, date=date)


def parse_statement_rows(text: str) -> ParsedStatement:
    """
    Parse decoded CSV statement text into rows.

    Args:
        text: Decoded statement text

    Returns:
        ParsedStatement with rows in file order and the unassigned row count
    """
    if not text or not text.strip():
        return ParsedStatement()

    dialect = _sniff_dialect(text)
    decimal_comma = detect_decimal_comma(text)
    records = [row for row in csv.reader(io.StringIO(text), dialect) if any(cell.strip() for cell in row)]
    if not records:
        return ParsedStatement()

    columns = _map_columns(records[0])
    has_header = columns.has_money and columns.provider is not None
    body = records[1:] if has_header else records

    rows: List[StatementRow] = []
    unassigned = 0
    for record in body:
        if has_header:
            row = _row_from_columns(record, columns, decimal_comma)
        else:
            row = _row_without_header(record, decimal_comma)
        if row is None:
            unassigned += 1
            continue
        if row.amount == 0:
            continue
        rows.append(row)

    logger.debug(
        f"Parsed {len(rows)} statement rows ({unassigned} unassigned, "
        f"header={'yes' if has_header else 'no'}, delimiter={dialect.delimiter!r})"
    )
    return ParsedStatement(rows=tuple(rows), unassigned=unassigned, detected_currency=detect_currency(text))


class Aggregator:
    """Aggregates transactions by counterparty."""

    def aggregate(self, rows: Iterable[StatementRow]) -> AggregationResult:
        """
        Group rows by normalized provider name.

        Args:
            rows: Decoded statement rows

        Returns:
            AggregationResult with one summary per distinct provider and direction
        """
        income: Dict[str, List[Any]] = {}
        expenses: Dict[str, List[Any]] = {}
        row_count = 0

        for row in rows:
            amount = abs(row.amount)
            if amount == 0:
                continue
            bucket = income if row.is_income else expenses
            key = provider_key(row.provider)
            if not key:
                continue
            entry = bucket.setdefault(key, [normalize_provider_name(row.provider), Decimal("0"), 0])
            entry[1] += amount
            entry[2] += 1
            row_count += 1

        result = AggregationResult(
            income=self._to_summaries(income),
            expenses=self._to_summaries(expenses)
        )

        logger.info(
            f"Aggregated {row_count} transactions into {len(result.income)} income and "
            f"{len(result.expenses)} expense providers"
        )
        return result

    def merge_summaries(self, entries: Iterable[Tuple[str, Any, Any]]) -> Tuple[ProviderTransactionSummary, ...]:
        """
        Re-aggregate a provider list produced elsewhere (e.g. by the analysis model).

        Duplicates are merged by provider key, amounts made positive, counts
        clamped to at least 1. Blank names and zero totals are dropped.

        Args:
            entries: (provider_name, total_amount, transaction_count) tuples

        Returns:
            Tuple of ProviderTransactionSummary
        """
        merged: Dict[str, List[Any]] = {}
        for name, amount, count in entries:
            key = provider_key(name)
            if not key:
                logger.debug("Dropping provider entry with blank name")
                continue
            try:
                value = abs(Decimal(str(amount)))
            except InvalidOperation:
                logger.warning(f"Dropping provider '{name}' with invalid amount {amount!r}")
                continue
            if not value.is_finite():
                logger.warning(f"Dropping provider '{name}' with non-finite amount {amount!r}")
                continue
            try:
                count = max(int(count), 1)
            except (TypeError, ValueError):
                count = 1
            entry = merged.setdefault(key, [normalize_provider_name(name), Decimal("0"), 0])
            entry[1] += value
            entry[2] += count

        return self._to_summaries(merged)

    def summarize(self, parsed: ParsedStatement, original_file_name: Optional[str] = None) -> BankStatementSummary:
        """Build a statement summary from locally parsed rows."""
        name = original_file_name or "desconocido"
        result = self.aggregate(parsed.rows)

        if not result.income and not result.expenses:
            if parsed.unassigned:
                return BankStatementSummary(
                    status=StatementStatus.ERROR_PARSING,
                    feedback=f"No se pudieron interpretar las transacciones de '{name}'.",
                    unassigned_transactions=parsed.unassigned
                )
            return BankStatementSummary(
                status=StatementStatus.NO_DATA_IDENTIFIED,
                feedback=f"No se encontraron transacciones financieras en '{name}'."
            )

        currency = parsed.detected_currency
        amounts = f"un ingreso total de {result.total_income} y gastos totales de {result.total_expenses}"
        if currency:
            amounts += f" en moneda {currency}"

        if parsed.unassigned:
            status = StatementStatus.PARTIAL_DATA
            feedback = (
                f"Extracto de '{name}' analizado parcialmente. Se identificó {amounts}. "
                f"{parsed.unassigned} transacciones no pudieron asignarse."
            )
        else:
            status = StatementStatus.SUCCESS
            feedback = (
                f"Extracto de '{name}' analizado correctamente. Se identificó {amounts}. "
                f"El desglose detallado por proveedor está disponible."
            )

        return BankStatementSummary(
            status=status,
            feedback=feedback,
            total_income=result.total_income,
            total_expenses=result.total_expenses,
            detected_currency=currency,
            income_by_provider=result.income,
            expenses_by_provider=result.expenses,
            unassigned_transactions=parsed.unassigned
        )

    @staticmethod
    def _to_summaries(groups: Dict[str, List[Any]]) -> Tuple[ProviderTransactionSummary, ...]:
        return tuple(
            ProviderTransactionSummary(
                provider_name=display_name,
                total_amount=total,
                transaction_count=count
            )
            for display_name, total, count in groups.values()
            if total > 0
        )
