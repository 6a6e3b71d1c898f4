"""Statement file ingestion: data URI parsing and text decoding."""
import base64
import binascii
import re
from dataclasses import dataclass
from typing import Optional

from .models import BankStatementSummary, StatementStatus
from ..utils.logger import get_logger

logger = get_logger()

DATA_URI_PATTERN = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)(?P<params>(;[\w-]+=[^;,]+)*);base64,(?P<data>.*)$", re.DOTALL)

EXCEL_MIME_TYPES = frozenset({
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-excel",
})

DEFAULT_MAX_BYTES = 5 * 1024 * 1024


@dataclass(frozen=True)
class IngestResult:
    """Either decoded statement text or a terminal summary."""
    text: Optional[str] = None
    summary: Optional[BankStatementSummary] = None
    mime_type: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.summary is None


def _display_name(original_file_name: Optional[str]) -> str:
    return original_file_name or "desconocido"


def _terminal(status: StatementStatus, feedback: str, mime_type: Optional[str] = None) -> IngestResult:
    return IngestResult(summary=BankStatementSummary(status=status, feedback=feedback), mime_type=mime_type)


def _check_mime(mime_type: str, name: str) -> Optional[IngestResult]:
    """Terminal result for MIME types that are not statement text, else None."""
    if mime_type in EXCEL_MIME_TYPES:
        logger.info(f"Excel statement {name} declined, CSV export required")
        return _terminal(
            StatementStatus.UNSUPPORTED_FILE_TYPE,
            f"El archivo '{name}' es una hoja de cálculo Excel. Expórtalo como CSV "
            f"(Archivo > Guardar como > CSV) y vuelve a subirlo.",
            mime_type
        )

    if not mime_type.startswith("text/"):
        logger.info(f"Unsupported MIME type {mime_type} for {name}")
        return _terminal(
            StatementStatus.UNSUPPORTED_FILE_TYPE,
            f"Tipo de archivo no soportado ({mime_type}) para '{name}'. "
            f"Formatos admitidos: CSV (.csv).",
            mime_type
        )

    return None


def to_data_uri(raw: bytes, mime_type: str = "text/csv") -> str:
    """Encode raw file bytes as a base64 data URI."""
    return f"data:{mime_type};base64,{base64.b64encode(raw).decode('ascii')}"


def ingest_data_uri(
    data_uri: str,
    original_file_name: Optional[str] = None,
    max_bytes: Optional[int] = DEFAULT_MAX_BYTES
) -> IngestResult:
    """
    Decode a statement data URI into text.

    Args:
        data_uri: 'data:<mime>;base64,<data>' string
        original_file_name: Uploaded file name, used in feedback messages
        max_bytes: Upload size limit, None disables the check

    Returns:
        IngestResult with text, or with a terminal BankStatementSummary
    """
    name = _display_name(original_file_name)
    match = DATA_URI_PATTERN.match(data_uri or "")
    if not match:
        logger.warning(f"Malformed data URI received for {name}: {(data_uri or '')[:60]!r}")
        return _terminal(
            StatementStatus.ERROR_PARSING,
            f"Formato de Data URI inválido. Se esperaba un Data URI en base64 (ej., text/csv). "
            f"Archivo original: {name}."
        )

    mime_type = match.group("mime").lower()
    rejected = _check_mime(mime_type, name)
    if rejected is not None:
        return rejected

    try:
        raw = base64.b64decode(match.group("data").strip(), validate=True)
    except (binascii.Error, ValueError) as e:
        logger.warning(f"Base64 decoding failed for {name}: {e}")
        return _terminal(
            StatementStatus.ERROR_PARSING,
            f"Falló la decodificación del contenido Base64 del archivo '{name}'. "
            f"Los datos del archivo podrían estar corruptos o no codificados correctamente.",
            mime_type
        )

    return ingest_bytes(raw, mime_type, original_file_name, max_bytes)


def ingest_bytes(
    raw: bytes,
    mime_type: str,
    original_file_name: Optional[str] = None,
    max_bytes: Optional[int] = DEFAULT_MAX_BYTES
) -> IngestResult:
    """Decode raw statement bytes of the given MIME type into text."""
    name = _display_name(original_file_name)
    mime_type = mime_type.lower()

    if max_bytes is not None and len(raw) > max_bytes:
        logger.warning(f"Statement {name} rejected: {len(raw)} bytes exceeds {max_bytes}")
        return _terminal(
            StatementStatus.UNSUPPORTED_FILE_TYPE,
            f"El archivo '{name}' es demasiado grande. Por favor, sube un archivo menor a "
            f"{max_bytes // (1024 * 1024)}MB.",
            mime_type
        )

    rejected = _check_mime(mime_type, name)
    if rejected is not None:
        return rejected

    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        logger.warning(f"UTF-8 decoding failed for {name}: {e}")
        return _terminal(
            StatementStatus.ERROR_PARSING,
            f"El archivo '{name}' no contiene texto UTF-8 válido.",
            mime_type
        )

    if not text.strip():
        return _terminal(
            StatementStatus.NO_DATA_IDENTIFIED,
            f"El archivo '{name}' fue procesado, pero no se pudo extraer contenido textual o estaba vacío.",
            mime_type
        )

    logger.debug(f"Decoded {len(raw)} bytes of {mime_type} from {name}")
    return IngestResult(text=text, mime_type=mime_type)
