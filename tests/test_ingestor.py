"""Tests for statement ingestion."""
import base64
import unittest

from hormiwita.statements.ingestor import ingest_bytes, ingest_data_uri, to_data_uri
from hormiwita.statements.models import StatementStatus


class TestIngestDataUri(unittest.TestCase):
    """Test data URI decoding."""

    def test_csv_is_decoded(self):
        """Test that a CSV data URI yields its text."""
        result = ingest_data_uri(to_data_uri("Concepto;Importe\nMercadona;-10,00\n".encode("utf-8")), "oct.csv")

        self.assertTrue(result.ok)
        self.assertIsNone(result.summary)
        self.assertIn("Mercadona", result.text)
        self.assertEqual(result.mime_type, "text/csv")

    def test_bom_is_stripped(self):
        """Test that a UTF-8 BOM does not leak into the text."""
        result = ingest_data_uri(to_data_uri(b"\xef\xbb\xbfFecha,Importe\n"))
        self.assertTrue(result.text.startswith("Fecha"))

    def test_charset_parameter_accepted(self):
        """Test data URIs carrying a charset parameter."""
        payload = base64.b64encode("Nómina,1200".encode("utf-8")).decode("ascii")
        result = ingest_data_uri(f"data:text/csv;charset=utf-8;base64,{payload}")
        self.assertEqual(result.text, "Nómina,1200")

    def test_malformed_uri(self):
        """Test that a string without the data URI shape is a parsing error."""
        result = ingest_data_uri("just some text", "raro.csv")

        self.assertFalse(result.ok)
        self.assertEqual(result.summary.status, StatementStatus.ERROR_PARSING)
        self.assertIn("raro.csv", result.summary.feedback)

    def test_invalid_base64(self):
        """Test that broken base64 content is a parsing error."""
        result = ingest_data_uri("data:text/csv;base64,@@@###", "roto.csv")
        self.assertEqual(result.summary.status, StatementStatus.ERROR_PARSING)

    def test_excel_is_unsupported(self):
        """Test that Excel uploads ask for a CSV export."""
        uri = to_data_uri(b"PK\x03\x04", "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet")
        result = ingest_data_uri(uri, "extracto.xlsx")

        self.assertEqual(result.summary.status, StatementStatus.UNSUPPORTED_FILE_TYPE)
        self.assertIn("CSV", result.summary.feedback)

    def test_other_mime_is_unsupported(self):
        """Test that non-text MIME types are rejected."""
        result = ingest_data_uri(to_data_uri(b"%PDF-1.4", "application/pdf"), "extracto.pdf")
        self.assertEqual(result.summary.status, StatementStatus.UNSUPPORTED_FILE_TYPE)

        # MIME type is checked before the payload is decoded
        result = ingest_data_uri("data:image/png;base64,@@not-base64@@", "foto.png")
        self.assertEqual(result.summary.status, StatementStatus.UNSUPPORTED_FILE_TYPE)
        self.assertIn("image/png", result.summary.feedback)

    def test_empty_content(self):
        """Test that blank content reports no data."""
        result = ingest_data_uri(to_data_uri(b"  \n\n"), "vacio.csv")
        self.assertEqual(result.summary.status, StatementStatus.NO_DATA_IDENTIFIED)


class TestIngestBytes(unittest.TestCase):
    """Test raw byte decoding."""

    def test_size_limit(self):
        """Test that oversized payloads are rejected."""
        result = ingest_bytes(b"x" * 11, "text/csv", "grande.csv", max_bytes=10)

        self.assertEqual(result.summary.status, StatementStatus.UNSUPPORTED_FILE_TYPE)
        self.assertIn("grande.csv", result.summary.feedback)

    def test_size_limit_disabled(self):
        """Test that max_bytes=None disables the size check."""
        result = ingest_bytes(b"a,1\n" * 100, "text/csv", max_bytes=None)
        self.assertTrue(result.ok)

    def test_invalid_utf8(self):
        """Test that undecodable bytes are a parsing error."""
        result = ingest_bytes(b"\xff\xfe\xfa\x00", "text/csv", "latin.csv")
        self.assertEqual(result.summary.status, StatementStatus.ERROR_PARSING)

    def test_mime_type_case_insensitive(self):
        """Test that MIME types are compared case-insensitively."""
        result = ingest_bytes(b"a,1", "TEXT/CSV")
        self.assertTrue(result.ok)


if __name__ == "__main__":
    unittest.main()
