"""Tests for provider matcher."""
import unittest

from hormiwita.llm.provider_matcher import ProviderMatcher


class TestProviderMatcher(unittest.TestCase):
    """Test ProviderMatcher functionality."""

    def setUp(self):
        """Set up test fixtures."""
        self.matcher = ProviderMatcher(fuzzy_threshold=3)

    def test_add_and_lookup(self):
        """Test adding and looking up providers."""
        self.matcher.add_mapping("Mercadona", "Alimentación: Supermercado y Comestibles")

        result = self.matcher.lookup("Mercadona")
        self.assertEqual(result, "Alimentación: Supermercado y Comestibles")

    def test_normalized_lookup(self):
        """Test that case and spacing do not matter."""
        self.matcher.add_mapping("Bar  Pepe", "Restaurantes y Ocio")
        self.assertEqual(self.matcher.lookup("  BAR PEPE "), "Restaurantes y Ocio")

    def test_fuzzy_match(self):
        """Test fuzzy matching."""
        self.matcher.add_mapping("Mercadona S.A.", "Alimentación: Supermercado y Comestibles")

        # Slight difference should still match
        result = self.matcher.lookup("Mercadona SA")
        self.assertEqual(result, "Alimentación: Supermercado y Comestibles")

    def test_closest_candidate_wins(self):
        """Test that the smallest distance wins among fuzzy candidates."""
        self.matcher.add_mapping("Mercado", "Compras: Grandes Almacenes")
        self.matcher.add_mapping("Mercadona", "Alimentación: Supermercado y Comestibles")

        self.assertEqual(self.matcher.lookup("Mercadonas"), "Alimentación: Supermercado y Comestibles")

    def test_no_match(self):
        """Test that distant names are not matched."""
        self.matcher.add_mapping("Netflix", "Entretenimiento")
        self.assertIsNone(self.matcher.lookup("Iberdrola"))

    def test_excluded_candidates(self):
        """Test that excluded keys are not used for fuzzy matches."""
        self.matcher.add_mapping("Bar A", "Restaurantes y Ocio")

        self.assertIsNone(self.matcher.lookup("Bar B", exclude={"bar a"}))
        self.assertEqual(self.matcher.lookup("Bar B"), "Restaurantes y Ocio")

    def test_first_mapping_wins(self):
        """Test that an existing mapping is not overwritten."""
        self.matcher.add_mapping("Netflix", "Entretenimiento")
        self.matcher.add_mapping("NETFLIX", "Suministros: Plataformas de Streaming / TV de pago")

        self.assertEqual(self.matcher.get_all_mappings(), {"netflix": "Entretenimiento"})
        self.assertIn("netflix", self.matcher)


if __name__ == "__main__":
    unittest.main()
