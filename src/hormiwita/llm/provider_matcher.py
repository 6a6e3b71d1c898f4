"""Provider-to-category lookup with fuzzy matching."""
from typing import Dict, Iterable, Optional, Tuple

import Levenshtein

from ..statements.aggregator import provider_key
from ..utils.logger import get_logger

logger = get_logger()


class ProviderMatcher:
    """Maps provider names to categories, tolerating small spelling drift."""

    def __init__(self, fuzzy_threshold: int = 3):
        """
        Initialize provider matcher.

        Args:
            fuzzy_threshold: Maximum Levenshtein distance for fuzzy match
        """
        self.fuzzy_threshold = fuzzy_threshold
        self._mappings: Dict[str, str] = {}

    def lookup(self, provider: str, exclude: Iterable[str] = ()) -> Optional[str]:
        """
        Look up category for provider.

        Args:
            provider: Provider name
            exclude: Keys that must not be used as fuzzy candidates

        Returns:
            Category name or None if not found
        """
        key = provider_key(provider)

        # Try exact match
        if key in self._mappings:
            logger.debug(f"Exact provider match: {provider} -> {self._mappings[key]}")
            return self._mappings[key]

        # Try fuzzy match, closest candidate wins
        excluded = set(exclude)
        best: Optional[Tuple[int, str]] = None
        for cached_key in self._mappings:
            if cached_key in excluded:
                continue
            distance = Levenshtein.distance(key, cached_key)
            if distance <= self.fuzzy_threshold and (best is None or distance < best[0]):
                best = (distance, cached_key)

        if best is not None:
            category = self._mappings[best[1]]
            logger.debug(
                f"Fuzzy provider match: {provider} -> {best[1]} "
                f"(distance: {best[0]}) -> {category}"
            )
            return category

        logger.debug(f"No provider match found for: {provider}")
        return None

    def add_mapping(self, provider: str, category: str) -> None:
        """
        Add provider-to-category mapping. The first mapping for a key wins.

        Args:
            provider: Provider name
            category: Category name
        """
        key = provider_key(provider)
        if key and key not in self._mappings:
            self._mappings[key] = category
            logger.debug(f"Added provider mapping: {provider} -> {category}")

    def get_all_mappings(self) -> Dict[str, str]:
        """Get all provider -> category mappings."""
        return dict(self._mappings)

    def __contains__(self, provider: str) -> bool:
        return provider_key(provider) in self._mappings
