"""Hormiwita: personal finance onboarding, statement categorization and savings forecasts."""

__version__ = "0.1.0"
