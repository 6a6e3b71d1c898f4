"""LLM adapters module."""
from .client import GeminiClient, parse_json_response
from .provider_matcher import ProviderMatcher
from .categorizer import CategorizationResult, ProviderCategorizer, load_category_catalogue
from .statement_analyzer import StatementAnalyzer
from .dialogue import DialogueOracle
from .roadmap_generator import RoadmapGenerator
from .guided_flow import FLOW_PROMPTS, FlowStream, GuidedFlowOracle

__all__ = [
    "GeminiClient",
    "parse_json_response",
    "ProviderMatcher",
    "CategorizationResult",
    "ProviderCategorizer",
    "load_category_catalogue",
    "StatementAnalyzer",
    "DialogueOracle",
    "RoadmapGenerator",
    "FLOW_PROMPTS",
    "FlowStream",
    "GuidedFlowOracle"
]
