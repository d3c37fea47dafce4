# parts_replenishment/services/__init__.py

from .data_service import DataService
from .narrative_service import (
    NarrativeService, NarrativeContext, RuleBasedNarrativeService,
    LLMNarrativeService, create_narrative_service
)
from .recommendation_service import RecommendationService
from .session_memory import SessionContext

__all__ = [
    'DataService',
    'NarrativeService',
    'NarrativeContext',
    'RuleBasedNarrativeService',
    'LLMNarrativeService',
    'create_narrative_service',
    'RecommendationService',
    'SessionContext'
]
