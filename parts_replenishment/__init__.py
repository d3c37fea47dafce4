from .config import config
from .db import db, session_scope
from .logging_setup import logger, get_logger
from .exceptions import (
    ReplenishmentError, ConfigError, DataStoreError, ValidationError, CalculationError,
    RecommendationError, PartNotFoundError, NoSuppliersError, NarrativeServiceError
)

__version__ = '0.1.0'

__all__ = [
    'config',
    'db',
    'session_scope',
    'logger',
    'get_logger',
    'ReplenishmentError',
    'ConfigError',
    'DataStoreError',
    'ValidationError',
    'CalculationError',
    'RecommendationError',
    'PartNotFoundError',
    'NoSuppliersError',
    'NarrativeServiceError'
]
