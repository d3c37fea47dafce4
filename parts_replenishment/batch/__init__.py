# parts_replenishment/batch/__init__.py

from .recommendation_job import run_recommendation_batch, make_session_generator

__all__ = [
    'run_recommendation_batch',
    'make_session_generator'
]
