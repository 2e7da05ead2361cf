"""
Services wiring the entity store to the workflow and compliance layers.
"""

from .cycle import EvaluationCycleService

__all__ = [
    'EvaluationCycleService',
]
