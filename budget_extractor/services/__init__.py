"""
Service classes for orchestrating budget analysis workflows.
"""
from .cost_estimator import CostEstimator
from .consolidator import Consolidator
from .composer import FinalAnalysisComposer
from .extraction_service import (
    AnalysisStrategy,
    DirectAnalysisStrategy,
    PagedAnalysisStrategy,
    ChunkedTextStrategy,
    DocumentContext,
    UnitRunner,
    ExtractionService,
    ExtractionServiceFactory,
)

__all__ = [
    'CostEstimator',
    'Consolidator',
    'FinalAnalysisComposer',
    'AnalysisStrategy',
    'DirectAnalysisStrategy',
    'PagedAnalysisStrategy',
    'ChunkedTextStrategy',
    'DocumentContext',
    'UnitRunner',
    'ExtractionService',
    'ExtractionServiceFactory',
]
