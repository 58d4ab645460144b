"""
Budget Extractor Package
========================

Turns construction budget and quote PDFs into itemized cost data
(materials, labor, equipment, providers) with an aggregate estimate and
a confidence score.

Main Components:
- extractors: local text extraction, classification and page rasterization
- chunkers: section-aware text chunking
- parsers: pre-validation, inference clients, prompts and response parsing
- models: Data models for type safety
- services: cost estimation, consolidation, report composition and orchestration
- utils: Helper functions
"""

__version__ = "1.0.0"

# Convenience imports for common use cases
from budget_extractor.config import PipelineSettings
from budget_extractor.errors import (
    BudgetExtractionError,
    ClassificationError,
    InferenceError,
    ParseError,
    PipelineError,
    RasterizationError,
    ValidationError,
)
from budget_extractor.services import ExtractionService, ExtractionServiceFactory

__all__ = [
    'PipelineSettings',
    'BudgetExtractionError',
    'ClassificationError',
    'InferenceError',
    'ParseError',
    'PipelineError',
    'RasterizationError',
    'ValidationError',
    'ExtractionService',
    'ExtractionServiceFactory',
]
