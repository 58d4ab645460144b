"""
Data models for budget extraction results.
Imports all models for easy access.
"""
from .base import (
    PdfType,
    ExtractionMethod,
    PipelineStage,
    Statistics,
    DocumentClassification,
    PageImage,
    FileValidationResult,
    PreValidationResult,
    CostEstimate,
    ExtractionResult,
)
from .budget import (
    LineItem,
    BudgetItem,
    LaborItem,
    EquipmentItem,
    ProviderItem,
    BudgetSummary,
    UnitExtraction,
    ChunkMetadata,
    Chunk,
    ParsedOk,
    ParsedFallback,
    ParseOutcome,
    ChunkAnalysisResult,
    UnitFailure,
    ConsolidatedData,
)
from .analysis import (
    EstimatedBudget,
    CostBreakdown,
    RiskItem,
    RegionalFactors,
    ProcessingMetadata,
    FinalAnalysis,
    ErrorReport,
    AnalysisResponse,
)

__all__ = [
    # Base models
    'PdfType',
    'ExtractionMethod',
    'PipelineStage',
    'Statistics',
    'DocumentClassification',
    'PageImage',
    'FileValidationResult',
    'PreValidationResult',
    'CostEstimate',
    'ExtractionResult',
    # Budget items and analysis units
    'LineItem',
    'BudgetItem',
    'LaborItem',
    'EquipmentItem',
    'ProviderItem',
    'BudgetSummary',
    'UnitExtraction',
    'ChunkMetadata',
    'Chunk',
    'ParsedOk',
    'ParsedFallback',
    'ParseOutcome',
    'ChunkAnalysisResult',
    'UnitFailure',
    'ConsolidatedData',
    # Final report
    'EstimatedBudget',
    'CostBreakdown',
    'RiskItem',
    'RegionalFactors',
    'ProcessingMetadata',
    'FinalAnalysis',
    'ErrorReport',
    'AnalysisResponse',
]
