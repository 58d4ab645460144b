"""
Models for the composed final analysis handed back to callers.
"""
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field

from .base import (
    CostEstimate,
    ExtractionMethod,
    ExtractionResult,
    PdfType,
    PreValidationResult,
)
from .budget import BudgetItem, LaborItem, EquipmentItem, ProviderItem, UnitFailure


class EstimatedBudget(BaseModel):
    """Budget totals computed from item subtotals."""

    total: float = Field(..., description="Net sum of material, labor and equipment subtotals, discounts included")
    currency: str = 'CLP'
    materials_total: float = 0
    labor_total: float = 0
    equipment_total: float = 0
    materials_percentage: int = 0
    labor_percentage: int = 0
    equipment_percentage: int = 0
    overhead_percentage: int = Field(15, ge=0, le=100)
    declared_total: Optional[float] = Field(
        None,
        description="Total stated by the document itself, when reported"
    )


class CostBreakdown(BaseModel):
    """Direct costs plus standard overhead and profit markups."""

    materials: float = 0
    labor: float = 0
    equipment: float = 0
    overhead: float = 0
    profit: float = 0
    total: float = 0


class RiskItem(BaseModel):
    """One rule-based risk."""

    factor: str
    probability: str = Field(..., pattern='^(high|medium|low)$')
    impact: str = Field(..., pattern='^(high|medium|low)$')
    mitigation: str


class RegionalFactors(BaseModel):
    """Location-dependent guidance."""

    location: Optional[str] = None
    climate: str
    logistics: str
    labor_market: str
    regulations: str
    seismic: Optional[str] = None


class ProcessingMetadata(BaseModel):
    """How the report was produced, for traceability and UI badges."""

    extraction_method: ExtractionMethod
    pdf_type: PdfType
    unit_kind: str = Field(..., pattern='^(document|batch|chunk)$')
    total_units: int = Field(..., ge=0)
    successful_units: int = Field(..., ge=0)
    fallback_units: int = Field(0, ge=0)
    failed_units: List[UnitFailure] = Field(default_factory=list)
    total_batches: Optional[int] = None
    successful_batches: Optional[int] = None
    total_chunks: Optional[int] = None
    successful_chunks: Optional[int] = None
    pages_processed: Optional[int] = None
    extraction_quality: float = Field(0, ge=0, le=100)
    processing_time: float = Field(0, ge=0, description="Seconds from receipt to composition")
    stages: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    cost_estimate: Optional[CostEstimate] = None
    pre_validation: Optional[PreValidationResult] = None


class FinalAnalysis(BaseModel):
    """Composed report for one budget document."""

    executive_summary: str
    estimated_budget: EstimatedBudget
    cost_breakdown: CostBreakdown
    materials: List[BudgetItem] = Field(default_factory=list)
    labor: List[LaborItem] = Field(default_factory=list)
    equipment: List[EquipmentItem] = Field(default_factory=list)
    providers: List[ProviderItem] = Field(default_factory=list)
    risks: List[RiskItem] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    timeline_estimate: str
    regional_factors: RegionalFactors
    confidence_score: int = Field(..., ge=0, le=100)
    processing_metadata: ProcessingMetadata


class ErrorReport(BaseModel):
    """Structured, caller-facing description of a failed analysis."""

    error_code: str
    message: str
    suggestions: List[str] = Field(default_factory=list)
    details: Dict[str, Any] = Field(default_factory=dict)


class AnalysisResponse(BaseModel):
    """Serializable result of ``ExtractionService.analyze``: a report or an error."""

    success: bool
    confidence_score: int = Field(0, ge=0, le=100)
    analysis: Optional[FinalAnalysis] = None
    extraction: Optional[ExtractionResult] = None
    error: Optional[ErrorReport] = None
