"""
Deterministic composition of the final budget report.
"""
import logging
from typing import List, Optional

from budget_extractor.models import (
    ConsolidatedData,
    CostBreakdown,
    CostEstimate,
    EstimatedBudget,
    ExtractionMethod,
    FinalAnalysis,
    PdfType,
    PreValidationResult,
    ProcessingMetadata,
    RegionalFactors,
    RiskItem,
)

logger = logging.getLogger(__name__)

OVERHEAD_RATE = 0.15
PROFIT_RATE = 0.10
LARGE_ITEM_COUNT = 100
MANY_ITEMS = 50
LOW_QUALITY = 50
IMPROVABLE_QUALITY = 70
HIGH_BUDGET = 100_000_000
GUARANTEE_BUDGET = 50_000_000

REGIONAL_FACTORS = {
    'valdivia': {
        'climate': 'Rainy region, about 45 days of rain per year: plan weather protection and seasonality',
        'logistics': 'Distance from Santiago adds about 12% to transport costs',
        'labor_market': 'Limited availability of specialized labor, about +15%',
        'regulations': 'Comply with Chilean standards (NCh, OGUC) and local permits',
        'seismic': 'Seismic zone 3, reinforcement required',
    },
    'santiago': {
        'climate': 'Stable, no critical climate factors',
        'logistics': 'Main distribution center, base costs',
        'labor_market': 'Wide labor availability, competitive prices',
        'regulations': 'Comply with Chilean standards (NCh, OGUC) and municipal permits',
        'seismic': 'Seismic zone 2-3, strict standards',
    },
    'antofagasta': {
        'climate': 'Arid: consider UV and wind protection',
        'logistics': 'Nearby port but about +18% logistics cost compared to Santiago',
        'labor_market': 'High mining-sector demand, about +25% labor cost',
        'regulations': 'Comply with Chilean standards (NCh, OGUC) and local permits',
        'seismic': 'Seismic zone 2, high standards',
    },
}


def _subtotal_sum(items) -> float:
    return sum(item.subtotal or 0 for item in items)


def _percentage(part: float, total: float) -> int:
    return round(part / total * 100) if total > 0 else 0


class FinalAnalysisComposer:
    """Build a FinalAnalysis from consolidated data with fixed rules."""

    def __init__(self, currency: str = 'CLP', default_location: Optional[str] = None):
        self.currency = currency
        self.default_location = default_location

    def compose(
        self,
        data: ConsolidatedData,
        extraction_method: ExtractionMethod,
        pdf_type: PdfType,
        unit_kind: str,
        project_location: Optional[str] = None,
        pages_processed: Optional[int] = None,
        processing_time: float = 0.0,
        stages: Optional[List[str]] = None,
        warnings: Optional[List[str]] = None,
        cost_estimate: Optional[CostEstimate] = None,
        pre_validation: Optional[PreValidationResult] = None
    ) -> FinalAnalysis:
        """
        Compose the final report.

        Args:
            data: Consolidated unit data
            extraction_method: Strategy that produced ``data``
            pdf_type: Document classification
            unit_kind: 'document', 'batch' or 'chunk'
            project_location: Location used for regional factors
            pages_processed: Number of rasterized pages, paged strategy only
            processing_time: Seconds spent so far
            stages: Pipeline stage trace
            warnings: Non-fatal conditions to report
            cost_estimate: Pre-flight cost estimate
            pre_validation: Pre-validation result, text strategy only

        Returns:
            FinalAnalysis
        """
        metadata = self.processing_metadata(
            data, extraction_method, pdf_type, unit_kind,
            pages_processed=pages_processed,
            processing_time=processing_time,
            stages=stages,
            warnings=warnings,
            cost_estimate=cost_estimate,
            pre_validation=pre_validation,
        )
        budget = self.estimated_budget(data)
        analysis = FinalAnalysis(
            executive_summary=self.executive_summary(data, metadata),
            estimated_budget=budget,
            cost_breakdown=self.cost_breakdown(data),
            materials=data.materials,
            labor=data.labor,
            equipment=data.equipment,
            providers=data.providers,
            risks=self.risks(data, budget),
            recommendations=self.recommendations(data, budget),
            timeline_estimate=self.timeline_estimate(data),
            regional_factors=self.regional_factors(project_location or self.default_location),
            confidence_score=round(data.extraction_quality),
            processing_metadata=metadata,
        )
        logger.info(
            f"Composed analysis: {data.item_count} item(s), total {budget.total:,.0f} {budget.currency}, "
            f"confidence {analysis.confidence_score}"
        )
        return analysis

    def processing_metadata(
        self,
        data: ConsolidatedData,
        extraction_method: ExtractionMethod,
        pdf_type: PdfType,
        unit_kind: str,
        **context
    ) -> ProcessingMetadata:
        counts = {}
        if unit_kind == 'batch':
            counts = {'total_batches': data.total_units_processed, 'successful_batches': data.successful_units}
        elif unit_kind == 'chunk':
            counts = {'total_chunks': data.total_units_processed, 'successful_chunks': data.successful_units}
        return ProcessingMetadata(
            extraction_method=extraction_method,
            pdf_type=pdf_type,
            unit_kind=unit_kind,
            total_units=data.total_units_processed,
            successful_units=data.successful_units,
            fallback_units=data.fallback_units,
            failed_units=data.failed_units,
            extraction_quality=data.extraction_quality,
            pages_processed=context.get('pages_processed'),
            processing_time=round(context.get('processing_time') or 0.0, 3),
            stages=list(context.get('stages') or []),
            warnings=list(context.get('warnings') or []),
            cost_estimate=context.get('cost_estimate'),
            pre_validation=context.get('pre_validation'),
            **counts,
        )

    def executive_summary(self, data: ConsolidatedData, metadata: ProcessingMetadata) -> str:
        if not data.item_count:
            summary = (
                'The analyzed budget does not contain enough structured information for a detailed '
                'analysis. A document with more budget detail is required.'
            )
        else:
            summary = (
                f"Analysis completed. Identified {len(data.materials)} materials, "
                f"{len(data.labor)} labor entries, {len(data.equipment)} equipment entries and "
                f"{len(data.providers)} providers. The level of detail allows preliminary estimates."
            )

        facts = data.budget_summary
        if facts is not None:
            if facts.project_name:
                summary += f" Project: {facts.project_name}."
            if facts.contractor:
                summary += f" Contractor: {facts.contractor}."
            if facts.total_budget:
                summary += f" Declared total: {facts.total_budget:,.0f} {facts.currency or self.currency}."

        if metadata.unit_kind == 'batch':
            pages = f"{metadata.pages_processed} pages" if metadata.pages_processed else 'The document'
            summary += (
                f" Document of {pages} analyzed in {metadata.total_batches} batches, "
                f"{metadata.successful_batches} processed successfully."
            )
        if data.failed_units:
            summary += ' Manual review is recommended to validate completeness.'
        return summary

    def estimated_budget(self, data: ConsolidatedData) -> EstimatedBudget:
        materials = _subtotal_sum(data.materials)
        labor = _subtotal_sum(data.labor)
        equipment = _subtotal_sum(data.equipment)
        total = materials + labor + equipment
        declared = data.budget_summary.total_budget if data.budget_summary else None
        currency = (data.budget_summary.currency if data.budget_summary else None) or self.currency
        return EstimatedBudget(
            total=total,
            currency=currency,
            materials_total=materials,
            labor_total=labor,
            equipment_total=equipment,
            materials_percentage=_percentage(materials, total),
            labor_percentage=_percentage(labor, total),
            equipment_percentage=_percentage(equipment, total),
            overhead_percentage=round(OVERHEAD_RATE * 100),
            declared_total=declared,
        )

    def cost_breakdown(self, data: ConsolidatedData) -> CostBreakdown:
        materials = _subtotal_sum(data.materials)
        labor = _subtotal_sum(data.labor)
        equipment = _subtotal_sum(data.equipment)
        direct = materials + labor + equipment
        return CostBreakdown(
            materials=materials,
            labor=labor,
            equipment=equipment,
            overhead=round(direct * OVERHEAD_RATE),
            profit=round(direct * PROFIT_RATE),
            total=round(direct * (1 + OVERHEAD_RATE + PROFIT_RATE)),
        )

    def risks(self, data: ConsolidatedData, budget: EstimatedBudget) -> List[RiskItem]:
        risks = []
        if not data.materials:
            risks.append(RiskItem(
                factor='Missing material detail',
                probability='high',
                impact='high',
                mitigation='Request a detailed material list with technical specifications',
            ))
        if not data.labor:
            risks.append(RiskItem(
                factor='Labor not specified',
                probability='high',
                impact='medium',
                mitigation='Define trades and required man-hours',
            ))
        if data.extraction_quality < LOW_QUALITY:
            risks.append(RiskItem(
                factor='Insufficient information quality',
                probability='high',
                impact='high',
                mitigation='Provide the budget in a more structured format (spreadsheet, detailed table)',
            ))
        if data.failed_units:
            risks.append(RiskItem(
                factor=(
                    f"Partial document coverage: {len(data.failed_units)} of "
                    f"{data.total_units_processed} units could not be analyzed"
                ),
                probability='medium',
                impact='medium',
                mitigation='Manually review the sections that could not be analyzed',
            ))
        if data.item_count > LARGE_ITEM_COUNT:
            risks.append(RiskItem(
                factor=f"Large project scope ({data.item_count} items)",
                probability='medium',
                impact='high',
                mitigation='Split procurement into phases and track items with project management tools',
            ))
        if max(budget.total, budget.declared_total or 0) > HIGH_BUDGET:
            risks.append(RiskItem(
                factor='High budget exposure to price changes',
                probability='medium',
                impact='high',
                mitigation='Include price adjustment clauses and contingency reserves',
            ))
        if not risks:
            risks.append(RiskItem(
                factor='Material price variability',
                probability='medium',
                impact='medium',
                mitigation='Lock prices with suppliers and keep a contingency margin',
            ))
        return risks

    def recommendations(self, data: ConsolidatedData, budget: EstimatedBudget) -> List[str]:
        recommendations = []
        if data.extraction_quality < IMPROVABLE_QUALITY:
            recommendations.append('Improve the budget format to ease automated analysis')
        if data.materials:
            recommendations.append('Validate material prices with local suppliers')
        if data.providers:
            recommendations.append('Request formal quotes from the identified providers')
        if data.item_count > MANY_ITEMS:
            recommendations.append('Use project management software to track the large number of items')
        if max(budget.total, budget.declared_total or 0) > GUARANTEE_BUDGET:
            recommendations.append('Set up bank guarantees and construction insurance')
        recommendations.append('Build a detailed schedule based on the identified items')
        return recommendations

    def timeline_estimate(self, data: ConsolidatedData) -> str:
        if not data.item_count:
            return 'Requires more information to estimate a schedule'
        return 'Preliminary estimate: 8-12 weeks based on the identified items'

    def regional_factors(self, location: Optional[str]) -> RegionalFactors:
        key = (location or '').lower()
        for city, factors in REGIONAL_FACTORS.items():
            if city in key:
                return RegionalFactors(location=location, **factors)
        where = location or 'the project location'
        return RegionalFactors(
            location=location,
            climate='Consider local climate conditions when planning the works',
            logistics=f"Evaluate transport costs for {where}",
            labor_market='Check availability of specialized labor in the region',
            regulations='Comply with local construction regulations and permits',
        )
