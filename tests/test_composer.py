"""
Tests for final analysis composition rules.
"""
import pytest

from budget_extractor.models import (
    BudgetItem,
    BudgetSummary,
    ConsolidatedData,
    EquipmentItem,
    ExtractionMethod,
    LaborItem,
    PdfType,
    ProviderItem,
    UnitFailure,
)
from budget_extractor.services import FinalAnalysisComposer


def consolidated(**overrides):
    values = dict(
        materials=[BudgetItem(name='Cemento', quantity=10, unit_price=5000)],
        labor=[LaborItem(name='Albañil', subtotal=30000)],
        equipment=[EquipmentItem(name='Betonera', subtotal=20000)],
        providers=[ProviderItem(name='Sodimac')],
        total_units_processed=2,
        successful_units=2,
        extraction_quality=100,
    )
    values.update(overrides)
    return ConsolidatedData(**values)


def compose(data, **kwargs):
    kwargs.setdefault('extraction_method', ExtractionMethod.CHUNKED_TEXT)
    kwargs.setdefault('pdf_type', PdfType.NATIVE_TEXT)
    kwargs.setdefault('unit_kind', 'chunk')
    return FinalAnalysisComposer().compose(data, **kwargs)


class TestBudgetFigures:
    def test_totals_and_percentages(self):
        analysis = compose(consolidated())
        budget = analysis.estimated_budget
        assert budget.total == 100000
        assert (budget.materials_percentage, budget.labor_percentage, budget.equipment_percentage) == (50, 30, 20)
        assert budget.overhead_percentage == 15
        assert budget.currency == 'CLP'

    def test_cost_breakdown(self):
        breakdown = compose(consolidated()).cost_breakdown
        assert breakdown.overhead == 15000
        assert breakdown.profit == 10000
        assert breakdown.total == 125000

    def test_discount_line_lowers_the_total(self):
        data = consolidated(labor=[], equipment=[EquipmentItem(name='Descuento por volumen', subtotal=-20000)])
        analysis = compose(data)
        budget = analysis.estimated_budget
        assert budget.total == 30000
        assert budget.materials_percentage == 167
        assert budget.equipment_percentage == -67
        assert [m.name for m in analysis.materials] == ['Cemento']
        assert analysis.cost_breakdown.total == 37500

    def test_net_negative_total(self):
        data = consolidated(materials=[], labor=[], equipment=[EquipmentItem(name='Nota de crédito', subtotal=-5000)])
        budget = compose(data).estimated_budget
        assert budget.total == -5000
        assert budget.equipment_percentage == 0

    def test_empty_data(self):
        analysis = compose(consolidated(materials=[], labor=[], equipment=[], providers=[], extraction_quality=50))
        assert analysis.estimated_budget.total == 0
        assert analysis.estimated_budget.materials_percentage == 0
        assert 'not contain enough structured information' in analysis.executive_summary
        assert analysis.timeline_estimate.startswith('Requires more information')

    def test_declared_total_and_currency_from_summary(self):
        data = consolidated(budget_summary=BudgetSummary(total_budget=2_000_000, currency='UF', project_name='Casa Sur'))
        analysis = compose(data)
        assert analysis.estimated_budget.declared_total == 2_000_000
        assert analysis.estimated_budget.currency == 'UF'
        assert 'Casa Sur' in analysis.executive_summary


class TestRisksAndRecommendations:
    def factors(self, analysis):
        return [risk.factor for risk in analysis.risks]

    def test_generic_risk_when_nothing_else_applies(self):
        analysis = compose(consolidated())
        assert self.factors(analysis) == ['Material price variability']

    def test_missing_materials_and_labor(self):
        analysis = compose(consolidated(materials=[], labor=[]))
        factors = self.factors(analysis)
        assert 'Missing material detail' in factors
        assert 'Labor not specified' in factors
        assert analysis.risks[0].probability == 'high'

    def test_low_quality_and_partial_coverage(self):
        data = consolidated(
            extraction_quality=40,
            total_units_processed=3,
            failed_units=[UnitFailure(unit_index=2, unit_label='batch 2', error='boom')],
        )
        factors = self.factors(compose(data))
        assert 'Insufficient information quality' in factors
        assert any(f.startswith('Partial document coverage: 1 of 3') for f in factors)

    def test_scale_and_high_budget(self):
        materials = [BudgetItem(name=f"item {i}", subtotal=1_000_000) for i in range(120)]
        analysis = compose(consolidated(materials=materials))
        factors = self.factors(analysis)
        assert any(f.startswith('Large project scope') for f in factors)
        assert 'High budget exposure to price changes' in factors
        assert 'Set up bank guarantees and construction insurance' in analysis.recommendations
        assert 'Use project management software to track the large number of items' in analysis.recommendations

    def test_recommendations(self):
        recommendations = compose(consolidated(extraction_quality=60)).recommendations
        assert recommendations == [
            'Improve the budget format to ease automated analysis',
            'Validate material prices with local suppliers',
            'Request formal quotes from the identified providers',
            'Build a detailed schedule based on the identified items',
        ]


class TestRegionalFactors:
    @pytest.mark.parametrize('location,expected', [
        ('Valdivia', '12%'),
        ('Antofagasta, Chile', '18%'),
        ('santiago', 'base costs'),
    ])
    def test_known_locations(self, location, expected):
        factors = compose(consolidated(), project_location=location).regional_factors
        assert expected in factors.logistics
        assert factors.seismic

    def test_default_location(self):
        factors = compose(consolidated(), project_location='Punta Arenas').regional_factors
        assert 'Punta Arenas' in factors.logistics
        assert factors.seismic is None


class TestProcessingMetadata:
    def test_batch_counts_and_summary_sentence(self):
        data = consolidated(total_units_processed=3, successful_units=2)
        analysis = compose(
            data,
            extraction_method=ExtractionMethod.PAGINATED_VISION,
            pdf_type=PdfType.SCANNED,
            unit_kind='batch',
            pages_processed=12,
        )
        metadata = analysis.processing_metadata
        assert (metadata.total_batches, metadata.successful_batches) == (3, 2)
        assert metadata.total_chunks is None
        assert 'Document of 12 pages analyzed in 3 batches, 2 processed successfully.' in analysis.executive_summary

    def test_chunk_counts(self):
        metadata = compose(consolidated()).processing_metadata
        assert (metadata.total_chunks, metadata.successful_chunks) == (2, 2)
        assert metadata.total_batches is None

    def test_confidence_follows_quality(self):
        assert compose(consolidated(extraction_quality=72.6)).confidence_score == 73
