"""
Tests for budget item models and response schema validation.
"""
import pytest
from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from budget_extractor.models import (
    BudgetItem,
    BudgetSummary,
    ChunkAnalysisResult,
    EquipmentItem,
    LaborItem,
    ParsedFallback,
    ParsedOk,
    ParseOutcome,
    UnitExtraction,
)
from budget_extractor.config import PipelineSettings
from budget_extractor.utils.helpers import parse_amount


class TestParseAmount:
    @pytest.mark.parametrize('value,expected', [
        ('$5.000', 5000.0),
        ('1.234.567', 1234567.0),
        ('1.234,50', 1234.5),
        ('1,234.50', 1234.5),
        ('2.5', 2.5),
        ('10 sacos', 10.0),
        (42, 42.0),
    ])
    def test_formats(self, value, expected):
        assert parse_amount(value) == expected

    @pytest.mark.parametrize('value', [None, True, 'n/a', '', [], {}])
    def test_unreadable_values(self, value):
        assert parse_amount(value) is None


class TestLineItems:
    def test_missing_subtotal_is_computed(self):
        item = BudgetItem(name='Cemento', quantity=10, unit_price=5000)
        assert item.subtotal == 50000
        assert item.subtotal_computed is True
        assert item.subtotal_matches_product is True

    def test_given_subtotal_is_kept_when_it_differs(self):
        item = BudgetItem.model_validate({'item': 'Arena', 'cantidad': 3, 'precio_unitario': 1000, 'subtotal': 3500})
        assert item.subtotal == 3500
        assert item.subtotal_computed is False
        assert item.subtotal_matches_product is False

    def test_locale_strings_are_coerced(self):
        item = BudgetItem.model_validate({'name': 'Fierro', 'quantity': '1.200', 'unit_price': '$1.500'})
        assert item.quantity == 1200
        assert item.unit_price == 1500
        assert item.subtotal == 1800000

    def test_default_categories(self):
        assert BudgetItem(name='Arena').category == 'materials'
        assert LaborItem(name='Albañil').category == 'labor'
        assert EquipmentItem(name='Betonera').category == 'equipment'

    def test_labor_aliases(self):
        item = LaborItem.model_validate({
            'especialidad': 'Maestro', 'cantidad_personas': '2', 'horas_totales': 80, 'tarifa_hora': 7000,
        })
        assert item.name == 'Maestro'
        assert item.workers == 2
        assert item.subtotal == 560000

    def test_equipment_aliases(self):
        item = EquipmentItem.model_validate({'tipo_equipo': 'Retroexcavadora', 'tiempo_uso': '5 días', 'tarifa_periodo': 90000})
        assert item.name == 'Retroexcavadora'
        assert item.usage_period == '5 días'
        assert item.unit_price == 90000


class TestUnitExtraction:
    def test_invalid_entries_are_dropped_individually(self):
        data = UnitExtraction.model_validate({
            'materials': [{'name': 'Cemento', 'quantity': 10}, {'quantity': 3}, 'garbage'],
            'providers': [{'nombre': 'Sodimac'}],
        })
        assert [m.name for m in data.materials] == ['Cemento']
        assert data.providers[0].name == 'Sodimac'
        assert data.item_count == 2

    def test_spanish_response_keys(self):
        data = UnitExtraction.model_validate({
            'materiales_encontrados': [{'item': 'Grava'}],
            'mano_obra_encontrada': [{'especialidad': 'Jornal'}],
            'equipos_encontrados': [{'tipo_equipo': 'Vibrador'}],
            'proveedores_mencionados': [{'nombre': 'Ferretería Austral'}],
            'observaciones': 'ok',
        })
        assert data.item_count == 4
        assert data.notes == 'ok'

    def test_non_list_item_field_fails_validation(self):
        with pytest.raises(Exception):
            UnitExtraction.model_validate({'materials': 'cemento'})

    def test_assign_origin_keeps_existing(self):
        data = UnitExtraction.model_validate({
            'materials': [{'name': 'Arena', 'section_origin': 'page 2'}, {'name': 'Grava'}],
        })
        data.assign_origin('chunk 1')
        assert [m.section_origin for m in data.materials] == ['page 2', 'chunk 1']


class TestBudgetSummary:
    def test_merge_missing_only_fills_empty_fields(self):
        first = BudgetSummary(project_name='Casa Sur', total_budget='$10.000.000')
        second = BudgetSummary(project_name='Otro', contractor='Constructora X', currency='CLP')
        merged = first.merge_missing(second)
        assert merged.project_name == 'Casa Sur'
        assert merged.contractor == 'Constructora X'
        assert merged.total_budget == 10_000_000
        assert merged.currency == 'CLP'


class TestChunkAnalysisResult:
    def test_from_ok_outcome(self):
        result = ChunkAnalysisResult.from_outcome(ParsedOk(data=UnitExtraction()), 1, 'chunk 1')
        assert result.success and not result.fallback and result.contributes

    def test_from_fallback_outcome(self):
        outcome = ParsedFallback(data=UnitExtraction(emergency=True), reason='Invalid JSON')
        result = ChunkAnalysisResult.from_outcome(outcome, 2, 'chunk 2')
        assert not result.success
        assert result.fallback and result.contributes
        assert result.error == 'Invalid JSON'

    def test_failure_does_not_contribute(self):
        result = ChunkAnalysisResult.failure(3, 'batch 3', 'timeout')
        assert not result.contributes
        assert result.data is None


class TestPipelineSettings:
    def test_defaults(self):
        settings = PipelineSettings()
        assert settings.model_name == 'claude-sonnet-4-20250514'
        assert settings.inference_max_retries == 0
        assert settings.pipeline_timeout_seconds == 600
        assert settings.api_key is None

    def test_overlap_must_be_smaller_than_chunk_size(self):
        with pytest.raises(PydanticValidationError):
            PipelineSettings(chunk_size=100, chunk_overlap=100)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv('BUDGET_LLM_PROVIDER', 'openai')
        monkeypatch.setenv('OPENAI_API_KEY', 'sk-test')
        monkeypatch.setenv('BUDGET_MAX_COST_USD', '0.5')
        settings = PipelineSettings.from_env(inter_call_delay_seconds=0)
        assert settings.api_key == 'sk-test'
        assert settings.model_name == 'gpt-4o-mini'
        assert settings.max_estimated_cost_usd == 0.5
        assert settings.inter_call_delay_seconds == 0


class TestParseOutcome:
    def test_kind_selects_the_variant(self):
        adapter = TypeAdapter(ParseOutcome)
        ok = adapter.validate_python({'kind': 'ok', 'data': {'materials': [{'name': 'Cemento'}]}})
        fallback = adapter.validate_python({'kind': 'fallback', 'data': {}, 'reason': 'Invalid JSON'})
        assert isinstance(ok, ParsedOk)
        assert ok.data.materials[0].name == 'Cemento'
        assert isinstance(fallback, ParsedFallback)
        assert fallback.reason == 'Invalid JSON'
