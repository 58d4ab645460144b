"""
Tests for the budget-likeness pre-validator.
"""
from budget_extractor.parsers import PreValidator

BUDGET_TEXT = """PRESUPUESTO OBRA GRUESA
Partida | Material | Cantidad | Precio unitario | Total
1 | Cemento | 10 sacos | $5.000 | $50.000
2 | Arena | 3 m3 | $18.000 | $54.000
3 | Mano de obra albañil | 40 h | $7.500 | $300.000
Equipo: betonera arriendo $45.000
"""


class TestPreValidator:
    def test_budget_text_is_analyzable(self):
        result = PreValidator().validate(BUDGET_TEXT)
        assert result.is_analyzable
        assert result.indicators >= 3
        assert result.prices >= 5
        assert result.has_table_structure
        assert result.recommendation == 'Document suitable for analysis'

    def test_zero_evidence_is_not_analyzable(self):
        result = PreValidator().validate('Acta de reunión del comité de vecinos, sin más antecedentes.')
        assert not result.is_analyzable
        assert result.indicators == 0
        assert result.prices == 0
        assert result.confidence == 0
        assert result.recommendation == (
            'Not enough budget indicators: found 0 keyword categories, need 3; '
            'Not enough numeric values: found 0 price-like tokens, need 5'
        )

    def test_empty_text(self):
        result = PreValidator().validate('')
        assert not result.is_analyzable
        assert result.confidence == 0

    def test_too_few_indicators_names_keyword_threshold(self):
        text = 'Valores: $1.000 $2.000 $3.000 $4.000 $5.000 $6.000'
        result = PreValidator().validate(text)
        assert not result.is_analyzable
        assert result.indicators < 3
        assert 'budget indicators' in result.recommendation

    def test_too_few_prices_names_numeric_threshold(self):
        text = 'Listado de materiales y mano de obra con precio por unidad y equipo, total $1.000'
        result = PreValidator().validate(text)
        assert not result.is_analyzable
        assert result.indicators >= 3
        assert result.prices < 5
        assert 'numeric values' in result.recommendation

    def test_confidence_is_capped(self):
        text = BUDGET_TEXT * 20
        assert PreValidator().validate(text).confidence == 100

    def test_confidence_formula(self):
        text = 'precio material 1.000 2.000'
        result = PreValidator().validate(text)
        assert not result.has_table_structure
        assert result.confidence == result.indicators * 15 + result.prices * 2
