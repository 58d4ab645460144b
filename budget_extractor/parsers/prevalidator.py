"""
Heuristic check of how budget-like extracted text is.
"""
import logging
import re

from budget_extractor.models import PreValidationResult

logger = logging.getLogger(__name__)

# One pattern per keyword category, Spanish and English vocabulary
BUDGET_INDICATORS = {
    'pricing': re.compile(r'precio|valor|costo|total|subtotal|suma|price|cost|amount', re.IGNORECASE),
    'materials': re.compile(r'materiales?|insumos?|materials?|supplies', re.IGNORECASE),
    'labor': re.compile(r'mano\s+de\s+obra|trabajador|obrero|labou?r|workers?|crew', re.IGNORECASE),
    'equipment': re.compile(r'equipos?|maquinaria|herramientas?|equipment|machinery|tools?', re.IGNORECASE),
    'currency': re.compile(r'\$|\bclp\b|\bpesos?\b|\busd\b|\buf\b', re.IGNORECASE),
    'units': re.compile(r'cantidad|unidad|quantity|\bunit\b|m²|m2\b|m3\b|\bml\b|\bkg\b|\bton\b|\bgl\b', re.IGNORECASE),
    'line_items': re.compile(r'partida|\bitem\b|ítem|line\s+item', re.IGNORECASE),
}

PRICE_PATTERN = re.compile(r'\$\s?\d[\d.,]*|\b\d{1,3}(?:[.,]\d{3})+(?:,\d{1,2})?\b|\b\d{4,}\b')
TABLE_PATTERN = re.compile(r'\||\t| {3,}')

MIN_INDICATORS = 3
MIN_PRICES = 5
INDICATOR_WEIGHT = 15
PRICE_WEIGHT = 2
TABLE_BONUS = 10


class PreValidator:
    """
    Score extracted text for budget-likeness before expensive analysis.

    The result is informational: callers record it and decide, nothing here
    blocks processing.
    """

    def __init__(self, min_indicators: int = MIN_INDICATORS, min_prices: int = MIN_PRICES):
        self.min_indicators = min_indicators
        self.min_prices = min_prices

    def validate(self, text: str) -> PreValidationResult:
        """
        Count keyword categories and price-like tokens in ``text``.

        Args:
            text: Extracted document text

        Returns:
            PreValidationResult
        """
        text = text or ''
        indicators = sum(1 for pattern in BUDGET_INDICATORS.values() if pattern.search(text))
        prices = len(PRICE_PATTERN.findall(text))
        has_table = bool(TABLE_PATTERN.search(text))

        unmet = []
        if indicators < self.min_indicators:
            unmet.append(
                f"Not enough budget indicators: found {indicators} keyword "
                f"categor{'y' if indicators == 1 else 'ies'}, need {self.min_indicators}"
            )
        if prices < self.min_prices:
            unmet.append(
                f"Not enough numeric values: found {prices} price-like "
                f"token{'' if prices == 1 else 's'}, need {self.min_prices}"
            )
        recommendation = '; '.join(unmet) or 'Document suitable for analysis'

        confidence = indicators * INDICATOR_WEIGHT + prices * PRICE_WEIGHT
        if has_table:
            confidence += TABLE_BONUS

        result = PreValidationResult(
            is_analyzable=indicators >= self.min_indicators and prices >= self.min_prices,
            confidence=min(100, confidence),
            recommendation=recommendation,
            indicators=indicators,
            prices=prices,
            has_table_structure=has_table,
        )
        logger.debug(f"Pre-validation: {result.model_dump()}")
        return result
