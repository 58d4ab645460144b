"""
Parsing of free-form inference responses into validated unit data.
"""
import json
import logging
import re
from typing import Any, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from budget_extractor.errors import ParseError
from budget_extractor.models import (
    BudgetItem,
    ChunkAnalysisResult,
    ParsedFallback,
    ParsedOk,
    ParseOutcome,
    UnitExtraction,
)
from budget_extractor.utils.helpers import snippet

logger = logging.getLogger(__name__)

FENCE_PATTERN = re.compile(r'```(?:json|JSON)?')
FALLBACK_PRICE_PATTERN = re.compile(r'\$[\d.,]+|\d{1,3}(?:[.,]\d{3})+')
FALLBACK_MATERIALS = (
    'cemento', 'arena', 'grava', 'ladrillo', 'acero', 'fierro', 'madera', 'pintura',
    'cement', 'sand', 'gravel', 'brick', 'steel', 'rebar', 'wood', 'paint',
)
FALLBACK_MATERIAL_PATTERN = re.compile(
    r'\b(' + '|'.join(FALLBACK_MATERIALS) + r')\b',
    re.IGNORECASE
)
MAX_FALLBACK_ITEMS = 5
SNIPPET_LENGTH = 200


def find_json_object(text: str) -> Optional[str]:
    """
    Return the first balanced ``{...}`` block of ``text``.

    Braces inside JSON strings (including escaped quotes) are ignored. The
    text is scanned once; an opening brace that is never closed does not
    hide a balanced block after it.
    """
    start = text.find('{')
    if start == -1:
        return None

    opened = []
    best = None
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        char = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif char == '\\':
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char == '{':
            opened.append(i)
        elif char == '}' and opened:
            block_start = opened.pop()
            if not opened:
                return text[block_start:i + 1]
            # Still inside an unclosed brace, keep the earliest closed block
            if best is None or block_start < best[0]:
                best = (block_start, i + 1)
    return text[best[0]:best[1]] if best else None


def fallback_extract(text: str) -> UnitExtraction:
    """
    Recover what little can be read from an unparseable response.

    Detects price-like tokens and up to five distinct common material names.
    """
    text = text or ''
    prices = FALLBACK_PRICE_PATTERN.findall(text)

    materials = []
    seen = set()
    for match in FALLBACK_MATERIAL_PATTERN.finditer(text):
        name = match.group(1).lower()
        if name in seen:
            continue
        seen.add(name)
        materials.append(BudgetItem(name=name, unit='und', category='basic_material'))
        if len(materials) >= MAX_FALLBACK_ITEMS:
            break

    notes = 'Emergency extraction - invalid JSON'
    if prices:
        notes += f" - {len(prices)} prices detected"

    return UnitExtraction(materials=materials, notes=notes, emergency=True)


class ResponseParser:
    """Turn raw response text into ``ParsedOk`` or ``ParsedFallback``."""

    def parse_payload(self, raw: str) -> Dict[str, Any]:
        """
        Extract the JSON object from a response.

        Raises:
            ParseError: No JSON object, invalid JSON or not an object
        """
        if not raw or not raw.strip():
            raise ParseError('Empty response')
        cleaned = FENCE_PATTERN.sub('', raw).strip()
        candidate = find_json_object(cleaned)
        if candidate is None:
            raise ParseError('No JSON object found in response')
        try:
            payload = json.loads(candidate)
        except json.JSONDecodeError as e:
            raise ParseError(f"Invalid JSON: {e.msg} at position {e.pos}") from e
        except RecursionError as e:
            raise ParseError('Invalid JSON: nesting too deep') from e
        if not isinstance(payload, dict):
            raise ParseError('Response JSON is not an object')
        return payload

    def parse(self, raw: str) -> ParseOutcome:
        """
        Parse and validate a response. Never raises.

        Args:
            raw: Raw response text from the inference service

        Returns:
            ParsedOk with validated data, or ParsedFallback with heuristically
            recovered data and the reason the primary path failed
        """
        try:
            payload = self.parse_payload(raw)
            data = UnitExtraction.model_validate(payload)
        except ParseError as e:
            return ParsedFallback(data=fallback_extract(raw), reason=e.message)
        except PydanticValidationError as e:
            return ParsedFallback(
                data=fallback_extract(raw),
                reason=f"Response failed schema validation: {e.error_count()} error(s)"
            )
        except Exception as e:
            logger.warning(f"Unexpected error parsing response: {e}", exc_info=True)
            return ParsedFallback(data=fallback_extract(raw), reason=f"Unexpected parse error: {e}")
        return ParsedOk(data=data)

    def analyze(self, raw: str, unit_index: int, unit_label: str) -> ChunkAnalysisResult:
        """
        Parse the response for one unit and wrap it as a ChunkAnalysisResult.

        Items without an origin are tagged with ``unit_label``.
        """
        outcome = self.parse(raw)
        outcome.data.assign_origin(unit_label)
        if isinstance(outcome, ParsedFallback):
            logger.warning(f"Unit {unit_index} ({unit_label}) parsed with fallback: {outcome.reason}")
        else:
            logger.debug(f"Unit {unit_index} ({unit_label}) parsed: {outcome.data.item_count} item(s)")
        return ChunkAnalysisResult.from_outcome(
            outcome,
            unit_index=unit_index,
            unit_label=unit_label,
            raw_response_snippet=snippet(raw, SNIPPET_LENGTH),
        )
