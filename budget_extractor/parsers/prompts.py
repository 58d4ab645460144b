"""
Prompt templates for budget extraction.

Every prompt embeds the same JSON schema so chunk, page-batch and whole
document responses validate against one model (``UnitExtraction``).
"""
import json
from typing import Optional

EXTRACTION_SCHEMA = {
    "materials": [
        {
            "name": "material name as written",
            "description": "optional detail",
            "quantity": "number without thousands separators",
            "unit": "m2|m3|ml|kg|ton|und|gl|...",
            "unit_price": "number",
            "subtotal": "number as written in the document",
            "category": "general material category",
        }
    ],
    "labor": [
        {
            "name": "trade or specialty",
            "workers": "number of people",
            "quantity": "total hours",
            "unit": "hours|days",
            "unit_price": "rate per hour or day",
            "subtotal": "number",
        }
    ],
    "equipment": [
        {
            "name": "equipment or machinery type",
            "usage_period": "description of rental time",
            "unit_price": "rate per period",
            "subtotal": "number",
        }
    ],
    "providers": [
        {
            "name": "provider or supplier",
            "contact": "phone or email if present",
            "specialty": "area of specialty",
        }
    ],
    "budget_summary": {
        "document_type": "quote|budget|estimate|...",
        "project_name": "string or null",
        "contractor": "string or null",
        "total_budget": "number or null",
        "currency": "CLP",
    },
    "notes": "short relevant observation",
}

SYSTEM_PROMPT = (
    "You are an expert construction cost analyst who extracts itemized data from "
    "construction budgets and quotes, including Chilean documents written in Spanish. "
    "You answer only with valid JSON."
)

RULES = """CRITICAL RULES:
1. Respond ONLY with a single valid JSON object, no text outside the JSON
2. Use empty arrays [] when a category has no data
3. Write numbers without thousands separators or currency signs (5000, not "$5.000")
4. Copy subtotals exactly as written; do not recompute them
5. Do not invent items that are not in the document"""

SECTION_FOCUS = {
    'materials': 'This section lists MATERIALS. Focus on material names, quantities, units and unit prices.',
    'labor': 'This section lists LABOR. Focus on trades, number of workers, hours and rates.',
    'equipment': 'This section lists EQUIPMENT and machinery. Focus on equipment type, usage period and rates.',
    'subcontracts': 'This section lists SUBCONTRACTS. Report subcontractors as providers and priced lines as materials.',
    'overhead': 'This section lists OVERHEAD costs. Report priced lines as materials with category "overhead".',
    'summary': 'This is the SUMMARY section. Focus on totals and fill budget_summary.',
}
GENERAL_FOCUS = 'Extract every material, labor, equipment and provider entry you can find.'


def _schema_block() -> str:
    return json.dumps(EXTRACTION_SCHEMA, indent=2, ensure_ascii=False)


def build_chunk_prompt(content: str, section_type: str, index: int, total: int) -> str:
    """
    Build the prompt for one text chunk.

    Args:
        content: Chunk text
        section_type: Section label from the chunker
        index: 1-based chunk position
        total: Number of chunks being analyzed

    Returns:
        Prompt string
    """
    focus = SECTION_FOCUS.get(section_type, GENERAL_FOCUS)
    return f"""ANALYZE CHUNK {index}/{total} OF A CONSTRUCTION BUDGET

{focus}

TEXT TO ANALYZE:
{content}

{RULES}

REQUIRED STRUCTURE:
{_schema_block()}"""


def build_batch_prompt(first_page: int, last_page: int, total_pages: Optional[int] = None) -> str:
    """Build the prompt sent with one batch of page images."""
    of_total = f" of {total_pages}" if total_pages else ''
    return f"""These images are pages {first_page}-{last_page}{of_total} of a scanned construction budget.

Read every table and line item visible on these pages. {GENERAL_FOCUS}

{RULES}

REQUIRED STRUCTURE:
{_schema_block()}"""


def build_document_prompt(filename: Optional[str] = None, project_location: Optional[str] = None) -> str:
    """Build the prompt sent with a whole PDF document."""
    context = []
    if filename:
        context.append(f"File: {filename}")
    if project_location:
        context.append(f"Project location: {project_location}")
    header = '\n'.join(context)
    return f"""Analyze this complete construction budget document.
{header}

{GENERAL_FOCUS} Include document-level totals in budget_summary.

{RULES}

REQUIRED STRUCTURE:
{_schema_block()}"""
