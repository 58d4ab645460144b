"""
Models for budget line items, analysis units and consolidated results.
"""
import logging
from typing import Annotated, Optional, List, Union, Literal
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
    model_validator,
)

from budget_extractor.utils.helpers import parse_amount

logger = logging.getLogger(__name__)


class LineItem(BaseModel):
    """Common fields of every priced budget line."""

    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    name: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices('name', 'item', 'material', 'description'),
        description="Item name as written in the source document"
    )
    description: Optional[str] = None
    quantity: Optional[float] = Field(
        None,
        validation_alias=AliasChoices('quantity', 'qty', 'cantidad')
    )
    unit: Optional[str] = Field(None, validation_alias=AliasChoices('unit', 'unidad'))
    unit_price: Optional[float] = Field(
        None,
        validation_alias=AliasChoices('unit_price', 'price', 'precio_unitario')
    )
    subtotal: Optional[float] = Field(None, validation_alias=AliasChoices('subtotal', 'total'))
    subtotal_computed: bool = Field(
        False,
        description="True when subtotal was missing and filled from quantity * unit_price"
    )
    category: str = Field('general', validation_alias=AliasChoices('category', 'categoria'))
    section_origin: Optional[str] = Field(
        None,
        description="Chunk or page batch the item was extracted from"
    )

    @field_validator('name', 'unit', 'description', mode='before')
    @classmethod
    def clean_text(cls, v):
        """Strip whitespace, stringify scalars."""
        if v is None:
            return v
        if not isinstance(v, str):
            v = str(v)
        v = v.strip()
        return v or None

    @field_validator('quantity', 'unit_price', 'subtotal', mode='before')
    @classmethod
    def clean_amount(cls, v):
        """Accept numbers or locale-formatted strings; unreadable values become None."""
        return parse_amount(v)

    @field_validator('category', mode='before')
    @classmethod
    def clean_category(cls, v):
        if not v:
            return 'general'
        return str(v).strip().lower()

    @model_validator(mode='after')
    def fill_missing_subtotal(self):
        """Compute a missing subtotal; a subtotal given by the source is never replaced."""
        if self.subtotal is None and self.quantity is not None and self.unit_price is not None:
            self.subtotal = self.quantity * self.unit_price
            self.subtotal_computed = True
        return self

    @property
    def subtotal_matches_product(self) -> Optional[bool]:
        """Whether subtotal equals quantity * unit_price (None when not comparable)."""
        if self.subtotal is None or self.quantity is None or self.unit_price is None:
            return None
        return abs(self.subtotal - self.quantity * self.unit_price) < 0.01


class BudgetItem(LineItem):
    """Material line of a budget."""

    category: str = Field('materials', validation_alias=AliasChoices('category', 'categoria'))


class LaborItem(LineItem):
    """Labor line: a trade or crew with hours and rate."""

    name: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices('name', 'specialty', 'role', 'trade', 'especialidad', 'description')
    )
    quantity: Optional[float] = Field(
        None,
        validation_alias=AliasChoices('quantity', 'hours', 'total_hours', 'horas_totales')
    )
    unit_price: Optional[float] = Field(
        None,
        validation_alias=AliasChoices('unit_price', 'hourly_rate', 'rate', 'tarifa_hora')
    )
    workers: Optional[int] = Field(
        None,
        validation_alias=AliasChoices('workers', 'crew_size', 'cantidad_personas')
    )
    category: str = Field('labor', validation_alias=AliasChoices('category', 'categoria'))

    @field_validator('workers', mode='before')
    @classmethod
    def clean_workers(cls, v):
        amount = parse_amount(v)
        return int(amount) if amount is not None else None


class EquipmentItem(LineItem):
    """Equipment or machinery line, usually a rental over a period."""

    name: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices('name', 'equipment_type', 'equipment', 'tipo_equipo', 'description')
    )
    unit_price: Optional[float] = Field(
        None,
        validation_alias=AliasChoices('unit_price', 'period_rate', 'rate', 'tarifa_periodo')
    )
    usage_period: Optional[str] = Field(
        None,
        validation_alias=AliasChoices('usage_period', 'usage_time', 'tiempo_uso')
    )
    category: str = Field('equipment', validation_alias=AliasChoices('category', 'categoria'))

    @field_validator('usage_period', mode='before')
    @classmethod
    def clean_usage_period(cls, v):
        return str(v).strip() if v is not None else None


class ProviderItem(BaseModel):
    """Supplier or contractor mentioned in the document."""

    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    name: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices('name', 'provider', 'supplier', 'nombre')
    )
    contact: Optional[str] = Field(None, validation_alias=AliasChoices('contact', 'contacto'))
    specialty: Optional[str] = Field(None, validation_alias=AliasChoices('specialty', 'especialidad'))
    category: str = 'provider'
    section_origin: Optional[str] = None

    @field_validator('name', 'contact', 'specialty', mode='before')
    @classmethod
    def clean_text(cls, v):
        if v is None:
            return v
        v = str(v).strip()
        return v or None


class BudgetSummary(BaseModel):
    """Document-level facts the inference service may report."""

    model_config = ConfigDict(extra='ignore')

    document_type: Optional[str] = None
    project_name: Optional[str] = None
    contractor: Optional[str] = None
    total_budget: Optional[float] = None
    currency: Optional[str] = None

    @field_validator('total_budget', mode='before')
    @classmethod
    def clean_total(cls, v):
        return parse_amount(v)

    @field_validator('document_type', 'project_name', 'contractor', 'currency', mode='before')
    @classmethod
    def clean_text(cls, v):
        if v is None:
            return v
        v = str(v).strip()
        return v or None

    def merge_missing(self, other: 'BudgetSummary') -> 'BudgetSummary':
        """Return a copy with empty fields filled from ``other``."""
        update = {
            name: getattr(other, name)
            for name in type(self).model_fields
            if getattr(self, name) is None and getattr(other, name) is not None
        }
        return self.model_copy(update=update)


class UnitExtraction(BaseModel):
    """Validated structured data extracted from one chunk, page batch or document."""

    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    materials: List[BudgetItem] = Field(
        default_factory=list,
        validation_alias=AliasChoices('materials', 'materiales', 'materiales_encontrados')
    )
    labor: List[LaborItem] = Field(
        default_factory=list,
        validation_alias=AliasChoices('labor', 'labour', 'mano_obra', 'mano_obra_encontrada')
    )
    equipment: List[EquipmentItem] = Field(
        default_factory=list,
        validation_alias=AliasChoices('equipment', 'equipos', 'equipos_encontrados')
    )
    providers: List[ProviderItem] = Field(
        default_factory=list,
        validation_alias=AliasChoices('providers', 'suppliers', 'proveedores', 'proveedores_mencionados')
    )
    budget_summary: Optional[BudgetSummary] = None
    notes: Optional[str] = Field(None, validation_alias=AliasChoices('notes', 'observations', 'observaciones'))
    emergency: bool = Field(False, description="Built by the fallback extractor")

    @field_validator('materials', 'labor', 'equipment', 'providers', mode='before')
    @classmethod
    def validate_item_list(cls, v, info: ValidationInfo):
        """Validate entries one by one so a single bad record does not discard the unit."""
        if v is None:
            return []
        if isinstance(v, dict):
            v = [v]
        if not isinstance(v, list):
            raise ValueError(f"{info.field_name} must be a list")

        item_type = ITEM_TYPES[info.field_name]
        items = []
        for entry in v:
            if isinstance(entry, item_type):
                items.append(entry)
                continue
            if not isinstance(entry, dict):
                continue
            try:
                items.append(item_type.model_validate(entry))
            except ValidationError as e:
                logger.debug(f"Dropping invalid {info.field_name} entry {entry!r}: {e.error_count()} error(s)")
        return items

    @field_validator('budget_summary', mode='before')
    @classmethod
    def validate_summary(cls, v):
        return v if isinstance(v, (dict, BudgetSummary)) else None

    @field_validator('notes', mode='before')
    @classmethod
    def validate_notes(cls, v):
        if v is None or isinstance(v, str):
            return v
        return str(v)

    @property
    def item_count(self) -> int:
        return len(self.materials) + len(self.labor) + len(self.equipment) + len(self.providers)

    def assign_origin(self, origin: str) -> None:
        """Tag every item that has no origin yet with ``origin``."""
        for items in (self.materials, self.labor, self.equipment, self.providers):
            for item in items:
                if not item.section_origin:
                    item.section_origin = origin


ITEM_TYPES = {
    'materials': BudgetItem,
    'labor': LaborItem,
    'equipment': EquipmentItem,
    'providers': ProviderItem,
}


class ChunkMetadata(BaseModel):
    """Where a chunk came from in the source text."""

    section: str = Field(..., description="Section header line, or 'general'")
    sub_index: Optional[int] = Field(None, ge=1)
    sub_total: Optional[int] = Field(None, ge=1)
    start_char: int = Field(0, ge=0, description="Offset of the chunk inside its section")


class Chunk(BaseModel):
    """Bounded, section-aware slice of text sent to the inference service."""

    type: str = Field(..., description="Section type: materials, labor, equipment, ...")
    content: str
    metadata: ChunkMetadata

    @property
    def label(self) -> str:
        if self.metadata.sub_index:
            return f"{self.type} {self.metadata.sub_index}/{self.metadata.sub_total}"
        return self.type


class ParsedOk(BaseModel):
    """Response parsed and validated against the extraction schema."""

    kind: Literal['ok'] = 'ok'
    data: UnitExtraction


class ParsedFallback(BaseModel):
    """Response could not be parsed; data recovered by regex heuristics."""

    kind: Literal['fallback'] = 'fallback'
    data: UnitExtraction
    reason: str


ParseOutcome = Annotated[Union[ParsedOk, ParsedFallback], Field(discriminator='kind')]


class ChunkAnalysisResult(BaseModel):
    """Outcome of analyzing one unit (chunk, page batch or whole document)."""

    unit_index: int = Field(..., ge=1)
    unit_label: str
    success: bool
    fallback: bool = False
    data: Optional[UnitExtraction] = None
    error: Optional[str] = None
    raw_response_snippet: Optional[str] = None

    @property
    def contributes(self) -> bool:
        """Whether this unit's data takes part in consolidation."""
        return self.data is not None and (self.success or self.fallback)

    @classmethod
    def from_outcome(
        cls,
        outcome: ParseOutcome,
        unit_index: int,
        unit_label: str,
        raw_response_snippet: Optional[str] = None
    ) -> 'ChunkAnalysisResult':
        if isinstance(outcome, ParsedOk):
            return cls(
                unit_index=unit_index,
                unit_label=unit_label,
                success=True,
                data=outcome.data,
                raw_response_snippet=raw_response_snippet,
            )
        return cls(
            unit_index=unit_index,
            unit_label=unit_label,
            success=False,
            fallback=True,
            data=outcome.data,
            error=outcome.reason,
            raw_response_snippet=raw_response_snippet,
        )

    @classmethod
    def failure(cls, unit_index: int, unit_label: str, error: str) -> 'ChunkAnalysisResult':
        return cls(unit_index=unit_index, unit_label=unit_label, success=False, error=error)


class UnitFailure(BaseModel):
    """A unit that contributed nothing, kept for traceability."""

    unit_index: int
    unit_label: str
    error: Optional[str] = None


class ConsolidatedData(BaseModel):
    """Merged, fault-isolated result of every unit of one document."""

    materials: List[BudgetItem] = Field(default_factory=list)
    labor: List[LaborItem] = Field(default_factory=list)
    equipment: List[EquipmentItem] = Field(default_factory=list)
    providers: List[ProviderItem] = Field(default_factory=list)
    budget_summary: Optional[BudgetSummary] = None
    notes: List[str] = Field(default_factory=list)
    total_units_processed: int = Field(0, ge=0)
    successful_units: int = Field(0, ge=0)
    fallback_units: int = Field(0, ge=0)
    failed_units: List[UnitFailure] = Field(default_factory=list)
    extraction_quality: float = Field(0, ge=0, le=100)

    @property
    def item_count(self) -> int:
        """Priced items (materials, labor and equipment)."""
        return len(self.materials) + len(self.labor) + len(self.equipment)

    @property
    def success_ratio(self) -> float:
        if not self.total_units_processed:
            return 0.0
        return self.successful_units / self.total_units_processed
