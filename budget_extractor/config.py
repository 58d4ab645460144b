"""
Pipeline configuration.

All tunables live on ``PipelineSettings``. ``PipelineSettings.from_env()``
reads API keys and the most common overrides from environment variables.
"""
import os
from typing import Optional

from pydantic import BaseModel, Field, model_validator

MB = 1024 * 1024

DEFAULT_MODELS = {
    'claude': 'claude-sonnet-4-20250514',
    'openai': 'gpt-4o-mini',
}


class PipelineSettings(BaseModel):
    """Tunable limits and collaborators' configuration for one pipeline."""

    # Inference service
    llm_provider: str = Field('claude', pattern='^(claude|openai)$')
    anthropic_api_key: Optional[str] = Field(None, repr=False)
    openai_api_key: Optional[str] = Field(None, repr=False)
    model: Optional[str] = Field(None, description="Model name, provider default when empty")
    max_tokens: int = Field(4000, gt=0)
    temperature: float = Field(0.1, ge=0, le=1)
    request_timeout_seconds: float = Field(60.0, gt=0)
    inference_max_retries: int = Field(
        0, ge=0, le=5,
        description="Extra attempts on rate-limit/overload/transport errors (0 disables retry)"
    )
    inter_call_delay_seconds: float = Field(2.0, ge=0)
    max_payload_bytes: int = Field(32 * MB, gt=0, description="Base64 payload cap for direct calls")

    # File pre-flight
    max_file_bytes: int = Field(30 * MB, gt=0)
    large_file_warning_bytes: int = Field(10 * MB, gt=0)

    # Strategy selection
    direct_analysis_enabled: bool = True
    direct_analysis_max_bytes: int = Field(30 * MB, gt=0)
    native_text_min_chars: int = Field(500, ge=0)
    hybrid_text_min_chars: int = Field(50, ge=0)
    text_fallback_min_chars: int = Field(10, ge=0)

    # Rasterization / page batches
    raster_dpi: int = Field(200, ge=50, le=600)
    raster_max_pages: int = Field(40, gt=0)
    raster_max_dimension: int = Field(1600, gt=0)
    batch_size: int = Field(5, gt=0, le=5)

    # Chunking
    chunk_size: int = Field(15000, gt=0)
    chunk_overlap: int = Field(200, ge=0)
    chunk_boundary_tolerance: int = Field(200, ge=0)
    max_chunks: int = Field(10, gt=0)

    # Cost control and deadline
    max_estimated_cost_usd: Optional[float] = Field(None, gt=0)
    usd_to_local_rate: float = Field(950.0, gt=0)
    pipeline_timeout_seconds: float = Field(600.0, gt=0)

    # Report
    project_location: Optional[str] = 'Chile'
    currency: str = 'CLP'

    @model_validator(mode='after')
    def check_chunk_overlap(self):
        """Overlap must leave room for progress in the sliding window."""
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError('chunk_overlap must be smaller than chunk_size')
        return self

    @property
    def model_name(self) -> str:
        return self.model or DEFAULT_MODELS[self.llm_provider]

    @property
    def api_key(self) -> Optional[str]:
        if self.llm_provider == 'openai':
            return self.openai_api_key
        return self.anthropic_api_key

    @classmethod
    def from_env(cls, **overrides) -> 'PipelineSettings':
        """
        Build settings from environment variables.

        Args:
            **overrides: Explicit values that win over the environment

        Returns:
            PipelineSettings instance
        """
        env_map = {
            'anthropic_api_key': 'ANTHROPIC_API_KEY',
            'openai_api_key': 'OPENAI_API_KEY',
            'llm_provider': 'BUDGET_LLM_PROVIDER',
            'model': 'BUDGET_LLM_MODEL',
            'max_tokens': 'BUDGET_LLM_MAX_TOKENS',
            'temperature': 'BUDGET_LLM_TEMPERATURE',
            'request_timeout_seconds': 'BUDGET_LLM_TIMEOUT',
            'inference_max_retries': 'BUDGET_LLM_MAX_RETRIES',
            'inter_call_delay_seconds': 'BUDGET_INTER_CALL_DELAY',
            'pipeline_timeout_seconds': 'BUDGET_PIPELINE_TIMEOUT',
            'max_estimated_cost_usd': 'BUDGET_MAX_COST_USD',
            'project_location': 'BUDGET_PROJECT_LOCATION',
        }
        values = {}
        for field_name, env_var in env_map.items():
            value = os.getenv(env_var)
            if value:
                values[field_name] = value
        values.update(overrides)
        return cls(**values)
