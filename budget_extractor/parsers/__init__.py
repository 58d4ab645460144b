"""
Parsing modules: pre-validation, inference clients, prompts and response parsing.
"""
from .prevalidator import PreValidator
from .llm import (
    InferenceClient,
    ClaudeClient,
    OpenAIClient,
    classify_inference_error,
    create_inference_client,
)
from .response import ResponseParser, fallback_extract, find_json_object

__all__ = [
    'PreValidator',
    'InferenceClient',
    'ClaudeClient',
    'OpenAIClient',
    'classify_inference_error',
    'create_inference_client',
    'ResponseParser',
    'fallback_extract',
    'find_json_object',
]
