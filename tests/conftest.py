"""
Shared fixtures for budget extractor tests.

Provides a scripted inference client, settings without delays and minimal
PDF buffers. No network access and no poppler installation are needed.
"""
import json
from typing import Callable, List, Sequence, Union
from unittest.mock import Mock

import pytest

from budget_extractor.config import PipelineSettings
from budget_extractor.models import PageImage
from budget_extractor.parsers import InferenceClient

PDF_BYTES = b'%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\ntrailer\n<< /Root 1 0 R >>\n%%EOF\n'

Reply = Union[str, Exception, Callable[[], str]]


class ScriptedClient(InferenceClient):
    """Inference client returning queued replies and recording each call."""

    def __init__(self, replies: Sequence[Reply] = (), default: str = '{}', **kwargs):
        super().__init__(**kwargs)
        self.replies: List[Reply] = list(replies)
        self.default = default
        self.calls = []

    def _next(self, kind: str, prompt: str, payload=None) -> str:
        self.calls.append({'kind': kind, 'prompt': prompt, 'payload': payload})
        reply = self.replies.pop(0) if self.replies else self.default
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply()
        return reply

    def _send_text(self, prompt: str) -> str:
        return self._next('text', prompt)

    def _send_images(self, prompt: str, images: Sequence[PageImage]) -> str:
        return self._next('images', prompt, [image.page_number for image in images])

    def _send_document(self, prompt: str, pdf_base64: str) -> str:
        return self._next('document', prompt, len(pdf_base64))


def budget_json(materials=None, labor=None, equipment=None, providers=None, **extra) -> str:
    payload = {
        'materials': materials or [],
        'labor': labor or [],
        'equipment': equipment or [],
        'providers': providers or [],
    }
    payload.update(extra)
    return json.dumps(payload)


@pytest.fixture
def settings():
    """Settings with no inter-call delay and no API key lookups."""
    return PipelineSettings(inter_call_delay_seconds=0, anthropic_api_key='test-key')


@pytest.fixture
def pdf_bytes():
    return PDF_BYTES


@pytest.fixture
def scripted_client():
    """Factory for ScriptedClient instances."""
    def make(*replies, **kwargs):
        return ScriptedClient(replies, **kwargs)
    return make


@pytest.fixture
def text_extractor():
    """Factory for a mocked PDFTextExtractor returning the given page texts."""
    def make(*page_texts):
        extractor = Mock()
        extractor.extract_text.return_value = [
            {'page_num': i, 'text': text, 'width': 612, 'height': 792, 'tables': []}
            for i, text in enumerate(page_texts, start=1)
        ]
        return extractor
    return make


@pytest.fixture
def page_images():
    """Factory for fake rasterized pages."""
    def make(count: int):
        return [PageImage(page_number=i, data=b'\x89PNG fake page %d' % i) for i in range(1, count + 1)]
    return make
