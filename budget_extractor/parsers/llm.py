"""
Inference service clients (Claude / GPT) used to analyze budget content.
"""
import base64
import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_random_exponential

from budget_extractor.config import PipelineSettings
from budget_extractor.errors import InferenceCategory, InferenceError
from budget_extractor.models import PageImage
from .prompts import SYSTEM_PROMPT

logger = logging.getLogger(__name__)

MAX_IMAGES_PER_CALL = 5
RETRY_WAIT = wait_random_exponential(multiplier=1, max=30)


def classify_inference_error(exc: Exception) -> InferenceError:
    """
    Convert an SDK exception into an InferenceError with a category.

    The category comes from the HTTP status when the SDK exposes one and
    from known substrings of the message otherwise.
    """
    if isinstance(exc, InferenceError):
        return exc

    message = str(exc) or exc.__class__.__name__
    text = f"{exc.__class__.__name__} {message}".lower()
    status = getattr(exc, 'status_code', None)

    if status == 401 or 'api key' in text or 'api_key' in text or 'authentication' in text:
        category = InferenceCategory.AUTHENTICATION
    elif status == 429 or 'rate limit' in text or 'ratelimit' in text:
        category = InferenceCategory.RATE_LIMIT
    elif status == 529 or 'overloaded' in text:
        category = InferenceCategory.OVERLOADED
    elif status == 413 or 'too large' in text:
        category = InferenceCategory.PAYLOAD_TOO_LARGE
    elif 'timeout' in text or 'timed out' in text or 'connection' in text:
        category = InferenceCategory.TRANSPORT
    else:
        category = InferenceCategory.UNKNOWN

    details = {'status_code': status} if status is not None else None
    return InferenceError(message, category=category, details=details)


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, InferenceError) and exc.retryable


class InferenceClient(ABC):
    """
    Boundary to the external inference service.

    Subclasses implement the ``_send_*`` methods for one SDK. The public
    ``analyze_*`` methods enforce payload limits, convert SDK exceptions to
    ``InferenceError`` and apply the optional bounded retry.
    """

    retry_wait = RETRY_WAIT

    def __init__(
        self,
        max_payload_bytes: int = 32 * 1024 * 1024,
        max_retries: int = 0,
        max_images: int = MAX_IMAGES_PER_CALL
    ):
        self.max_payload_bytes = max_payload_bytes
        self.max_retries = max_retries
        self.max_images = max_images

    @abstractmethod
    def _send_text(self, prompt: str) -> str:
        """Send a text prompt, return the raw response text."""

    @abstractmethod
    def _send_images(self, prompt: str, images: Sequence[PageImage]) -> str:
        """Send a prompt with an ordered batch of page images."""

    @abstractmethod
    def _send_document(self, prompt: str, pdf_base64: str) -> str:
        """Send a prompt with a whole base64-encoded PDF."""

    def analyze_text(self, prompt: str) -> str:
        return self._call(self._send_text, prompt)

    def analyze_images(self, prompt: str, images: Sequence[PageImage]) -> str:
        """
        Analyze a batch of page images.

        Raises:
            ValueError: Empty batch or more images than allowed per call
            InferenceError: Service failure
        """
        if not images:
            raise ValueError('analyze_images needs at least one image')
        if len(images) > self.max_images:
            raise ValueError(f"At most {self.max_images} images per call, got {len(images)}")
        return self._call(self._send_images, prompt, list(images))

    def analyze_document(self, prompt: str, pdf_bytes: bytes) -> str:
        """
        Analyze a whole PDF document in one call.

        Raises:
            InferenceError: Payload above ``max_payload_bytes`` once encoded, or service failure
        """
        pdf_base64 = base64.b64encode(pdf_bytes).decode('ascii')
        if len(pdf_base64) > self.max_payload_bytes:
            raise InferenceError(
                f"Document payload of {len(pdf_base64)} bytes exceeds the {self.max_payload_bytes} byte limit",
                category=InferenceCategory.PAYLOAD_TOO_LARGE,
                details={'payload_bytes': len(pdf_base64)},
            )
        return self._call(self._send_document, prompt, pdf_base64)

    def _call(self, send, *args) -> str:
        retrying = Retrying(
            retry=retry_if_exception(_is_retryable),
            stop=stop_after_attempt(self.max_retries + 1),
            wait=self.retry_wait,
            reraise=True,
        )
        for attempt in retrying:
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.warning(f"Retrying inference call (attempt {attempt.retry_state.attempt_number})")
                try:
                    return send(*args)
                except InferenceError:
                    raise
                except Exception as e:
                    raise classify_inference_error(e) from e


class ClaudeClient(InferenceClient):
    """Analyze budget content using Anthropic Claude models."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "claude-sonnet-4-20250514",
        max_tokens: int = 4000,
        temperature: float = 0.1,
        timeout: float = 60.0,
        **kwargs
    ):
        """
        Initialize Claude client.

        Args:
            api_key: Anthropic API key
            model: Model name to use
            max_tokens: Response token limit
            temperature: Sampling temperature
            timeout: Per-request timeout in seconds
            **kwargs: Limits passed to InferenceClient
        """
        super().__init__(**kwargs)
        if not api_key:
            raise InferenceError('Anthropic API key not configured', category=InferenceCategory.AUTHENTICATION)
        try:
            import anthropic
        except ImportError:
            raise ImportError("Anthropic library required. Install with: pip install anthropic")
        # Retries are handled by InferenceClient._call
        self.client = anthropic.Anthropic(api_key=api_key, timeout=timeout, max_retries=0)
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature

    def _create(self, content: List[dict]) -> str:
        message = self.client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            system=SYSTEM_PROMPT,
            messages=[{"role": "user", "content": content}],
        )
        return ''.join(block.text for block in message.content if getattr(block, 'type', None) == 'text')

    def _send_text(self, prompt: str) -> str:
        return self._create([{"type": "text", "text": prompt}])

    def _send_images(self, prompt: str, images: Sequence[PageImage]) -> str:
        content = [
            {
                "type": "image",
                "source": {"type": "base64", "media_type": image.media_type, "data": image.to_base64()},
            }
            for image in images
        ]
        content.append({"type": "text", "text": prompt})
        return self._create(content)

    def _send_document(self, prompt: str, pdf_base64: str) -> str:
        return self._create([
            {
                "type": "document",
                "source": {"type": "base64", "media_type": "application/pdf", "data": pdf_base64},
            },
            {"type": "text", "text": prompt},
        ])


class OpenAIClient(InferenceClient):
    """Analyze budget content using OpenAI GPT models."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gpt-4o-mini",
        max_tokens: int = 4000,
        temperature: float = 0.1,
        timeout: float = 60.0,
        **kwargs
    ):
        """
        Initialize OpenAI client.

        Args:
            api_key: OpenAI API key
            model: Model name to use (default: gpt-4o-mini, needs vision support for page batches)
            max_tokens: Response token limit
            temperature: Sampling temperature
            timeout: Per-request timeout in seconds
            **kwargs: Limits passed to InferenceClient
        """
        super().__init__(**kwargs)
        if not api_key:
            raise InferenceError('OpenAI API key not configured', category=InferenceCategory.AUTHENTICATION)
        try:
            import openai
        except ImportError:
            raise ImportError("OpenAI library required. Install with: pip install openai")
        self.client = openai.OpenAI(api_key=api_key, timeout=timeout, max_retries=0)
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature

    def _create(self, content: List[dict]) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": content},
            ],
        )
        return response.choices[0].message.content or ''

    def _send_text(self, prompt: str) -> str:
        return self._create([{"type": "text", "text": prompt}])

    def _send_images(self, prompt: str, images: Sequence[PageImage]) -> str:
        content = [{"type": "text", "text": prompt}]
        content.extend(
            {
                "type": "image_url",
                "image_url": {"url": f"data:{image.media_type};base64,{image.to_base64()}"},
            }
            for image in images
        )
        return self._create(content)

    def _send_document(self, prompt: str, pdf_base64: str) -> str:
        return self._create([
            {
                "type": "file",
                "file": {
                    "filename": "budget.pdf",
                    "file_data": f"data:application/pdf;base64,{pdf_base64}",
                },
            },
            {"type": "text", "text": prompt},
        ])


def create_inference_client(settings: PipelineSettings) -> InferenceClient:
    """
    Build the client for the provider configured in ``settings``.

    Raises:
        InferenceError: API key for the provider is missing
    """
    client_class = OpenAIClient if settings.llm_provider == 'openai' else ClaudeClient
    logger.info(f"Using {settings.llm_provider} inference client with model {settings.model_name}")
    return client_class(
        api_key=settings.api_key,
        model=settings.model_name,
        max_tokens=settings.max_tokens,
        temperature=settings.temperature,
        timeout=settings.request_timeout_seconds,
        max_payload_bytes=settings.max_payload_bytes,
        max_retries=settings.inference_max_retries,
    )
