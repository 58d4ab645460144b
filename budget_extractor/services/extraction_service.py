"""
Extraction service that orchestrates budget document analysis.

One document goes through: file checks, classification, cost gate, then the
first strategy that produces usable data (whole document, page batches or
text chunks), consolidation and composition of the final report.
"""
import logging
import time
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Tuple

from pydantic import BaseModel, Field

from budget_extractor.chunkers import SectionChunker
from budget_extractor.config import PipelineSettings
from budget_extractor.errors import (
    BudgetExtractionError,
    InferenceError,
    PipelineError,
    RasterizationError,
    ValidationError,
)
from budget_extractor.extractors import DocumentClassifier, PageRasterizer
from budget_extractor.models import (
    AnalysisResponse,
    ChunkAnalysisResult,
    DocumentClassification,
    ErrorReport,
    ExtractionMethod,
    ExtractionResult,
    FinalAnalysis,
    PdfType,
    PipelineStage,
    PreValidationResult,
)
from budget_extractor.parsers import (
    InferenceClient,
    PreValidator,
    ResponseParser,
    create_inference_client,
)
from budget_extractor.parsers.prompts import (
    build_batch_prompt,
    build_chunk_prompt,
    build_document_prompt,
)
from budget_extractor.utils.validation import ensure_valid_pdf
from .composer import FinalAnalysisComposer
from .consolidator import Consolidator
from .cost_estimator import CostEstimator

logger = logging.getLogger(__name__)

DEFAULT_SUGGESTIONS = [
    'Verify the file is not corrupted',
    'For very large PDFs (>30MB), consider splitting the document',
    'Verify the file is not password protected',
    'If the PDF is scanned, make sure the scan quality is legible',
]

TEXT_CONFIDENCE = {
    PdfType.NATIVE_TEXT: 95,
    PdfType.HYBRID: 70,
    PdfType.SCANNED: 30,
}


class DocumentContext:
    """Per-document state: inputs, stage trace, warnings and deadline."""

    def __init__(
        self,
        buffer: bytes,
        filename: str,
        settings: PipelineSettings,
        project_location: Optional[str] = None,
        deadline: Optional[float] = None
    ):
        self.buffer = buffer
        self.filename = filename
        self.settings = settings
        self.project_location = project_location
        self.deadline = deadline
        self.classification: Optional[DocumentClassification] = None
        self.stages: List[str] = []
        self.warnings: List[str] = []

    def enter(self, stage: PipelineStage) -> None:
        self.stages.append(stage.value)
        logger.info(f"{self.filename}: {stage.value}")

    def warn(self, message: str) -> None:
        self.warnings.append(message)
        logger.warning(f"{self.filename}: {message}")


class StrategyOutcome(BaseModel):
    """Unit results of one strategy attempt."""

    results: List[ChunkAnalysisResult] = Field(default_factory=list)
    pages_processed: Optional[int] = None
    pre_validation: Optional[PreValidationResult] = None


class UnitRunner:
    """
    Run analysis units one after another.

    Inference failures are recorded against their unit and the next unit
    runs. Authentication failures propagate since no later unit can succeed.
    """

    def __init__(
        self,
        client: InferenceClient,
        parser: ResponseParser,
        inter_call_delay: float = 2.0,
        deadline: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic
    ):
        self.client = client
        self.parser = parser
        self.inter_call_delay = inter_call_delay
        self.deadline = deadline
        self.sleep = sleep
        self.clock = clock
        self._calls = 0

    def expired(self) -> bool:
        return self.deadline is not None and self.clock() >= self.deadline

    def run(self, units: List[Tuple[str, Callable[[], str]]]) -> List[ChunkAnalysisResult]:
        """
        Execute units in order.

        Args:
            units: (label, call) pairs, each call returns the raw response

        Returns:
            One ChunkAnalysisResult per unit, in order
        """
        results = []
        for index, (label, call) in enumerate(units, start=1):
            if self.expired():
                results.append(ChunkAnalysisResult.failure(
                    index, label, 'Pipeline deadline exceeded before this unit started'
                ))
                continue
            if self._calls and self.inter_call_delay:
                self.sleep(self.inter_call_delay)
            self._calls += 1

            try:
                raw = call()
            except InferenceError as e:
                if e.fatal:
                    raise
                logger.warning(f"Unit {index} ({label}) failed: [{e.error_code}] {e.message}")
                results.append(ChunkAnalysisResult.failure(index, label, f"{e.error_code}: {e.message}"))
                continue
            except ValueError as e:
                logger.warning(f"Unit {index} ({label}) rejected: {e}")
                results.append(ChunkAnalysisResult.failure(index, label, str(e)))
                continue

            results.append(self.parser.analyze(raw, index, label))
        return results


class AnalysisStrategy(ABC):
    """Abstract base class for analysis strategies."""

    method: ExtractionMethod
    stage: PipelineStage
    unit_kind: str

    @property
    def name(self) -> str:
        return self.method.value

    def is_viable(self, ctx: DocumentContext) -> bool:
        return True

    @abstractmethod
    def analyze(self, ctx: DocumentContext, runner: UnitRunner) -> StrategyOutcome:
        """
        Analyze the document.

        Raises:
            RasterizationError, PipelineError: The strategy cannot run
            InferenceError: Fatal inference failure
        """

    def accepts(self, outcome: StrategyOutcome) -> bool:
        """Whether the outcome is good enough to stop trying strategies."""
        return any(result.contributes for result in outcome.results)

    def confidence(self, ctx: DocumentContext) -> int:
        return 0


class DirectAnalysisStrategy(AnalysisStrategy):
    """Send the whole PDF in one call."""

    method = ExtractionMethod.DIRECT_DOCUMENT
    stage = PipelineStage.DIRECT_ANALYSIS
    unit_kind = 'document'

    def is_viable(self, ctx: DocumentContext) -> bool:
        return (
            ctx.settings.direct_analysis_enabled
            and len(ctx.buffer) <= ctx.settings.direct_analysis_max_bytes
        )

    def analyze(self, ctx: DocumentContext, runner: UnitRunner) -> StrategyOutcome:
        prompt = build_document_prompt(ctx.filename, ctx.project_location)
        results = runner.run([
            ('document', lambda: runner.client.analyze_document(prompt, ctx.buffer)),
        ])
        return StrategyOutcome(results=results)

    def accepts(self, outcome: StrategyOutcome) -> bool:
        # A fallback-parsed whole document is worse than page batches
        return bool(outcome.results) and outcome.results[0].success

    def confidence(self, ctx: DocumentContext) -> int:
        return 85


class PagedAnalysisStrategy(AnalysisStrategy):
    """Rasterize pages and analyze them in batches of images."""

    method = ExtractionMethod.PAGINATED_VISION
    stage = PipelineStage.PAGED_ANALYSIS
    unit_kind = 'batch'

    def __init__(self, rasterizer: PageRasterizer, batch_size: int = 5):
        self.rasterizer = rasterizer
        self.batch_size = batch_size

    def analyze(self, ctx: DocumentContext, runner: UnitRunner) -> StrategyOutcome:
        pages = self.rasterizer.rasterize(ctx.buffer)
        if ctx.classification and ctx.classification.page_count and ctx.classification.page_count > len(pages):
            ctx.warn(
                f"Only the first {len(pages)} of {ctx.classification.page_count} pages were analyzed"
            )

        units = []
        for start in range(0, len(pages), self.batch_size):
            batch = pages[start:start + self.batch_size]
            first, last = batch[0].page_number, batch[-1].page_number
            prompt = build_batch_prompt(first, last, len(pages))
            label = f"batch {start // self.batch_size + 1} (pages {first}-{last})"
            units.append((label, lambda prompt=prompt, batch=batch: runner.client.analyze_images(prompt, batch)))

        logger.info(f"Analyzing {len(pages)} page(s) in {len(units)} batch(es)")
        return StrategyOutcome(results=runner.run(units), pages_processed=len(pages))

    def confidence(self, ctx: DocumentContext) -> int:
        return 75


class ChunkedTextStrategy(AnalysisStrategy):
    """Pre-validate locally extracted text, chunk it and analyze each chunk."""

    method = ExtractionMethod.CHUNKED_TEXT
    stage = PipelineStage.TEXT_ANALYSIS
    unit_kind = 'chunk'

    def __init__(self, prevalidator: PreValidator, chunker: SectionChunker, max_chunks: int = 10, min_chars: int = 10):
        self.prevalidator = prevalidator
        self.chunker = chunker
        self.max_chunks = max_chunks
        self.min_chars = min_chars

    def is_viable(self, ctx: DocumentContext) -> bool:
        return ctx.classification is not None and ctx.classification.text_length >= self.min_chars

    def analyze(self, ctx: DocumentContext, runner: UnitRunner) -> StrategyOutcome:
        text = ctx.classification.extracted_text
        pre_validation = self.prevalidator.validate(text)
        if not pre_validation.is_analyzable:
            ctx.warn(f"Pre-validation: {pre_validation.recommendation}")

        chunks = self.chunker.chunk(text)
        if not chunks:
            raise PipelineError(
                'No chunk with budget content found in the extracted text',
                error_code='NO_USABLE_CHUNKS',
                suggestions=['Verify the document contains itemized prices'],
            )
        if len(chunks) > self.max_chunks:
            ctx.warn(f"Analyzing the first {self.max_chunks} of {len(chunks)} chunks")
            chunks = chunks[:self.max_chunks]

        units = []
        for index, chunk in enumerate(chunks, start=1):
            prompt = build_chunk_prompt(chunk.content, chunk.type, index, len(chunks))
            units.append((f"chunk {index}: {chunk.label}", lambda prompt=prompt: runner.client.analyze_text(prompt)))

        return StrategyOutcome(results=runner.run(units), pre_validation=pre_validation)

    def confidence(self, ctx: DocumentContext) -> int:
        return TEXT_CONFIDENCE[ctx.classification.pdf_type]


class ExtractionService:
    """Service class that orchestrates budget document analysis."""

    def __init__(
        self,
        settings: Optional[PipelineSettings] = None,
        client: Optional[InferenceClient] = None,
        classifier: Optional[DocumentClassifier] = None,
        rasterizer: Optional[PageRasterizer] = None,
        prevalidator: Optional[PreValidator] = None,
        chunker: Optional[SectionChunker] = None,
        parser: Optional[ResponseParser] = None,
        cost_estimator: Optional[CostEstimator] = None,
        consolidator: Optional[Consolidator] = None,
        composer: Optional[FinalAnalysisComposer] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize extraction service.

        Args:
            settings: Pipeline settings, defaults when omitted
            client: Inference client, built from settings on first use when omitted
            classifier: DocumentClassifier instance
            rasterizer: PageRasterizer instance
            prevalidator: PreValidator instance
            chunker: SectionChunker instance
            parser: ResponseParser instance
            cost_estimator: CostEstimator instance
            consolidator: Consolidator instance
            composer: FinalAnalysisComposer instance
            sleep: Function used for the delay between inference calls
            clock: Monotonic clock used for the pipeline deadline
        """
        self.settings = settings or PipelineSettings()
        s = self.settings
        self._client = client
        self.classifier = classifier or DocumentClassifier(
            native_min_chars=s.native_text_min_chars,
            hybrid_min_chars=s.hybrid_text_min_chars,
        )
        self.rasterizer = rasterizer or PageRasterizer(
            dpi=s.raster_dpi,
            max_pages=s.raster_max_pages,
            max_dimension=s.raster_max_dimension,
        )
        self.prevalidator = prevalidator or PreValidator()
        self.chunker = chunker or SectionChunker(
            chunk_size=s.chunk_size,
            overlap=s.chunk_overlap,
            boundary_tolerance=s.chunk_boundary_tolerance,
        )
        self.parser = parser or ResponseParser()
        self.cost_estimator = cost_estimator or CostEstimator(usd_to_local_rate=s.usd_to_local_rate)
        self.consolidator = consolidator or Consolidator()
        self.composer = composer or FinalAnalysisComposer(currency=s.currency, default_location=s.project_location)
        self.sleep = sleep
        self.clock = clock

        self.direct_strategy = DirectAnalysisStrategy()
        self.paged_strategy = PagedAnalysisStrategy(self.rasterizer, batch_size=s.batch_size)
        self.text_strategy = ChunkedTextStrategy(
            self.prevalidator,
            self.chunker,
            max_chunks=s.max_chunks,
            min_chars=s.text_fallback_min_chars,
        )

    @property
    def client(self) -> InferenceClient:
        if self._client is None:
            self._client = create_inference_client(self.settings)
        return self._client

    def plan(self, classification: DocumentClassification) -> List[AnalysisStrategy]:
        """
        Order the strategies to try for a document.

        Scanned documents go to page images first; documents with text try the
        whole-document call first. Local text chunking is always the last resort.
        """
        if classification.pdf_type == PdfType.SCANNED:
            return [self.paged_strategy, self.direct_strategy, self.text_strategy]
        return [self.direct_strategy, self.paged_strategy, self.text_strategy]

    def run(
        self,
        buffer: bytes,
        filename: str,
        project_location: Optional[str] = None
    ) -> Tuple[FinalAnalysis, ExtractionResult]:
        """
        Analyze one budget document.

        Args:
            buffer: Raw PDF bytes
            filename: Original file name
            project_location: Location for regional factors, settings default when omitted

        Returns:
            (FinalAnalysis, ExtractionResult)

        Raises:
            ValidationError: File rejected or estimated cost above the limit
            InferenceError: Authentication failure with the inference service
            PipelineError: No strategy produced usable data
        """
        started = self.clock()
        ctx = DocumentContext(
            buffer,
            filename,
            self.settings,
            project_location=project_location or self.settings.project_location,
            deadline=started + self.settings.pipeline_timeout_seconds,
        )
        ctx.enter(PipelineStage.RECEIVED)
        try:
            return self._run(ctx, started)
        except BudgetExtractionError:
            ctx.enter(PipelineStage.FAILED)
            raise

    def _run(self, ctx: DocumentContext, started: float) -> Tuple[FinalAnalysis, ExtractionResult]:
        s = self.settings
        validation = ensure_valid_pdf(ctx.buffer, ctx.filename, s.max_file_bytes, s.large_file_warning_bytes)
        for warning in validation.warnings:
            ctx.warn(warning)

        classification = self.classifier.classify(ctx.buffer, ctx.filename)
        ctx.classification = classification
        ctx.enter(PipelineStage.CLASSIFIED)
        if classification.extraction_error:
            ctx.warn(f"Local text extraction unavailable: {classification.extraction_error}")

        if classification.text_length >= s.text_fallback_min_chars:
            cost_estimate = self.cost_estimator.estimate_from_text_length(classification.text_length)
        else:
            cost_estimate = self.cost_estimator.estimate_from_file_size(len(ctx.buffer))
        if s.max_estimated_cost_usd is not None and cost_estimate.estimated_cost_usd > s.max_estimated_cost_usd:
            raise ValidationError(
                f"Estimated cost ${cost_estimate.estimated_cost_usd:.3f} USD exceeds the "
                f"${s.max_estimated_cost_usd:.3f} USD limit",
                error_code='COST_LIMIT_EXCEEDED',
                suggestions=['Split the document or raise the cost limit'],
                details={'cost_estimate': cost_estimate.model_dump()},
            )
        if cost_estimate.cost_warning == 'high':
            ctx.warn(f"High estimated analysis cost: ${cost_estimate.estimated_cost_usd:.2f} USD")

        runner = UnitRunner(
            self.client,
            self.parser,
            inter_call_delay=s.inter_call_delay_seconds,
            deadline=ctx.deadline,
            sleep=self.sleep,
            clock=self.clock,
        )

        failures: List[BudgetExtractionError] = []
        for strategy in self.plan(classification):
            if not strategy.is_viable(ctx):
                logger.debug(f"Skipping {strategy.name}: not viable")
                continue
            if runner.expired():
                failures.append(PipelineError(
                    f"Pipeline deadline of {s.pipeline_timeout_seconds:.0f}s exceeded"
                ))
                break

            ctx.enter(strategy.stage)
            try:
                outcome = strategy.analyze(ctx, runner)
            except (RasterizationError, PipelineError) as e:
                ctx.warn(f"{strategy.name} failed: {e.message}")
                failures.append(e)
                continue

            if not strategy.accepts(outcome):
                errors = '; '.join(r.error for r in outcome.results if r.error) or 'no usable data'
                ctx.warn(f"{strategy.name} produced no usable data: {errors}")
                failures.append(PipelineError(f"{strategy.name}: {errors}"))
                continue

            return self._finish(ctx, started, strategy, outcome, cost_estimate)

        raise self._exhausted(failures)

    def _finish(self, ctx, started, strategy, outcome, cost_estimate) -> Tuple[FinalAnalysis, ExtractionResult]:
        ctx.enter(PipelineStage.CONSOLIDATING)
        data = self.consolidator.consolidate(outcome.results)

        classification = ctx.classification
        processing_time = self.clock() - started
        analysis = self.composer.compose(
            data,
            extraction_method=strategy.method,
            pdf_type=classification.pdf_type,
            unit_kind=strategy.unit_kind,
            project_location=ctx.project_location,
            pages_processed=outcome.pages_processed,
            processing_time=processing_time,
            stages=ctx.stages,
            warnings=ctx.warnings,
            cost_estimate=cost_estimate,
            pre_validation=outcome.pre_validation,
        )
        ctx.enter(PipelineStage.COMPOSED)
        ctx.enter(PipelineStage.DONE)
        analysis.processing_metadata.stages = list(ctx.stages)

        extraction = ExtractionResult(
            content=classification.extracted_text,
            extraction_method=strategy.method,
            confidence=strategy.confidence(ctx),
            success=True,
            pdf_type=classification.pdf_type,
            processing_time=round(processing_time, 3),
            metadata={
                'filename': ctx.filename,
                'file_size': len(ctx.buffer),
                'text_length': classification.text_length,
                'page_count': classification.page_count,
                'pages_processed': outcome.pages_processed,
                'total_units': data.total_units_processed,
                'successful_units': data.successful_units,
            },
        )
        logger.info(
            f"{ctx.filename}: analyzed with {strategy.name} in {processing_time:.1f}s, "
            f"{data.successful_units}/{data.total_units_processed} unit(s) successful"
        )
        return analysis, extraction

    @staticmethod
    def _exhausted(failures: List[BudgetExtractionError]) -> PipelineError:
        if not failures:
            return PipelineError(
                'No extraction strategy applies to this document',
                suggestions=list(DEFAULT_SUGGESTIONS),
            )
        codes = {failure.error_code for failure in failures}
        suggestions = []
        for failure in failures:
            for suggestion in failure.suggestions:
                if suggestion not in suggestions:
                    suggestions.append(suggestion)
        return PipelineError(
            'All extraction strategies failed: ' + '; '.join(failure.message for failure in failures),
            error_code=codes.pop() if len(codes) == 1 else None,
            suggestions=suggestions or list(DEFAULT_SUGGESTIONS),
            details={'attempts': [{'error_code': f.error_code, 'message': f.message} for f in failures]},
        )

    def analyze(
        self,
        buffer: bytes,
        filename: str,
        project_location: Optional[str] = None
    ) -> AnalysisResponse:
        """
        Analyze one budget document and always return a serializable response.

        Args:
            buffer: Raw PDF bytes
            filename: Original file name
            project_location: Location for regional factors

        Returns:
            AnalysisResponse with either the analysis or a structured error
        """
        try:
            analysis, extraction = self.run(buffer, filename, project_location=project_location)
        except BudgetExtractionError as e:
            logger.warning(f"Analysis of {filename} failed: [{e.error_code}] {e.message}")
            return self.error_response(e.error_code, e.message, e.suggestions, e.details)
        except Exception as e:
            logger.error(f"Unexpected error analyzing {filename}: {e}", exc_info=True)
            return self.error_response('PDF_PROCESSING_ERROR', f"Unexpected error: {e}")

        return AnalysisResponse(
            success=True,
            confidence_score=analysis.confidence_score,
            analysis=analysis,
            extraction=extraction,
        )

    @staticmethod
    def error_response(error_code: str, message: str, suggestions=None, details=None) -> AnalysisResponse:
        return AnalysisResponse(
            success=False,
            confidence_score=0,
            error=ErrorReport(
                error_code=error_code,
                message=message,
                suggestions=list(suggestions or DEFAULT_SUGGESTIONS),
                details=details or {},
            ),
        )


class ExtractionServiceFactory:
    """Factory class for creating extraction services."""

    @staticmethod
    def create(
        settings: Optional[PipelineSettings] = None,
        client: Optional[InferenceClient] = None
    ) -> ExtractionService:
        """
        Create an extraction service.

        Args:
            settings: Pipeline settings, read from the environment when omitted
            client: Inference client, built from settings on first use when omitted

        Returns:
            ExtractionService
        """
        return ExtractionService(settings=settings or PipelineSettings.from_env(), client=client)
