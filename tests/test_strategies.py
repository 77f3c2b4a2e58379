"""
Unit tests for extraction strategies and the fallback chains.
"""

import pytest

from quizdoc.config import ExtractionConfig
from quizdoc.detector import DocumentFormat
from quizdoc.exceptions import (
    ContainerOpenFailed,
    ExtractionEmptyError,
    ExtractionError,
    UnsupportedFormatError,
)
from quizdoc.models import ExtractionMetadata, ExtractionResult
from quizdoc.strategies import (
    DOC_FALLBACK_WARNING,
    PPT_AS_ZIP_WARNING,
    PPT_FALLBACK_WARNING,
    BinaryScanStrategy,
    DocxStrategy,
    FailureKind,
    PdfStrategy,
    SlideContainerStrategy,
    StrategyOutcome,
    SystemConverterStrategy,
    build_chain,
    run_chain,
)


class StubStrategy:
    """Strategy returning a fixed outcome and recording calls."""

    def __init__(self, name, outcome):
        self.name = name
        self.outcome = outcome
        self.calls = 0

    def extract(self, data, file_name):
        self.calls += 1
        return self.outcome


def success(text):
    return StrategyOutcome.success(
        ExtractionResult(content=text, metadata=ExtractionMetadata.from_content(text, "stub"))
    )


@pytest.fixture
def config():
    return ExtractionConfig()


@pytest.mark.unit
class TestBuildChain:
    """Tests for the per-format strategy order."""

    def test_doc_chain_order(self, config):
        chain = build_chain(DocumentFormat.DOC, config)

        assert [type(strategy) for strategy in chain] == [
            DocxStrategy,
            SystemConverterStrategy,
            BinaryScanStrategy,
        ]
        assert chain[-1].warning == DOC_FALLBACK_WARNING

    def test_ppt_chain_order(self, config):
        chain = build_chain(DocumentFormat.PPT, config)

        assert [type(strategy) for strategy in chain] == [SlideContainerStrategy, BinaryScanStrategy]
        assert chain[0].warning == PPT_AS_ZIP_WARNING
        assert chain[1].warning == PPT_FALLBACK_WARNING

    @pytest.mark.parametrize(
        "fmt, strategy_type",
        [
            (DocumentFormat.DOCX, DocxStrategy),
            (DocumentFormat.PPTX, SlideContainerStrategy),
            (DocumentFormat.PDF, PdfStrategy),
        ],
    )
    def test_single_strategy_formats(self, config, fmt, strategy_type):
        chain = build_chain(fmt, config)

        assert len(chain) == 1
        assert isinstance(chain[0], strategy_type)

    def test_plain_text_has_no_chain(self, config):
        with pytest.raises(UnsupportedFormatError):
            build_chain(DocumentFormat.TEXT, config)


@pytest.mark.unit
class TestRunChain:
    """Tests for run_chain fallback semantics."""

    def test_stops_at_first_success(self):
        first = StubStrategy("first", success("first result"))
        second = StubStrategy("second", success("second result"))

        result = run_chain([first, second], b"", "f.doc", DocumentFormat.DOC)

        assert result.content == "first result"
        assert second.calls == 0

    def test_moves_on_after_failure(self):
        failing = StubStrategy("failing", StrategyOutcome.failed(FailureKind.EXTRACTION_FAILED, "boom"))
        fallback = StubStrategy("fallback", success("fallback result"))

        result = run_chain([failing, fallback], b"", "f.doc", DocumentFormat.DOC)

        assert result.content == "fallback result"
        assert failing.calls == 1

    def test_last_empty_failure_carries_hint(self):
        chain = [StubStrategy("empty", StrategyOutcome.failed(FailureKind.EXTRACTION_EMPTY, "nothing"))]

        with pytest.raises(ExtractionEmptyError) as exc_info:
            run_chain(chain, b"", "f.ppt", DocumentFormat.PPT)

        assert exc_info.value.hint == "convert the file to PPTX for best results"

    def test_terminal_failure_stops_chain(self):
        """A terminal failure ends the chain without a conversion hint."""
        final = StubStrategy("zip", StrategyOutcome.failed(FailureKind.EXTRACTION_EMPTY, "blank deck", terminal=True))
        fallback = StubStrategy("scan", success("scanned bytes"))

        with pytest.raises(ExtractionEmptyError) as exc_info:
            run_chain([final, fallback], b"", "f.ppt", DocumentFormat.PPT)

        assert fallback.calls == 0
        assert exc_info.value.hint is None

    def test_last_container_failure(self):
        chain = [StubStrategy("zip", StrategyOutcome.failed(FailureKind.CONTAINER_OPEN_FAILED, "bad zip"))]

        with pytest.raises(ContainerOpenFailed):
            run_chain(chain, b"", "f.pptx", DocumentFormat.PPTX)

    def test_last_generic_failure(self):
        chain = [StubStrategy("pdf", StrategyOutcome.failed(FailureKind.EXTRACTION_FAILED, "broken xref"))]

        with pytest.raises(ExtractionError, match="broken xref"):
            run_chain(chain, b"", "f.pdf", DocumentFormat.PDF)


@pytest.mark.unit
class TestStrategies:
    """Tests for the concrete strategies."""

    def test_docx_strategy(self, config, make_docx):
        data = make_docx(["My School", "This is our classroom."], table=[["Word", "Meaning"], ["desk", "table"]])

        outcome = DocxStrategy(config).extract(data, "lesson.docx")

        assert outcome.ok
        assert outcome.result.content == (
            "My School\n\nThis is our classroom.\n\nWord | Meaning\ndesk | table"
        )
        assert outcome.result.metadata.parse_engine == "python-docx"

    def test_docx_strategy_rejects_binary(self, config, doc_binary):
        outcome = DocxStrategy(config).extract(doc_binary, "old.doc")

        assert not outcome.ok
        assert outcome.failure.kind is FailureKind.EXTRACTION_FAILED

    def test_system_converter_without_tools(self, config, doc_binary, no_system_converter):
        outcome = SystemConverterStrategy(config).extract(doc_binary, "old.doc")

        assert outcome.failure.kind is FailureKind.EXTRACTION_EMPTY

    def test_slide_strategy_counts_slides(self, make_pptx):
        data = make_pptx({1: ["Hello"], 2: [], 3: ["World"]})

        outcome = SlideContainerStrategy().extract(data, "deck.pptx")

        assert outcome.result.metadata.paragraph_count == 2
        assert outcome.result.warning is None

    def test_slide_strategy_requires_presentation_entries(self, doc_binary):
        strategy = SlideContainerStrategy(require_presentation_entries=True)

        outcome = strategy.extract(doc_binary, "deck.ppt")

        assert outcome.failure.kind is FailureKind.CONTAINER_OPEN_FAILED

    def test_slide_strategy_deck_without_text(self, make_pptx):
        outcome = SlideContainerStrategy().extract(make_pptx({1: [], 2: []}), "blank.pptx")

        assert outcome.failure.kind is FailureKind.EXTRACTION_EMPTY
        assert outcome.failure.terminal

    def test_binary_scan_strategy(self, config, doc_binary):
        strategy = BinaryScanStrategy(DocumentFormat.DOC, config, warning=DOC_FALLBACK_WARNING)

        outcome = strategy.extract(doc_binary, "old.doc")

        assert outcome.result.warning == DOC_FALLBACK_WARNING
        assert outcome.result.metadata.paragraph_count == 2
        assert outcome.result.metadata.parse_engine == "doc binary scanner"

    def test_binary_scan_only_for_legacy_formats(self, config):
        with pytest.raises(ValueError):
            BinaryScanStrategy(DocumentFormat.PDF, config)
