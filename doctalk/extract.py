# doctalk/extract.py
"""
PDF text extraction and cleaning.

 - PdfTextExtractor turns PDF bytes into one raw string per physical page
 - the per-page text is produced by a pluggable PageTextStrategy
 - clean_text() normalizes a page's raw text before it is stored

PDF content streams carry no notion of a "line": text arrives as absolutely
positioned runs. PositionedRunStrategy rebuilds lines from the runs'
baselines; PlainTextStrategy defers to pypdf's own layout.
"""
import io
import re
import logging
from typing import List, Optional, Sequence, Tuple

from pypdf import PdfReader

from doctalk.errors import ExtractionError

logger = logging.getLogger(__name__)

# a text run: (text, baseline y)
TextRun = Tuple[str, float]

_NON_PRINTABLE = re.compile(r"[^\x20-\x7E\n]")
_WHITESPACE = re.compile(r"\s+")


def clean_text(text: str) -> str:
    """
    Drop everything outside printable ASCII (newline survives this step),
    collapse whitespace runs, newlines included, into one space and trim.
    """
    text = _NON_PRINTABLE.sub("", text or "")
    return _WHITESPACE.sub(" ", text).strip()


def join_text_runs(runs: Sequence[TextRun]) -> str:
    """
    Rebuild page text from positioned runs.

    Runs on the same baseline as the previous run are concatenated as-is;
    a baseline change starts a new line.
    """
    parts: List[str] = []
    last_y: Optional[float] = None
    for text, y in runs:
        if last_y is not None and y != last_y:
            parts.append("\n")
        parts.append(text)
        last_y = y
    return "".join(parts)


class PageTextStrategy:
    """Turns one pypdf page into raw text."""

    name = "base"

    def page_text(self, page) -> str:
        raise NotImplementedError


class PositionedRunStrategy(PageTextStrategy):
    name = "positioned"

    def __init__(self, precision: int = 3):
        # baselines are compared after rounding to absorb float noise from matrix math
        self.precision = precision

    def collect_runs(self, page) -> List[TextRun]:
        runs: List[TextRun] = []

        def visitor(text, cm, tm, font_dict, font_size):
            # pypdf also reports its own line-break output; only real text counts
            if not text or not text.strip():
                return
            # baseline in user space: y of tm x cm
            y = tm[4] * cm[1] + tm[5] * cm[3] + cm[5]
            runs.append((text, round(float(y), self.precision)))

        page.extract_text(visitor_text=visitor)
        return runs

    def page_text(self, page) -> str:
        return join_text_runs(self.collect_runs(page))


class PlainTextStrategy(PageTextStrategy):
    name = "plain"

    def page_text(self, page) -> str:
        return page.extract_text() or ""


class PdfTextExtractor:
    """
    Extract raw text by page from in-memory PDF bytes.

    Returns one string per physical page, in page order. A document that
    cannot be parsed raises ExtractionError; there is no partial result.
    """

    def __init__(self, strategy: Optional[PageTextStrategy] = None):
        self.strategy = strategy or PositionedRunStrategy()

    def extract_pages(self, data: bytes, filename: Optional[str] = None) -> List[str]:
        try:
            reader = PdfReader(io.BytesIO(data))
            pages = [self.strategy.page_text(page) for page in reader.pages]
        except Exception as e:
            logger.warning("PDF extraction failed for %s: %s", filename or "<bytes>", e)
            raise ExtractionError(f"Could not extract text from {filename or 'PDF'}: {e}", filename=filename) from e
        logger.debug("Extracted %d pages from %s using %s strategy", len(pages), filename or "<bytes>", self.strategy.name)
        return pages

    def extract_clean_pages(self, data: bytes, filename: Optional[str] = None) -> List[str]:
        return [clean_text(text) for text in self.extract_pages(data, filename)]


def get_strategy(name: str) -> PageTextStrategy:
    strategies = {
        PositionedRunStrategy.name: PositionedRunStrategy,
        PlainTextStrategy.name: PlainTextStrategy,
    }
    try:
        return strategies[name]()
    except KeyError:
        raise ValueError(f"unknown extraction strategy {name!r}; expected one of {sorted(strategies)}")
