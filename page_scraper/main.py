"""
Main orchestrator for the page scraper.

Coordinates the pipeline:
  1. Fetch:   url -> markup (fatal on failure)
  2. Parse:   markup -> ParsedDocument
  3. Extract: deterministic sections gated by ScrapeOptions
  4. Enrich:  external AI analyzer when requested, heuristic analyzer otherwise
              or when the AI analyzer fails
  5. Merge:   enrichment onto the extracted record
  6. Store:   hand the finished record to the store, if one is configured

A scrape either returns a complete ScrapeResult or raises one ScrapeError.
Any AI analyzer failure is recovered by the heuristic analyzer.
"""

from typing import Optional

from .ai_analyzer import AIAnalyzer
from .document import ParsedDocument
from .exceptions import AnalysisError, FetchError, ScrapeError
from .extractor import Extractor
from .fetcher import BaseFetcher, HttpFetcher
from .heuristics import HeuristicAnalyzer
from .logger import get_module_logger, setup_logger
from .merger import annotate_fallback, merge
from .schemas import AnalysisSource, ScrapeOptions, ScrapeResult
from .storage import BaseScrapeStore

logger = get_module_logger("main")


class WebScraper:
    """
    Pipeline orchestrator.

    Every collaborator can be injected; defaults are an httpx fetcher, the
    heuristic analyzer and an AI analyzer that creates its LLM client from
    the options' credential.
    """

    def __init__(
        self,
        fetcher: Optional[BaseFetcher] = None,
        heuristic_analyzer: Optional[HeuristicAnalyzer] = None,
        ai_analyzer: Optional[AIAnalyzer] = None,
        store: Optional[BaseScrapeStore] = None,
        log_level: Optional[int] = None
    ):
        if log_level is not None:
            setup_logger(level=log_level)

        self.fetcher = fetcher or HttpFetcher()
        self.extractor = Extractor()
        self.heuristic_analyzer = heuristic_analyzer or HeuristicAnalyzer()
        self.ai_analyzer = ai_analyzer or AIAnalyzer()
        self.store = store

    def scrape(self, url: str, options: Optional[ScrapeOptions] = None) -> ScrapeResult:
        """
        Fetch a page and run the full pipeline on it.

        Raises:
            ScrapeError: when the page cannot be fetched or processed
        """
        options = options or ScrapeOptions()
        logger.info(f"Starting scrape of {url}")

        try:
            markup = self.fetcher.fetch(url)
        except FetchError as e:
            raise ScrapeError(
                f"Failed to scrape website: {e.message}",
                url=url,
                details={"status_code": e.status_code}
            ) from e
        except Exception as e:
            logger.error(f"Fetch of {url} failed: {e}")
            raise ScrapeError(f"Failed to scrape website: {e}", url=url) from e

        return self.scrape_html(url, markup, options)

    def scrape_html(self, url: str, markup: str, options: Optional[ScrapeOptions] = None) -> ScrapeResult:
        """
        Run the pipeline on markup that was already fetched.

        Raises:
            ScrapeError: when processing fails
        """
        options = options or ScrapeOptions()

        try:
            result = self._process(url, markup, options)
        except ScrapeError:
            raise
        except Exception as e:
            logger.error(f"Scrape of {url} failed: {e}")
            raise ScrapeError(f"Failed to scrape website: {e}", url=url) from e

        if self.store is not None:
            try:
                result = self.store.create(result)
            except Exception as e:
                logger.error(f"Storing scrape of {url} failed: {e}")
                raise ScrapeError(f"Failed to store scrape: {e}", url=url) from e

        logger.info(f"Complete: {url}")
        return result

    def _process(self, url: str, markup: str, options: ScrapeOptions) -> ScrapeResult:
        doc = ParsedDocument(markup)
        extracted = self.extractor.extract(doc, options, url)

        result = ScrapeResult(
            url=url,
            metadata=extracted.metadata,
            content=extracted.content,
            links=extracted.links,
            images=extracted.images,
            options=options,
            raw_markup=markup,
            warnings=extracted.warnings,
        )

        if options.use_external_ai:
            return self._enrich_with_ai(result, doc, markup, options)
        if options.enrich:
            return self._enrich_with_heuristics(result, doc, options)
        return result

    def _enrich_with_ai(self, result: ScrapeResult, doc: ParsedDocument,
                        markup: str, options: ScrapeOptions) -> ScrapeResult:
        try:
            analysis = self.ai_analyzer.analyze(result.url, markup, options)
        except Exception as e:
            reason = e.message if isinstance(e, AnalysisError) else str(e)
            logger.warning(f"AI analysis failed, falling back to heuristics: {reason}")
            enriched = self._enrich_with_heuristics(result, doc, options)
            return annotate_fallback(enriched)

        return merge(result, analysis, AnalysisSource.EXTERNAL_AI)

    def _enrich_with_heuristics(self, result: ScrapeResult, doc: ParsedDocument,
                                options: ScrapeOptions) -> ScrapeResult:
        try:
            analysis = self.heuristic_analyzer.analyze(doc, options, result.url)
        except Exception as e:
            # Result keeps extracted data only
            logger.warning(f"Heuristic analysis failed, using extracted data only: {e}")
            return result.model_copy(update={
                "warnings": [*result.warnings, f"Heuristic analysis failed: {e}"]
            })

        return merge(result, analysis, AnalysisSource.HEURISTIC)


def scrape_url(url: str, options: Optional[ScrapeOptions] = None) -> ScrapeResult:
    """Convenience function to scrape a URL."""
    return WebScraper().scrape(url, options)


def scrape_markup(url: str, markup: str, options: Optional[ScrapeOptions] = None) -> ScrapeResult:
    """Convenience function to process markup already in hand."""
    return WebScraper().scrape_html(url, markup, options)
