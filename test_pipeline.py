"""End-to-end tests for the WebScraper orchestrator with stub collaborators."""

import pytest

from conftest import (
    SAMPLE_URL,
    FailingFetcher,
    FailingLLMClient,
    StaticFetcher,
    StubLLMClient,
)
from page_scraper.ai_analyzer import AIAnalyzer
from page_scraper.exceptions import ScrapeError
from page_scraper.main import WebScraper, scrape_markup
from page_scraper.merger import FALLBACK_NOTE
from page_scraper.schemas import AnalysisSource, ScrapeOptions
from page_scraper.storage import MemoryScrapeStore


def sections(result) -> dict:
    """Section payloads without per-run fields."""
    document = result.to_document(include_markup=False)
    if document.get("metadata"):
        document["metadata"].pop("analysisNote")
    return {key: document[key] for key in ("metadata", "content", "links", "images")}


def test_scrape_fetches_and_enriches(sample_page):
    fetcher = StaticFetcher(sample_page)
    result = WebScraper(fetcher=fetcher).scrape(SAMPLE_URL)

    assert fetcher.requested == [SAMPLE_URL]
    assert result.url == SAMPLE_URL
    assert result.raw_markup == sample_page
    assert result.analysis_source is AnalysisSource.HEURISTIC
    assert result.metadata.ai_insights.main_topic == "Widgets"
    assert result.content.ai_insights.summary
    assert all(link.category for link in result.links)
    assert all(image.purpose for image in result.images)


def test_fetch_failure_raises_scrape_error():
    scraper = WebScraper(fetcher=FailingFetcher(404))

    with pytest.raises(ScrapeError) as exc_info:
        scraper.scrape(SAMPLE_URL)

    error = exc_info.value
    assert error.message == "Failed to scrape website: Request failed with status code 404"
    assert error.url == SAMPLE_URL
    assert error.to_response()["details"] == {"status_code": 404}


def test_every_toggle_off(sample_page):
    options = ScrapeOptions(
        parse_metadata=False,
        parse_content=False,
        parse_links=False,
        parse_images=False,
    )
    result = WebScraper().scrape_html(SAMPLE_URL, sample_page, options)

    assert result.metadata is None
    assert result.content is None
    assert result.links is None
    assert result.images is None


def test_enrichment_can_be_disabled(sample_page):
    result = WebScraper().scrape_html(SAMPLE_URL, sample_page, ScrapeOptions(enrich=False))

    assert result.analysis_source is None
    assert result.metadata.ai_insights is None
    assert all(link.category is None for link in result.links)


def test_failing_ai_analyzer_falls_back_to_heuristics(sample_page):
    heuristic_only = WebScraper().scrape_html(SAMPLE_URL, sample_page)

    scraper = WebScraper(ai_analyzer=AIAnalyzer(llm_client=FailingLLMClient()))
    result = scraper.scrape_html(SAMPLE_URL, sample_page, ScrapeOptions(use_external_ai=True))

    assert result.analysis_source is AnalysisSource.HEURISTIC
    assert result.metadata.analysis_note == FALLBACK_NOTE
    assert FALLBACK_NOTE in result.warnings
    assert sections(result) == sections(heuristic_only)


@pytest.mark.parametrize("error", [
    TimeoutError("AI service timed out"),
    RuntimeError("connection reset"),
])
def test_any_ai_analyzer_error_falls_back_to_heuristics(sample_page, error):
    class RaisingAnalyzer:
        def analyze(self, url, markup, options):
            raise error

    scraper = WebScraper(ai_analyzer=RaisingAnalyzer())
    result = scraper.scrape_html(SAMPLE_URL, sample_page, ScrapeOptions(use_external_ai=True))

    assert result.analysis_source is AnalysisSource.HEURISTIC
    assert result.metadata.analysis_note == FALLBACK_NOTE
    assert result.metadata.ai_insights.main_topic == "Widgets"


def test_missing_credential_falls_back_to_heuristics(sample_page, no_llm_env):
    options = ScrapeOptions(use_external_ai=True)
    result = WebScraper().scrape_html(SAMPLE_URL, sample_page, options)

    assert result.analysis_source is AnalysisSource.HEURISTIC
    assert result.metadata.analysis_note == FALLBACK_NOTE


def test_malformed_ai_answer_falls_back_to_heuristics(sample_page):
    client = StubLLMClient({"metadata": {"keyTerms": "not a list"}})
    scraper = WebScraper(ai_analyzer=AIAnalyzer(llm_client=client))

    result = scraper.scrape_html(SAMPLE_URL, sample_page, ScrapeOptions(use_external_ai=True))

    assert result.analysis_source is AnalysisSource.HEURISTIC
    assert result.metadata.analysis_note == FALLBACK_NOTE


def test_successful_ai_enrichment_is_merged(sample_page):
    client = StubLLMClient({
        "metadata": {"mainTopic": "Widget buying", "sentiment": "Positive", "audience": "buyers"},
        "content": {"summary": "How to choose a widget"},
        "links": [
            {"url": "/about", "category": "information", "importance": "Low"},
            {"url": "/not-on-page", "category": "navigation"},
        ],
        "images": [{"src": "logo.png", "purpose": "Logo", "importance": "High"}],
    })
    scraper = WebScraper(ai_analyzer=AIAnalyzer(llm_client=client))

    result = scraper.scrape_html(SAMPLE_URL, sample_page, ScrapeOptions(use_external_ai=True))

    assert result.analysis_source is AnalysisSource.EXTERNAL_AI
    assert result.metadata.analysis_note is None
    assert result.metadata.ai_insights.main_topic == "Widget buying"
    assert result.metadata.ai_insights.model_extra == {"audience": "buyers"}
    assert result.content.ai_insights.summary == "How to choose a widget"

    links = {link.url: link for link in result.links}
    assert "/not-on-page" not in links
    assert links["/about"].category == "information"
    assert links["/products"].category is None

    images = {image.src: image for image in result.images}
    assert images["logo.png"].purpose == "Logo"
    assert images["chart.jpg"].purpose is None


def test_ai_prompt_only_requests_enabled_sections(sample_page):
    client = StubLLMClient({})
    scraper = WebScraper(ai_analyzer=AIAnalyzer(llm_client=client))
    options = ScrapeOptions(use_external_ai=True, parse_links=False, parse_images=False)

    scraper.scrape_html(SAMPLE_URL, sample_page, options)

    prompt = client.prompts[0]
    assert '"metadata"' in prompt
    assert '"content"' in prompt
    assert '"links"' not in prompt
    assert '"images"' not in prompt


def test_store_receives_final_result(sample_page):
    store = MemoryScrapeStore()
    scraper = WebScraper(fetcher=StaticFetcher(sample_page), store=store)

    first = scraper.scrape(SAMPLE_URL)
    second = scraper.scrape(SAMPLE_URL)

    assert (first.id, second.id) == (1, 2)
    assert store.get_by_id(1).to_document() == first.to_document()
    assert store.get_by_url(SAMPLE_URL).id in (1, 2)


def test_store_failure_is_a_scrape_error(sample_page):
    class FullDiskStore(MemoryScrapeStore):
        def create(self, result):
            raise OSError("disk full")

    scraper = WebScraper(fetcher=StaticFetcher(sample_page), store=FullDiskStore())

    with pytest.raises(ScrapeError) as exc_info:
        scraper.scrape(SAMPLE_URL)
    assert exc_info.value.message == "Failed to store scrape: disk full"
    assert isinstance(exc_info.value.__cause__, OSError)


def test_unexpected_fetcher_error_is_a_scrape_error():
    class ResetFetcher(StaticFetcher):
        def fetch(self, url):
            raise ConnectionResetError("connection reset by peer")

    with pytest.raises(ScrapeError) as exc_info:
        WebScraper(fetcher=ResetFetcher("")).scrape(SAMPLE_URL)
    assert exc_info.value.message == "Failed to scrape website: connection reset by peer"
    assert exc_info.value.url == SAMPLE_URL


def test_heuristic_failure_keeps_extracted_data(sample_page):
    class BrokenAnalyzer:
        def analyze(self, doc, options, base_url):
            raise RuntimeError("rule table corrupted")

    result = WebScraper(heuristic_analyzer=BrokenAnalyzer()).scrape_html(SAMPLE_URL, sample_page)

    assert result.analysis_source is None
    assert result.metadata.title == "Widget Guide - Acme"
    assert any("Heuristic analysis failed" in w for w in result.warnings)


def test_unexpected_failure_is_a_single_scrape_error(sample_page, monkeypatch):
    scraper = WebScraper()

    def broken(doc, options, base_url):
        raise RuntimeError("boom")

    monkeypatch.setattr(scraper.extractor, "extract", broken)

    with pytest.raises(ScrapeError) as exc_info:
        scraper.scrape_html(SAMPLE_URL, sample_page)
    assert "boom" in exc_info.value.message
    assert isinstance(exc_info.value.__cause__, RuntimeError)


def test_malformed_markup_never_fails():
    result = scrape_markup(SAMPLE_URL, "<html><body><p>Unclosed <div><a href='/x'>x")

    assert result.links[0].url == "/x"
    assert result.content.stats.word_count == 2


def test_api_key_is_not_serialized(sample_page, no_llm_env):
    options = ScrapeOptions(use_external_ai=True, api_key="sk-secret")
    scraper = WebScraper(ai_analyzer=AIAnalyzer(llm_client=FailingLLMClient()))

    result = scraper.scrape_html(SAMPLE_URL, sample_page, options)

    assert "sk-secret" not in str(result.to_document())
    assert "sk-secret" not in repr(result.options)
