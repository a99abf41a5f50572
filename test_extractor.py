"""Tests for the rule-based extractor."""

import pytest

from conftest import SAMPLE_URL
from page_scraper.document import ParsedDocument
from page_scraper.extractor import Extractor, extract, image_type, link_type
from page_scraper.schemas import ScrapeOptions


@pytest.fixture
def extractor():
    return Extractor()


def test_every_toggle_off_yields_no_sections(sample_page, extractor):
    options = ScrapeOptions(
        parse_metadata=False,
        parse_content=False,
        parse_links=False,
        parse_images=False,
    )
    result = extractor.extract(ParsedDocument(sample_page), options, SAMPLE_URL)

    assert result.metadata is None
    assert result.content is None
    assert result.links is None
    assert result.images is None


def test_toggles_are_independent(sample_page, extractor):
    options = ScrapeOptions(parse_content=False, parse_images=False)
    result = extractor.extract(ParsedDocument(sample_page), options, SAMPLE_URL)

    assert result.metadata is not None
    assert result.links is not None
    assert result.content is None
    assert result.images is None


def test_metadata(sample_page, extractor):
    metadata = extractor.extract_metadata(ParsedDocument(sample_page))

    assert metadata.title == "Widget Guide - Acme"
    assert metadata.description == "Everything you need to know about widgets."
    assert metadata.canonical == "https://example.com/widgets"
    assert metadata.language == "en"
    assert metadata.favicon == "/favicon.png"
    assert metadata.open_graph.title == "Widget Guide"
    assert metadata.open_graph.image == "https://example.com/og.png"
    assert metadata.open_graph.description == ""
    assert metadata.twitter.card == "summary"
    assert metadata.twitter.site is None
    assert metadata.other["author"] == "Jane Doe"
    assert not any(key.startswith(("og:", "twitter:")) for key in metadata.other)


def test_metadata_defaults_for_empty_document(extractor):
    metadata = extractor.extract_metadata(ParsedDocument("<html><body></body></html>"))

    assert metadata.title == ""
    assert metadata.description == ""
    assert metadata.canonical == ""
    assert metadata.language == ""
    assert metadata.favicon == ""
    assert metadata.open_graph.image is None
    assert metadata.other == {}


def test_title_is_trimmed(extractor):
    metadata = extractor.extract_metadata(ParsedDocument("<title>\n  Spaced  \n</title>"))
    assert metadata.title == "Spaced"


def test_reading_time_is_word_count_over_200(extractor):
    markup = "<html><body><p>" + "word " * 400 + "</p></body></html>"
    content = extractor.extract_content(ParsedDocument(markup))

    assert content.stats.word_count == 400
    assert content.stats.reading_time_minutes == 2.0


def test_reading_time_is_not_rounded(extractor):
    markup = "<body><p>" + "word " * 250 + "</p></body>"
    content = extractor.extract_content(ParsedDocument(markup))
    assert content.stats.reading_time_minutes == 1.25


def test_content(sample_page, extractor):
    content = extractor.extract_content(ParsedDocument(sample_page))

    assert [(h.type, h.text, h.level) for h in content.headings] == [
        ("h1", "Widgets", 1),
        ("h2", "Choosing a widget", 2),
    ]
    assert content.stats.heading_count == 2
    assert content.stats.paragraph_count == len(content.paragraphs) == 4
    assert content.paragraphs[1] == "Pick a widget that fits the job."
    # Script bodies never count as words
    assert "tracking" not in " ".join(content.paragraphs)


def test_empty_paragraphs_are_skipped(extractor):
    content = extractor.extract_content(ParsedDocument("<p>  </p><p>Text</p>"))
    assert content.paragraphs == ["Text"]


def test_links_are_unique_by_url(sample_page, extractor):
    links = extractor.extract_links(ParsedDocument(sample_page), SAMPLE_URL)
    urls = [link.url for link in links]

    assert len(urls) == len(set(urls))
    assert urls == ["/", "/products", "/about", "https://facebook.com/acme"]


def test_repeated_link_keeps_first_position_and_last_value(extractor):
    doc = ParsedDocument('<a href="/a">First</a><a href="/b">B</a><a href="/a">Again</a>')
    links = extractor.extract_links(doc, "https://example.com")

    assert [link.url for link in links] == ["/a", "/b"]
    assert links[0].text == "Again"


def test_link_attributes(extractor):
    doc = ParsedDocument('<a href="https://other.org" rel="nofollow" target="_blank">x</a><a href="/y">y</a>')
    links = extractor.extract_links(doc, "https://example.com")

    assert links[0].attributes.rel == "nofollow"
    assert links[0].attributes.target == "_blank"
    assert links[1].attributes.rel is None
    assert links[1].attributes.target is None


def test_anchors_without_href_are_skipped(extractor):
    doc = ParsedDocument('<a name="top">Top</a><a href="">Empty</a><a href="/x">X</a>')
    assert [link.url for link in extractor.extract_links(doc, "")] == ["/x"]


def test_link_type():
    page = "https://example.com"
    assert link_type("https://example.com/about", page) == "internal"
    assert link_type("https://other.org/", page) == "external"
    assert link_type("/about", page) == "internal"
    assert link_type("mailto:hi@example.com", page) == "internal"
    assert link_type("https://other.org/", "") == "external"


def test_images(sample_page, extractor):
    images = extractor.extract_images(ParsedDocument(sample_page))

    assert [image.src for image in images] == ["logo.png", "chart.jpg"]
    chart = images[1]
    assert chart.alt == "Sales chart"
    assert chart.width == 640
    assert chart.height == 480
    assert chart.type == "JPG"
    assert chart.size is None
    assert images[0].width is None


def test_images_unique_by_src(extractor):
    doc = ParsedDocument('<img src="a.png" alt="one"><img src="a.png" alt="two"><img alt="no src">')
    images = extractor.extract_images(doc)

    assert len(images) == 1
    assert images[0].alt == "two"


def test_image_type():
    assert image_type("photo.JPEG") == "JPG"
    assert image_type("/img/icon.svg") == "SVG"
    assert image_type("anim.gif") == "GIF"
    assert image_type("pic.webp") == "WEBP"
    assert image_type("pic.bmp") == "Unknown"
    assert image_type("no-extension") == "Unknown"


def test_failing_section_is_left_out_with_warning(sample_page, extractor, monkeypatch):
    def broken(doc, base_url):
        raise RuntimeError("selector engine exploded")

    monkeypatch.setattr(extractor, "extract_links", broken)
    result = extractor.extract(ParsedDocument(sample_page), ScrapeOptions(), SAMPLE_URL)

    assert result.links is None
    assert result.metadata is not None
    assert result.content is not None
    assert result.images is not None
    assert any("links extraction failed" in w for w in result.warnings)


def test_parser_warnings_are_carried(extractor):
    result = extractor.extract(ParsedDocument("<p>a\x00b</p>"), ScrapeOptions(), "")
    assert "Removed NULL bytes" in result.warnings


def test_convenience_function_uses_default_options(sample_page):
    result = extract(ParsedDocument(sample_page), base_url=SAMPLE_URL)
    assert result.metadata.title == "Widget Guide - Acme"
