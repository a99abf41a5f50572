"""
Rule-based data extractor.

Deterministic, option-gated extraction of metadata, content, links and images
from a ParsedDocument. Each section is computed independently and only when
its toggle is set; a section that fails is logged, recorded as a warning and
left out, while the remaining sections are still extracted.

Pipeline position: runs on the parsed document before enrichment.
Input:  ParsedDocument + ScrapeOptions + page URL
Output: ExtractionResult (metadata?, content?, links?, images?, warnings)
"""

from typing import Callable, Optional

from .document import Node, ParsedDocument
from .schemas import (
    Content,
    ContentStats,
    ExtractionResult,
    Heading,
    Image,
    Link,
    LinkAttributes,
    Metadata,
    OpenGraph,
    ScrapeOptions,
    TwitterCard,
)
from .logger import get_module_logger

logger = get_module_logger("extractor")

HEADING_TAGS = ['h1', 'h2', 'h3', 'h4', 'h5', 'h6']

# Average adult reading speed, words per minute
WORDS_PER_MINUTE = 200

# File extension -> image type tag
IMAGE_TYPES = {
    'jpg': 'JPG',
    'jpeg': 'JPG',
    'png': 'PNG',
    'svg': 'SVG',
    'gif': 'GIF',
    'webp': 'WEBP',
}

IGNORED_META_PREFIXES = ('og:', 'twitter:')


def count_words(text: str) -> int:
    """Whitespace-delimited, non-empty tokens."""
    return len(text.split())


def image_type(src: str) -> str:
    """Image type tag from the lowercase text after the last '.' of src."""
    extension = src.rsplit('.', 1)[-1].lower()
    return IMAGE_TYPES.get(extension, 'Unknown')


def link_type(href: str, page_url: str) -> str:
    """'external' for absolute http(s) hrefs outside the page URL, else 'internal'."""
    if href.startswith("http") and (not page_url or page_url not in href):
        return 'external'
    return 'internal'


class Extractor:
    """Extracts deterministic sections from a parsed document."""

    def extract(self, doc: ParsedDocument, options: ScrapeOptions, base_url: str) -> ExtractionResult:
        """
        Extract every enabled section.

        Args:
            doc: Parsed document
            options: Section toggles
            base_url: URL the markup was fetched from

        Returns:
            ExtractionResult; disabled sections are None
        """
        logger.info("Starting extraction")
        result = ExtractionResult(warnings=list(doc.warnings))

        if options.parse_metadata:
            result.metadata = self._run_section(
                "metadata", lambda: self.extract_metadata(doc), result.warnings)
        if options.parse_content:
            result.content = self._run_section(
                "content", lambda: self.extract_content(doc), result.warnings)
        if options.parse_links:
            result.links = self._run_section(
                "links", lambda: self.extract_links(doc, base_url), result.warnings)
        if options.parse_images:
            result.images = self._run_section(
                "images", lambda: self.extract_images(doc), result.warnings)

        logger.info(
            f"Extracted {len(result.links or [])} links, {len(result.images or [])} images"
        )
        return result

    def _run_section(self, section: str, func: Callable, warnings: list[str]):
        """Run one section; on failure keep going without it (partial return)."""
        try:
            return func()
        except Exception as e:
            logger.warning(f"{section} extraction failed: {e}")
            warnings.append(f"{section} extraction failed: {e}")
            return None

    # --- Metadata ---

    def extract_metadata(self, doc: ParsedDocument) -> Metadata:
        def meta(selector: str) -> Optional[str]:
            # Empty content counts as absent
            return doc.attr(selector, 'content') or None

        metadata = Metadata(
            title=doc.title_text(),
            description=meta('meta[name="description"]') or '',
            canonical=doc.attr('link[rel~="canonical"]', 'href') or '',
            language=doc.attr('html', 'lang') or '',
            favicon=doc.attr('link[rel~="icon"]', 'href') or '',
            open_graph=OpenGraph(
                title=meta('meta[property="og:title"]') or '',
                description=meta('meta[property="og:description"]') or '',
                image=meta('meta[property="og:image"]'),
                url=meta('meta[property="og:url"]') or '',
                type=meta('meta[property="og:type"]') or '',
            ),
            twitter=TwitterCard(
                card=meta('meta[name="twitter:card"]') or '',
                site=meta('meta[name="twitter:site"]'),
                creator=meta('meta[name="twitter:creator"]'),
            ),
        )

        for node in doc.select('meta'):
            name = node.get('name') or node.get('property')
            content = node.get('content')
            if name and content and not name.startswith(IGNORED_META_PREFIXES):
                metadata.other[name] = content

        return metadata

    # --- Content ---

    def extract_content(self, doc: ParsedDocument) -> Content:
        headings = [
            Heading(type=node.name, text=node.text, level=int(node.name[1]))
            for node in doc.select(', '.join(HEADING_TAGS))
        ]

        paragraphs = [node.text for node in doc.select('p') if node.text]

        word_count = count_words(doc.body_text())

        return Content(
            headings=headings,
            paragraphs=paragraphs,
            stats=ContentStats(
                word_count=word_count,
                paragraph_count=len(paragraphs),
                reading_time_minutes=word_count / WORDS_PER_MINUTE,
                heading_count=len(headings),
            ),
        )

    # --- Links ---

    def extract_links(self, doc: ParsedDocument, base_url: str) -> list[Link]:
        # Keyed by url: a repeated href keeps its first position, last value wins
        links: dict[str, Link] = {}

        for node in doc.select('a'):
            href = node.get('href')
            if not href:
                continue

            links[href] = Link(
                url=href,
                text=node.text,
                type=link_type(href, base_url),
                attributes=LinkAttributes(
                    rel=node.get('rel') or None,
                    target=node.get('target') or None,
                ),
            )

        return list(links.values())

    # --- Images ---

    def extract_images(self, doc: ParsedDocument) -> list[Image]:
        images: dict[str, Image] = {}

        for node in doc.select('img'):
            src = node.get('src')
            if not src:
                continue
            images[src] = self._build_image(node, src)

        return list(images.values())

    def _build_image(self, node: Node, src: str) -> Image:
        return Image(
            src=src,
            alt=node.get('alt'),
            width=node.int_attr('width'),
            height=node.int_attr('height'),
            size=None,
            type=image_type(src),
        )


def extract(doc: ParsedDocument, options: Optional[ScrapeOptions] = None,
            base_url: str = "") -> ExtractionResult:
    """Convenience function to extract sections from a parsed document."""
    return Extractor().extract(doc, options or ScrapeOptions(), base_url)
