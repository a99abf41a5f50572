"""
Pydantic schemas defining the contracts between pipeline stages.

ScrapeOptions:    what the caller asked for (section toggles + analyzer choice)
ExtractionResult: deterministic output of the Extractor
Enrichment:       partial enrichment produced by the heuristic or AI analyzer
ScrapeResult:     the merged record handed to storage and to callers

Data flow through the pipeline:
  markup -> ParsedDocument -> Extractor -> ExtractionResult -> ScrapeResult
  ParsedDocument -> HeuristicAnalyzer (or AIAnalyzer on markup) -> Enrichment
  ScrapeResult + Enrichment -> merge() -> ScrapeResult

Python attributes are snake_case; serialized documents use camelCase keys
(model_dump(by_alias=True)), which is the shape external consumers read.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serializing to camelCase keys while accepting either form."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AnalysisSource(str, Enum):
    """Which analyzer produced the enrichment merged into a result."""
    HEURISTIC = "heuristic"
    EXTERNAL_AI = "external-ai"


# --- Caller input ---

class ScrapeOptions(CamelModel):
    """Section toggles and analyzer selection for one scrape. Immutable."""
    model_config = ConfigDict(frozen=True)

    parse_metadata: bool = True
    parse_content: bool = True
    parse_links: bool = True
    parse_images: bool = True
    use_external_ai: bool = Field(default=False, alias="useExternalAI")
    # No analyzer runs at all when this is False and use_external_ai is False
    enrich: bool = True
    # Credential for the external AI analyzer; kept out of dumps and reprs
    api_key: Optional[str] = Field(default=None, exclude=True, repr=False)
    llm_provider: Optional[str] = None  # "openai" or "anthropic"


# --- Metadata section ---

class OpenGraph(CamelModel):
    title: str = ""
    description: str = ""
    image: Optional[str] = None
    url: str = ""
    type: str = ""


class TwitterCard(CamelModel):
    card: str = ""
    site: Optional[str] = None
    creator: Optional[str] = None


class MetadataInsights(CamelModel):
    """Page-level insights. AI services may return extra keys; they are kept."""
    model_config = ConfigDict(extra="allow")

    main_topic: Optional[str] = None
    content_type: Optional[str] = None
    estimated_age: Optional[str] = None
    key_terms: Optional[list[str]] = None
    sentiment: Optional[str] = None
    estimated_readability: Optional[str] = None


class Metadata(CamelModel):
    title: str = ""
    description: str = ""
    canonical: str = ""
    language: str = ""
    favicon: str = ""
    open_graph: OpenGraph = Field(default_factory=OpenGraph)
    twitter: TwitterCard = Field(default_factory=TwitterCard)
    other: dict[str, str] = Field(default_factory=dict)  # Any other meta name -> content
    ai_insights: Optional[MetadataInsights] = None
    analysis_note: Optional[str] = None  # Set when the AI analyzer failed and heuristics were used


# --- Content section ---

class Heading(CamelModel):
    type: str      # Tag name, "h1" .. "h6"
    text: str
    level: int = Field(ge=1, le=6)


class ContentStats(CamelModel):
    word_count: int = 0
    paragraph_count: int = 0
    reading_time_minutes: float = 0.0  # word_count / 200, not rounded
    heading_count: int = 0


class ContentInsights(CamelModel):
    """Content-level insights. AI services may return extra keys; they are kept."""
    model_config = ConfigDict(extra="allow")

    summary: Optional[str] = None
    main_themes: Optional[list[str]] = None
    top_keywords: Optional[list[str]] = None
    key_phrases: Optional[list[str]] = None
    estimated_quality: Optional[str] = None


class Content(CamelModel):
    headings: list[Heading] = Field(default_factory=list)
    paragraphs: list[str] = Field(default_factory=list)
    stats: ContentStats = Field(default_factory=ContentStats)
    ai_insights: Optional[ContentInsights] = None


# --- Links and images ---
# Both allow extra fields: enrichment is a shallow merge onto the extracted
# entry, so whatever an analyzer adds must survive validation.

class LinkAttributes(CamelModel):
    rel: Optional[str] = None
    target: Optional[str] = None


class Link(CamelModel):
    model_config = ConfigDict(extra="allow")

    url: str
    text: str = ""
    type: str = "internal"  # "internal" or "external"
    attributes: LinkAttributes = Field(default_factory=LinkAttributes)
    category: Optional[str] = None
    importance: Optional[str] = None


class Image(CamelModel):
    model_config = ConfigDict(extra="allow")

    src: str
    alt: str = ""
    width: Optional[int] = None
    height: Optional[int] = None
    size: Optional[int] = None  # Never fetched; always None from the extractor
    type: str = "Unknown"       # JPG, PNG, SVG, GIF, WEBP or Unknown
    purpose: Optional[str] = None
    importance: Optional[str] = None
    context: Optional[str] = None


class LinkInsight(CamelModel):
    """Enrichment for one link, keyed by url."""
    model_config = ConfigDict(extra="allow")

    url: str
    category: Optional[str] = None
    importance: Optional[str] = None


class ImageInsight(CamelModel):
    """Enrichment for one image, keyed by src."""
    model_config = ConfigDict(extra="allow")

    src: str
    purpose: Optional[str] = None
    importance: Optional[str] = None
    context: Optional[str] = None


# --- Stage outputs ---

class ExtractionResult(CamelModel):
    """Output of the Extractor. A section is None when its toggle is off."""
    metadata: Optional[Metadata] = None
    content: Optional[Content] = None
    links: Optional[list[Link]] = None
    images: Optional[list[Image]] = None
    warnings: list[str] = Field(default_factory=list)  # Non-fatal section failures


class Enrichment(CamelModel):
    """Partial enrichment from an analyzer. Every section is optional."""
    metadata: Optional[MetadataInsights] = None
    content: Optional[ContentInsights] = None
    links: Optional[list[LinkInsight]] = None
    images: Optional[list[ImageInsight]] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ScrapeResult(CamelModel):
    """The final record for one scraped page."""
    id: Optional[int] = None  # Assigned by the store on create()
    url: str
    scrape_date: datetime = Field(default_factory=_utcnow)
    metadata: Optional[Metadata] = None
    content: Optional[Content] = None
    links: Optional[list[Link]] = None
    images: Optional[list[Image]] = None
    options: ScrapeOptions = Field(default_factory=ScrapeOptions)
    raw_markup: Optional[str] = Field(default=None, repr=False)
    analysis_source: Optional[AnalysisSource] = None
    warnings: list[str] = Field(default_factory=list)

    def to_document(self, include_markup: bool = True) -> dict[str, Any]:
        """Dump as a JSON-compatible dict with camelCase keys."""
        exclude = None if include_markup else {"raw_markup"}
        return self.model_dump(mode="json", by_alias=True, exclude=exclude)
