"""
Enrichment merger.

Combines the deterministic ScrapeResult with an analyzer's Enrichment:
  - metadata/content insights are nested under ai_insights next to the
    extracted fields, never replacing them
  - link/image insights are matched by url/src and shallow-merged onto the
    extracted entry (enrichment fields win on collision)
  - insights for keys the extractor never saw are dropped; the extracted set
    defines which links and images exist

Merging the same enrichment twice gives the same result.
"""

from typing import Optional, TypeVar, Union

from pydantic import BaseModel, ValidationError

from .logger import get_module_logger
from .schemas import (
    AnalysisSource,
    Enrichment,
    Image,
    ImageInsight,
    Link,
    LinkInsight,
    ScrapeResult,
)

logger = get_module_logger("merger")

FALLBACK_NOTE = "External AI analysis failed, using local heuristic analysis instead"

Entry = TypeVar("Entry", Link, Image)


def merge_entries(
    entries: list[Entry],
    insights: list[Union[LinkInsight, ImageInsight]],
    key: str,
    warnings: Optional[list[str]] = None
) -> list[Entry]:
    """
    Shallow-merge insights onto entries sharing the same key.

    Keeps the order of the extracted entries. A repeated key in entries
    collapses to one entry; a repeated key in insights is applied in order,
    so the last one wins.
    """
    by_key: dict[str, Entry] = {}
    for entry in entries:
        by_key[getattr(entry, key)] = entry

    for insight in insights:
        insight_key = getattr(insight, key)
        existing = by_key.get(insight_key)
        if existing is None:
            continue

        update = insight.model_dump(by_alias=True, exclude_none=True)
        try:
            by_key[insight_key] = type(existing).model_validate(
                {**existing.model_dump(by_alias=True), **update}
            )
        except ValidationError as e:
            logger.warning(f"Ignoring enrichment for {key}={insight_key!r}: {e.error_count()} invalid fields")
            if warnings is not None:
                warnings.append(f"Ignored invalid enrichment for {insight_key}")

    return list(by_key.values())


def _with_insights(section: Optional[BaseModel], insights: Optional[BaseModel]) -> Optional[BaseModel]:
    if section is None or insights is None:
        return section
    return section.model_copy(update={"ai_insights": insights})


def merge(
    extracted: ScrapeResult,
    analysis: Enrichment,
    source: Union[AnalysisSource, str]
) -> ScrapeResult:
    """
    Merge an analyzer's enrichment into an extracted result.

    Args:
        extracted: Result carrying only deterministic fields (or a previous merge)
        analysis: Partial enrichment from the heuristic or AI analyzer
        source: Which analyzer produced the enrichment

    Returns:
        A new ScrapeResult; extracted is left unchanged
    """
    source = AnalysisSource(source)
    warnings = list(extracted.warnings)

    links = extracted.links
    if links is not None and analysis.links:
        links = merge_entries(links, analysis.links, "url", warnings)

    images = extracted.images
    if images is not None and analysis.images:
        images = merge_entries(images, analysis.images, "src", warnings)

    merged = extracted.model_copy(update={
        "metadata": _with_insights(extracted.metadata, analysis.metadata),
        "content": _with_insights(extracted.content, analysis.content),
        "links": links,
        "images": images,
        "analysis_source": source,
        "warnings": warnings,
    })

    logger.debug(f"Merged {source.value} enrichment into {extracted.url}")
    return merged


def annotate_fallback(result: ScrapeResult, note: str = FALLBACK_NOTE) -> ScrapeResult:
    """Record that the AI analyzer failed and heuristics were used instead."""
    metadata = result.metadata
    if metadata is not None:
        metadata = metadata.model_copy(update={"analysis_note": note})
    return result.model_copy(update={
        "metadata": metadata,
        "warnings": [*result.warnings, note],
    })
