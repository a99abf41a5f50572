"""
Export helpers: summary dict, JSON document and a sectioned CSV.

Raw markup is left out of every export unless explicitly requested.
"""

import csv
import io
import json
from typing import Any

from .schemas import ScrapeResult


def to_summary(result: ScrapeResult, include_markup: bool = False) -> dict[str, Any]:
    """JSON-compatible dict with camelCase keys."""
    return result.to_document(include_markup=include_markup)


def to_json(result: ScrapeResult, include_markup: bool = False, indent: int = 2) -> str:
    return json.dumps(to_summary(result, include_markup), indent=indent, ensure_ascii=False)


def to_csv(result: ScrapeResult) -> str:
    """
    Flatten a result into one CSV text with a header row and one block per
    present section (LINKS, IMAGES, CONTENT).
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")

    metadata = result.metadata
    writer.writerow(["URL", "Scrape Date", "Title", "Description"])
    writer.writerow([
        result.url,
        result.scrape_date.isoformat(),
        metadata.title if metadata else "",
        metadata.description if metadata else "",
    ])

    if result.links:
        writer.writerow([])
        writer.writerow(["LINKS"])
        writer.writerow(["URL", "Text", "Type"])
        for link in result.links:
            writer.writerow([link.url, link.text, link.type])

    if result.images:
        writer.writerow([])
        writer.writerow(["IMAGES"])
        writer.writerow(["Source", "Alt Text", "Width", "Height", "Type"])
        for image in result.images:
            writer.writerow([image.src, image.alt, image.width or "", image.height or "", image.type])

    if result.content and result.content.paragraphs:
        writer.writerow([])
        writer.writerow(["CONTENT"])
        writer.writerow(["Paragraphs"])
        for paragraph in result.content.paragraphs:
            writer.writerow([paragraph])

    return buffer.getvalue()


def export_filename(result: ScrapeResult, extension: str) -> str:
    """scrape-YYYY-MM-DDTHH-MM-SS.<extension>"""
    stamp = result.scrape_date.strftime("%Y-%m-%dT%H-%M-%S")
    return f"scrape-{stamp}.{extension.lstrip('.')}"
