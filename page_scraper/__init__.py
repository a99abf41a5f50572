"""
Page Scraper

Fetches a web page, extracts structured sections from it and enriches them.
- Extractor: Deterministic metadata, content, links and images
- HeuristicAnalyzer: Local rule-based insights
- AIAnalyzer: LLM-based insights, with heuristic fallback on failure

Public API surface:
  Orchestrator          - WebScraper, scrape_url, scrape_markup
  Pipeline stages       - ParsedDocument, Extractor, HeuristicAnalyzer, AIAnalyzer, merge
  Data models           - ScrapeOptions, ScrapeResult, Enrichment
  Error types           - ScrapeError (fatal), FetchError, AnalysisError (recovered)
  Storage               - MemoryScrapeStore, FileScrapeStore
"""

# --- Orchestrator ---
from .main import WebScraper, scrape_url, scrape_markup

# --- Pipeline stages ---
from .document import ParsedDocument, parse_document
from .extractor import Extractor
from .heuristics import HeuristicAnalyzer
from .ai_analyzer import AIAnalyzer
from .merger import merge, annotate_fallback
from .fetcher import HttpFetcher

# --- Data models ---
from .schemas import ScrapeOptions, ScrapeResult, ExtractionResult, Enrichment

# --- Exceptions ---
from .exceptions import ScraperError, ScrapeError, FetchError, AnalysisError, LLMClientError

# --- Storage ---
from .storage import MemoryScrapeStore, FileScrapeStore

__version__ = "0.1.0"
__all__ = [
    "WebScraper",
    "scrape_url",
    "scrape_markup",
    "ParsedDocument",
    "parse_document",
    "Extractor",
    "HeuristicAnalyzer",
    "AIAnalyzer",
    "merge",
    "annotate_fallback",
    "HttpFetcher",
    "ScrapeOptions",
    "ScrapeResult",
    "ExtractionResult",
    "Enrichment",
    "ScraperError",
    "ScrapeError",
    "FetchError",
    "AnalysisError",
    "LLMClientError",
    "MemoryScrapeStore",
    "FileScrapeStore",
]
