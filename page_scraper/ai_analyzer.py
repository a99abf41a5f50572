"""
External AI content analyzer.

Sends the page markup to an LLM and turns its JSON answer into a partial
Enrichment. Any failure (missing credential, API error, timeout, malformed
JSON, response that does not fit the Enrichment shape) is raised as
AnalysisError; the pipeline then falls back to the heuristic analyzer.

Input:  page URL + raw markup + ScrapeOptions
Output: Enrichment (metadata?, content?, links?, images?)
"""

from typing import Optional

from pydantic import ValidationError

from .exceptions import AnalysisError, LLMClientError
from .llm_client import BaseLLMClient, LLMClient
from .logger import get_module_logger
from .schemas import Enrichment, ScrapeOptions

logger = get_module_logger("ai_analyzer")

# Markup beyond this many characters is cut before sending
MAX_MARKUP_CHARS = 15000

SYSTEM_PROMPT = """You are a web content analyzer that extracts structured information from HTML. \
Focus on providing accurate, concise analyses and categorizations. Respond with valid JSON only."""

# One instruction per requested section; the prompt only mentions what was asked for
SECTION_INSTRUCTIONS = {
    "metadata": (
        '"metadata": an object with mainTopic, contentType, estimatedAge, keyTerms '
        '(list of strings), sentiment and estimatedReadability'
    ),
    "content": (
        '"content": an object with summary, mainThemes (list), topKeywords (list), '
        'keyPhrases (list) and estimatedQuality'
    ),
    "links": (
        '"links": a list of objects with url (exactly as in the href), category '
        '(navigation, reference, social, media, download, contact, content, ...) and importance'
    ),
    "images": (
        '"images": a list of objects with src (exactly as in the markup), purpose, '
        'importance (High, Medium, Low) and context'
    ),
}

USER_PROMPT = """Analyze the following HTML from {url} and extract structured information.

Respond with a JSON object containing only these sections:
{sections}

HTML:
```html
{html}
```"""


def requested_sections(options: ScrapeOptions) -> list[str]:
    sections = []
    if options.parse_metadata:
        sections.append("metadata")
    if options.parse_content:
        sections.append("content")
    if options.parse_links:
        sections.append("links")
    if options.parse_images:
        sections.append("images")
    return sections


class AIAnalyzer:
    """LLM-backed analyzer producing a partial enrichment."""

    def __init__(
        self,
        llm_client: Optional[BaseLLMClient] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None
    ):
        # An injected client is used as-is; otherwise one is created per call
        # from the credential in ScrapeOptions (or the provider env var).
        self.llm_client = llm_client
        self.model = model
        self.timeout = timeout

    def _client_for(self, options: ScrapeOptions) -> BaseLLMClient:
        if self.llm_client is not None:
            return self.llm_client
        try:
            return LLMClient.create(
                provider=options.llm_provider,
                api_key=options.api_key,
                model=self.model,
                timeout=self.timeout
            )
        except LLMClientError as e:
            raise AnalysisError(
                f"Failed to initialize LLM client: {e.message}",
                provider=e.provider
            ) from e

    def analyze(self, url: str, markup: str, options: ScrapeOptions) -> Enrichment:
        """
        Analyze markup with the LLM.

        Raises:
            AnalysisError: on any failure
        """
        sections = requested_sections(options)
        if not sections:
            return Enrichment()

        client = self._client_for(options)

        if len(markup) > MAX_MARKUP_CHARS:
            markup = markup[:MAX_MARKUP_CHARS] + "\n<!-- TRUNCATED -->"

        prompt = USER_PROMPT.format(
            url=url,
            sections="\n".join(f"- {SECTION_INSTRUCTIONS[s]}" for s in sections),
            html=markup
        )

        logger.info(f"Requesting AI analysis for {url} ({', '.join(sections)})")
        try:
            response = client.complete_json(prompt=prompt, system_prompt=SYSTEM_PROMPT)
        except LLMClientError as e:
            raise AnalysisError(f"LLM failed: {e.message}", provider=e.provider) from e

        return self._parse_response(response, sections)

    def _parse_response(self, response: dict, sections: list[str]) -> Enrichment:
        """
        Build an Enrichment from the raw JSON answer.

        Sections that were not requested or have the wrong shape are dropped;
        list entries without a key (url / src) are dropped.
        """
        data = {}

        for section in ("metadata", "content"):
            value = response.get(section)
            if section in sections and isinstance(value, dict):
                data[section] = value

        for section, key in (("links", "url"), ("images", "src")):
            value = response.get(section)
            if section in sections and isinstance(value, list):
                data[section] = [
                    entry for entry in value
                    if isinstance(entry, dict) and isinstance(entry.get(key), str)
                ]

        try:
            return Enrichment.model_validate(data)
        except ValidationError as e:
            raise AnalysisError(
                "AI response does not match the enrichment shape",
                details={"errors": e.errors(include_url=False)}
            ) from e
