"""Shared fixtures: sample markup and stub collaborators."""

import pytest

from page_scraper.exceptions import FetchError, LLMClientError
from page_scraper.fetcher import BaseFetcher
from page_scraper.llm_client import BaseLLMClient

SAMPLE_URL = "https://example.com/widgets"

SAMPLE_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>Widget Guide - Acme</title>
  <meta name="description" content="Everything you need to know about widgets.">
  <meta name="author" content="Jane Doe">
  <meta property="og:title" content="Widget Guide">
  <meta property="og:image" content="https://example.com/og.png">
  <meta name="twitter:card" content="summary">
  <link rel="canonical" href="https://example.com/widgets">
  <link rel="icon" href="/favicon.png">
  <script>var tracking = "ignore me";</script>
</head>
<body>
  <header>
    <a href="/"><img src="logo.png" alt="Acme logo"></a>
    <nav><a href="/products">Products</a> <a href="/about">About</a></nav>
  </header>
  <main>
    <h1>Widgets</h1>
    <p>Widgets are great tools for everyday work, and this guide explains how to choose one.</p>
    <h2>Choosing a widget</h2>
    <p>Pick a widget that fits the job.</p>
    <p><img src="chart.jpg" alt="Sales chart" width="640" height="480"> Sales by year.</p>
    <a href="https://facebook.com/acme">Follow us</a>
    <a href="/products">Shop widgets</a>
  </main>
  <footer><p>&copy; 2021 Acme</p></footer>
</body>
</html>
"""


class StaticFetcher(BaseFetcher):
    """Returns the same markup for every URL."""

    def __init__(self, markup: str):
        self.markup = markup
        self.requested: list[str] = []

    def fetch(self, url: str) -> str:
        self.requested.append(url)
        return self.markup


class FailingFetcher(BaseFetcher):
    def __init__(self, status_code: int = 404):
        self.status_code = status_code

    def fetch(self, url: str) -> str:
        raise FetchError(
            f"Request failed with status code {self.status_code}",
            url=url,
            status_code=self.status_code
        )


class StubLLMClient(BaseLLMClient):
    """Answers every JSON request with a fixed response."""

    def __init__(self, response: dict):
        self.response = response
        self.prompts: list[str] = []

    def complete(self, prompt, system_prompt=None):
        raise NotImplementedError

    def complete_json(self, prompt, system_prompt=None):
        self.prompts.append(prompt)
        return self.response


class FailingLLMClient(BaseLLMClient):
    """Fails every request the way a provider outage would."""

    def complete(self, prompt, system_prompt=None):
        raise LLMClientError("Service unavailable", provider="openai")

    def complete_json(self, prompt, system_prompt=None):
        raise LLMClientError("Service unavailable", provider="openai")


@pytest.fixture
def sample_page() -> str:
    return SAMPLE_PAGE


@pytest.fixture
def no_llm_env(monkeypatch):
    """Remove every LLM credential and provider setting from the environment."""
    for name in ("OPENAI_API_KEY", "ANTHROPIC_API_KEY", "LLM_PROVIDER", "LLM_MODEL"):
        monkeypatch.delenv(name, raising=False)
