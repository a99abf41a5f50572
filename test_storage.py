"""Tests for scrape result stores."""

from datetime import datetime, timedelta, timezone

import pytest

from page_scraper.schemas import Link, Metadata, ScrapeOptions, ScrapeResult
from page_scraper.storage import FileScrapeStore, MemoryScrapeStore


def make_result(url: str, minutes_ago: int = 0, title: str = "") -> ScrapeResult:
    return ScrapeResult(
        url=url,
        scrape_date=datetime.now(timezone.utc) - timedelta(minutes=minutes_ago),
        metadata=Metadata(title=title),
        links=[Link(url="/a", text="A", category="navigation")],
        options=ScrapeOptions(parse_images=False, use_external_ai=True, api_key="sk-secret"),
        raw_markup="<p>raw</p>",
    )


@pytest.fixture(params=["memory", "file"])
def store(request, tmp_path):
    if request.param == "memory":
        return MemoryScrapeStore()
    return FileScrapeStore(str(tmp_path / "store"))


def test_create_assigns_ids_and_returns_copy(store):
    unsaved = make_result("https://a.com")
    first = store.create(unsaved)
    second = store.create(make_result("https://b.com"))

    assert (first.id, second.id) == (1, 2)
    assert unsaved.id is None


def test_get_by_id(store):
    created = store.create(make_result("https://a.com", title="A"))

    loaded = store.get_by_id(created.id)
    assert loaded.url == "https://a.com"
    assert loaded.metadata.title == "A"
    assert loaded.links[0].category == "navigation"
    assert loaded.raw_markup == "<p>raw</p>"
    assert store.get_by_id(99) is None


def test_get_by_url_returns_most_recent(store):
    store.create(make_result("https://a.com", minutes_ago=30, title="old"))
    store.create(make_result("https://a.com", minutes_ago=5, title="new"))
    store.create(make_result("https://b.com"))

    assert store.get_by_url("https://a.com").metadata.title == "new"
    assert store.get_by_url("https://missing.com") is None


def test_list_recent_newest_first(store):
    for minutes_ago in (50, 10, 30):
        store.create(make_result(f"https://{minutes_ago}.com", minutes_ago=minutes_ago))

    recent = store.list_recent(2)
    assert [r.url for r in recent] == ["https://10.com", "https://30.com"]
    assert len(store.list_recent()) == 3


def test_get_fresh_respects_max_age(store):
    store.create(make_result("https://a.com", minutes_ago=90))
    store.create(make_result("https://b.com", minutes_ago=10))

    assert store.get_fresh("https://a.com", timedelta(hours=1)) is None
    assert store.get_fresh("https://b.com", timedelta(hours=1)).url == "https://b.com"
    assert store.get_fresh("https://c.com", timedelta(hours=1)) is None


def test_file_store_round_trips_options_without_credential(tmp_path):
    store = FileScrapeStore(str(tmp_path))
    created = store.create(make_result("https://a.com"))

    raw = (tmp_path / f"{created.id}.json").read_text(encoding="utf-8")
    assert '"useExternalAI": true' in raw
    assert '"scrapeDate"' in raw
    assert "sk-secret" not in raw

    loaded = store.get_by_id(created.id)
    assert loaded.options.use_external_ai is True
    assert loaded.options.parse_images is False
    assert loaded.options.api_key is None


def test_file_store_ids_continue_after_restart(tmp_path):
    FileScrapeStore(str(tmp_path)).create(make_result("https://a.com"))
    FileScrapeStore(str(tmp_path)).create(make_result("https://b.com"))

    reopened = FileScrapeStore(str(tmp_path))
    assert reopened.create(make_result("https://c.com")).id == 3


def test_file_store_skips_unreadable_files(tmp_path):
    store = FileScrapeStore(str(tmp_path))
    store.create(make_result("https://a.com"))
    (tmp_path / "7.json").write_text("{not json", encoding="utf-8")

    assert [r.url for r in store.list_recent()] == ["https://a.com"]
    assert store.get_by_id(7) is None


def test_file_store_default_dir_from_env(tmp_path, monkeypatch):
    monkeypatch.setenv("SCRAPER_STORE_DIR", str(tmp_path / "from_env"))
    store = FileScrapeStore()
    assert store.store_dir == tmp_path / "from_env"
    assert store.store_dir.is_dir()


def test_file_store_delete_and_clear(tmp_path):
    store = FileScrapeStore(str(tmp_path))
    first = store.create(make_result("https://a.com"))
    store.create(make_result("https://b.com"))

    assert store.delete(first.id) is True
    assert store.delete(first.id) is False
    assert store.get_by_id(first.id) is None
    assert store.clear() == 1
    assert store.list_recent() == []
