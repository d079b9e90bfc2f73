"""Tests for environment driven configuration."""

from settings import FrontierSettings, MongoSettings, Settings, get_settings


def test_defaults(monkeypatch):
    monkeypatch.delenv("ADMIN_KEY", raising=False)
    cfg = Settings(_env_file=None)

    assert cfg.admin_key == ""
    assert cfg.mongo.database == "crawlgraph"
    assert cfg.frontier.max_pages_per_domain == 50
    assert cfg.frontier.cooldown_days == 7
    assert cfg.frontier.prune_interval_seconds == 60
    assert cfg.frontier.blacklist == ["youtube.com", "web.archive.org", "jcink.net"]
    assert cfg.frontier.graph_path == "graph.json"


def test_admin_key_read_from_environment(monkeypatch):
    monkeypatch.setenv("ADMIN_KEY", "s3cret")

    assert Settings(_env_file=None).admin_key == "s3cret"


def test_admin_key_by_field_name():
    assert Settings(_env_file=None, admin_key="direct").admin_key == "direct"


def test_prefixed_environment(monkeypatch):
    monkeypatch.setenv("MONGO_HOST", "mongo")
    monkeypatch.setenv("MONGO_LINKS", "crawl_links")
    monkeypatch.setenv("FRONTIER_MAX_PAGES_PER_DOMAIN", "10")
    monkeypatch.setenv("FRONTIER_BLACKLIST", '["example.org"]')
    monkeypatch.setenv("FRONTIER_SEEDS", '["https://start.example/"]')

    mongo = MongoSettings()
    frontier = FrontierSettings()

    assert mongo.host == "mongo"
    assert mongo.links == "crawl_links"
    assert frontier.max_pages_per_domain == 10
    assert frontier.blacklist == ["example.org"]
    assert frontier.seeds == ["https://start.example/"]


def test_get_settings_is_cached():
    get_settings.cache_clear()
    try:
        assert get_settings() is get_settings()
    finally:
        get_settings.cache_clear()
