from catalog.config import Settings


def test_defaults(monkeypatch):
    monkeypatch.delenv("STORAGE_BACKEND", raising=False)
    monkeypatch.delenv("DEFAULT_PAGE_SIZE", raising=False)
    config = Settings(_env_file=None)
    assert config.storage_backend == "sqlalchemy"
    assert config.default_page_size == 50
    assert config.cors_origins == ["*"]


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("STORAGE_BACKEND", "rest")
    monkeypatch.setenv("REST_URL", "https://example.supabase.co/rest/v1")
    monkeypatch.setenv("max_page_size", "200")
    monkeypatch.setenv("CORS_ORIGINS", '["http://localhost:5174"]')
    config = Settings(_env_file=None)
    assert config.storage_backend == "rest"
    assert config.rest_url == "https://example.supabase.co/rest/v1"
    assert config.max_page_size == 200
    assert config.cors_origins == ["http://localhost:5174"]
