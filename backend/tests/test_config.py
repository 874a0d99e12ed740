import pytest

from cms.config import Config


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("http://a.example,http://b.example", ["http://a.example", "http://b.example"]),
        (" http://a.example , ,http://b.example ", ["http://a.example", "http://b.example"]),
        ('["http://a.example", "http://b.example"]', ["http://a.example", "http://b.example"]),
        ("http://localhost:3000", ["http://localhost:3000"]),
    ],
)
def test_cors_origins_from_env(monkeypatch, raw, expected):
    monkeypatch.setenv("CORS_ORIGINS", raw)
    assert Config().CORS_ORIGINS == expected


def test_media_types_from_env(monkeypatch):
    monkeypatch.setenv("MEDIA_ALLOWED_TYPES", "image/png,image/jpeg")
    assert Config().MEDIA_ALLOWED_TYPES == ["image/png", "image/jpeg"]

    monkeypatch.setenv("MEDIA_ALLOWED_TYPES", '["image/webp"]')
    assert Config().MEDIA_ALLOWED_TYPES == ["image/webp"]


def test_list_defaults_without_env(monkeypatch):
    monkeypatch.delenv("CORS_ORIGINS", raising=False)
    monkeypatch.delenv("MEDIA_ALLOWED_TYPES", raising=False)
    config = Config(_env_file=None)
    assert config.CORS_ORIGINS == ["http://localhost:3000"]
    assert "image/png" in config.MEDIA_ALLOWED_TYPES


def test_newsletter_storage_is_validated(monkeypatch):
    monkeypatch.setenv("NEWSLETTER_STORAGE", " JSON ")
    assert Config().NEWSLETTER_STORAGE == "json"

    monkeypatch.setenv("NEWSLETTER_STORAGE", "redis")
    with pytest.raises(ValueError):
        Config()
