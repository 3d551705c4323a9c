import logging
from pathlib import Path
from typing import Any

from dlgate.common.config import Config


def test_config_defaults(monkeypatch: Any) -> None:
    for name in (
        "DLGATE_SESSION_TTL",
        "DLGATE_SIGNED_URL_TTL",
        "DLGATE_SKEW_WINDOW",
        "DLGATE_VERIFY_MAX_ATTEMPTS",
        "DLGATE_DOWNLOAD_MAX_ATTEMPTS",
        "DLGATE_TRUST_CLIENT_ID_HEADER",
    ):
        monkeypatch.delenv(name, raising=False)

    config = Config()
    assert config.SESSION_TTL == 900  # noqa: PLR2004
    assert config.SIGNED_URL_TTL == 60  # noqa: PLR2004
    assert config.SKEW_WINDOW == 300  # noqa: PLR2004
    assert config.VERIFY_MAX_ATTEMPTS == 10  # noqa: PLR2004
    assert config.VERIFY_WINDOW == 900  # noqa: PLR2004
    assert config.DOWNLOAD_MAX_ATTEMPTS == 20  # noqa: PLR2004
    assert config.DOWNLOAD_WINDOW == 900  # noqa: PLR2004
    assert config.TRUST_CLIENT_ID_HEADER is False


def test_config_server_settings(monkeypatch: Any) -> None:
    monkeypatch.setenv("DLGATE_SERVER_HOST", "0.0.0.0")  # noqa: S104
    monkeypatch.setenv("DLGATE_SERVER_PORT", "8080")

    config = Config()
    assert config.SERVER_HOST == "0.0.0.0"  # noqa: S104
    assert config.SERVER_PORT == 8080  # noqa: PLR2004
    assert config.SERVER_URL == "http://0.0.0.0:8080"


def test_config_blob_settings(monkeypatch: Any) -> None:
    monkeypatch.delenv("DLGATE_BLOB_SECURE", raising=False)
    assert Config().BLOB_SECURE is None

    monkeypatch.setenv("DLGATE_BLOB_SECURE", "false")
    assert Config().BLOB_SECURE is False


def test_config_paths(monkeypatch: Any, tmp_path: Path) -> None:
    monkeypatch.delenv("DLGATE_DATABASE_URL", raising=False)
    monkeypatch.delenv("DLGATE_CATALOG_MANIFEST", raising=False)
    monkeypatch.chdir(tmp_path)

    config = Config()
    assert config.DATABASE_URL == f"sqlite:///{tmp_path / 'dlgate.db'}"
    assert config.CATALOG_MANIFEST is None

    monkeypatch.setenv("DLGATE_CATALOG_MANIFEST", str(tmp_path / "catalog.json"))
    assert Config().CATALOG_MANIFEST == tmp_path / "catalog.json"


def test_config_log_level(monkeypatch: Any) -> None:
    monkeypatch.setenv("DLGATE_LOG_LEVEL", "debug")
    assert Config().LOG_LEVEL == logging.DEBUG

    monkeypatch.setenv("DLGATE_LOG_LEVEL", "nonsense")
    assert Config().LOG_LEVEL == logging.INFO
