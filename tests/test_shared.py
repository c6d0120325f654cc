"""Tests for shared infrastructure: settings store, error types, logging."""
import json
import logging
import stat

import pytest

from fossinvoice.invoicing.storage.database import init_database
from fossinvoice.shared.app_config import AppConfig, ConfigStore, default_config_dir
from fossinvoice.shared.errors import (
    AppErrors,
    InvalidDataError,
    InvoicingError,
    MissingKeyError,
    NotFoundError,
)
from fossinvoice.shared.logging_config import configure_logging


class TestConfigStore:
    def test_missing_file_yields_defaults(self, tmp_path):
        store = ConfigStore(tmp_path / "cfg")
        assert store.load() == AppConfig()
        assert store.get_language() == ""

    def test_empty_file_yields_defaults(self, tmp_path):
        (tmp_path / "config.json").write_text("  \n", encoding="utf-8")
        assert ConfigStore(tmp_path).load() == AppConfig()

    def test_set_language_normalizes_and_persists(self, tmp_path):
        store = ConfigStore(tmp_path / "cfg")
        assert store.set_language("es-AR") is True
        data = json.loads((tmp_path / "cfg" / "config.json").read_text(encoding="utf-8"))
        assert data == {"language": "es"}
        assert ConfigStore(tmp_path / "cfg").get_language() == "es"

    def test_unsupported_language_falls_back_to_english(self, tmp_path):
        store = ConfigStore(tmp_path)
        store.set_language("fr")
        assert store.get_language() == "en"

    def test_file_is_private(self, tmp_path):
        store = ConfigStore(tmp_path)
        store.save(AppConfig(language="it"))
        mode = stat.S_IMODE(store.config_path.stat().st_mode)
        assert mode == 0o600

    def test_config_dir_from_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("FOSSINVOICE_CONFIG_DIR", str(tmp_path / "env-cfg"))
        assert default_config_dir() == tmp_path / "env-cfg"
        assert ConfigStore().config_path == tmp_path / "env-cfg" / "config.json"

    def test_default_config_dir(self, monkeypatch):
        monkeypatch.delenv("FOSSINVOICE_CONFIG_DIR", raising=False)
        assert default_config_dir().parts[-2:] == (".config", "FOSSInvoice")


class TestErrors:
    def test_hierarchy(self):
        for cls in (MissingKeyError, InvalidDataError, NotFoundError):
            assert issubclass(cls, InvoicingError)

    def test_missing_key_default_message(self):
        assert str(MissingKeyError()) == AppErrors.MISSING_KEY

    def test_not_found_carries_entity(self):
        err = NotFoundError("Invoice", 12)
        assert err.entity == "Invoice"
        assert err.entity_id == 12
        assert str(err) == "Invoice 12 not found."


class TestLogging:
    @pytest.fixture
    def restore_root(self):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        yield root
        for handler in root.handlers:
            handler.close()
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)

    def test_configure_logging_writes_log_file(self, tmp_path, restore_root):
        log_file = tmp_path / "logs" / "fossinvoice.log"
        configure_logging(level=logging.INFO, log_file=log_file)

        init_database(tmp_path / "inv.db")
        for handler in restore_root.handlers:
            handler.flush()

        text = log_file.read_text(encoding="utf-8")
        assert "database initialized at" in text
        assert "fossinvoice.invoicing.storage.database" in text

    def test_noisy_loggers_are_quieted(self, restore_root):
        configure_logging()
        assert logging.getLogger("uvicorn.access").level == logging.WARNING
        assert logging.getLogger("reportlab").level == logging.WARNING

    def test_database_init_logs_once_at_info(self, tmp_path, caplog):
        with caplog.at_level(logging.INFO, logger="fossinvoice.invoicing.storage.database"):
            init_database(tmp_path / "inv.db")
        messages = [r.getMessage() for r in caplog.records if "database initialized" in r.getMessage()]
        assert len(messages) == 1
