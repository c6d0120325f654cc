"""
User-level application settings, persisted as JSON in the user config dir.

Only the preferred PDF language lives here; invoice data never does.
"""
import json
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional

from fossinvoice.invoicing.pdf.i18n import normalize_language

CONFIG_FILE_NAME = "config.json"


def default_config_dir() -> Path:
    env_dir = os.environ.get("FOSSINVOICE_CONFIG_DIR")
    if env_dir:
        return Path(env_dir)
    return Path.home() / ".config" / "FOSSInvoice"


@dataclass
class AppConfig:
    language: str = ""


class ConfigStore:
    """Reads and writes AppConfig in <config_dir>/config.json."""

    def __init__(self, config_dir: Optional[Path] = None):
        self.config_dir = Path(config_dir) if config_dir else default_config_dir()
        self.config_path = self.config_dir / CONFIG_FILE_NAME

    def load(self) -> AppConfig:
        """Load the config; a missing or empty file yields the defaults."""
        if not self.config_path.exists():
            return AppConfig()
        raw = self.config_path.read_text(encoding="utf-8")
        if not raw.strip():
            return AppConfig()
        data = json.loads(raw)
        return AppConfig(language=str(data.get("language") or ""))

    def save(self, cfg: AppConfig) -> None:
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.config_path.write_text(json.dumps(asdict(cfg), indent=2), encoding="utf-8")
        self.config_path.chmod(0o600)

    def get_language(self) -> str:
        """Stored language normalised to a supported code, or "" if unset."""
        lang = self.load().language.strip()
        if not lang:
            return ""
        return normalize_language(lang)

    def set_language(self, lang: str) -> bool:
        cfg = self.load()
        cfg.language = normalize_language(lang)
        self.save(cfg)
        return True
