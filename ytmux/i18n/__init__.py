import json
import logging
import os
from typing import Any, Dict, Optional
from ytmux.config.settings import config

logger = logging.getLogger(__name__)

LOCALES_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "locales")

class I18n:
    """JSON-backed message catalog with nested keys ("error.fetch_failed")"""

    def __init__(self, locales_dir: str = LOCALES_DIR):
        self.locales: Dict[str, Dict[str, Any]] = {}
        self.default_locale = config.i18n.default_locale
        self.load_locales(locales_dir)

    def load_locales(self, locales_dir: str):
        if not os.path.isdir(locales_dir):
            logger.warning("Locales directory not found at %s", locales_dir)
            return

        for filename in sorted(os.listdir(locales_dir)):
            if not filename.endswith(".json"):
                continue
            locale_code = filename[:-5]
            try:
                with open(os.path.join(locales_dir, filename), "r", encoding="utf-8") as f:
                    self.locales[locale_code] = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.error("Error loading locale %s: %s", locale_code, e)

    def _lookup(self, key: str, locale: str) -> Optional[str]:
        value: Any = self.locales.get(locale, {})
        for part in key.split("."):
            if not isinstance(value, dict) or part not in value:
                return None
            value = value[part]
        return value if isinstance(value, str) else None

    def get(self, key: str, locale: Optional[str] = None, **kwargs) -> str:
        """Translated string for key, falling back to the default locale, then the key itself"""
        template = self._lookup(key, locale or self.default_locale)
        if template is None and locale != self.default_locale:
            template = self._lookup(key, self.default_locale)
        if template is None:
            return key

        try:
            return template.format(**kwargs)
        except (KeyError, IndexError):
            return template

i18n = I18n()
