import yaml
from pathlib import Path
from typing import Any, Dict

_LOCALES: Dict[str, Dict[str, Any]] = {}
_BASE_PATH = Path(__file__).parent / "locales"
FALLBACK_LOCALE = "en"

class Translator:
    def load(self):
        for loc_dir in _BASE_PATH.iterdir():
            if loc_dir.is_dir():
                for yml in loc_dir.glob("*.yml"):
                    data = yaml.safe_load(yml.read_text(encoding="utf-8")) or {}
                    _LOCALES.setdefault(loc_dir.name, {}).update(data)

    def _lookup(self, key: str, locale: str) -> Any:
        cur: Any = _LOCALES.get(locale, {})
        for p in key.split('.'):
            if isinstance(cur, dict):
                cur = cur.get(p)
            else:
                return None
        return cur

    def t(self, key: str, locale: str = FALLBACK_LOCALE, **kwargs) -> str:
        cur = self._lookup(key, locale)
        if cur is None and locale != FALLBACK_LOCALE:
            cur = self._lookup(key, FALLBACK_LOCALE)
        if cur is None:
            return key
        if isinstance(cur, str):
            try:
                return cur.format(**kwargs)
            except (KeyError, IndexError, ValueError):
                return cur
        return str(cur)

translator = Translator()
translator.load()
