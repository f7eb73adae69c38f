"""
Locale strings and unit formatting for the device-info CLI.

Usage:
    import i18n
    i18n.init()                          # pick locale from LANG, load strings
    i18n.t('kind.battery')               # → "Battery"
    i18n.t('cli.event', action='...')    # → "Power event: ..."
    i18n.format_temperature(23.5)        # → "74.3°F" under en/en_US
"""

import json
import locale
import os
from pathlib import Path
from typing import List

_strings: dict = {}
_locale_code: str = 'en'

# Locales that read temperatures in Fahrenheit
_FAHRENHEIT_LOCALES = ('en', 'en_US')

_BYTE_UNITS = ('B', 'KB', 'MB', 'GB', 'TB')


def _locales_dir() -> Path:
    snap = os.environ.get('SNAP')
    if snap and (Path(snap) / 'locales').is_dir():
        return Path(snap) / 'locales'
    return Path(__file__).resolve().parent / 'locales'


def _candidates(raw: str) -> List[str]:
    """Locale codes to try for a LANG-style value, most specific first."""
    code = raw.split('.')[0].split('@')[0]
    if not code or code in ('C', 'POSIX'):
        return ['en']
    lang = code.split('_')[0]
    return [code, lang, 'en'] if lang != code else [code, 'en']


def _load(path: Path) -> dict:
    with open(path, encoding='utf-8') as f:
        return json.load(f)


def init(locale_override: str = None):
    """Load English strings, then overlay the best matching locale file."""
    global _strings, _locale_code

    directory = _locales_dir()
    base = directory / 'en.json'
    _strings = _load(base) if base.is_file() else {}

    raw = locale_override or os.environ.get('LANG', '')
    _locale_code = next(
        (c for c in _candidates(raw) if (directory / f'{c}.json').is_file()),
        'en',
    )
    if _locale_code != 'en':
        _strings.update(_load(directory / f'{_locale_code}.json'))

    try:
        locale.setlocale(locale.LC_ALL, '')
    except locale.Error:
        pass


def t(key: str, default: str = None, **kwargs) -> str:
    """Translated string for key; missing keys give default, else the key."""
    text = _strings.get(key, key if default is None else default)
    if not kwargs:
        return text
    try:
        return text.format(**kwargs)
    except (KeyError, IndexError):
        return text


def get_locale() -> str:
    return _locale_code


def format_number(n) -> str:
    try:
        return locale.format_string('%g', n, grouping=True)
    except (ValueError, TypeError):
        return str(n)


def format_percent(value: float) -> str:
    return f'{value:.0f}%'


def format_millivolts(mv: int) -> str:
    return f'{mv} mV'


def format_temperature(celsius: float) -> str:
    if _locale_code in _FAHRENHEIT_LOCALES:
        return f'{celsius * 9 / 5 + 32:.1f}°F'
    return f'{celsius:.1f}°C'


def format_bytes_localized(n: int) -> str:
    """Byte count in 1024-based units; whole numbers below MB."""
    val = float(n)
    unit = 0
    while val >= 1024 and unit < len(_BYTE_UNITS) - 1:
        val /= 1024
        unit += 1
    pattern = '%.1f' if unit > 1 else '%.0f'
    return f'{locale.format_string(pattern, val, grouping=True)} {_BYTE_UNITS[unit]}'
