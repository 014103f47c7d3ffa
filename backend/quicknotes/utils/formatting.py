"""Date and text formatting shared by every view.

``format_date`` is the single place timestamps are turned into display
strings. It understands two locales and the usual date/time style names::

    >>> format_date(datetime(2024, 3, 5, 14, 7), DateFormatOptions("en-US", "long", "short"))
    'March 5, 2024 at 2:07 PM'
    >>> format_date(datetime(2024, 3, 5, 14, 7), DateFormatOptions("es-ES", "long", "short"))
    '5 de marzo de 2024, 14:07'
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

STYLES = ("full", "long", "medium", "short")

_MONTHS = {
    "en": (
        "January", "February", "March", "April", "May", "June",
        "July", "August", "September", "October", "November", "December",
    ),
    "es": (
        "enero", "febrero", "marzo", "abril", "mayo", "junio",
        "julio", "agosto", "septiembre", "octubre", "noviembre", "diciembre",
    ),
}

_WEEKDAYS = {
    "en": ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"),
    "es": ("lunes", "martes", "miércoles", "jueves", "viernes", "sábado", "domingo"),
}


@dataclass(frozen=True)
class DateFormatOptions:
    locale: str = "en-US"
    date_style: Optional[str] = "long"
    time_style: Optional[str] = "short"


def _language(locale: str) -> str:
    lang = locale.replace("_", "-").split("-")[0].lower()
    if lang not in _MONTHS:
        raise ValueError(f"Unsupported locale: {locale}")
    return lang


def _format_day(value: datetime, lang: str, style: str) -> str:
    month = _MONTHS[lang][value.month - 1]
    weekday = _WEEKDAYS[lang][value.weekday()]
    if lang == "en":
        if style == "full":
            return f"{weekday}, {month} {value.day}, {value.year}"
        if style == "long":
            return f"{month} {value.day}, {value.year}"
        if style == "medium":
            return f"{month[:3]} {value.day}, {value.year}"
        return f"{value.month}/{value.day}/{value.year % 100:02d}"

    if style == "full":
        return f"{weekday}, {value.day} de {month} de {value.year}"
    if style == "long":
        return f"{value.day} de {month} de {value.year}"
    if style == "medium":
        return f"{value.day} {month[:3]} {value.year}"
    return f"{value.day}/{value.month}/{value.year % 100:02d}"


def _format_time(value: datetime, lang: str, style: str) -> str:
    with_seconds = style != "short"
    if lang == "en":
        hour = value.hour % 12 or 12
        suffix = "AM" if value.hour < 12 else "PM"
        out = f"{hour}:{value.minute:02d}"
        if with_seconds:
            out += f":{value.second:02d}"
        out += f" {suffix}"
    else:
        out = f"{value.hour}:{value.minute:02d}"
        if with_seconds:
            out += f":{value.second:02d}"
    if style in ("long", "full"):
        out += f" {value.tzname() or 'UTC'}"
    return out


def format_date(value: datetime, options: Optional[DateFormatOptions] = None) -> str:
    """Format ``value`` for display according to ``options``."""
    options = options or DateFormatOptions()
    for style in (options.date_style, options.time_style):
        if style is not None and style not in STYLES:
            raise ValueError(f"Unknown style: {style}")
    if options.date_style is None and options.time_style is None:
        raise ValueError("At least one of date_style/time_style is required")

    lang = _language(options.locale)
    day = _format_day(value, lang, options.date_style) if options.date_style else None
    clock = _format_time(value, lang, options.time_style) if options.time_style else None
    if day is None:
        return clock
    if clock is None:
        return day
    if lang == "en" and options.date_style in ("full", "long"):
        return f"{day} at {clock}"
    return f"{day}, {clock}"


def content_preview(content: str, max_length: int = 50) -> str:
    if len(content) <= max_length:
        return content
    return content[:max_length] + "..."
