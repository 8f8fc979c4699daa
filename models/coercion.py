"""Tolerante Zahlen-Konvertierung für Felder aus der Remote-API.

Die Quelle liefert Zähler mal als int, mal als String ("5"), mal leer oder
kaputt ("abc", NaN). Alles, was sich nicht zu einem endlichen Wert parsen
lässt, wird zu 0 – nie NaN, nie None.
"""

import math
from typing import Annotated, Any

from pydantic import BeforeValidator


def coerce_number(value: Any) -> float:
    """Wandelt einen beliebigen Wert in eine endliche Zahl um (Fallback 0)."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value).strip())
        except ValueError:
            return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


def coerce_int(value: Any) -> int:
    """Wie coerce_number, aber ganzzahlig (Nachkommastellen abgeschnitten)."""
    return int(coerce_number(value))


def clamp_percent(value: Any) -> int:
    """Konvertiert und begrenzt einen Prozentwert auf [0, 100]."""
    number = coerce_number(value)
    return int(round_half_up(min(max(number, 0.0), 100.0)))


def round_half_up(value: float) -> int:
    """Kaufmännisches Runden (0.5 → 1), nicht Pythons Banker's Rounding."""
    return int(math.floor(value + 0.5))


def optional_int(value: Any) -> int | None:
    """Leere Werte bleiben None, alles andere wird via coerce_int konvertiert.

    Für Perioden/Stunden: "P3" und "3" ergeben beide 3.
    """
    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text[:1] in ("P", "p"):
            text = text[1:]
        return coerce_int(text)
    return coerce_int(value)


def optional_str(value: Any) -> str | None:
    """Leere Strings werden zu None, andere Werte zu getrimmten Strings."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def coerce_flag(value: Any) -> bool:
    """Boolesche Flags kommen auch als "true"/"TRUE"/"1"/"" an."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return value != 0
    return str(value).strip().lower() in ("true", "1", "yes", "ja")


def optional_flag(value: Any) -> bool | None:
    """Wie coerce_flag, aber fehlende Werte bleiben None (= nicht geliefert)."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return coerce_flag(value)


def coerce_text(value: Any) -> str:
    """None → "", sonst getrimmter String."""
    return "" if value is None else str(value).strip()


def normalize_date(value: Any) -> str | None:
    """Normalisiert Datumswerte auf ISO-Form 'YYYY-MM-DD'.

    Akzeptiert date/datetime-Objekte und ISO-Strings mit Zeitanteil
    ("2025-11-10T00:00:00.000Z" → "2025-11-10").
    """
    if value is None:
        return None
    if hasattr(value, "isoformat"):
        return value.isoformat()[:10]
    text = str(value).strip()
    if not text:
        return None
    return text[:10] if len(text) >= 10 and text[4] == "-" else text


# Annotierte Feldtypen für die Pydantic-Modelle
Count = Annotated[int, BeforeValidator(coerce_int)]
Percent = Annotated[int, BeforeValidator(clamp_percent)]
OptionalPeriod = Annotated[int | None, BeforeValidator(optional_int)]
OptionalText = Annotated[str | None, BeforeValidator(optional_str)]
Text = Annotated[str, BeforeValidator(coerce_text)]
IsoDate = Annotated[str | None, BeforeValidator(normalize_date)]
Flag = Annotated[bool, BeforeValidator(coerce_flag)]
OptionalFlag = Annotated[bool | None, BeforeValidator(optional_flag)]
