"""Engine-Konfiguration als kommentierte YAML-Datei.

ruamel.yaml erhält Kommentare beim Schreiben; jedes Feld bekommt seine
Pydantic-Beschreibung als Zeilenkommentar, jeder Abschnitt eine Überschrift.
"""

import json
from datetime import date
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ValidationError
from rich.console import Console
from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap

from config.schema import EngineConfig

console = Console()

_yaml = YAML()
_yaml.default_flow_style = False
_yaml.width = 120

DEFAULT_CONFIG_PATH = Path("config") / "engine_config.yaml"

# Abschnitt → (Überschrift, Erläuterung)
_SECTIONS: dict[str, tuple[str, Optional[str]]] = {
    "api": ("Remote-API", "Basis-URL der Web-App und Lehrkraft, für die geplant wird."),
    "planning": ("Planung", "Weiches Timeout bricht das Laden NICHT ab, es zeigt nur einen Hinweis."),
    "progress": ("Fortschritt", "Ab good_threshold grün, ab caution_threshold gelb, sonst rot."),
    "logging": ("Logging", None),
}


def _header() -> str:
    line = "# " + "=" * 44
    return (
        f"{line}\n"
        f"# Unterrichtsplanung — Engine-Konfiguration\n"
        f"# Angelegt am {date.today().isoformat()}\n"
        f"{line}\n\n"
    )


def _section_map(model: BaseModel) -> CommentedMap:
    """Ein Abschnitt mit den Feldbeschreibungen als Zeilenkommentar."""
    section = CommentedMap(json.loads(model.model_dump_json()))
    for name, info in type(model).model_fields.items():
        if info.description:
            section.yaml_add_eol_comment(info.description, name)
    return section


class ConfigManager:
    """Liest und schreibt die Engine-Konfiguration an einem festen Pfad."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = Path(path) if path is not None else DEFAULT_CONFIG_PATH

    def first_run_check(self) -> bool:
        """True, solange noch keine Konfigurationsdatei existiert."""
        return not self.path.exists()

    def load(self, path: Optional[Path] = None) -> EngineConfig:
        """Liest die YAML-Datei und validiert sie.

        Raises:
            FileNotFoundError: Datei fehlt.
            ValueError: Inhalt verletzt das Schema.
        """
        source = Path(path) if path is not None else self.path
        if not source.exists():
            raise FileNotFoundError(
                f"Keine Konfiguration unter {source} – "
                f"bitte 'python main.py config init' ausführen."
            )
        with open(source, "r", encoding="utf-8") as f:
            data = _yaml.load(f) or {}
        try:
            return EngineConfig.model_validate(dict(data))
        except ValidationError as e:
            raise ValueError(f"Konfiguration {source} ist ungültig:\n{e}") from e

    def load_or_default(self, path: Optional[Path] = None) -> EngineConfig:
        """Ohne Datei gelten die Defaults (Offline-Betrieb)."""
        source = Path(path) if path is not None else self.path
        if source.exists():
            return self.load(source)
        from config.defaults import default_engine_config
        return default_engine_config()

    def save(self, config: EngineConfig, path: Optional[Path] = None) -> Path:
        target = Path(path) if path is not None else self.path
        target.parent.mkdir(parents=True, exist_ok=True)

        document = self.to_yaml_map(config)
        with open(target, "w", encoding="utf-8") as f:
            f.write(_header())
            _yaml.dump(document, f)

        console.print(f"[green]✓[/green] Konfiguration gespeichert: {target}")
        return target

    def to_yaml_map(self, config: EngineConfig) -> CommentedMap:
        document = CommentedMap()
        document["school_name"] = config.school_name
        for key, (title, note) in _SECTIONS.items():
            document[key] = _section_map(getattr(config, key))
            document.yaml_set_comment_before_after_key(
                key, before=f"\n─── {title} ───" + (f"\n{note}" if note else ""),
            )
        return document
