"""Unterrichtsplanung — Haupt-CLI.

Verwendung:
  python main.py config init              Konfiguration anlegen
  python main.py config show              Konfiguration anzeigen
  python main.py generate                 Offline-Testdaten erzeugen
  python main.py schemes                  Pläne laden und anzeigen
  python main.py periods <plan> <kap> <sitzung>
                                          Kandidaten-Stunden mit Prüfungskonflikten
  python main.py prepare <plan> <kap> <sitzung> --date --period ...
                                          Einzelne Sitzung vorbereiten
  python main.py prepare-bulk <plan> <kap> ...
                                          Ganzes Kapitel (oder erweiterte Sitzung)

Alle Lade- und Planungsbefehle akzeptieren --offline <bündel.json> und
arbeiten dann ohne Remote-API.
"""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich import box

console = Console()

# Standard-Pfad für das Offline-Bündel
DEFAULT_BUNDLE_JSON = Path("output/offline_bundle.json")


def _setup_logging(config) -> None:
    """RichHandler auf der Konsole, optional zusätzlich eine Log-Datei."""
    handlers: list[logging.Handler] = [
        RichHandler(console=console, show_path=False, rich_tracebacks=True)
    ]
    if config.logging.file:
        Path(config.logging.file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(config.logging.file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s"
        ))
        handlers.append(file_handler)
    logging.basicConfig(
        level=config.logging.level, format="%(message)s",
        handlers=handlers, force=True,
    )


def _load_config():
    """Lädt die Konfiguration (ohne Datei: Defaults) oder bricht ab."""
    from config.manager import ConfigManager
    try:
        config = ConfigManager().load_or_default()
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
    _setup_logging(config)
    return config


class _Session:
    """Orchestrator plus Quellen für einen CLI-Aufruf."""

    def __init__(self, offline: Optional[Path]) -> None:
        from data.api_client import RemoteApiClient
        from data.memory_source import InMemorySources, load_bundle
        from planning.context import PlanningContext
        from planning.orchestrator import PreparationOrchestrator

        self.config = _load_config()
        self.offline = offline
        self.bundle = None
        self.client = None

        if offline is not None:
            self.bundle = load_bundle(offline)
            sources = InMemorySources.from_bundle(self.bundle)
            email = self.bundle.get("teacherEmail") or self.config.api.teacher_email
            name = self.bundle.get("teacherName") or self.config.api.teacher_name
        else:
            if not self.config.api.base_url:
                console.print(
                    "[red]Keine API-URL konfiguriert.[/red]\n"
                    "Führen Sie [bold]python main.py config init --base-url ...[/bold] aus "
                    "oder verwenden Sie [bold]--offline[/bold]."
                )
                sys.exit(1)
            sources = self.client = RemoteApiClient(self.config.api)
            email = self.config.api.teacher_email
            name = self.config.api.teacher_name

        self.sources = sources
        self.context = PlanningContext(teacher_email=email, teacher_name=name)
        self.orchestrator = PreparationOrchestrator(
            self.context, schemes=sources, periods=sources, exams=sources,
            writer=sources, suggestions=sources, config=self.config,
        )

    async def load(self):
        tree = await self.orchestrator.load_schemes()
        if tree is None and self.context.advisory:
            console.print(f"[yellow]{self.context.advisory}[/yellow]")
            await self.orchestrator.wait_for_background()
            tree = self.context.tree
        if tree is None:
            from planning.errors import SchemeLoadError
            raise SchemeLoadError(self.context.error or "Keine Pläne geladen.")
        return tree

    def persist_offline(self) -> None:
        """Schreibt den (durch Einreichen geänderten) Offline-Zustand zurück."""
        if self.offline is None or self.bundle is None:
            return
        self.bundle["schemes"] = self.sources.scheme_payload
        with open(self.offline, "w", encoding="utf-8") as f:
            json.dump(self.bundle, f, indent=2, ensure_ascii=False)

    async def close(self) -> None:
        if self.client is not None:
            await self.client.aclose()


def _run(coro_factory, offline: Optional[Path]) -> None:
    """Führt einen asynchronen Befehl aus; PlanningError → Exit-Code 1."""
    from planning.errors import PlanningError

    session = _Session(offline)

    async def runner():
        try:
            await coro_factory(session)
        finally:
            await session.close()

    try:
        asyncio.run(runner())
    except PlanningError as e:
        console.print(f"[red]Fehler:[/red] {e}")
        missing = getattr(e, "missing", None)
        if missing:
            console.print(f"[red]Fehlende Felder:[/red] {', '.join(missing)}")
        sys.exit(1)


offline_option = click.option(
    "--offline", type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None, help="Offline-Bündel (JSON) statt Remote-API verwenden.",
)


# ─── CONFIG ───────────────────────────────────────────────────────────────────

@click.group("config")
def cmd_config():
    """Konfiguration anlegen oder anzeigen."""


@cmd_config.command("init")
@click.option("--base-url", default="", help="URL der Remote-API.")
@click.option("--email", default="", help="E-Mail der Lehrkraft.")
@click.option("--name", default="", help="Name der Lehrkraft.")
@click.option("--force", is_flag=True, default=False, help="Vorhandene Datei überschreiben.")
def config_init(base_url: str, email: str, name: str, force: bool):
    """Legt config/engine_config.yaml mit Default-Werten an."""
    from config.defaults import default_engine_config
    from config.manager import ConfigManager

    mgr = ConfigManager()
    if not mgr.first_run_check() and not force:
        console.print(
            "[yellow]Eine Konfiguration existiert bereits.[/yellow] "
            "Mit [bold]--force[/bold] überschreiben."
        )
        return
    config = default_engine_config()
    config = config.model_copy(update={"api": config.api.model_copy(update={
        "base_url": base_url, "teacher_email": email, "teacher_name": name,
    })})
    mgr.save(config)


@cmd_config.command("show")
def config_show():
    """Zeigt die aktuelle Konfiguration an."""
    config = _load_config()

    console.print(Panel(
        f"[bold]{config.school_name}[/bold]  |  "
        f"{config.api.teacher_name or '—'} <{config.api.teacher_email or '—'}>",
        title="Engine-Konfiguration",
        border_style="cyan",
    ))
    table = Table(box=box.ROUNDED)
    table.add_column("Bereich", style="bold")
    table.add_column("Parameter")
    table.add_column("Wert")
    for section in ("api", "planning", "progress", "logging"):
        for key, value in getattr(config, section).model_dump().items():
            table.add_row(section, key, str(value))
    console.print(table)


# ─── GENERATE ─────────────────────────────────────────────────────────────────

@click.command("generate")
@click.option("--seed", default=42, help="Zufalls-Seed für reproduzierbare Daten.")
@click.option("--count", default=3, help="Anzahl der Pläne.")
@click.option("--bulk-only", is_flag=True, default=False,
              help="Nur-Sammelplanung im Bündel aktivieren.")
@click.option("--output", "-o", default=str(DEFAULT_BUNDLE_JSON),
              help="Zielpfad des Offline-Bündels.")
def cmd_generate(seed: int, count: int, bulk_only: bool, output: str):
    """Erzeugt ein Offline-Bündel (Pläne, Stunden, Prüfungen) als JSON."""
    from data.fake_data import FakeSchemeGenerator

    config = _load_config()
    gen = FakeSchemeGenerator(seed=seed, window_days=config.planning.fallback_window_days)
    bundle = gen.generate(count=count, bulk_only=bulk_only)
    gen.print_summary(bundle)

    path = Path(output)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(bundle, f, indent=2, ensure_ascii=False)
    console.print(f"[green]✓[/green] Bündel gespeichert: {path}")


# ─── SCHEMES ──────────────────────────────────────────────────────────────────

@click.command("schemes")
@click.option("--class", "class_name", default=None, help="Nur diese Klasse anzeigen.")
@offline_option
def cmd_schemes(class_name: Optional[str], offline: Optional[Path]):
    """Lädt alle Pläne und zeigt Fortschritt, Badges und Sperren."""
    from export.tui_renderer import render_scheme_rows, render_session_line

    async def run(session: _Session):
        tree = await session.load()
        orch = session.orchestrator
        schemes = tree.filter_by_class(class_name)
        summary = orch.builder.aggregator.summary(schemes)

        window = tree.planning_range
        console.print(Panel(
            f"Schemes: [bold]{summary.scheme_count}[/bold]  |  "
            f"Total Sessions: [bold]{summary.total_sessions}[/bold]  |  "
            f"Planned: [bold]{summary.planned_sessions}[/bold]\n"
            f"Planungsfenster: {window.start_date} – {window.end_date}"
            + (" (Fallback)" if window.is_fallback else "")
            + ("" if window.can_submit
               else f"  |  Einreichen nur am {window.preparation_day}")
            + ("  |  [yellow]Nur Sammelplanung[/yellow]" if tree.bulk_only else ""),
            title=f"Klassen: {', '.join(tree.class_names()) or '—'}",
            border_style="cyan",
        ))

        for scheme in schemes:
            gates = orch.gate_report(scheme)
            table = Table(box=box.ROUNDED, show_header=False)
            table.add_column("Bezeichnung")
            table.add_column("Sitzungen", justify="right")
            table.add_column("Fortschritt")
            table.add_column("Status")
            for row in render_scheme_rows(
                orch.progress(scheme), scheme.class_name, scheme.subject, gates,
            ):
                table.add_row(*row)
            console.print(table)
            for chapter in scheme.chapters:
                if chapter.sessions:
                    console.print(
                        f"  [dim]Kap. {chapter.chapter_number}:[/dim] "
                        f"{render_session_line(chapter)}"
                    )
            for d in gates.disagreements:
                console.print(f"  [yellow]• {d.description}[/yellow]")

    _run(run, offline)


# ─── PERIODS ──────────────────────────────────────────────────────────────────

@click.command("periods")
@click.argument("scheme_id")
@click.argument("chapter", type=int)
@click.argument("session_number", type=int)
@offline_option
def cmd_periods(scheme_id: str, chapter: int, session_number: int,
                offline: Optional[Path]):
    """Listet Kandidaten-Stunden für eine Sitzung mit Prüfungskonflikten."""
    from export.tui_renderer import render_slot_rows

    async def run(session: _Session):
        await session.load()
        prep = await session.orchestrator.start_single(scheme_id, chapter, session_number)
        if prep is None:
            return
        counts = prep.counts
        table = Table(
            title=f"Stunden für {scheme_id} Kap. {chapter} Sitzung {session_number}",
            box=box.ROUNDED,
        )
        for col in ("Datum", "Std.", "Zeit", "Status", "Konflikt"):
            table.add_column(col)
        for row in render_slot_rows(prep.slots):
            table.add_row(*row)
        console.print(table)
        console.print(
            f"Verfügbar: {counts.available}  (Gesamt: {counts.total}, "
            f"Belegt: {counts.occupied})"
        )
        if prep.advisory:
            console.print(f"[yellow]{prep.advisory}[/yellow]")

    _run(run, offline)


# ─── PREPARE ──────────────────────────────────────────────────────────────────

def _print_outcome(outcome) -> None:
    if outcome is None:
        console.print("[yellow]Antwort verworfen (neuere Anfrage aktiv).[/yellow]")
        return
    console.print(f"[bold green]✓ {outcome.created_count} Plan/Pläne angelegt.[/bold green]")
    if outcome.diff is not None and not outcome.diff.is_empty():
        for change in outcome.diff.session_changes:
            console.print(f"  • {change.describe()}")


@click.command("prepare")
@click.argument("scheme_id")
@click.argument("chapter", type=int)
@click.argument("session_number", type=int)
@click.option("--date", "selected_date", required=True, help="Datum (YYYY-MM-DD).")
@click.option("--period", "selected_period", required=True, type=int, help="Stunde.")
@click.option("--objectives", default="", help="Lernziele.")
@click.option("--methods", default="", help="Unterrichtsmethoden.")
@click.option("--resources", default="", help="Benötigte Materialien.")
@click.option("--assessment", default="", help="Lernkontrolle.")
@click.option("--suggest", is_flag=True, default=False,
              help="Leere Felder mit KI-Vorschlägen füllen.")
@offline_option
def cmd_prepare(scheme_id: str, chapter: int, session_number: int,
                selected_date: str, selected_period: int, objectives: str,
                methods: str, resources: str, assessment: str, suggest: bool,
                offline: Optional[Path]):
    """Bereitet eine einzelne Sitzung vor und reicht den Plan ein."""
    from models.plan import LessonPlanFields

    async def run(session: _Session):
        orch = session.orchestrator
        await session.load()
        prep = await orch.start_single(scheme_id, chapter, session_number)
        if prep is None:
            return
        slot = prep.select(selected_date, selected_period)
        if slot.conflict.value != "none":
            console.print(f"[yellow]Hinweis: Prüfungskonflikt ({slot.conflict.value}).[/yellow]")
        prep.fields = LessonPlanFields(
            learning_objectives=objectives, teaching_methods=methods,
            resources_required=resources, assessment_methods=assessment,
        )
        if suggest:
            await orch.suggest_single(prep)
        outcome = await orch.submit_single(prep)
        session.persist_offline()
        _print_outcome(outcome)

    _run(run, offline)


@click.command("prepare-bulk")
@click.argument("scheme_id")
@click.argument("chapter", type=int)
@click.option("--extended", is_flag=True, default=False,
              help="Eine erweiterte Sitzung statt des ganzen Kapitels.")
@click.option("--objectives", default="", help="Lernziele (für alle Sitzungen).")
@click.option("--methods", default="", help="Unterrichtsmethoden (für alle Sitzungen).")
@click.option("--resources", default="", help="Benötigte Materialien.")
@click.option("--assessment", default="", help="Lernkontrolle.")
@click.option("--suggest", is_flag=True, default=False,
              help="Leere Felder je Sitzung mit KI-Vorschlägen füllen.")
@offline_option
def cmd_prepare_bulk(scheme_id: str, chapter: int, extended: bool, objectives: str,
                     methods: str, resources: str, assessment: str, suggest: bool,
                     offline: Optional[Path]):
    """Bereitet alle Sitzungen eines Kapitels in einem Schritt vor."""
    from models.plan import LessonPlanFields

    async def run(session: _Session):
        orch = session.orchestrator
        await session.load()
        prep = await orch.start_bulk(scheme_id, chapter, extended=extended)
        if prep is None:
            return
        prep.apply_to_all(LessonPlanFields(
            learning_objectives=objectives, teaching_methods=methods,
            resources_required=resources, assessment_methods=assessment,
        ))
        if suggest:
            for idx in range(prep.size):
                prep.current = idx
                await orch.suggest_bulk(prep)
            prep.current = 0
        table = Table(title="Zugewiesene Stunden", box=box.SIMPLE)
        table.add_column("Sitzung", justify="right")
        table.add_column("Datum")
        table.add_column("Std.")
        for entry in prep.entries:
            marker = " (erweitert)" if entry.is_extended else ""
            table.add_row(f"{entry.session_number}{marker}",
                          entry.assigned.slot.date or "", str(entry.assigned.slot.period))
        console.print(table)
        outcome = await orch.submit_bulk(prep)
        session.persist_offline()
        _print_outcome(outcome)

    _run(run, offline)


# ─── HAUPT-CLI ────────────────────────────────────────────────────────────────

@click.group()
def cli():
    """Unterrichtsplanung: Stoffverteilungspläne laden, prüfen und vorbereiten.

    Starten Sie mit: python main.py generate && python main.py schemes --offline output/offline_bundle.json
    """


def main():
    """Einstiegspunkt."""
    cli()


# Befehle registrieren
cli.add_command(cmd_config)
cli.add_command(cmd_generate)
cli.add_command(cmd_schemes)
cli.add_command(cmd_periods)
cli.add_command(cmd_prepare)
cli.add_command(cmd_prepare_bulk)


if __name__ == "__main__":
    main()
