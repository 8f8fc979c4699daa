"""Preparation Orchestrator: Laden, Gates, Einzel- und Sammelplanung.

Ablauf eines Ladevorgangs:
  1. Lade-Flag gesetzt → weiterer Aufruf wird unterdrückt
  2. Weiches Timeout → Flag frei + Hinweis, die Anfrage läuft weiter
  3. Spätes Ergebnis wird übernommen, solange kein neuerer Ladevorgang
     gestartet wurde; der Hinweis verschwindet dann

Perioden-Suche und Einreichen sind pro (Klasse, Fach) versioniert: trifft
eine Antwort ein, nachdem für denselben Bereich bereits eine neuere Anfrage
gestartet wurde, wird sie verworfen.
"""

import asyncio
import logging
from dataclasses import dataclass
from functools import partial
from typing import Any, Awaitable, Callable, Optional

from pydantic import ValidationError

from analysis.chapter_gate import ChapterGateEvaluator, SchemeGateReport
from analysis.diff import TreeDiff, diff_scheme_trees
from analysis.exam_conflicts import ExamConflictCache, ExamConflictIndex
from analysis.progress import ProgressAggregator, SchemeProgress
from config.schema import EngineConfig
from data.sources import (
    ExamSource, PeriodSource, PlanWriter, SchemeSource, SuggestionSource,
)
from models.chapter import Chapter
from models.coercion import coerce_flag
from models.plan import LessonPlanFields, PlanCreationResult
from models.scheme import Scheme, SchemeTree
from models.session import Session, SessionAction
from models.slot import AnnotatedSlot, CandidateSlot, ExamRecord
from planning.classifier import classify_session, click_action
from planning.context import PlanningContext
from planning.errors import (
    GateViolationError, PlanValidationError, PlanWriteError, SchemeLoadError,
)
from planning.preparation import (
    BulkEntry, BulkPreparation, SinglePreparation, assign_slots,
)
from planning.tree_builder import SchemeTreeBuilder

logger = logging.getLogger(__name__)

SOFT_TIMEOUT_ADVISORY = (
    "Das Laden der Pläne dauert länger als erwartet. "
    "Die Daten erscheinen automatisch, sobald sie eintreffen."
)
EXAMS_UNAVAILABLE_ADVISORY = (
    "Prüfungskalender nicht verfügbar – Konflikte werden nicht angezeigt."
)

Scope = tuple[str, str]


@dataclass
class SubmissionOutcome:
    """Ergebnis eines erfolgreichen Einreichens inkl. Neuladen."""

    created_count: int
    tree: Optional[SchemeTree] = None
    diff: Optional[TreeDiff] = None


class PreparationOrchestrator:
    """Koordiniert Ladevorgänge und beide Vorbereitungs-Workflows."""

    def __init__(
        self,
        context: PlanningContext,
        schemes: SchemeSource,
        periods: PeriodSource,
        exams: ExamSource,
        writer: PlanWriter,
        suggestions: Optional[SuggestionSource] = None,
        config: Optional[EngineConfig] = None,
        builder: Optional[SchemeTreeBuilder] = None,
        gate_evaluator: Optional[ChapterGateEvaluator] = None,
        soft_timeout_seconds: Optional[float] = None,
        today=None,
    ) -> None:
        self.context = context
        self.schemes = schemes
        self.periods = periods
        self.exams = exams
        self.writer = writer
        self.suggestions = suggestions
        self.config = config or EngineConfig()
        self.builder = builder or SchemeTreeBuilder(
            aggregator=ProgressAggregator(self.config.progress),
            fallback_window_days=self.config.planning.fallback_window_days,
        )
        self.gates = gate_evaluator or ChapterGateEvaluator()
        self.soft_timeout = (
            soft_timeout_seconds if soft_timeout_seconds is not None
            else self.config.planning.scheme_load_soft_timeout_seconds
        )
        self.today = today

        self._conflicts = ExamConflictCache()
        self._scope_tokens: dict[Scope, int] = {}
        self._late_generations: set[int] = set()
        self._pending: set[asyncio.Task] = set()

    # ─── Laden ────────────────────────────────────────────────────────────────

    async def load_schemes(self) -> Optional[SchemeTree]:
        """Lädt und ersetzt den Baum.

        Returns:
            Den neuen Baum; None bei unterdrücktem Aufruf oder weichem Timeout.

        Raises:
            SchemeLoadError: Quelle nicht erreichbar oder Fehler-Payload.
                Der bisherige Baum bleibt erhalten.
        """
        ctx = self.context
        if ctx.loading:
            logger.info("Ladevorgang läuft bereits – Aufruf unterdrückt")
            return None

        ctx.loading = True
        ctx.generation += 1
        generation = ctx.generation
        logger.info(f"Lade Pläne (#{generation}) für {ctx.teacher_email}")

        task = asyncio.ensure_future(self._fetch_tree(generation))
        self._pending.add(task)
        task.add_done_callback(partial(self._on_load_finished, generation))

        done, _ = await asyncio.wait({task}, timeout=self.soft_timeout)
        if not done:
            self._late_generations.add(generation)
            ctx.loading = False
            ctx.advisory = SOFT_TIMEOUT_ADVISORY
            logger.warning(
                f"Ladevorgang #{generation} überschreitet {self.soft_timeout:g} s – "
                f"läuft im Hintergrund weiter"
            )
            return None

        ctx.loading = False
        return self._apply_load(generation, task, raise_errors=True)

    async def wait_for_background(self) -> None:
        """Wartet auf noch laufende (verspätete) Ladevorgänge."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
            await asyncio.sleep(0)

    async def _fetch_tree(self, generation: int) -> SchemeTree:
        try:
            payload = await self.schemes.fetch_schemes(self.context.teacher_email)
        except Exception as e:
            raise SchemeLoadError(f"Pläne konnten nicht geladen werden: {e}") from e
        return self.builder.build(payload, generation=generation, today=self.today)

    def _on_load_finished(self, generation: int, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if generation in self._late_generations:
            self._late_generations.discard(generation)
            self._apply_load(generation, task, raise_errors=False)

    def _apply_load(self, generation: int, task: asyncio.Task,
                    raise_errors: bool) -> Optional[SchemeTree]:
        ctx = self.context
        if task.cancelled():
            return None
        current = generation == ctx.generation
        error = task.exception()

        if error is not None:
            if not current:
                logger.info(f"Überholter Ladevorgang #{generation} fehlgeschlagen – ignoriert")
                return None
            logger.error(f"Ladevorgang #{generation} fehlgeschlagen: {error}")
            ctx.error = str(error)
            ctx.advisory = None
            if raise_errors:
                raise error
            return None

        tree = task.result()
        if not current:
            logger.info(
                f"Ergebnis von Ladevorgang #{generation} verworfen "
                f"(überholt durch #{ctx.generation})"
            )
            return None

        ctx.tree = tree
        ctx.bulk_only = tree.bulk_only
        ctx.error = None
        ctx.advisory = None
        self._conflicts.clear()
        if not raise_errors:
            logger.info(f"Verspätetes Ergebnis von Ladevorgang #{generation} übernommen")
        return tree

    # ─── Abgeleitete Sichten ──────────────────────────────────────────────────

    def gate_report(self, scheme: Scheme) -> SchemeGateReport:
        return self.gates.evaluate(scheme)

    def progress(self, scheme: Scheme) -> SchemeProgress:
        return self.builder.aggregator.scheme_progress(scheme)

    def _require_tree(self) -> SchemeTree:
        if self.context.tree is None:
            raise SchemeLoadError("Es sind noch keine Pläne geladen.")
        return self.context.tree

    def _locate(self, scheme_id: str, chapter_number: int) -> tuple[Scheme, Chapter]:
        scheme = self._require_tree().get_scheme(scheme_id)
        if scheme is None:
            raise PlanValidationError(f"Plan {scheme_id} ist unbekannt.")
        chapter = scheme.get_chapter(chapter_number)
        if chapter is None:
            raise PlanValidationError(f"Kapitel {chapter_number} existiert in {scheme_id} nicht.")
        return scheme, chapter

    def _locate_session(self, scheme_id: str, chapter_number: int,
                        session_number: int) -> tuple[Scheme, Chapter, Session]:
        scheme, chapter = self._locate(scheme_id, chapter_number)
        session = chapter.get_session(session_number)
        if session is None:
            raise PlanValidationError(
                f"Sitzung {session_number} existiert in Kapitel {chapter_number} nicht."
            )
        return scheme, chapter, session

    def _require_chapter_open(self, scheme: Scheme, chapter: Chapter) -> None:
        gate = self.gate_report(scheme).get(chapter.chapter_number)
        if gate is not None and not gate.can_prepare:
            raise GateViolationError(
                gate.lock_reason or f"Kapitel {chapter.chapter_number} ist gesperrt."
            )

    # ─── Klick auf eine Sitzung ───────────────────────────────────────────────

    def open_session(self, scheme_id: str, chapter_number: int,
                     session_number: int) -> SessionAction:
        """Welche Aktion ein Klick auslöst; Sperren werden vor jedem Netzaufruf geprüft.

        Raises:
            GateViolationError: Kapitel gesperrt oder Nur-Sammelplanung aktiv
                (erweiterte Sitzungen sind davon ausgenommen).
        """
        scheme, chapter, session = self._locate_session(
            scheme_id, chapter_number, session_number,
        )
        action = click_action(session.lifecycle or classify_session(session))
        if action != SessionAction.PREPARE:
            return action

        self._require_chapter_open(scheme, chapter)
        if self.context.bulk_only and not chapter.is_extended(session):
            raise GateViolationError(
                "Nur Sammelplanung ist aktiv: Bitte das ganze Kapitel über "
                "'Prepare All' vorbereiten."
            )
        return action

    # ─── Perioden ─────────────────────────────────────────────────────────────

    def _begin_scope(self, scheme: Scheme) -> tuple[Scope, int]:
        scope = (scheme.class_name, scheme.subject)
        token = self._scope_tokens.get(scope, 0) + 1
        self._scope_tokens[scope] = token
        return scope, token

    def _is_stale(self, scope: Scope, token: int) -> bool:
        return self._scope_tokens.get(scope) != token

    async def _conflict_index(self, scheme: Scheme) -> tuple[ExamConflictIndex, Optional[str]]:
        if self._conflicts.is_current(scheme.class_name, scheme.subject):
            return self._conflicts.index, None
        try:
            raw = await self.exams.fetch_exams(scheme.class_name, scheme.subject)
            exams = [ExamRecord.model_validate(e) for e in raw]
        except Exception as e:
            logger.warning(f"Prüfungskalender für {scheme.class_name}/{scheme.subject} "
                           f"nicht verfügbar: {e}")
            empty = ExamConflictIndex(scheme.class_name, scheme.subject, [])
            return empty, EXAMS_UNAVAILABLE_ADVISORY
        return self._conflicts.rebuild(scheme.class_name, scheme.subject, exams), None

    async def fetch_candidate_slots(
        self, scheme: Scheme,
    ) -> tuple[list[AnnotatedSlot], Optional[str]]:
        """Kandidaten-Stunden im Planungsfenster, annotiert mit Prüfungskonflikten."""
        tree = self._require_tree()
        window = tree.planning_range
        try:
            result = await self.periods.fetch_periods(
                teacher_email=self.context.teacher_email,
                start_date=window.start_date or "",
                end_date=window.end_date or "",
                exclude_existing=self.config.planning.exclude_existing,
                class_name=scheme.class_name,
                subject=scheme.subject,
            )
        except Exception as e:
            raise SchemeLoadError(f"Perioden konnten nicht geladen werden: {e}") from e

        if not isinstance(result, dict) or not coerce_flag(result.get("success", False)):
            message = result.get("error") if isinstance(result, dict) else None
            raise SchemeLoadError(
                f"Perioden konnten nicht geladen werden: {message or 'ungültige Antwort'}"
            )
        try:
            slots = [CandidateSlot.model_validate(s) for s in result.get("availableSlots") or []]
        except ValidationError as e:
            raise SchemeLoadError(f"Perioden-Daten ungültig: {e}") from e

        index, advisory = await self._conflict_index(scheme)
        annotated = index.annotate(slots)
        logger.info(
            f"{len(annotated)} Kandidaten-Stunde(n) für {scheme.class_name}/{scheme.subject} "
            f"({sum(1 for a in annotated if a.is_selectable)} frei)"
        )
        return annotated, advisory

    async def _scoped_slots(
        self, scheme: Scheme,
    ) -> Optional[tuple[list[AnnotatedSlot], Optional[str], int]]:
        scope, token = self._begin_scope(scheme)
        try:
            slots, advisory = await self.fetch_candidate_slots(scheme)
        except SchemeLoadError:
            if self._is_stale(scope, token):
                logger.info(f"Veraltete Perioden-Anfrage für {scope} fehlgeschlagen – ignoriert")
                return None
            raise
        if self._is_stale(scope, token):
            logger.info(f"Veraltete Perioden-Antwort für {scope} verworfen")
            return None
        return slots, advisory, token

    # ─── Einzelplanung ────────────────────────────────────────────────────────

    async def start_single(self, scheme_id: str, chapter_number: int,
                           session_number: int) -> Optional[SinglePreparation]:
        """Öffnet den Einzel-Entwurf; None, wenn die Antwort überholt wurde."""
        action = self.open_session(scheme_id, chapter_number, session_number)
        scheme, chapter, session = self._locate_session(
            scheme_id, chapter_number, session_number,
        )
        if action != SessionAction.PREPARE:
            raise GateViolationError(
                f"Sitzung {session_number} ist bereits '{session.state.value}' "
                f"und kann nicht neu vorbereitet werden."
            )
        scoped = await self._scoped_slots(scheme)
        if scoped is None:
            return None
        slots, advisory, token = scoped
        return SinglePreparation(
            scheme=scheme, chapter=chapter, session=session,
            slots=slots, advisory=advisory, request_token=token,
        )

    async def submit_single(self, prep: SinglePreparation) -> Optional[SubmissionOutcome]:
        """Reicht einen Einzelplan ein und lädt danach den ganzen Baum neu.

        Raises:
            PlanValidationError: keine Stunde gewählt oder Einreichetag gesperrt.
            PlanWriteError: Quelle lehnt ab oder antwortet ungültig.
        """
        tree = self._require_tree()
        prep.validate(tree.planning_range)
        payload = prep.to_payload(self.context.teacher_email, self.context.teacher_name)
        logger.info(
            f"Reiche Plan ein: {prep.scheme.scheme_id} Kap. {prep.chapter.chapter_number} "
            f"Sitzung {prep.session.session_number} am {payload.selected_date} "
            f"P{payload.selected_period}"
        )
        return await self._submit(
            prep, prep.scheme, self.writer.create_plan,
            payload.model_dump(by_alias=True), expected=1,
        )

    # ─── Sammelplanung ────────────────────────────────────────────────────────

    async def start_bulk(self, scheme_id: str, chapter_number: int,
                         extended: bool = False) -> Optional[BulkPreparation]:
        """Öffnet den Sammel-Entwurf mit automatisch zugewiesenen Stunden.

        Ohne extended: nur für Kapitel ohne geplante Sitzung, N = totalSessions.
        Mit extended: genau eine erweiterte Sitzung plannedSessions + 1.
        """
        scheme, chapter = self._locate(scheme_id, chapter_number)
        self._require_chapter_open(scheme, chapter)
        gate = self.gate_report(scheme).get(chapter.chapter_number)

        if extended:
            if gate is None or gate.extended_session_number is None:
                raise GateViolationError(
                    f"Kapitel {chapter_number}: erweiterte Sitzung erst möglich, "
                    f"wenn alle Sitzungen berichtet sind und das Kapitel offen ist."
                )
            numbers = [gate.extended_session_number]
        else:
            if gate is None or gate.prepare_all_count is None:
                raise GateViolationError(
                    f"Kapitel {chapter_number}: Sammelplanung nur möglich, "
                    f"solange keine Sitzung geplant ist."
                )
            numbers = list(range(1, gate.prepare_all_count + 1))

        scoped = await self._scoped_slots(scheme)
        if scoped is None:
            return None
        slots, advisory, token = scoped
        assigned = assign_slots(slots, len(numbers))

        entries = []
        for number, slot in zip(numbers, assigned):
            existing = chapter.get_session(number)
            entries.append(BulkEntry(
                session_number=number,
                session_name=(existing.session_name if existing else "") or f"Session {number}",
                assigned=slot,
                is_extended=extended,
            ))
        logger.info(
            f"Sammel-Entwurf {scheme_id} Kap. {chapter_number}: {len(entries)} Sitzung(en)"
        )
        return BulkPreparation(
            scheme=scheme, chapter=chapter, entries=entries, extended=extended,
            advisory=advisory, request_token=token,
        )

    async def submit_bulk(self, prep: BulkPreparation) -> Optional[SubmissionOutcome]:
        """Alles oder nichts: createdCount muss der Anzahl der Sitzungen entsprechen."""
        tree = self._require_tree()
        prep.validate(tree.planning_range)
        payload = prep.to_payload(self.context.teacher_email, self.context.teacher_name)
        logger.info(
            f"Reiche Sammelplanung ein: {prep.scheme.scheme_id} "
            f"Kap. {prep.chapter.chapter_number}, {prep.size} Sitzung(en)"
        )
        return await self._submit(
            prep, prep.scheme, self.writer.create_bulk_plans,
            payload.model_dump(by_alias=True), expected=prep.size,
        )

    # ─── Schreiben + Neuladen ─────────────────────────────────────────────────

    async def _submit(
        self,
        prep: SinglePreparation | BulkPreparation,
        scheme: Scheme,
        call: Callable[[dict[str, Any]], Awaitable[dict[str, Any]]],
        payload: dict[str, Any],
        expected: int,
    ) -> Optional[SubmissionOutcome]:
        scope, token = self._begin_scope(scheme)
        prep.submitting = True
        try:
            created = await self._write(call, payload, expected)
        finally:
            prep.submitting = False

        if self._is_stale(scope, token):
            logger.info(f"Antwort auf Einreichen für {scope} verworfen (neuere Anfrage aktiv)")
            return None

        logger.info(f"{created} Plan/Pläne angelegt – lade Baum neu")
        tree, diff = await self._reload_after_write()
        return SubmissionOutcome(created_count=created, tree=tree, diff=diff)

    async def _write(
        self,
        call: Callable[[dict[str, Any]], Awaitable[dict[str, Any]]],
        payload: dict[str, Any],
        expected: int,
    ) -> int:
        try:
            raw = await call(payload)
        except Exception as e:
            logger.error(f"Einreichen fehlgeschlagen: {e}")
            raise PlanWriteError(f"Plan konnte nicht gespeichert werden: {e}") from e

        if not isinstance(raw, dict):
            raise PlanWriteError("Ungültige Antwort der Plan-Quelle.")
        try:
            result = PlanCreationResult.model_validate(raw)
        except ValidationError as e:
            raise PlanWriteError(f"Ungültige Antwort der Plan-Quelle: {e}") from e

        if not result.success:
            message = result.error or result.message or "unbekannter Fehler"
            logger.error(f"Plan-Quelle lehnt ab: {message}")
            raise PlanWriteError(f"Plan wurde abgelehnt: {message}")

        created = expected if result.created_count is None else result.created_count
        if created != expected:
            logger.error(f"Teil-Erfolg gemeldet: {created} von {expected}")
            raise PlanWriteError(
                f"Nur {created} von {expected} Plänen bestätigt – "
                f"nichts wurde übernommen, bitte neu laden."
            )
        return created

    async def _reload_after_write(self) -> tuple[Optional[SchemeTree], Optional[TreeDiff]]:
        before = self.context.tree
        try:
            tree = await self.load_schemes()
        except SchemeLoadError as e:
            # Plan ist gespeichert; der Fehler steht bereits in context.error
            logger.warning(f"Neuladen nach dem Einreichen fehlgeschlagen: {e}")
            return None, None
        if before is None or tree is None:
            return tree, None

        diff = diff_scheme_trees(before, tree)
        self.context.last_diff = diff
        for change in diff.cascades:
            logger.info(f"Serverseitige Verschiebung: {change.describe()}")
        return tree, diff

    # ─── KI-Vorschläge ────────────────────────────────────────────────────────

    async def suggest_fields(self, scheme: Scheme, chapter: Chapter, session_number: int,
                             session_name: str, fields: LessonPlanFields) -> LessonPlanFields:
        """Füllt leere Felder mit Vorschlägen; Fehler ändern nichts am Entwurf."""
        if self.suggestions is None:
            return fields
        request = {
            "schemeId": scheme.scheme_id,
            "class": scheme.class_name,
            "subject": scheme.subject,
            "chapter": chapter.chapter_name,
            "chapterNumber": chapter.chapter_number,
            "session": session_number,
            "sessionName": session_name,
        }
        try:
            raw = await self.suggestions.suggest(request)
        except Exception as e:
            logger.warning(f"KI-Vorschläge nicht verfügbar: {e}")
            return fields
        if isinstance(raw, dict) and isinstance(raw.get("suggestions"), dict):
            raw = raw["suggestions"]
        if not isinstance(raw, dict):
            logger.warning("KI-Vorschläge in unerwartetem Format – ignoriert")
            return fields
        return fields.merge_suggestion(raw)

    async def suggest_single(self, prep: SinglePreparation) -> LessonPlanFields:
        prep.fields = await self.suggest_fields(
            prep.scheme, prep.chapter, prep.session.session_number,
            prep.session.session_name, prep.fields,
        )
        return prep.fields

    async def suggest_bulk(self, prep: BulkPreparation) -> LessonPlanFields:
        entry = prep.current_entry
        entry.fields = await self.suggest_fields(
            prep.scheme, prep.chapter, entry.session_number, entry.session_name, entry.fields,
        )
        return entry.fields
