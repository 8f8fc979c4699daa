"""Session-Rekonstruktion: Sparse-Kapitel → dichte, lückenlose Sitzungsliste.

Die Quelle lässt Sitzungen ohne Aktivität weg, um die Payload klein zu
halten (sessionsSparse=true). Hier wird daraus wieder eine vollständige
Folge 1..totalSessions gebaut, gefolgt von erweiterten Sitzungen
(sessionNumber > totalSessions) in aufsteigender Reihenfolge.
"""

import logging
from typing import Any

from models.chapter import Chapter
from models.scheme import Scheme
from models.session import Session, placeholder_session

logger = logging.getLogger(__name__)


class SessionReconstructor:
    """Baut Kapitel und Pläne aus Roh-Payloads auf.

    Numerische Felder werden beim Validieren über die Modelltypen
    (models.coercion) tolerant konvertiert: Ungültiges wird 0.
    """

    def reconstruct_scheme(self, raw: dict[str, Any] | Scheme) -> Scheme:
        """Validiert einen Plan und rekonstruiert alle seine Kapitel.

        Kapitel werden nach chapterNumber sortiert.
        """
        scheme = raw if isinstance(raw, Scheme) else Scheme.model_validate(raw)
        chapters = [self.reconstruct_chapter(ch) for ch in scheme.chapters]
        chapters.sort(key=lambda c: c.chapter_number)
        return scheme.model_copy(update={"chapters": chapters})

    def reconstruct_chapter(self, raw: dict[str, Any] | Chapter) -> Chapter:
        """Validiert ein Kapitel und ersetzt seine Sitzungsliste."""
        chapter = raw if isinstance(raw, Chapter) else Chapter.model_validate(raw)
        sessions = self.reconstruct_sessions(
            chapter.sessions,
            total_sessions=chapter.total_sessions,
            sparse=chapter.sessions_sparse,
            context=f"Kapitel {chapter.chapter_number}",
        )
        return chapter.model_copy(update={"sessions": sessions})

    def reconstruct_sessions(
        self,
        sessions: list[Session],
        total_sessions: int,
        sparse: bool,
        context: str = "",
    ) -> list[Session]:
        """Expandiert eine Sparse-Liste; nicht-sparse Listen bleiben unverändert.

        Einträge mit Nummer ≤ 0 passen weder in den dichten Block noch zu
        den erweiterten Sitzungen und werden verworfen. Bei doppelten
        Nummern gewinnt der erste Eintrag.
        """
        if not sparse or total_sessions <= 0:
            return list(sessions)

        by_number: dict[int, Session] = {}
        extended: list[Session] = []
        for session in sessions:
            number = session.session_number
            if number > total_sessions:
                extended.append(session)
            elif number >= 1:
                if number in by_number:
                    logger.warning(
                        f"{context}: Sitzung {number} doppelt in Payload – "
                        f"erster Eintrag wird verwendet"
                    )
                    continue
                by_number[number] = session
            else:
                logger.warning(
                    f"{context}: Sitzung mit ungültiger Nummer verworfen "
                    f"({session.session_name or 'ohne Namen'})"
                )

        dense: list[Session] = []
        for number in range(1, total_sessions + 1):
            entry = by_number.get(number)
            if entry is None:
                dense.append(placeholder_session(number))
            elif not entry.session_name:
                dense.append(entry.model_copy(
                    update={"session_name": f"Session {number}"}
                ))
            else:
                dense.append(entry)

        extended.sort(key=lambda s: s.session_number)
        logger.debug(
            f"{context}: {len(by_number)} von {total_sessions} Sitzungen geliefert, "
            f"{total_sessions - len(by_number)} Platzhalter, {len(extended)} erweitert"
        )
        return dense + extended
