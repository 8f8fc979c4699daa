"""Vergleich zweier Scheme-Bäume (vor/nach dem Neuladen).

Nach einem erfolgreichen Einreichen wird der Baum komplett neu geladen.
Der Diff macht sichtbar, was sich serverseitig geändert hat, auch
Verschiebungen (Kaskaden) anderer Sitzungen im selben Kapitel.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from models.scheme import SchemeTree
    from models.session import Session


@dataclass
class SessionChange:
    """Geänderter Zustand oder Kaskaden-Flag einer Sitzung."""

    scheme_id: str
    chapter_number: int
    session_number: int
    old_state: Optional[str]
    new_state: Optional[str]
    old_cascaded: bool
    new_cascaded: bool

    @property
    def became_cascaded(self) -> bool:
        return self.new_cascaded and not self.old_cascaded

    def describe(self) -> str:
        text = (
            f"{self.scheme_id} Kap. {self.chapter_number} Sitzung {self.session_number}: "
            f"{self.old_state or '—'} → {self.new_state or '—'}"
        )
        if self.became_cascaded:
            text += " (verschoben)"
        return text


@dataclass
class TreeDiff:
    """Vollständiger Diff zwischen zwei Ladezyklen."""

    schemes_added: list[str] = field(default_factory=list)
    schemes_removed: list[str] = field(default_factory=list)
    session_changes: list[SessionChange] = field(default_factory=list)

    def is_empty(self) -> bool:
        """Gibt True zurück wenn kein Unterschied gefunden wurde."""
        return (
            not self.schemes_added
            and not self.schemes_removed
            and not self.session_changes
        )

    @property
    def cascades(self) -> list[SessionChange]:
        return [c for c in self.session_changes if c.became_cascaded]

    def to_dict(self) -> dict:
        """Serialisiert den Diff als Dictionary (für JSON-Ausgabe)."""
        return {
            "schemes_added": self.schemes_added,
            "schemes_removed": self.schemes_removed,
            "session_changes": [
                {
                    "scheme_id": c.scheme_id,
                    "chapter_number": c.chapter_number,
                    "session_number": c.session_number,
                    "old_state": c.old_state,
                    "new_state": c.new_state,
                    "old_cascaded": c.old_cascaded,
                    "new_cascaded": c.new_cascaded,
                }
                for c in self.session_changes
            ],
        }

    def to_json(self, indent: int = 2) -> str:
        """Gibt den Diff als JSON-String zurück."""
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)


def _index(tree: "SchemeTree") -> dict[tuple[str, int, int], "Session"]:
    return {
        (scheme.scheme_id, ch.chapter_number, s.session_number): s
        for scheme in tree.schemes
        for ch in scheme.chapters
        for s in ch.sessions
    }


def _cascaded(session: Optional["Session"]) -> bool:
    return bool(session is not None and session.lifecycle and session.lifecycle.cascaded)


def diff_scheme_trees(a: "SchemeTree", b: "SchemeTree") -> TreeDiff:
    """Vergleicht zwei klassifizierte Bäume Sitzung für Sitzung.

    Args:
        a: Alter Baum (vor dem Neuladen).
        b: Neuer Baum.

    Returns:
        TreeDiff; neu hinzugekommene Sitzungen erscheinen mit old_state=None.
    """
    diff = TreeDiff()

    ids_a = {s.scheme_id for s in a.schemes}
    ids_b = {s.scheme_id for s in b.schemes}
    diff.schemes_added = sorted(ids_b - ids_a)
    diff.schemes_removed = sorted(ids_a - ids_b)

    old = _index(a)
    new = _index(b)
    for key in sorted(new):
        scheme_id, _, _ = key
        if scheme_id not in ids_a:
            continue
        before = old.get(key)
        after = new[key]
        old_state = before.state.value if before is not None else None
        new_state = after.state.value
        if old_state != new_state or _cascaded(before) != _cascaded(after):
            diff.session_changes.append(SessionChange(
                scheme_id=key[0],
                chapter_number=key[1],
                session_number=key[2],
                old_state=old_state,
                new_state=new_state,
                old_cascaded=_cascaded(before),
                new_cascaded=_cascaded(after),
            ))

    return diff
