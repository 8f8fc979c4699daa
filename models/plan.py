"""Payloads für die Plan-Erstellung (Einzel- und Sammelplanung)."""

from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from models.coercion import Count, Flag, OptionalText


class LessonPlanFields(BaseModel):
    """Freitext-Felder eines Stundenentwurfs (inhaltlich opak)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    learning_objectives: str = ""
    teaching_methods: str = ""
    resources_required: str = ""
    assessment_methods: str = ""

    def missing_required(self) -> list[str]:
        """Pflichtfelder für die Sammelplanung: Lernziele und Methoden."""
        missing = []
        if not self.learning_objectives.strip():
            missing.append("learningObjectives")
        if not self.teaching_methods.strip():
            missing.append("teachingMethods")
        return missing

    def merge_suggestion(self, suggestion: dict) -> "LessonPlanFields":
        """Übernimmt Vorschläge nur in leere Felder."""
        update = {}
        for name in type(self).model_fields:
            current = getattr(self, name)
            proposed = suggestion.get(to_camel(name), suggestion.get(name))
            if not current.strip() and isinstance(proposed, str) and proposed.strip():
                update[name] = proposed.strip()
        return self.model_copy(update=update)


class SinglePlanPayload(LessonPlanFields):
    """Payload für createSchemeLessonPlan."""

    scheme_id: str
    chapter: str
    session: int
    teacher_email: str
    teacher_name: str = ""
    selected_date: str
    selected_period: int
    status: str = "submitted"


class BulkSessionPayload(LessonPlanFields):
    """Eine Sitzung innerhalb einer Sammelplanung."""

    session_number: int
    session_name: str = ""
    selected_date: str
    selected_period: int
    is_extended: bool = False


class BulkPlanPayload(BaseModel):
    """Payload für createBulkSchemeLessonPlans (alles oder nichts)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    scheme_id: str
    chapter: str
    chapter_number: int
    teacher_email: str
    teacher_name: str = ""
    sessions: list[BulkSessionPayload]
    status: str = "submitted"


class PlanCreationResult(BaseModel):
    """Antwort der Plan-Erstellungs-Quelle."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore",
    )

    success: Flag = False
    created_count: Optional[Count] = None
    error: OptionalText = None
    message: OptionalText = None
