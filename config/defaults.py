from config.schema import (
    ApiConfig,
    EngineConfig,
    LoggingConfig,
    PlanningConfig,
    ProgressConfig,
)
from models.session import LifecycleState


def default_engine_config() -> EngineConfig:
    """Default-Konfiguration ohne API-Zugang (nur Offline-Betrieb).

    Weiches Lade-Timeout 60 s, Fortschrittsbänder 80 % / 50 %.
    """
    return EngineConfig(
        school_name="Muster-Schule",
        api=ApiConfig(),
        planning=PlanningConfig(),
        progress=ProgressConfig(),
        logging=LoggingConfig(),
    )


# ─── STATUS-ALIASSE ───
# Rohstatus (kleingeschrieben) → Lebenszyklus-Zustand.
# Unbekannte Werte werden als not-planned behandelt.

STATUS_ALIASES: dict[str, LifecycleState] = {
    "not-planned":     LifecycleState.NOT_PLANNED,
    "not planned":     LifecycleState.NOT_PLANNED,
    "planned":         LifecycleState.PLANNED,
    "pending review":  LifecycleState.PLANNED,
    "ready":           LifecycleState.READY,
    "cascaded":        LifecycleState.CASCADED,
    "reported":        LifecycleState.REPORTED,
    "cancelled":       LifecycleState.CANCELLED,
}


# ─── REMOTE-API-AKTIONEN ───

API_ACTIONS: dict[str, str] = {
    "schemes":      "getApprovedSchemesForLessonPlanning",
    "periods":      "getAvailablePeriodsForLessonPlan",
    "exams":        "getExams",
    "create":       "createSchemeLessonPlan",
    "create_bulk":  "createBulkSchemeLessonPlans",
    "suggest":      "getAILessonSuggestions",
}
