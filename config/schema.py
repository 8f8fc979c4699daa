from pydantic import BaseModel, Field, model_validator
from typing import Literal, Optional


# ─── REMOTE-API ───

class ApiConfig(BaseModel):
    """Zugang zur Remote-Procedure-API (Apps-Script-Web-App o.ä.)."""
    # Basis-URL des Endpunkts (endet typischerweise auf /exec)
    base_url: str = Field("",
        description="Basis-URL der Remote-API")
    # E-Mail der Lehrkraft, für die Pläne geladen werden
    teacher_email: str = Field("",
        description="E-Mail der Lehrkraft")
    # Anzeigename der Lehrkraft (wird beim Einreichen mitgesendet)
    teacher_name: str = Field("",
        description="Name der Lehrkraft")
    # Timeout einzelner HTTP-Anfragen in Sekunden
    request_timeout_seconds: float = Field(90.0, gt=0,
        description="HTTP-Timeout pro Anfrage (Sekunden)")


# ─── PLANUNG ───

class PlanningConfig(BaseModel):
    """Verhalten von Ladevorgang und Vorbereitung."""
    # Weiches Timeout für das Laden der Pläne: bricht die Anfrage NICHT ab,
    # gibt nur das Lade-Flag frei und zeigt einen Hinweis an.
    scheme_load_soft_timeout_seconds: float = Field(60.0, ge=1,
        description="Weiches Lade-Timeout (Sekunden)")
    # Bereits belegte Perioden von der Quelle ausschließen lassen
    exclude_existing: bool = Field(True,
        description="Belegte Perioden serverseitig ausschließen")
    # Länge des Fallback-Planungsfensters ab nächstem Montag (Tage)
    fallback_window_days: int = Field(5, ge=1, le=7,
        description="Tage im Fallback-Planungsfenster")


# ─── FORTSCHRITT ───

class ProgressConfig(BaseModel):
    """Schwellen für die Farbbänder der Fortschrittsbalken."""
    # Ab diesem Prozentwert: "good"
    good_threshold: int = Field(80, ge=0, le=100)
    # Ab diesem Prozentwert: "caution", darunter "risk"
    caution_threshold: int = Field(50, ge=0, le=100)

    @model_validator(mode='after')
    def validate_thresholds(self):
        """caution darf nicht über good liegen."""
        if self.caution_threshold > self.good_threshold:
            raise ValueError(
                f"caution_threshold ({self.caution_threshold}) > "
                f"good_threshold ({self.good_threshold})"
            )
        return self


# ─── LOGGING ───

class LoggingConfig(BaseModel):
    """Logging-Ausgabe der CLI."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    # Optionaler Pfad für eine zusätzliche Log-Datei
    file: Optional[str] = None


# ─── GESAMT-CONFIG ───

class EngineConfig(BaseModel):
    """Gesamtkonfiguration der Planungs-Engine."""
    # Name der Schule (nur Anzeige)
    school_name: str = Field("Muster-Schule",
        description="Name der Schule")
    api: ApiConfig = Field(default_factory=ApiConfig)
    planning: PlanningConfig = Field(default_factory=PlanningConfig)
    progress: ProgressConfig = Field(default_factory=ProgressConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
