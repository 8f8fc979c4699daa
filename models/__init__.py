from models.session import (
    CascadeDetail, LifecycleState, Session, SessionAction, SessionStatus,
)
from models.chapter import Chapter
from models.scheme import PlanningDateRange, Scheme, SchemeTree
from models.slot import AnnotatedSlot, CandidateSlot, ConflictKind, ExamRecord
from models.plan import (
    BulkPlanPayload, BulkSessionPayload, LessonPlanFields,
    PlanCreationResult, SinglePlanPayload,
)

__all__ = [
    "CascadeDetail",
    "LifecycleState",
    "Session",
    "SessionAction",
    "SessionStatus",
    "Chapter",
    "PlanningDateRange",
    "Scheme",
    "SchemeTree",
    "AnnotatedSlot",
    "CandidateSlot",
    "ConflictKind",
    "ExamRecord",
    "BulkPlanPayload",
    "BulkSessionPayload",
    "LessonPlanFields",
    "PlanCreationResult",
    "SinglePlanPayload",
]
