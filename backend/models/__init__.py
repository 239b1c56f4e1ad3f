"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  Pige CRM - Models Package                                                   ║
║                                                                              ║
║  Exports tous les modèles pour import facile                                 ║
║  from models import CriteriaBoard, SearchProfile, SearchSession, etc.        ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

# Critères (tableau de pige)
from .criterion import (
    CriterionValueError,
    CriterionKind,
    BoardSlot,
    PRIORITY_BUCKETS,
    SLOT_SEARCH_ORDER,
    NumberRange,
    SelectCriterion,
    NumberRangeCriterion,
    BooleanCriterion,
    FreeTextCriterion,
    Criterion,
    CriteriaBoard,
)

# Profil de recherche contact
from .contact import (
    PropertyType,
    PropertyStyle,
    PROPERTY_TYPE_OPTIONS,
    SearchProfile,
)

# Recherche asynchrone
from .pige import (
    LabeledValue,
    SearchRequestPayload,
    SearchStatus,
    TERMINAL_STATUSES,
    SearchSession,
    StoredResult,
    PigeAnnonce,
    PigeStats,
    PigeResultSummary,
    summarize_result,
)
