"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  Pige CRM - Modèles de la recherche asynchrone (n8n)                         ║
║                                                                              ║
║  FLUX:                                                                       ║
║  1. SearchRequestPayload envoyé à n8n (via /n8n-proxy)                       ║
║  2. n8n répond {recherche_id} -> SearchSession en "polling"                  ║
║  3. n8n rappelle /api/pige-results -> StoredResult                           ║
║  4. Le poller retrouve le StoredResult -> session "completed"                ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Optional, List, Any, Dict
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger("pige_models")


class LabeledValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    value: Any


class SearchRequestPayload(BaseModel):
    """Payload envoyé au workflow n8n. Immuable une fois construit."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    location: str
    radius_km: int = Field(alias="radiusKm")
    essential: List[LabeledValue] = Field(default_factory=list)
    important: List[LabeledValue] = Field(default_factory=list)
    bonus: List[LabeledValue] = Field(default_factory=list)
    callback_url: str = Field(alias="callbackUrl")

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


class SearchStatus(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    POLLING = "polling"
    COMPLETED = "completed"        # TERMINAL
    CANCELLED = "cancelled"        # TERMINAL
    FAILED = "failed"              # TERMINAL
    TIMED_OUT = "timedOut"         # TERMINAL


TERMINAL_STATUSES = {
    SearchStatus.COMPLETED,
    SearchStatus.CANCELLED,
    SearchStatus.FAILED,
    SearchStatus.TIMED_OUT,
}


class SearchSession(BaseModel):
    """
    Une recherche = une session. Usage unique:
    relancer une recherche crée TOUJOURS une nouvelle session.
    """
    id: str
    operator_id: str
    status: SearchStatus = SearchStatus.IDLE
    search_id: Optional[str] = None
    result: Optional[Any] = None
    error: Optional[str] = None
    submitted_at: Optional[datetime] = None
    deadline_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class StoredResult(BaseModel):
    """Entrée du store de corrélation, créée uniquement par le callback"""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    search_id: str = Field(alias="searchId")
    received_at: datetime = Field(alias="receivedAt")
    payload: Any

    def to_wire(self) -> dict:
        """Réponse du polling: {receivedAt, payload}"""
        return self.model_dump(mode="json", by_alias=True, include={"received_at", "payload"})


# ==================== RÉSULTATS N8N ====================

class PigeAnnonce(BaseModel):
    titre: str = ""
    prix: float = 0
    nb_pieces: Optional[int] = None
    nb_chambres: Optional[int] = None
    surface_m2: Optional[float] = None
    localisation: str = ""
    url_annonce: str = ""
    score_compatibilite: float = 0
    criteres_matches: List[str] = Field(default_factory=list)
    criteres_manquants: List[str] = Field(default_factory=list)


class PigeStats(BaseModel):
    agences_scrapees: int = 0
    annonces_trouvees_total: int = 0
    annonces_apres_deduplication: int = 0
    doublons_supprimes: int = 0


class PigeResultSummary(BaseModel):
    recherche_id: Optional[str] = None
    stats: PigeStats = Field(default_factory=PigeStats)
    annonces: List[PigeAnnonce] = Field(default_factory=list)


def summarize_result(payload: Any) -> Optional[PigeResultSummary]:
    """
    Extrait stats + annonces (triées par compatibilité décroissante)
    d'un payload de callback n8n.

    Formes acceptées: {payload: {...}} ou {...} directement.
    Retourne None si le payload n'a pas la forme attendue.
    """
    if not isinstance(payload, dict):
        return None

    body: Dict = payload.get("payload") if isinstance(payload.get("payload"), dict) else payload
    if "annonces" not in body and "stats" not in body:
        return None

    try:
        summary = PigeResultSummary(
            recherche_id=str(body["recherche_id"]) if body.get("recherche_id") is not None else None,
            stats=body.get("stats") or {},
            annonces=body.get("annonces") or [],
        )
    except ValidationError as e:
        logger.warning(f"Résultat pige illisible: {e.error_count()} erreur(s)")
        return None

    summary.annonces.sort(key=lambda a: a.score_compatibilite, reverse=True)
    return summary
