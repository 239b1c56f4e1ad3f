"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  Pige CRM - Coordinateur de recherche asynchrone                             ║
║                                                                              ║
║  idle -> submitting -> polling -> completed                                  ║
║              |            |----> cancelled                                   ║
║              |            '----> timedOut (plafond 15 min, horloge murale)   ║
║              |----> failed                                                   ║
║              '----> cancelled                                                ║
║                                                                              ║
║  INVARIANTS:                                                                 ║
║  - UN SEUL poller actif par opérateur (jobs retirés avant tout ajout)        ║
║  - completed/failed/cancelled/timedOut sont TERMINAUX                        ║
║  - Un tick en vol dont la session a changé est ignoré                        ║
║  - Un échec de tick n'arrête JAMAIS le polling                               ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Dict, Optional, Union
from urllib.parse import quote

import httpx
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from config import (
    BACKEND_URL,
    N8N_PROXY_TIMEOUT_SECONDS,
    PIGE_POLL_CEILING_MINUTES,
    PIGE_POLL_INTERVAL_SECONDS,
    PIGE_RESULTS_PATH,
    pige_callback_url,
    utc_now,
)
from models.criterion import CriteriaBoard
from models.pige import SearchSession, SearchStatus
from scheduler_service import TaskScheduler, task_scheduler
from services.pige_submission import PigeError, build_payload, trigger_engine

logger = logging.getLogger("pige_coordinator")

POLL_REQUEST_TIMEOUT_SECONDS = 30.0

SUBMISSION_ERROR_PREFIX = "Une erreur est survenue lors du lancement de la recherche. Détails: "
TIMEOUT_MESSAGE = (
    f"La recherche a pris plus de {PIGE_POLL_CEILING_MINUTES} minutes et a été interrompue."
)


# ════════════════════════════════════════════════════════════════════════════
# VALID STATE TRANSITIONS
# ════════════════════════════════════════════════════════════════════════════

VALID_SESSION_TRANSITIONS = {
    SearchStatus.IDLE: [SearchStatus.SUBMITTING],
    SearchStatus.SUBMITTING: [SearchStatus.POLLING, SearchStatus.FAILED, SearchStatus.CANCELLED],
    SearchStatus.POLLING: [SearchStatus.COMPLETED, SearchStatus.CANCELLED, SearchStatus.TIMED_OUT],
    SearchStatus.COMPLETED: [],  # TERMINAL
    SearchStatus.CANCELLED: [],  # TERMINAL
    SearchStatus.FAILED: [],     # TERMINAL
    SearchStatus.TIMED_OUT: [],  # TERMINAL
}


class SessionTransitionError(Exception):
    """Raised when a search session transition is not allowed"""
    pass


def validate_session_transition(session: SearchSession, to_status: SearchStatus) -> bool:
    valid_next = VALID_SESSION_TRANSITIONS.get(session.status, [])
    if to_status not in valid_next:
        raise SessionTransitionError(
            f"INVALID TRANSITION: session {session.id} cannot go from "
            f"'{session.status.value}' to '{to_status.value}'. "
            f"Valid transitions: {[s.value for s in valid_next]}"
        )
    return True


def default_client_factory() -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url=BACKEND_URL, timeout=N8N_PROXY_TIMEOUT_SECONDS)


# ════════════════════════════════════════════════════════════════════════════
# COORDINATEUR (un par opérateur)
# ════════════════════════════════════════════════════════════════════════════

class PigeCoordinator:

    def __init__(
        self,
        operator_id: str,
        scheduler: Optional[TaskScheduler] = None,
        client_factory: Callable[[], httpx.AsyncClient] = default_client_factory,
        clock: Callable[[], datetime] = utc_now,
        poll_interval_seconds: int = PIGE_POLL_INTERVAL_SECONDS,
        ceiling: timedelta = timedelta(minutes=PIGE_POLL_CEILING_MINUTES),
    ):
        self.operator_id = operator_id
        self.scheduler = scheduler or task_scheduler
        self.client_factory = client_factory
        self.clock = clock
        self.poll_interval_seconds = poll_interval_seconds
        self.ceiling = ceiling
        self.session: Optional[SearchSession] = None

    @property
    def poll_job_id(self) -> str:
        return f"pige-poll:{self.operator_id}"

    @property
    def ceiling_job_id(self) -> str:
        return f"pige-ceiling:{self.operator_id}"

    # ---- Transitions ----

    def _transition(self, session: SearchSession, to_status: SearchStatus, **fields) -> SearchSession:
        validate_session_transition(session, to_status)
        for key, value in fields.items():
            setattr(session, key, value)
        session.status = to_status
        if session.is_terminal:
            session.finished_at = self.clock()
        logger.info(
            f"Session pige {session.id} ({self.operator_id}) -> {to_status.value}"
            + (f" [recherche_id={session.search_id}]" if session.search_id else "")
        )
        return session

    def _current_polling(self, session_id: str) -> Optional[SearchSession]:
        session = self.session
        if session is None or session.id != session_id or session.status != SearchStatus.POLLING:
            return None
        return session

    # ---- Timers ----

    def _stop_polling(self):
        self.scheduler.remove_job(self.poll_job_id)
        self.scheduler.remove_job(self.ceiling_job_id)

    def _start_polling(self, session: SearchSession):
        self._stop_polling()
        self.scheduler.scheduler.add_job(
            self.tick,
            IntervalTrigger(seconds=self.poll_interval_seconds),
            args=[session.id],
            id=self.poll_job_id,
            name=f"Polling pige {session.search_id}",
            max_instances=1,
            coalesce=True,
            replace_existing=True
        )
        self.scheduler.scheduler.add_job(
            self.expire,
            DateTrigger(run_date=session.deadline_at),
            args=[session.id],
            id=self.ceiling_job_id,
            name=f"Plafond pige {session.search_id}",
            replace_existing=True
        )

    # ---- Opérations ----

    async def start_search(
        self,
        board: CriteriaBoard,
        location: str,
        radius_km: int,
        webhook_url: Union[Optional[str], Callable[[], Awaitable[str]]],
    ) -> SearchSession:
        """
        Lance une nouvelle recherche. La session précédente est abandonnée
        (son poller est arrêté AVANT toute nouvelle soumission).
        Les erreurs de soumission sont converties en session "failed".
        webhook_url: URL, ou fonction async qui la lit (erreurs de lecture -> "failed").
        """
        self._stop_polling()
        previous = self.session
        if previous is not None and not previous.is_terminal:
            self._transition(previous, SearchStatus.CANCELLED)

        session = SearchSession(id=str(uuid.uuid4()), operator_id=self.operator_id)
        self.session = session
        submitted_at = self.clock()
        self._transition(
            session,
            SearchStatus.SUBMITTING,
            submitted_at=submitted_at,
            deadline_at=submitted_at + self.ceiling,
        )

        payload = build_payload(board, location, radius_km, pige_callback_url())

        try:
            if callable(webhook_url):
                webhook_url = await webhook_url()
            async with self.client_factory() as client:
                search_id = await trigger_engine(webhook_url, payload, client)
        except PigeError as e:
            logger.warning(f"Échec lancement pige ({self.operator_id}): {e}")
            if self.session is session and session.status == SearchStatus.SUBMITTING:
                self._transition(session, SearchStatus.FAILED, error=SUBMISSION_ERROR_PREFIX + str(e))
            return session

        if self.session is not session or session.status != SearchStatus.SUBMITTING:
            logger.info(f"recherche_id {search_id} ignoré: session {session.id} abandonnée pendant l'envoi")
            return session

        self._transition(session, SearchStatus.POLLING, search_id=search_id)
        self._start_polling(session)
        return session

    async def tick(self, session_id: str):
        """Une interrogation du store. Ne lève jamais."""
        session = self._current_polling(session_id)
        if session is None:
            return

        entry = None
        try:
            entry = await self._fetch_result(session.search_id)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Polling pige {session.search_id}: erreur ignorée ({e})")

        # La session a pu être annulée / remplacée pendant l'appel
        if self._current_polling(session_id) is None:
            return

        if entry is not None:
            self._stop_polling()
            self._transition(session, SearchStatus.COMPLETED, result=entry.get("payload"))
        elif self.clock() >= session.deadline_at:
            self._stop_polling()
            self._transition(session, SearchStatus.TIMED_OUT, error=TIMEOUT_MESSAGE)

    async def expire(self, session_id: str):
        """Plafond atteint sans résultat"""
        session = self._current_polling(session_id)
        if session is None:
            return
        self._stop_polling()
        self._transition(session, SearchStatus.TIMED_OUT, error=TIMEOUT_MESSAGE)

    def cancel(self) -> Optional[SearchSession]:
        """Annule la recherche en cours. No-op si aucune ou déjà terminée."""
        session = self.session
        if session is None or session.is_terminal:
            return session
        self._stop_polling()
        return self._transition(session, SearchStatus.CANCELLED)

    async def _fetch_result(self, search_id: str) -> Optional[dict]:
        """GET /api/pige-results/{id} -> entrée stockée, None si pas encore là"""
        async with self.client_factory() as client:
            resp = await client.get(
                f"{PIGE_RESULTS_PATH}/{quote(search_id, safe='')}",
                timeout=POLL_REQUEST_TIMEOUT_SECONDS,
            )
        if resp.status_code == 404:
            return None
        if not resp.is_success:
            logger.warning(f"Polling pige {search_id}: statut inattendu {resp.status_code}")
            return None
        data = resp.json()
        if not isinstance(data, dict):
            raise ValueError(f"réponse inattendue du store: {type(data).__name__}")
        return data


# ==================== REGISTRE ====================

_coordinators: Dict[str, PigeCoordinator] = {}


def get_coordinator(operator_id: str) -> PigeCoordinator:
    coordinator = _coordinators.get(operator_id)
    if coordinator is None:
        coordinator = PigeCoordinator(operator_id)
        _coordinators[operator_id] = coordinator
    return coordinator


def reset_coordinators():
    for coordinator in _coordinators.values():
        coordinator._stop_polling()
    _coordinators.clear()
