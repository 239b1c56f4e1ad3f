"""
Pige CRM - Store de corrélation des résultats n8n

Résultats indexés par recherche_id, en MÉMOIRE (process unique).
- save(): écrase l'entrée existante (dernier callback gagnant)
- get(): lecture par clé
- Purge: entrées plus vieilles que la rétention + plafond du nombre d'entrées

Un déploiement multi-instances nécessite un store partagé.
"""

import logging
from collections import OrderedDict
from datetime import datetime, timedelta
from threading import Lock
from typing import Any, Callable, Optional

from config import PIGE_RESULT_MAX_ENTRIES, PIGE_RESULT_RETENTION_HOURS, utc_now
from models.pige import StoredResult

logger = logging.getLogger("pige_results")


class PigeResultsStore:

    def __init__(
        self,
        max_entries: int = PIGE_RESULT_MAX_ENTRIES,
        retention: timedelta = timedelta(hours=PIGE_RESULT_RETENTION_HOURS),
        clock: Callable[[], datetime] = utc_now,
    ):
        self.max_entries = max_entries
        self.retention = retention
        self.clock = clock
        self._entries: "OrderedDict[str, StoredResult]" = OrderedDict()
        self._lock = Lock()

    def save(self, search_id: str, payload: Any) -> StoredResult:
        entry = StoredResult(search_id=search_id, received_at=self.clock(), payload=payload)
        with self._lock:
            replaced = search_id in self._entries
            self._entries.pop(search_id, None)
            self._entries[search_id] = entry
            self._purge_locked()
        if replaced:
            logger.info(f"Résultat pige {search_id} remplacé (callback répété)")
        return entry

    def get(self, search_id: str) -> Optional[StoredResult]:
        with self._lock:
            entry = self._entries.get(search_id)
        if entry is not None and self._expired(entry):
            return None
        return entry

    def purge(self) -> int:
        with self._lock:
            return self._purge_locked()

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def _expired(self, entry: StoredResult) -> bool:
        return self.clock() - entry.received_at > self.retention

    def _purge_locked(self) -> int:
        removed = 0
        # Ordre d'insertion = ordre de réception
        while self._entries:
            oldest = next(iter(self._entries.values()))
            if not self._expired(oldest) and len(self._entries) <= self.max_entries:
                break
            self._entries.popitem(last=False)
            removed += 1
        if removed:
            logger.info(f"{removed} résultat(s) pige purgé(s)")
        return removed


results_store = PigeResultsStore()
