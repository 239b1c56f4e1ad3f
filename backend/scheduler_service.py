"""
Scheduler pour les tâches automatiques Pige CRM
- Timers de polling des recherches de pige (ajoutés par le coordinateur)
- Plafond de 15 minutes par recherche (DateTrigger)
- Purge périodique du store de résultats
"""

import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.jobstores.base import JobLookupError

logger = logging.getLogger("scheduler")


class TaskScheduler:
    """Gestionnaire de tâches planifiées"""

    def __init__(self):
        self.scheduler = AsyncIOScheduler(timezone="Europe/Paris")

    def start(self):
        """Démarre le scheduler avec les tâches de fond"""
        # Purge des résultats de pige expirés toutes les 10 minutes
        self.scheduler.add_job(
            self.purge_pige_results,
            CronTrigger(minute="*/10"),
            id="purge_pige_results",
            name="Purge résultats pige",
            replace_existing=True
        )

        self.scheduler.start()
        logger.info("Scheduler démarré avec succès")

    def stop(self):
        """Arrête le scheduler"""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler arrêté")

    @property
    def running(self) -> bool:
        return self.scheduler.running

    def remove_job(self, job_id: str) -> bool:
        """Supprime un job s'il existe. Retourne True si un job a été retiré."""
        try:
            self.scheduler.remove_job(job_id)
            return True
        except JobLookupError:
            return False

    # ==================== TÂCHES PLANIFIÉES ====================

    async def purge_pige_results(self):
        """Applique la rétention du store de résultats"""
        from services.pige_results_store import results_store

        removed = results_store.purge()
        logger.info(f"Purge pige: {removed} résultat(s) supprimé(s), {len(results_store)} restant(s)")


task_scheduler = TaskScheduler()
