"""
Pige CRM - Service Settings

Gestion des parametres operateur.
Collection: settings (chaque doc identifie par key)

Settings disponibles:
- pige_webhook: URL du webhook n8n qui execute la pige
"""

import logging
from typing import Optional, Dict, Any
from pymongo.errors import PyMongoError

from config import db, now_iso
from services.pige_submission import PigeConfigurationError

logger = logging.getLogger("settings")

PIGE_WEBHOOK_KEY = "pige_webhook"


async def get_setting(key: str) -> Optional[Dict]:
    """Recupere un setting par sa cle"""
    doc = await db.settings.find_one({"key": key}, {"_id": 0})
    return doc


async def upsert_setting(key: str, data: Dict[str, Any], updated_by: str = "system") -> Dict:
    """Cree ou met a jour un setting"""
    data["key"] = key
    data["updated_at"] = now_iso()
    data["updated_by"] = updated_by

    existing = await db.settings.find_one({"key": key})
    if existing:
        await db.settings.update_one({"key": key}, {"$set": data})
    else:
        data["created_at"] = now_iso()
        await db.settings.insert_one(data)

    result = await db.settings.find_one({"key": key}, {"_id": 0})
    return result


# ---- Webhook n8n (pige) ----

async def get_pige_webhook_url() -> str:
    """Retourne l'URL du webhook n8n ("" si non configuree)"""
    doc = await get_setting(PIGE_WEBHOOK_KEY)
    if not doc:
        return ""
    return (doc.get("webhook_url") or "").strip()


async def set_pige_webhook_url(url: str, updated_by: str = "system") -> Dict:
    """Enregistre l'URL du webhook ("" pour la supprimer)"""
    url = (url or "").strip()
    logger.info(f"Webhook pige {'mis a jour' if url else 'supprime'} par {updated_by}")
    return await upsert_setting(PIGE_WEBHOOK_KEY, {"webhook_url": url}, updated_by=updated_by)


async def resolve_pige_webhook_url() -> str:
    """
    Lecture de l'URL au lancement d'une pige.
    Base injoignable -> PigeConfigurationError (session "failed" avec message)
    """
    try:
        return await get_pige_webhook_url()
    except PyMongoError as e:
        logger.error(f"Lecture du webhook pige impossible: {e}")
        raise PigeConfigurationError(
            f"Impossible de lire l'URL du webhook n8n dans les paramètres ({e.__class__.__name__})."
        ) from e
