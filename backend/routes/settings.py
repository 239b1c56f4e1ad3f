"""
Pige CRM - Routes Settings

Endpoints pour gerer les parametres operateur:
- URL du webhook n8n (pige)
"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from config import is_http_url
from routes.pige import get_operator_id
from services.settings import get_pige_webhook_url, set_pige_webhook_url

router = APIRouter(prefix="/settings", tags=["Settings"])


# ---- Models ----

class PigeWebhookUpdate(BaseModel):
    webhook_url: str


# ---- Endpoints ----

@router.get("/pige-webhook")
async def get_pige_webhook():
    """Recupere l'URL du webhook n8n"""
    url = await get_pige_webhook_url()
    return {"webhook_url": url, "configured": bool(url)}


@router.put("/pige-webhook")
async def update_pige_webhook(
    data: PigeWebhookUpdate,
    operator_id: str = Depends(get_operator_id)
):
    """Met a jour l'URL du webhook n8n"""
    url = data.webhook_url.strip()
    if not is_http_url(url):
        raise HTTPException(status_code=400, detail="URL du webhook invalide (http:// ou https:// attendu)")

    await set_pige_webhook_url(url, updated_by=operator_id)
    return {"success": True, "webhook_url": url, "configured": True}


@router.delete("/pige-webhook")
async def delete_pige_webhook(operator_id: str = Depends(get_operator_id)):
    """Supprime l'URL du webhook n8n"""
    await set_pige_webhook_url("", updated_by=operator_id)
    return {"success": True, "webhook_url": "", "configured": False}
