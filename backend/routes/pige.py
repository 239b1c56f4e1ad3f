"""
Pige CRM - Routes Pige (opérateur)

Préparation de la recherche (tableau de critères) puis lancement /
suivi / annulation de la recherche asynchrone n8n.

L'opérateur est identifié par le header X-Operator-Id ("default" sinon) :
un espace de travail et au plus UNE recherche active par opérateur.
"""

import logging
from typing import Optional, Any

from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel

from config import pige_callback_url
from models.contact import SearchProfile
from models.criterion import BoardSlot, CriterionValueError
from models.pige import SearchSession, SearchStatus, summarize_result
from services import criteria_board
from services.pige_coordinator import get_coordinator
from services.pige_submission import build_payload
from services.pige_workspace import get_workspace
from services.settings import resolve_pige_webhook_url

router = APIRouter(prefix="/pige", tags=["Pige"])
logger = logging.getLogger("pige")


async def get_operator_id(x_operator_id: Optional[str] = Header(default=None)) -> str:
    return (x_operator_id or "").strip() or "default"


# ==================== MODELS ====================

class DeriveRequest(BaseModel):
    contact_id: Optional[str] = None
    profile: Optional[SearchProfile] = None


class LocationUpdate(BaseModel):
    location: str
    radius_km: Optional[float] = None


class MoveRequest(BaseModel):
    criterion_id: str
    target: BoardSlot
    source: Optional[BoardSlot] = None


class ValueUpdate(BaseModel):
    value: Any


class FreeTextRequest(BaseModel):
    text: str
    bucket: BoardSlot


def session_response(session: SearchSession) -> dict:
    data = session.model_dump(mode="json")
    summary = None
    if session.status == SearchStatus.COMPLETED:
        parsed = summarize_result(session.result)
        summary = parsed.model_dump(mode="json") if parsed else None
    data["summary"] = summary
    return data


# ==================== ESPACE DE TRAVAIL ====================

@router.get("/workspace")
async def get_pige_workspace(operator_id: str = Depends(get_operator_id)):
    return get_workspace(operator_id).snapshot()


@router.post("/workspace/reset")
async def reset_pige_workspace(operator_id: str = Depends(get_operator_id)):
    workspace = get_workspace(operator_id)
    workspace.reset()
    return workspace.snapshot()


@router.post("/workspace/derive")
async def derive_pige_workspace(data: DeriveRequest, operator_id: str = Depends(get_operator_id)):
    """Remplace le tableau par les critères dérivés de la fiche contact"""
    workspace = get_workspace(operator_id)
    workspace.load_profile(data.profile, contact_id=data.contact_id)
    return workspace.snapshot()


@router.put("/workspace/location")
async def update_pige_location(data: LocationUpdate, operator_id: str = Depends(get_operator_id)):
    workspace = get_workspace(operator_id)
    workspace.set_location(data.location, data.radius_km)
    return workspace.snapshot()


@router.post("/workspace/move")
async def move_criterion(data: MoveRequest, operator_id: str = Depends(get_operator_id)):
    workspace = get_workspace(operator_id)
    workspace.board = criteria_board.move(workspace.board, data.criterion_id, data.target, data.source)
    return workspace.snapshot()


@router.patch("/workspace/criteria/{criterion_id}")
async def update_criterion(criterion_id: str, data: ValueUpdate, operator_id: str = Depends(get_operator_id)):
    workspace = get_workspace(operator_id)
    try:
        workspace.board = criteria_board.update_value(workspace.board, criterion_id, data.value)
    except CriterionValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return workspace.snapshot()


@router.delete("/workspace/criteria/{criterion_id}")
async def delete_criterion(criterion_id: str, operator_id: str = Depends(get_operator_id)):
    workspace = get_workspace(operator_id)
    workspace.board = criteria_board.delete(workspace.board, criterion_id)
    return workspace.snapshot()


@router.post("/workspace/free-text")
async def add_free_text_criterion(data: FreeTextRequest, operator_id: str = Depends(get_operator_id)):
    workspace = get_workspace(operator_id)
    try:
        workspace.board = criteria_board.add_free_text(workspace.board, data.text, data.bucket)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return workspace.snapshot()


@router.get("/workspace/payload")
async def preview_pige_payload(operator_id: str = Depends(get_operator_id)):
    """Aperçu du payload qui sera envoyé à n8n"""
    workspace = get_workspace(operator_id)
    payload = build_payload(workspace.board, workspace.location, workspace.radius_km, pige_callback_url())
    return payload.to_wire()


# ==================== RECHERCHE ====================

@router.post("/search")
async def start_pige_search(operator_id: str = Depends(get_operator_id)):
    """
    Lance la recherche n8n depuis l'espace de travail.
    Une erreur de lancement donne une session "failed" avec le message,
    jamais une erreur HTTP.
    """
    workspace = get_workspace(operator_id)
    if not workspace.location:
        raise HTTPException(status_code=400, detail="Localisation requise")

    session = await get_coordinator(operator_id).start_search(
        workspace.board,
        workspace.location,
        workspace.radius_km,
        resolve_pige_webhook_url,
    )
    return session_response(session)


@router.get("/search")
async def get_pige_search(operator_id: str = Depends(get_operator_id)):
    session = get_coordinator(operator_id).session
    if session is None:
        raise HTTPException(status_code=404, detail="Aucune recherche")
    return session_response(session)


@router.post("/search/cancel")
async def cancel_pige_search(operator_id: str = Depends(get_operator_id)):
    """Annulation idempotente"""
    session = get_coordinator(operator_id).cancel()
    if session is None:
        raise HTTPException(status_code=404, detail="Aucune recherche")
    return session_response(session)
