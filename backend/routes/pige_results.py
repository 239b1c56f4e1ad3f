"""
Routes Publiques - Résultats de pige (callback n8n)

Endpoints SANS authentification:
- POST /pige-results        : n8n dépose le résultat d'une recherche (cross-origin)
- OPTIONS /pige-results     : pré-vol CORS
- GET /pige-results/{id}    : polling du résultat par recherche_id

Le callback n'échoue JAMAIS: n8n n'a pas de retry, un corps illisible
est journalisé puis acquitté.
"""

import json
import logging
from typing import Any, Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

from services.pige_results_store import results_store

router = APIRouter(prefix="/pige-results", tags=["Pige Results"])
logger = logging.getLogger("pige_results")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, GET, OPTIONS",
    "Access-Control-Allow-Headers": "*",
}


def extract_search_id(body: Any) -> Optional[str]:
    """
    recherche_id dans {payload: {recherche_id}} ou {recherche_id}.
    Un tableau JSON -> premier objet.
    """
    if isinstance(body, list):
        body = next((item for item in body if isinstance(item, dict)), None)
    if not isinstance(body, dict):
        return None

    nested = body.get("payload")
    candidates = [nested.get("recherche_id") if isinstance(nested, dict) else None, body.get("recherche_id")]
    for candidate in candidates:
        if candidate is not None and str(candidate).strip():
            return str(candidate).strip()
    return None


@router.options("")
async def pige_results_preflight():
    return Response(status_code=200, headers=CORS_HEADERS)


@router.post("")
async def receive_pige_results(request: Request):
    """Callback n8n: stocke le résultat sous son recherche_id (dernier gagnant)"""
    raw = await request.body()
    try:
        body = json.loads(raw) if raw else None
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.warning(f"Callback pige illisible ({len(raw)} octets), acquitté sans stockage")
        return JSONResponse({"status": "received", "recherche_id": None}, headers=CORS_HEADERS)

    search_id = extract_search_id(body)
    if search_id is None:
        logger.warning("Callback pige sans recherche_id, acquitté sans stockage")
        return JSONResponse({"status": "received", "recherche_id": None}, headers=CORS_HEADERS)

    results_store.save(search_id, body)
    logger.info(f"Résultat pige reçu: recherche_id={search_id}")
    return JSONResponse({"status": "received", "recherche_id": search_id}, headers=CORS_HEADERS)


@router.get("/{search_id}")
async def get_pige_results(search_id: str):
    """Polling: 200 + entrée stockée, 404 tant que n8n n'a pas rappelé"""
    entry = results_store.get(search_id)
    if entry is None:
        return JSONResponse(
            {"detail": "Résultats pas encore disponibles"},
            status_code=404,
            headers=CORS_HEADERS,
        )
    return JSONResponse(entry.to_wire(), headers=CORS_HEADERS)
