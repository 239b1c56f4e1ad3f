"""
Service d'envoi d'une recherche de pige vers le workflow n8n.

L'appel passe TOUJOURS par le proxy same-origin /n8n-proxy :
- le navigateur n'appelle jamais directement une URL saisie par l'opérateur
- l'URL cible est résolue à chaque requête (header X-N8N-Webhook-Url)

Réponse attendue du webhook: {"recherche_id": "..."}
"""

import logging
from typing import Optional

import httpx

from config import (
    BACKEND_URL,
    N8N_PROXY_ERROR_HEADER,
    N8N_PROXY_PATH,
    N8N_PROXY_TIMEOUT_SECONDS,
    N8N_WEBHOOK_HEADER,
)
from models.criterion import CriteriaBoard, Criterion
from models.pige import LabeledValue, SearchRequestPayload

logger = logging.getLogger("pige_submission")


# ==================== ERREURS ====================

class PigeError(Exception):
    """Erreur lors du lancement d'une recherche de pige"""
    pass


class PigeConfigurationError(PigeError):
    """URL du webhook n8n non configurée"""
    pass


class PigeTransportError(PigeError):
    """n8n (ou le proxy) injoignable"""
    pass


class PigeEngineError(PigeError):
    """n8n a répondu avec un statut non-2xx"""

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Erreur du webhook n8n: {status_code}. Réponse: {body}")


class PigeProtocolError(PigeError):
    """Réponse 2xx mais sans recherche_id exploitable"""
    pass


# ==================== SÉRIALISATION ====================

def serialize_criterion(criterion: Criterion) -> LabeledValue:
    """
    boolean / freeText -> True (la présence dans la colonne suffit)
    select             -> valeur choisie
    numberRange        -> {min, max} sans les bornes absentes
    """
    if criterion.kind in ("boolean", "freeText"):
        return LabeledValue(label=criterion.label, value=True)
    if criterion.kind == "select":
        return LabeledValue(label=criterion.label, value=criterion.value)
    if criterion.kind == "numberRange":
        return LabeledValue(label=criterion.label, value=criterion.value.to_wire())
    raise ValueError(f"Type de critère inconnu: {criterion.kind}")


def build_payload(
    board: CriteriaBoard,
    location: str,
    radius_km: int,
    callback_url: str,
) -> SearchRequestPayload:
    return SearchRequestPayload(
        location=location,
        radius_km=radius_km,
        essential=[serialize_criterion(c) for c in board.essential],
        important=[serialize_criterion(c) for c in board.important],
        bonus=[serialize_criterion(c) for c in board.secondary],
        callback_url=callback_url,
    )


# ==================== ENVOI ====================

async def trigger_engine(
    webhook_url: Optional[str],
    payload: SearchRequestPayload,
    client: Optional[httpx.AsyncClient] = None,
) -> str:
    """
    Déclenche le workflow n8n via le proxy et retourne le recherche_id.

    Raises:
        PigeConfigurationError: webhook non configuré (aucun appel réseau)
        PigeTransportError: erreur réseau
        PigeEngineError: statut non-2xx
        PigeProtocolError: réponse sans recherche_id
    """
    if not webhook_url or not webhook_url.strip():
        raise PigeConfigurationError(
            "L'URL du webhook n8n n'est pas configurée. "
            "Veuillez l'ajouter dans la page des paramètres."
        )

    if client is None:
        async with httpx.AsyncClient(base_url=BACKEND_URL, timeout=N8N_PROXY_TIMEOUT_SECONDS) as own_client:
            return await _post_to_proxy(own_client, webhook_url.strip(), payload)
    return await _post_to_proxy(client, webhook_url.strip(), payload)


async def _post_to_proxy(client: httpx.AsyncClient, webhook_url: str, payload: SearchRequestPayload) -> str:
    logger.info(f"Envoi recherche pige: location={payload.location}, rayon={payload.radius_km}km")

    try:
        resp = await client.post(
            N8N_PROXY_PATH,
            json=payload.to_wire(),
            headers={
                "Content-Type": "application/json",
                N8N_WEBHOOK_HEADER: webhook_url,
            },
        )
    except httpx.HTTPError as e:
        logger.warning(f"n8n injoignable: {e}")
        raise PigeTransportError(str(e) or e.__class__.__name__) from e

    if resp.headers.get(N8N_PROXY_ERROR_HEADER) == "transport":
        detail = _error_detail(resp)
        logger.warning(f"n8n injoignable via le proxy: {detail}")
        raise PigeTransportError(detail)

    if not resp.is_success:
        logger.warning(f"n8n a répondu {resp.status_code}: {resp.text[:200]}")
        raise PigeEngineError(resp.status_code, resp.text)

    try:
        data = resp.json()
    except ValueError as e:
        raise PigeProtocolError(f"Réponse du moteur malformée (JSON invalide): {resp.text[:200]}") from e

    recherche_id = data.get("recherche_id") if isinstance(data, dict) else None
    if recherche_id is None or str(recherche_id).strip() == "":
        raise PigeProtocolError("Réponse du moteur malformée: la réponse du webhook n'a pas retourné de 'recherche_id'.")

    logger.info(f"Recherche pige acceptée par n8n: recherche_id={recherche_id}")
    return str(recherche_id)


def _error_detail(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return resp.text
    if isinstance(data, dict) and data.get("detail"):
        return str(data["detail"])
    return resp.text
