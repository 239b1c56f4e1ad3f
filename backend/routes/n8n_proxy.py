"""
Proxy same-origin vers le webhook n8n de l'opérateur

POST /n8n-proxy[/chemin]
Header: X-N8N-Webhook-Url: <URL du webhook n8n>

Le corps est transmis tel quel à l'URL du header (+ chemin éventuel),
le statut / corps / content-type de n8n sont renvoyés à l'appelant.
"""

import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request, Response

from config import N8N_PROXY_ERROR_HEADER, N8N_PROXY_TIMEOUT_SECONDS, N8N_WEBHOOK_HEADER, is_http_url

router = APIRouter(prefix="/n8n-proxy", tags=["n8n Proxy"])
logger = logging.getLogger("n8n_proxy")

# Distingue une erreur du proxy (n8n injoignable) d'une erreur renvoyée par n8n
PROXY_ERROR_HEADERS = {N8N_PROXY_ERROR_HEADER: "transport"}


async def get_forward_client():
    async with httpx.AsyncClient(timeout=N8N_PROXY_TIMEOUT_SECONDS) as client:
        yield client


def resolve_target(webhook_url: str, path: str = "") -> str:
    """Ajoute le chemin résiduel après /n8n-proxy à l'URL du webhook"""
    if not path:
        return webhook_url
    return f"{webhook_url.rstrip('/')}/{path.lstrip('/')}"


async def _forward(request: Request, path: str, client: httpx.AsyncClient) -> Response:
    webhook_url = (request.headers.get(N8N_WEBHOOK_HEADER) or "").strip()
    if not webhook_url:
        raise HTTPException(status_code=400, detail=f"{N8N_WEBHOOK_HEADER} header is missing")
    if not is_http_url(webhook_url):
        raise HTTPException(status_code=400, detail=f"{N8N_WEBHOOK_HEADER} doit être une URL http(s)")

    target = resolve_target(webhook_url, path)
    body = await request.body()
    headers = {"Content-Type": request.headers.get("content-type", "application/json")}

    logger.info(f"Proxy n8n -> {target} ({len(body)} octets)")
    try:
        upstream = await client.post(target, content=body, headers=headers)
    except httpx.TimeoutException as e:
        logger.error(f"Proxy n8n timeout: {target}")
        raise HTTPException(status_code=504, detail=f"Timeout n8n: {e}", headers=PROXY_ERROR_HEADERS)
    except httpx.HTTPError as e:
        logger.error(f"Proxy n8n erreur: {target}: {e}")
        raise HTTPException(status_code=502, detail=f"n8n injoignable: {e}", headers=PROXY_ERROR_HEADERS)

    logger.info(f"Proxy n8n <- {upstream.status_code}")
    return Response(
        content=upstream.content,
        status_code=upstream.status_code,
        media_type=upstream.headers.get("content-type"),
    )


@router.post("")
async def forward_to_n8n(request: Request, client: httpx.AsyncClient = Depends(get_forward_client)):
    return await _forward(request, "", client)


@router.post("/{path:path}")
async def forward_to_n8n_path(
    path: str,
    request: Request,
    client: httpx.AsyncClient = Depends(get_forward_client)
):
    return await _forward(request, path, client)
