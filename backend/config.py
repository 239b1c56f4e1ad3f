"""
Configuration et utilitaires partagés
"""

import os
import unicodedata
from urllib.parse import urlparse
from datetime import datetime, timezone
from motor.motor_asyncio import AsyncIOMotorClient
from dotenv import load_dotenv
from pathlib import Path

# Charger .env
ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

# MongoDB (settings operateur uniquement, la pige reste en memoire)
MONGO_URL = os.environ.get('MONGO_URL', 'mongodb://localhost:27017')
DB_NAME = os.environ.get('DB_NAME', 'pige_crm')

client = AsyncIOMotorClient(MONGO_URL)
db = client[DB_NAME]

# URL publique du backend (callback n8n + proxy same-origin)
BACKEND_URL = os.environ.get('BACKEND_URL')
if not BACKEND_URL:
    raise ValueError("BACKEND_URL environment variable is required")
BACKEND_URL = BACKEND_URL.rstrip('/')

CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*').split(',')


# ==================== PIGE ====================

PIGE_POLL_INTERVAL_SECONDS = int(os.environ.get('PIGE_POLL_INTERVAL_SECONDS', '30'))
PIGE_POLL_CEILING_MINUTES = int(os.environ.get('PIGE_POLL_CEILING_MINUTES', '15'))

PIGE_RESULT_RETENTION_HOURS = int(os.environ.get('PIGE_RESULT_RETENTION_HOURS', '24'))
PIGE_RESULT_MAX_ENTRIES = int(os.environ.get('PIGE_RESULT_MAX_ENTRIES', '500'))

N8N_PROXY_TIMEOUT_SECONDS = float(os.environ.get('N8N_PROXY_TIMEOUT_SECONDS', '120'))
N8N_WEBHOOK_HEADER = "X-N8N-Webhook-Url"
N8N_PROXY_ERROR_HEADER = "X-N8N-Proxy-Error"

# Bornes du champ "Rayon (km)"
RADIUS_MIN_KM = 1
RADIUS_MAX_KM = 50
DEFAULT_RADIUS_KM = 5

PIGE_RESULTS_PATH = "/api/pige-results"
N8N_PROXY_PATH = "/n8n-proxy"


def pige_callback_url() -> str:
    """URL que n8n rappelle une fois la recherche terminee"""
    return f"{BACKEND_URL}{PIGE_RESULTS_PATH}"


# ==================== HELPERS ====================

def now_iso() -> str:
    """Retourne la date/heure actuelle en ISO"""
    return datetime.now(timezone.utc).isoformat()

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

def clamp_radius(radius_km) -> int:
    """Ramene un rayon dans [RADIUS_MIN_KM, RADIUS_MAX_KM]"""
    return int(max(RADIUS_MIN_KM, min(RADIUS_MAX_KM, radius_km)))

def normalize_label(label: str) -> str:
    """
    Normalise un libellé pour comparaison avec les ids du catalogue.
    "Ascenseur" -> "ascenseur", "Élévateur" -> "elevateur"

    Minuscules + suppression des diacritiques (decomposition NFD).
    """
    decomposed = unicodedata.normalize("NFD", label.lower())
    return ''.join(ch for ch in decomposed if not unicodedata.combining(ch))

def is_http_url(url: str) -> bool:
    """True si url est une URL http(s) absolue"""
    parsed = urlparse(url or "")
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)
