"""
Fixtures partagées des tests Pige CRM

Les variables d'environnement doivent exister AVANT l'import de config.
"""

import os

os.environ.setdefault("BACKEND_URL", "http://testserver")
os.environ.setdefault("MONGO_URL", "mongodb://localhost:27017")
os.environ.setdefault("DB_NAME", "pige_crm_test")

import pytest

from services.pige_coordinator import reset_coordinators
from services.pige_results_store import results_store
from services.pige_workspace import reset_workspaces


@pytest.fixture(autouse=True)
def clean_pige_state():
    """Store, espaces de travail et coordinateurs vides pour chaque test"""
    results_store.clear()
    reset_workspaces()
    reset_coordinators()
    yield
    results_store.clear()
    reset_workspaces()
    reset_coordinators()
