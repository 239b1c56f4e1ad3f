"""
Espace de travail de pige d'un opérateur

Porte l'état d'une recherche en préparation :
tableau de critères, localisation, rayon, contact sélectionné.
Charger le profil d'un autre contact REMPLACE tout le tableau.
"""

import logging
from typing import Dict, Optional

from config import DEFAULT_RADIUS_KM, clamp_radius
from models.contact import SearchProfile
from models.criterion import CriteriaBoard
from services.criteria_catalog import fresh_catalog
from services.criteria_deriver import derive_board

logger = logging.getLogger("pige_workspace")


class PigeWorkspace:

    def __init__(self, operator_id: str):
        self.operator_id = operator_id
        self.board = CriteriaBoard(available=fresh_catalog())
        self.location = ""
        self.radius_km = DEFAULT_RADIUS_KM
        self.selected_contact_id: Optional[str] = None

    def reset(self):
        self.board = CriteriaBoard(available=fresh_catalog())
        self.location = ""
        self.radius_km = DEFAULT_RADIUS_KM
        self.selected_contact_id = None

    def load_profile(self, profile: Optional[SearchProfile], contact_id: Optional[str] = None):
        derived = derive_board(profile)
        self.board = derived.board
        self.selected_contact_id = contact_id
        if profile is None:
            self.location = ""
            self.radius_km = DEFAULT_RADIUS_KM
            return
        if derived.location is not None:
            self.location = derived.location
        if derived.radius_km is not None:
            self.radius_km = derived.radius_km
        logger.info(f"Profil contact {contact_id or '-'} chargé pour {self.operator_id}")

    def set_location(self, location: str, radius_km: Optional[float] = None):
        self.location = location.strip()
        if radius_km is not None:
            self.radius_km = clamp_radius(radius_km)

    def snapshot(self) -> dict:
        return {
            "operator_id": self.operator_id,
            "selected_contact_id": self.selected_contact_id,
            "location": self.location,
            "radius_km": self.radius_km,
            "board": self.board.model_dump(mode="json"),
        }


_workspaces: Dict[str, PigeWorkspace] = {}


def get_workspace(operator_id: str) -> PigeWorkspace:
    workspace = _workspaces.get(operator_id)
    if workspace is None:
        workspace = PigeWorkspace(operator_id)
        _workspaces[operator_id] = workspace
    return workspace


def reset_workspaces():
    _workspaces.clear()
