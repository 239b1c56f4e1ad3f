"""
Pige CRM - Dérivation des critères depuis la fiche contact

Construit un tableau de critères neuf à partir du profil de recherche
enregistré sur un contact :

  Budget cible ± marge      -> budget (essentiel)
  Types de bien             -> propertyType = premier type (essentiel)
  Pièces min / Surface min  -> rooms / minSurface (essentiels)
  Équipements importants    -> critère booléen du catalogue si reconnu,
                               sinon critère texte libre (important)
  Styles                    -> "Style: <style>" texte libre (important)

Tout critère du catalogue non utilisé reste dans la réserve.
Même profil => même tableau (ids synthétiques déterministes).
"""

import logging
import math
from typing import Optional, List, Tuple, Any

from pydantic import BaseModel

from config import clamp_radius, normalize_label
from models.contact import SearchProfile
from models.criterion import (
    BoardSlot,
    CriteriaBoard,
    Criterion,
    FreeTextCriterion,
    NumberRange,
)
from services.criteria_catalog import fresh_catalog

logger = logging.getLogger("criteria_deriver")


class DerivedSearch(BaseModel):
    """location / radius_km à None = absent du profil, garder la valeur courante"""
    board: CriteriaBoard
    location: Optional[str] = None
    radius_km: Optional[int] = None


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def budget_range(target_price: Optional[float], margin_percent: Optional[float]) -> Optional[NumberRange]:
    """
    450000 / 5% -> {min: 427500, max: 472500}
    None si prix ou marge absent ou nul.
    """
    if not target_price or not margin_percent or target_price <= 0 or margin_percent <= 0:
        return None
    return NumberRange(
        min=_round_half_up(target_price * (1 - margin_percent / 100)),
        max=_round_half_up(target_price * (1 + margin_percent / 100)),
    )


def _take(available: List[Criterion], criterion_id: str) -> Optional[Criterion]:
    """Retire et retourne un critère de la réserve"""
    for index, criterion in enumerate(available):
        if criterion.id == criterion_id:
            return available.pop(index)
    return None


def _assign(board: CriteriaBoard, criterion_id: str, bucket: BoardSlot, value: Any = None) -> bool:
    criterion = _take(board.available, criterion_id)
    if criterion is None:
        return False
    if value is not None:
        criterion = criterion.with_value(value)
    board.slot(bucket).append(criterion)
    return True


def _merge_min(board: CriteriaBoard, criterion_id: str, minimum: float) -> Optional[NumberRange]:
    for criterion in board.available:
        if criterion.id == criterion_id:
            return criterion.value.model_copy(update={"min": minimum})
    return None


def derive_board(profile: Optional[SearchProfile]) -> DerivedSearch:
    """
    Tableau neuf (remplacement complet, jamais de fusion avec l'existant).
    Un profil vide ou None -> tout le catalogue en réserve.
    """
    board = CriteriaBoard(available=fresh_catalog())
    if profile is None:
        return DerivedSearch(board=board)

    # ---- Essentiels ----

    budget = budget_range(profile.target_price, profile.price_margin_percent)
    if budget is not None:
        _assign(board, "budget", BoardSlot.ESSENTIAL, budget)

    if profile.property_types:
        _assign(board, "propertyType", BoardSlot.ESSENTIAL, profile.property_types[0].value)

    if profile.min_rooms:
        merged = _merge_min(board, "rooms", profile.min_rooms)
        if merged is not None:
            _assign(board, "rooms", BoardSlot.ESSENTIAL, merged)

    if profile.min_living_area:
        merged = _merge_min(board, "minSurface", profile.min_living_area)
        if merged is not None:
            _assign(board, "minSurface", BoardSlot.ESSENTIAL, merged)

    # ---- Importants ----

    custom_labels: List[str] = []
    for feature in profile.important_features:
        feature_id = normalize_label(feature)
        matched = next(
            (c for c in board.available if c.id == feature_id and c.kind == "boolean"),
            None,
        )
        if matched is not None:
            _assign(board, matched.id, BoardSlot.IMPORTANT)
        else:
            custom_labels.append(feature)

    custom_labels.extend(f"Style: {style.value}" for style in profile.property_style)

    for index, label in enumerate(custom_labels):
        board.important.append(FreeTextCriterion(id=f"custom-feature-{index}", label=label))

    # ---- Localisation ----

    location, radius_km = _seed_location(profile)

    logger.info(
        f"Critères dérivés: {len(board.essential)} essentiels, "
        f"{len(board.important)} importants, {len(board.available)} en réserve"
    )
    return DerivedSearch(board=board, location=location, radius_km=radius_km)


def _seed_location(profile: SearchProfile) -> Tuple[Optional[str], Optional[int]]:
    location = profile.cities.strip() if profile.cities and profile.cities.strip() else None
    radius_km = clamp_radius(profile.search_radius_km) if profile.search_radius_km else None
    return location, radius_km
