"""
Catalogue des critères prédéfinis de la pige.

L'ordre du catalogue est l'ordre d'affichage dans la réserve.
Les critères "boolean" servent aussi à reconnaître les équipements
listés sur la fiche contact (ex: "Ascenseur" -> id "ascenseur").
"""

from typing import List

from models.contact import PROPERTY_TYPE_OPTIONS
from models.criterion import (
    Criterion,
    SelectCriterion,
    NumberRangeCriterion,
    BooleanCriterion,
    NumberRange,
)

FLOOR_LEVEL_OPTIONS = ["RDC", "1er étage", "Dernier étage"]

INITIAL_CRITERIA: List[Criterion] = [
    SelectCriterion(id="propertyType", label="Type de bien", value="Maison", options=PROPERTY_TYPE_OPTIONS),
    NumberRangeCriterion(id="budget", label="Budget (€)", value=NumberRange(min=200000, max=400000)),
    NumberRangeCriterion(id="rooms", label="Pièces (min)", value=NumberRange(min=3)),
    NumberRangeCriterion(id="minSurface", label="Surface (min m²)", value=NumberRange(min=50)),
    NumberRangeCriterion(id="livingRoomSurface", label="Surface Salon (min m²)", value=NumberRange(min=20)),
    SelectCriterion(id="floorLevel", label="Étage", value="RDC", options=FLOOR_LEVEL_OPTIONS),
    BooleanCriterion(id="jardin", label="Jardin"),
    BooleanCriterion(id="garage", label="Garage"),
    BooleanCriterion(id="ascenseur", label="Ascenseur"),
    BooleanCriterion(id="balcon", label="Balcon"),
    BooleanCriterion(id="terrasse", label="Terrasse"),
    BooleanCriterion(id="piscine", label="Piscine"),
    BooleanCriterion(id="parking", label="Parking"),
    BooleanCriterion(id="cave", label="Cave"),
]

PREDEFINED_IDS = frozenset(c.id for c in INITIAL_CRITERIA)


def fresh_catalog() -> List[Criterion]:
    """Copie profonde du catalogue (jamais d'instance partagée entre tableaux)"""
    return [c.model_copy(deep=True) for c in INITIAL_CRITERIA]


def is_predefined(criterion_id: str) -> bool:
    return criterion_id in PREDEFINED_IDS
