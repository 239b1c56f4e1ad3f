"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  Pige CRM - Modèle Critère de recherche                                      ║
║                                                                              ║
║  RÈGLES:                                                                     ║
║  - Un critère = un attribut de bien (type, budget, jardin, texte libre...)   ║
║  - Le champ "kind" détermine la forme de "value"                             ║
║  - Changer la valeur ne change JAMAIS id, kind ni la colonne du critère      ║
║  - Un id vit dans UNE SEULE collection du tableau (available ou un bucket)   ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

from enum import Enum
from typing import Optional, List, Literal, Union, Any, Annotated
from pydantic import BaseModel, ConfigDict, Field, ValidationError


class CriterionValueError(ValueError):
    """Valeur incompatible avec le type du critère"""
    pass


class CriterionKind(str, Enum):
    SELECT = "select"
    NUMBER_RANGE = "numberRange"
    BOOLEAN = "boolean"
    FREE_TEXT = "freeText"


class BoardSlot(str, Enum):
    """
    Emplacements possibles d'un critère.
    AVAILABLE = réserve, les 3 autres = colonnes de priorité
    """
    AVAILABLE = "available"
    ESSENTIAL = "essential"      # Primordiaux
    IMPORTANT = "important"      # Importants
    SECONDARY = "secondary"      # Bonus


PRIORITY_BUCKETS = [BoardSlot.ESSENTIAL, BoardSlot.IMPORTANT, BoardSlot.SECONDARY]

# Ordre de recherche d'un critère dans le tableau
SLOT_SEARCH_ORDER = [BoardSlot.AVAILABLE] + PRIORITY_BUCKETS


class NumberRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    min: Optional[float] = None
    max: Optional[float] = None

    def to_wire(self) -> dict:
        return self.model_dump(exclude_none=True)


class _CriterionBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    label: str

    def with_value(self, value: Any) -> "Criterion":
        raise CriterionValueError(f"Le critère '{self.id}' n'a pas de valeur modifiable")


class SelectCriterion(_CriterionBase):
    kind: Literal["select"] = "select"
    value: str
    options: List[str]

    def with_value(self, value: Any) -> "SelectCriterion":
        if not isinstance(value, str) or value not in self.options:
            raise CriterionValueError(
                f"Valeur '{value}' invalide pour '{self.id}'. Options: {self.options}"
            )
        return self.model_copy(update={"value": value})


class NumberRangeCriterion(_CriterionBase):
    kind: Literal["numberRange"] = "numberRange"
    value: NumberRange = Field(default_factory=NumberRange)

    def with_value(self, value: Any) -> "NumberRangeCriterion":
        if isinstance(value, dict):
            try:
                value = NumberRange(**value)
            except (TypeError, ValidationError) as e:
                raise CriterionValueError(f"Plage invalide pour '{self.id}': {e}")
        if not isinstance(value, NumberRange):
            raise CriterionValueError(f"Plage {{min, max}} attendue pour '{self.id}'")
        return self.model_copy(update={"value": value})


class BooleanCriterion(_CriterionBase):
    """Présence dans une colonne = critère recherché"""
    kind: Literal["boolean"] = "boolean"


class FreeTextCriterion(_CriterionBase):
    """Critère saisi librement (ou non reconnu dans le catalogue)"""
    kind: Literal["freeText"] = "freeText"


Criterion = Annotated[
    Union[SelectCriterion, NumberRangeCriterion, BooleanCriterion, FreeTextCriterion],
    Field(discriminator="kind"),
]


class CriteriaBoard(BaseModel):
    """
    Tableau de critères d'une session de pige.
    available = réserve, essential/important/secondary = colonnes de priorité
    """
    available: List[Criterion] = Field(default_factory=list)
    essential: List[Criterion] = Field(default_factory=list)
    important: List[Criterion] = Field(default_factory=list)
    secondary: List[Criterion] = Field(default_factory=list)

    def slot(self, slot: BoardSlot) -> List[Criterion]:
        return getattr(self, BoardSlot(slot).value)
