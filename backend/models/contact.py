"""
Pige CRM - Profil de recherche d'un contact

Seule la partie "critères de recherche" du contact est modélisée ici :
le CRUD contact vit côté front.
"""

from enum import Enum
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class PropertyType(str, Enum):
    MAISON = "Maison"
    APPARTEMENT = "Appartement"
    TERRAIN = "Terrain"
    IMMEUBLE = "Immeuble"
    LOCAL_COMMERCIAL = "Local commercial"


class PropertyStyle(str, Enum):
    MODERNE = "Moderne"
    ANCIEN = "Ancien"
    CONTEMPORAIN = "Contemporain"
    TRADITIONNEL = "Traditionnel"
    CARACTERE = "De caractère"
    ATYPIQUE = "Atypique"


PROPERTY_TYPE_OPTIONS = [p.value for p in PropertyType]


class SearchProfile(BaseModel):
    """
    Critères de recherche enregistrés sur la fiche contact.
    Accepte les noms camelCase du front (targetPrice, minRooms...)
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    # Essentiels
    target_price: Optional[float] = None
    price_margin_percent: Optional[float] = Field(default=None, ge=0, le=100)
    cities: Optional[str] = None  # séparées par des virgules
    search_radius_km: Optional[float] = None
    neighborhoods: Optional[str] = None
    property_types: List[PropertyType] = Field(default_factory=list)
    min_rooms: Optional[int] = None
    min_bathrooms: Optional[int] = None
    min_living_area: Optional[float] = None
    min_plot_area: Optional[float] = None

    # Importants
    important_features: List[str] = Field(default_factory=list)
    property_style: List[PropertyStyle] = Field(default_factory=list)
