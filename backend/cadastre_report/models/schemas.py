from __future__ import annotations

from pydantic import BaseModel
from typing import Optional


class ParcelId(BaseModel):
    """Components of a 14-character cadastral parcel identifier."""
    code_insee: str  # department + municipality, e.g. "33063"
    com_abs: str     # absorbed municipality prefix, e.g. "000"
    section: str     # e.g. "BW"
    numero: str      # e.g. "0124"
    code_dep: str    # e.g. "33"


class ParcelFeature(BaseModel):
    """A parcel as returned by the Etalab export, geometry as MultiPolygon."""
    id: str
    geometry: dict  # GeoJSON MultiPolygon
    properties: dict = {}

    @property
    def contenance(self) -> Optional[float]:
        value = self.properties.get("contenance")
        if value is None:
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            return None

    @property
    def commune_name(self) -> str:
        return self.properties.get("nom_com") or "?"
