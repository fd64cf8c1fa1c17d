from __future__ import annotations

from cadastre_report.models.schemas import ParcelId, ParcelFeature

__all__ = ["ParcelId", "ParcelFeature"]
