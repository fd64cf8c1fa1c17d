from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Etalab cadastre (per-commune gzipped GeoJSON exports)
    cadastre_base_url: str = (
        "https://cadastre.data.gouv.fr/data/etalab-cadastre/latest/geojson/communes"
    )
    parcels_timeout: float = 60.0

    # Géoplateforme WMS (cadastral plan as PDF)
    wms_url: str = "https://data.geopf.fr/wms-v/ows"
    wms_layer: str = "CADASTRALPARCELS.PCI_VECTEUR"
    wms_timeout: float = 30.0
    wms_width: int = 1190  # A4 landscape at 150 dpi
    wms_height: int = 842
    multi_wms_width: int = 1684  # A3 landscape at 150 dpi
    multi_wms_height: int = 1190

    output_dir: str = "output"
    log_level: str = "INFO"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "CADASTRE_REPORT_",
    }


settings = Settings()
