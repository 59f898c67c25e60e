from app.models.outfit import Outfit

__all__ = ["Outfit"]
