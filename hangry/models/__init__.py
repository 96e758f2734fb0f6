"""SQLAlchemy ORM models package."""

from hangry.database import Base
from hangry.models.place import Place
from hangry.models.place_photo import PlacePhoto

__all__ = ["Base", "Place", "PlacePhoto"]
