"""PlacePhoto ORM model — one stored image belonging to a place."""

from sqlalchemy import (
    Boolean, Column, ForeignKey, Integer, Text, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from hangry.database import Base


class PlacePhoto(Base):
    """
    A photo asset fetched from the provider, stored as a base64 data URL.
    Exactly one photo per place is primary (the cover).
    """

    __tablename__ = "place_photos"
    __table_args__ = (
        UniqueConstraint("place_id", "provider_photo_id", name="uq_place_photos_place_photo"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    place_id = Column(
        Integer,
        ForeignKey("places.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    provider_photo_id = Column(Text, nullable=False)

    image_data = Column(Text, nullable=False)
    attribution = Column(Text, nullable=True)
    width = Column(Integer, nullable=True)
    height = Column(Integer, nullable=True)
    is_primary = Column(Boolean, nullable=False, default=False)

    # Relationships
    place = relationship("Place", back_populates="photos")
