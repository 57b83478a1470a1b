from sqlalchemy import Column, Integer, String, Boolean, Float, ForeignKey
from models.base import Base, TimestampMixin, one_of

GEO_POINT_TYPES = ("landmark", "terrain", "historical", "cultural", "climate", "economic", "political")

class GeoPoint(Base, TimestampMixin):
    __tablename__ = "geo_points"
    __table_args__ = (one_of("type", GEO_POINT_TYPES, "ck_geo_points_type"),)

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(100), nullable=False)
    description = Column(String(1000), nullable=False, default="")
    type = Column(String(20), nullable=False, index=True)
    lat = Column(Float, nullable=False)
    lng = Column(Float, nullable=False)
    lesson_id = Column(Integer, ForeignKey("lessons.id"), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
