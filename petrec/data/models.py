"""
SQLAlchemy database models.

- Product: treat catalog
- Occasion: predefined usage situations (table "contexts")
- RecommendationLog: best-effort analytics of delivered recommendations
"""
import uuid

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from petrec.data.database import Base


class Product(Base):
    """Treat catalog entry."""
    __tablename__ = "products"

    product_id = Column(String(20), primary_key=True)    # 'P0001'
    name = Column(String(100), nullable=False)
    category = Column(String(50), nullable=False, index=True)  # '간식', '케이크', '밀키트'

    # Ingredients
    protein_sources = Column(String(100))
    ingredient = Column(Text)
    ingredient2 = Column(Text)
    ingredient3 = Column(Text)
    allergens = Column(JSON)                              # ['lamb', 'dairy', 'egg']

    # Physical traits
    texture = Column(String(20))
    piece_size_cm = Column(Integer)
    moisture_type = Column(String(20))
    functional_tags = Column(JSON)                        # ['single-protein', 'weight-control']

    # Packaging / storage
    packaging = Column(String(50))
    feature = Column(Text)
    shelf_stable = Column(Boolean, nullable=False)

    # Usability
    strong_aroma = Column(Boolean)
    crumb_level = Column(String(10))
    noise_level = Column(String(10))

    price = Column(Integer, nullable=False)

    # Fit
    age_fit = Column(String(20), index=True)
    jaw_hardness_fit = Column(String(10), index=True)

    # Nutrition (%)
    protein_percent = Column(String(10))
    moisture_percent = Column(String(10))
    fiber_percent = Column(String(10))
    ash_percent = Column(String(10))
    fat_percent = Column(String(10))

    def to_dict(self):
        return {c.name: getattr(self, c.name) for c in self.__table__.columns}


class Occasion(Base):
    """Usage situation with the constraints it implies."""
    __tablename__ = "contexts"

    context_id = Column(String(20), primary_key=True)    # 'C001'
    occasion = Column(String(100), nullable=False)        # 'Training', 'Vet waiting room'

    location_type = Column(String(50))
    duration_min = Column(Integer)

    # Constraints
    messy_ok = Column(Boolean)
    noise_sensitive = Column(Boolean)
    storage = Column(String(50))                          # 'only_shelf_stable', 'refrigeration_ok'
    budget_max = Column(Integer)
    season = Column(String(20))

    owner_pref = Column(Text)                             # 'low calorie, individually wrapped'

    def to_dict(self):
        return {c.name: getattr(self, c.name) for c in self.__table__.columns}


class RecommendationLog(Base):
    """Snapshot of the state that produced a recommendation list."""
    __tablename__ = "recommendation_logs"

    log_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    profile_snapshot = Column(JSON, nullable=False)
    context_snapshot = Column(JSON, nullable=False)
    filters_snapshot = Column(JSON, nullable=False)

    # [{product_id, score, reasoning}]
    recommended_products = Column(JSON, nullable=False)

    # Indexed for analysis
    context_id = Column(String(20), index=True)
    age_fit = Column(String(20), index=True)
    jaw_hardness_fit = Column(String(10), index=True)

    top_product_id = Column(String(20), nullable=False)
    top_product_score = Column(Integer, nullable=False)
