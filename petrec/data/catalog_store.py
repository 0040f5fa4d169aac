"""
Catalog data access layer backed by SQLAlchemy.

Products are filtered with equality predicates, a price ceiling and allergen
exclusion, and returned as plain dicts keyed by column name.
"""
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import String, and_, cast, func, not_, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from petrec.core.errors import CatalogStoreError
from petrec.data.database import get_session_factory
from petrec.data.models import Occasion, Product
from petrec.parsing.constraint_normalizer import allergen_match_terms
from petrec.utils.logger import get_logger

logger = get_logger("data.catalog_store")

DEFAULT_PAGE_SIZE = 50

EQUALITY_FILTERS = (
    "age_fit",
    "jaw_hardness_fit",
    "shelf_stable",
    "crumb_level",
    "noise_level",
    "category",
)

# Text fields an excluded allergen must not appear in
ALLERGEN_COLUMNS = (
    Product.protein_sources,
    Product.ingredient,
    Product.ingredient2,
    Product.ingredient3,
)


def _like_pattern(term: str) -> str:
    """Substring pattern with LIKE wildcards in the term escaped."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _allergen_conditions(terms: List[str]) -> List[Any]:
    """NOT (word in any field) per allergen word; the allergens array is matched via its text form."""
    fields = [func.lower(func.coalesce(col, "")) for col in ALLERGEN_COLUMNS]
    fields.append(func.lower(func.coalesce(cast(Product.allergens, String), "")))

    conditions = []
    for term in allergen_match_terms(terms):
        pattern = _like_pattern(term)
        conditions.append(not_(or_(*[f.like(pattern, escape="\\") for f in fields])))
    return conditions


class CatalogStore:
    """
    Thin repository for products and occasions.

    Args:
        session_factory: SQLAlchemy sessionmaker; the configured database when omitted
        page_size: Maximum number of products per query
    """

    def __init__(self, session_factory: Optional[sessionmaker] = None, page_size: int = DEFAULT_PAGE_SIZE):
        self.session_factory = session_factory or get_session_factory()
        self.page_size = page_size

    # ------------------------------------------------------------------ #
    # Public interface
    # ------------------------------------------------------------------ #

    def query_products(self, hard_filters: Mapping[str, Any]) -> List[Dict[str, Any]]:
        """
        Return products matching every active filter, cheapest first.

        Args:
            hard_filters: Predicate dict; None values and an empty allergen list are ignored

        Returns:
            Up to page_size product dicts
        """
        conditions = []
        for key in EQUALITY_FILTERS:
            value = hard_filters.get(key)
            if value is not None:
                conditions.append(getattr(Product, key) == value)

        price_lte = hard_filters.get("price_lte")
        if price_lte is not None:
            conditions.append(Product.price <= price_lte)

        allergens = hard_filters.get("allergens_exclude") or []
        if allergens:
            conditions.extend(_allergen_conditions(allergens))

        stmt = select(Product)
        if conditions:
            stmt = stmt.where(and_(*conditions))
        stmt = stmt.order_by(Product.price.asc(), Product.product_id.asc()).limit(self.page_size)

        logger.debug(f"Product query: {stmt}")
        try:
            with self.session_factory() as session:
                rows = session.scalars(stmt).all()
                products = [row.to_dict() for row in rows]
        except SQLAlchemyError as exc:
            raise CatalogStoreError(f"Product query failed: {exc}") from exc

        logger.info(f"Product query {dict(hard_filters)} returned {len(products)} products")
        return products

    def get_product_by_id(self, product_id: str) -> Optional[Dict[str, Any]]:
        """Fetch a single product."""
        if not product_id:
            return None
        try:
            with self.session_factory() as session:
                row = session.get(Product, product_id)
                return row.to_dict() if row else None
        except SQLAlchemyError as exc:
            raise CatalogStoreError(f"Failed to load product {product_id}: {exc}") from exc

    def get_all_contexts(self) -> List[Dict[str, Any]]:
        """Return the whole occasion catalog."""
        try:
            with self.session_factory() as session:
                rows = session.scalars(select(Occasion).order_by(Occasion.context_id)).all()
                return [row.to_dict() for row in rows]
        except SQLAlchemyError as exc:
            raise CatalogStoreError(f"Failed to load contexts: {exc}") from exc

    def get_context_by_id(self, context_id: str) -> Optional[Dict[str, Any]]:
        """Fetch a single occasion."""
        if not context_id:
            return None
        try:
            with self.session_factory() as session:
                row = session.get(Occasion, context_id)
                return row.to_dict() if row else None
        except SQLAlchemyError as exc:
            raise CatalogStoreError(f"Failed to load context {context_id}: {exc}") from exc
