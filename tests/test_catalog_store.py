"""
Tests for the SQLAlchemy catalog store (petrec/data/catalog_store.py).
"""
import pytest

from petrec.core.errors import CatalogStoreError
from petrec.data.catalog_store import CatalogStore
from petrec.data.database import make_engine, make_session_factory
from petrec.data.models import Product


def _ids(products):
    return [p["product_id"] for p in products]


def _add_product(session_factory, product_id, name, **fields):
    """Insert an adult, medium-jaw, shelf-stable snack with the given ingredients."""
    values = dict(
        product_id=product_id, name=name, category="간식", allergens=[], shelf_stable=True,
        price=4000, age_fit="adult", jaw_hardness_fit="medium",
    )
    values.update(fields)
    with session_factory() as session:
        session.add(Product(**values))
        session.commit()


class TestQueryProducts:
    def test_equality_filters(self, catalog):
        products = catalog.query_products({"age_fit": "senior", "jaw_hardness_fit": "low"})
        assert _ids(products) == ["P003", "P005"]

    def test_boolean_filter(self, catalog):
        assert _ids(catalog.query_products({"shelf_stable": False})) == ["P003", "P005"]

    def test_cheapest_first(self, catalog):
        products = catalog.query_products({})
        prices = [p["price"] for p in products]
        assert prices == sorted(prices)

    def test_price_ceiling_inclusive(self, catalog):
        assert _ids(catalog.query_products({"price_lte": 7000.0})) == ["P004", "P001", "P002"]

    def test_category(self, catalog):
        assert _ids(catalog.query_products({"category": "케이크"})) == ["P005"]

    def test_none_values_ignored(self, catalog):
        products = catalog.query_products({"age_fit": None, "crumb_level": None, "allergens_exclude": []})
        assert len(products) == 5

    def test_allergen_matches_ingredient_case_insensitively(self, catalog):
        products = catalog.query_products({"allergens_exclude": ["WHEAT"]})
        assert "P004" not in _ids(products)

    def test_allergen_matches_later_ingredient_fields(self, catalog):
        products = catalog.query_products({"age_fit": "adult", "allergens_exclude": ["egg"]})
        assert _ids(products) == ["P001"]

    def test_allergen_matches_allergen_array_only(self, catalog):
        # P003 only lists "fish" in its allergens array
        products = catalog.query_products({"allergens_exclude": ["fish"]})
        assert "P003" not in _ids(products)
        assert len(products) == 4

    def test_null_fields_do_not_exclude(self, catalog):
        products = catalog.query_products({"allergens_exclude": ["cheese"]})
        assert _ids(products) == ["P004", "P001", "P002", "P003"]

    def test_umbrella_allergen_excludes_member_words(self, session_factory):
        _add_product(session_factory, "P006", "Tuna Flakes", protein_sources="tuna", ingredient="Tuna loin")
        catalog = CatalogStore(session_factory)

        ids = _ids(catalog.query_products({"allergens_exclude": ["fish"]}))
        assert "P006" not in ids
        assert "P003" not in ids
        assert ids == ["P004", "P001", "P002", "P005"]

    def test_specific_word_excludes_ingredient_text(self, catalog):
        products = catalog.query_products({"allergens_exclude": ["dairy", "cheese"]})
        assert "P005" not in _ids(products)

    def test_wildcard_characters_matched_literally(self, session_factory):
        _add_product(session_factory, "P007", "Green Tea Biscuit", protein_sources="pea", ingredient="green tea")
        catalog = CatalogStore(session_factory)

        assert "P007" in _ids(catalog.query_products({"allergens_exclude": ["green_tea"]}))
        assert "P007" in _ids(catalog.query_products({"allergens_exclude": ["%tea"]}))
        assert "P007" not in _ids(catalog.query_products({"allergens_exclude": ["green tea"]}))

    def test_page_size_limits_results(self, session_factory):
        store = CatalogStore(session_factory, page_size=2)
        assert _ids(store.query_products({})) == ["P004", "P001"]

    def test_products_returned_as_dicts(self, catalog):
        product = catalog.query_products({"category": "케이크"})[0]
        assert product["name"] == "Beef Birthday Cake"
        assert product["allergens"] == ["beef", "dairy"]
        assert product["shelf_stable"] is False


class TestLookups:
    def test_get_product_by_id(self, catalog):
        assert catalog.get_product_by_id("P002")["name"] == "Duck Twist Chew"
        assert catalog.get_product_by_id("P404") is None
        assert catalog.get_product_by_id("") is None

    def test_get_all_contexts_ordered(self, catalog):
        assert [c["context_id"] for c in catalog.get_all_contexts()] == ["C001", "C002", "C003"]

    def test_get_context_by_id(self, catalog):
        context = catalog.get_context_by_id("C002")
        assert context["noise_sensitive"] is True
        assert context["owner_pref"] == "calming"
        assert catalog.get_context_by_id("C999") is None


def test_database_errors_wrapped():
    engine = make_engine("sqlite://")  # no tables created
    store = CatalogStore(make_session_factory(engine))
    with pytest.raises(CatalogStoreError):
        store.query_products({"age_fit": "adult"})
    with pytest.raises(CatalogStoreError):
        store.get_all_contexts()
    engine.dispose()
