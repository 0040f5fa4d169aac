"""Pytest configuration: in-memory catalog and a scripted language capability."""

import pytest

from petrec.core.config import PetRecConfig
from petrec.data.catalog_store import CatalogStore
from petrec.data.database import init_db, make_engine, make_session_factory
from petrec.data.models import Occasion, Product
from petrec.llm.schemas import ContextMatch, ExtractedSignals, RankedItem, RankingOutput


# ---------------------------------------------------------------------------
# Catalog fixtures
# ---------------------------------------------------------------------------

PRODUCTS = [
    {
        "product_id": "P001", "name": "Chicken Breast Jerky", "category": "간식",
        "protein_sources": "chicken", "ingredient": "Chicken breast", "ingredient2": None,
        "ingredient3": None, "allergens": ["chicken"], "texture": "medium",
        "shelf_stable": True, "strong_aroma": False, "crumb_level": "low", "noise_level": "low",
        "price": 5000, "age_fit": "adult", "jaw_hardness_fit": "medium",
    },
    {
        "product_id": "P002", "name": "Duck Twist Chew", "category": "간식",
        "protein_sources": "duck", "ingredient": "Duck", "ingredient2": "egg yolk",
        "ingredient3": "sweet potato", "allergens": ["duck", "egg"], "texture": "hard",
        "shelf_stable": True, "strong_aroma": True, "crumb_level": "low", "noise_level": "high",
        "price": 7000, "age_fit": "adult", "jaw_hardness_fit": "medium",
    },
    {
        "product_id": "P003", "name": "Soft Salmon Bites", "category": "간식",
        "protein_sources": "salmon", "ingredient": "Salmon", "ingredient2": "pumpkin",
        "ingredient3": None, "allergens": ["fish"], "texture": "soft",
        "shelf_stable": False, "strong_aroma": True, "crumb_level": "medium", "noise_level": "low",
        "price": 9000, "age_fit": "senior", "jaw_hardness_fit": "low",
    },
    {
        "product_id": "P004", "name": "Lamb Puppy Biscuits", "category": "간식",
        "protein_sources": "lamb", "ingredient": "Lamb, wheat flour", "ingredient2": None,
        "ingredient3": None, "allergens": ["lamb", "wheat"], "texture": "crunchy",
        "shelf_stable": True, "strong_aroma": False, "crumb_level": "high", "noise_level": "high",
        "price": 3000, "age_fit": "puppy", "jaw_hardness_fit": "low",
    },
    {
        "product_id": "P005", "name": "Beef Birthday Cake", "category": "케이크",
        "protein_sources": "beef", "ingredient": "Beef", "ingredient2": "cream cheese",
        "ingredient3": None, "allergens": ["beef", "dairy"], "texture": "soft",
        "shelf_stable": False, "strong_aroma": True, "crumb_level": "low", "noise_level": "low",
        "price": 15000, "age_fit": "senior", "jaw_hardness_fit": "low",
    },
]

OCCASIONS = [
    {
        "context_id": "C001", "occasion": "Drive", "location_type": "car", "duration_min": 120,
        "messy_ok": False, "noise_sensitive": False, "storage": "only_shelf_stable",
        "budget_max": 10000, "season": "any", "owner_pref": "individually wrapped, low calorie",
    },
    {
        "context_id": "C002", "occasion": "Vet waiting room", "location_type": "hospital", "duration_min": 30,
        "messy_ok": False, "noise_sensitive": True, "storage": "only_shelf_stable",
        "budget_max": None, "season": "any", "owner_pref": "calming",
    },
    {
        "context_id": "C003", "occasion": "Home training", "location_type": "home", "duration_min": 20,
        "messy_ok": True, "noise_sensitive": False, "storage": "refrigeration_ok",
        "budget_max": None, "season": "any", "owner_pref": "small pieces",
    },
]


@pytest.fixture
def products():
    return {p["product_id"]: dict(p) for p in PRODUCTS}


@pytest.fixture
def occasions():
    return [dict(o) for o in OCCASIONS]


@pytest.fixture
def session_factory():
    """Fresh in-memory SQLite database seeded with PRODUCTS and OCCASIONS."""
    engine = make_engine("sqlite://")
    init_db(engine)
    factory = make_session_factory(engine)
    with factory() as session:
        session.add_all([Product(**p) for p in PRODUCTS])
        session.add_all([Occasion(**o) for o in OCCASIONS])
        session.commit()
    yield factory
    engine.dispose()


@pytest.fixture
def catalog(session_factory):
    return CatalogStore(session_factory)


@pytest.fixture
def config():
    return PetRecConfig()


# ---------------------------------------------------------------------------
# Scripted language capability
# ---------------------------------------------------------------------------

def rank_all(candidates):
    """Ranking that lists every candidate in order with score 8."""
    return RankingOutput(
        rankings=[
            RankedItem(product_id=c["product_id"], score=8, reasoning=f"{c['name']} fits well.")
            for c in candidates
        ],
        message="Here are my picks!",
    )


class FakeCapability:
    """
    Stand-in for LanguageCapability with scripted outputs.

    signals / replies are consumed one per call; ranking may be a
    RankingOutput, None, or a callable taking the candidates.
    """

    def __init__(self, signals=None, replies=None, context_match=None, ranking=rank_all):
        self.signals = list(signals or [])
        self.replies = list(replies or [])
        self.context_match = context_match or ContextMatch(context_id=None, confidence=0.0)
        self.ranking = ranking
        self.calls = []

    def calls_to(self, name):
        return [c for c in self.calls if c[0] == name]

    def extract_state_update(self, message, history, state):
        self.calls.append(("extract", message, list(history)))
        return self.signals.pop(0) if self.signals else ExtractedSignals()

    def converse(self, history, state, next_slot=None):
        self.calls.append(("converse", list(history), next_slot.name if next_slot else None))
        return self.replies.pop(0) if self.replies else "Tell me more about your dog!"

    def resolve_context(self, situation_text, occasions):
        self.calls.append(("resolve_context", situation_text))
        return self.context_match

    def rank_candidates(self, history, candidates, soft_preferences, owner_preferences,
                        new_constraints=None, max_items=3):
        self.calls.append((
            "rank",
            [c["product_id"] for c in candidates],
            new_constraints,
            list(owner_preferences),
        ))
        if callable(self.ranking):
            return self.ranking(candidates)
        return self.ranking


@pytest.fixture
def make_llm():
    return FakeCapability
