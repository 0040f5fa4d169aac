"""
Tests for recommendation analytics (petrec/utils/analytics.py).
"""
from unittest.mock import MagicMock

from sqlalchemy import select

from petrec.core.merge import apply_update
from petrec.core.state import Recommendation, create_initial_state
from petrec.data.models import RecommendationLog
from petrec.utils.analytics import RecommendationLogger


def _state():
    return apply_update(create_initial_state([]), {
        "profile": {"age_fit": "adult", "jaw_hardness_fit": "medium"},
        "context": {"context_id": "C001", "occasion": "Drive", "matched": True},
        "filters": {"hard_filters": {"age_fit": "adult", "shelf_stable": True}},
    })


def _recommendations(products):
    return [
        Recommendation(product=products["P001"], score=9, reasoning="Low crumbs for the car."),
        Recommendation(product=products["P002"], score=7, reasoning="Long-lasting chew."),
    ]


class TestRecommendationLogger:
    def test_writes_one_row(self, session_factory, products):
        RecommendationLogger(session_factory).log_recommendation(_state(), _recommendations(products))

        with session_factory() as session:
            rows = session.scalars(select(RecommendationLog)).all()

        assert len(rows) == 1
        row = rows[0]
        assert row.top_product_id == "P001"
        assert row.top_product_score == 9
        assert row.context_id == "C001"
        assert row.age_fit == "adult"
        assert row.jaw_hardness_fit == "medium"
        assert [p["product_id"] for p in row.recommended_products] == ["P001", "P002"]
        assert row.filters_snapshot["hard_filters"]["shelf_stable"] is True
        assert row.created_at is not None

    def test_empty_list_not_logged(self, session_factory):
        RecommendationLogger(session_factory).log_recommendation(_state(), [])

        with session_factory() as session:
            assert session.scalars(select(RecommendationLog)).all() == []

    def test_write_failure_swallowed(self, products):
        broken = MagicMock(side_effect=RuntimeError("database is locked"))
        # Must not raise
        RecommendationLogger(broken).log_recommendation(_state(), _recommendations(products))
        broken.assert_called_once()
