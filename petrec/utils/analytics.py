"""
Recommendation analytics.

Best-effort: a failed write is logged and dropped, it never reaches the
user. The API schedules log_recommendation as a background task.
"""
from typing import List, Optional

from sqlalchemy.orm import sessionmaker

from petrec.core.state import ConversationState, Recommendation
from petrec.data.database import get_session_factory
from petrec.data.models import RecommendationLog
from petrec.utils.logger import get_logger

logger = get_logger("utils.analytics")


class RecommendationLogger:
    """Writes one recommendation_logs row per delivered recommendation list."""

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self._session_factory = session_factory

    def log_recommendation(self, state: ConversationState, recommendations: List[Recommendation]) -> None:
        if not recommendations:
            return
        try:
            session_factory = self._session_factory or get_session_factory()
            top = recommendations[0]
            row = RecommendationLog(
                profile_snapshot=state.profile.model_dump(),
                context_snapshot=state.context.model_dump(),
                filters_snapshot=state.filters.model_dump(),
                recommended_products=[
                    {
                        "product_id": r.product.get("product_id"),
                        "score": r.score,
                        "reasoning": r.reasoning,
                    }
                    for r in recommendations
                ],
                context_id=state.context.context_id,
                age_fit=state.profile.age_fit,
                jaw_hardness_fit=state.profile.jaw_hardness_fit,
                top_product_id=top.product.get("product_id"),
                top_product_score=top.score,
            )
            with session_factory() as session:
                session.add(row)
                session.commit()
            logger.info(f"Logged recommendation (top: {row.top_product_id}, score {row.top_product_score})")
        except Exception as e:
            logger.error(f"Failed to log recommendation: {e}")
