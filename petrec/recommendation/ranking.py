"""
Ranking assembly.

The language model chooses and explains the top picks; this module checks
that its output only references this turn's candidates and shapes it into
the final capped recommendation list.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from petrec.core.errors import RankingContractError
from petrec.core.state import Recommendation
from petrec.llm.schemas import RankingOutput
from petrec.utils.logger import get_logger

logger = get_logger("recommendation.ranking")

MIN_SCORE = 1
MAX_SCORE = 10
DEFAULT_MESSAGE = "Here are the treats that fit best!"

CONSTRAINT_LABELS = {
    "age_fit": "life stage",
    "jaw_hardness_fit": "chewing strength",
    "shelf_stable": "room-temperature storage",
    "crumb_level": "crumbs",
    "noise_level": "noise",
    "category": "category",
    "price_lte": "price up to",
}


@dataclass
class RankingResult:
    recommendations: List[Recommendation] = field(default_factory=list)
    message: str = ""


def describe_constraints(changes: Mapping[str, Any]) -> str:
    """
    Render constraint changes as a short phrase list.

    Example:
        {"allergens_exclude": ["egg"], "crumb_level": "low"} -> "no egg, crumbs: low"
    """
    parts: List[str] = []
    for key, value in changes.items():
        if value is None or value == []:
            continue
        if key == "allergens_exclude":
            parts.extend(f"no {term}" for term in value)
        elif key == "soft_preferences":
            parts.extend(str(p) for p in value)
        elif key == "shelf_stable":
            parts.append("room-temperature storage" if value else "refrigerated is fine")
        elif key == "price_lte":
            parts.append(f"price up to {float(value):g}")
        else:
            parts.append(f"{CONSTRAINT_LABELS.get(key, key)}: {value}")
    return ", ".join(parts)


def _clamp(score: int, product_id: str) -> int:
    clamped = max(MIN_SCORE, min(MAX_SCORE, score))
    if clamped != score:
        logger.warning(f"Score {score} for {product_id} outside {MIN_SCORE}-{MAX_SCORE}; clamped to {clamped}")
    return clamped


def assemble_ranking(
    output: Optional[RankingOutput],
    candidates: List[Dict[str, Any]],
    is_refinement: bool = False,
    new_constraints: Optional[Mapping[str, Any]] = None,
    max_items: int = 3,
) -> RankingResult:
    """
    Validate a ranking output against the candidate set and build the result.

    Raises:
        RankingContractError: output missing or empty for a non-empty candidate
            set, or referencing a product that is not a candidate
    """
    if not candidates:
        return RankingResult(recommendations=[], message="")

    if output is None or not output.rankings:
        raise RankingContractError(f"Empty ranking for {len(candidates)} candidates")

    by_id = {p["product_id"]: p for p in candidates}
    unknown = [r.product_id for r in output.rankings if r.product_id not in by_id]
    if unknown:
        raise RankingContractError(f"Ranking references products outside the candidate set: {unknown}")

    limit = min(max_items, len(candidates))
    recommendations: List[Recommendation] = []
    seen = set()
    for item in output.rankings:
        if item.product_id in seen:
            logger.warning(f"Duplicate ranking entry for {item.product_id} ignored")
            continue
        seen.add(item.product_id)
        recommendations.append(Recommendation(
            product=by_id[item.product_id],
            score=_clamp(item.score, item.product_id),
            reasoning=item.reasoning,
        ))
        if len(recommendations) == limit:
            break

    message = output.message.strip() or DEFAULT_MESSAGE
    if is_refinement and new_constraints:
        described = describe_constraints(new_constraints)
        if described:
            message = f"I've updated the list with your new conditions ({described}).\n\n{message}"

    logger.info(f"Assembled {len(recommendations)} recommendations: {[r.product['product_id'] for r in recommendations]}")
    return RankingResult(recommendations=recommendations, message=message)
