"""
Context resolution.

Turns the model's occasion match into a partial state update. An accepted
match contributes hard filters and owner preference tags; a rejected one
queues the fallback questions so the constraints are asked for directly.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from petrec.core.state import ConversationState
from petrec.llm.schemas import ContextMatch
from petrec.utils.logger import get_logger

logger = get_logger("context.resolution")

DEFAULT_CONFIDENCE_THRESHOLD = 0.7

# Hard constraints first, free-text preferences last
FALLBACK_QUESTIONS = [
    "jaw_hardness_fit",
    "crumb_level",
    "noise_level",
    "shelf_stable",
    "ask_soft_prefs",
]


@dataclass
class ContextResolution:
    """Outcome of matching a situation against the occasion catalog."""
    update: Dict[str, Any]
    accepted: bool
    occasion: Optional[Dict[str, Any]] = None
    enqueued: List[str] = field(default_factory=list)


def context_to_hard_filters(occasion: Dict[str, Any], existing_price_lte: Optional[float] = None) -> Dict[str, Any]:
    """
    Translate an occasion's rules into hard filters.

    The occasion budget only applies when no tighter price limit is set.
    """
    filters: Dict[str, Any] = {}

    if occasion.get("storage") == "only_shelf_stable":
        filters["shelf_stable"] = True

    if occasion.get("noise_sensitive") is True:
        filters["noise_level"] = "low"

    if occasion.get("messy_ok") is False:
        filters["crumb_level"] = "low"

    budget = occasion.get("budget_max")
    if budget:
        if existing_price_lte is None or float(budget) < existing_price_lte:
            filters["price_lte"] = float(budget)

    return filters


def parse_owner_preferences(owner_pref: Optional[str]) -> List[str]:
    """Split "low calorie, individually wrapped" into ["low calorie", "individually wrapped"]."""
    if not owner_pref:
        return []
    return [p.strip() for p in owner_pref.split(",") if p.strip()]


def resolve_context(
    match: ContextMatch,
    occasions: List[Dict[str, Any]],
    state: ConversationState,
    enqueue_fallback: bool = True,
    threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
) -> ContextResolution:
    """
    Accept or reject a context match and build the resulting partial update.

    Args:
        match: Model output for the situation
        occasions: Occasion catalog the match must refer to
        state: Current state (lists in the update are extended from it)
        enqueue_fallback: Queue FALLBACK_QUESTIONS on rejection while "context" is pending
        threshold: Minimum confidence for acceptance

    Returns:
        ContextResolution with the partial update to merge
    """
    by_id = {o["context_id"]: o for o in occasions}
    pending = list(state.session.missing_info)

    occasion = None
    if match.context_id is not None:
        occasion = by_id.get(match.context_id)
        if occasion is None:
            logger.error(f"Context match references unknown context_id '{match.context_id}'")

    if occasion is not None and match.confidence >= threshold:
        logger.info(f"Context accepted: {occasion['context_id']} ({occasion.get('occasion')}), conf={match.confidence}")
        owner_prefs = parse_owner_preferences(occasion.get("owner_pref"))
        hard = context_to_hard_filters(occasion, state.filters.hard_filters.price_lte)

        filters: Dict[str, Any] = {}
        if hard:
            filters["hard_filters"] = hard
        if owner_prefs:
            filters["soft_preferences"] = list(state.filters.soft_preferences) + owner_prefs

        update: Dict[str, Any] = {
            "context": {
                "context_id": occasion["context_id"],
                "occasion": occasion.get("occasion"),
                "matched": True,
            },
        }
        if filters:
            update["filters"] = filters
        if "context" in pending:
            update["session"] = {"missing_info": [k for k in pending if k != "context"]}
        return ContextResolution(update=update, accepted=True, occasion=occasion)

    logger.info(f"Context rejected: {match.context_id} (conf: {match.confidence})")
    update = {"context": {"context_id": None, "occasion": None, "matched": False}}
    enqueued: List[str] = []
    if "context" in pending:
        remaining = [k for k in pending if k != "context"]
        if enqueue_fallback:
            enqueued = [k for k in FALLBACK_QUESTIONS if k not in remaining]
            remaining.extend(enqueued)
            logger.info(f"Queued fallback questions: {enqueued}")
        update["session"] = {"missing_info": remaining}
    return ContextResolution(update=update, accepted=False, enqueued=enqueued)
