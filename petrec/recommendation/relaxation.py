"""
Candidate retrieval with progressive constraint relaxation.

The full hard filters are tried first. Only when that yields nothing are
the tiers in RELAXATION_TIERS tried in order, each retaining fewer
constraints, stopping at the first non-empty result. Allergen exclusion is
retained by every tier and re-checked in Python on every candidate set.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Union

from petrec.core.state import HardFilters
from petrec.parsing.constraint_normalizer import allergen_match_terms
from petrec.utils.logger import get_logger

logger = get_logger("recommendation.relaxation")

FULL_TIER = "full"


@dataclass(frozen=True)
class RelaxationTier:
    name: str
    retained: FrozenSet[str]


# Least essential constraints are dropped first; allergens are never dropped
RELAXATION_TIERS = [
    RelaxationTier("core", frozenset({"age_fit", "jaw_hardness_fit", "allergens_exclude"})),
    RelaxationTier("age_only", frozenset({"age_fit", "allergens_exclude"})),
    RelaxationTier("allergen_only", frozenset({"allergens_exclude"})),
]

# Product fields searched for excluded allergen terms
ALLERGEN_FIELDS = ("protein_sources", "ingredient", "ingredient2", "ingredient3", "allergens")


@dataclass
class RetrievalResult:
    """
    Candidates for one turn.

    tier is "full" when no relaxation was needed; relaxed_filters lists the
    predicates dropped to find the candidates.
    """
    candidates: List[Dict[str, Any]]
    tier: Optional[str] = FULL_TIER
    relaxed_filters: List[str] = field(default_factory=list)
    refinement: bool = False


def _field_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple, set)):
        return " ".join(str(v) for v in value if v is not None).lower()
    return str(value).lower()


def contains_allergen(product: Mapping[str, Any], terms: Iterable[str]) -> bool:
    """True if any term, or a word for it, appears (case-insensitive substring) in any allergen field."""
    lowered = allergen_match_terms(terms)
    if not lowered:
        return False
    texts = [_field_text(product.get(f)) for f in ALLERGEN_FIELDS]
    return any(term in text for term in lowered for text in texts)


def exclude_allergens(products: List[Dict[str, Any]], terms: List[str]) -> List[Dict[str, Any]]:
    """Drop every product containing an excluded term."""
    if not terms:
        return list(products)
    kept = []
    for product in products:
        if contains_allergen(product, terms):
            logger.info(f"  Excluding {product.get('product_id')}: contains one of {terms}")
            continue
        kept.append(product)
    return kept


def retrieve_candidates(
    store,
    hard_filters: Union[HardFilters, Mapping[str, Any]],
    previous_ids: Optional[List[str]] = None,
) -> RetrievalResult:
    """
    Retrieve candidates for the current filters, relaxing them if nothing matches.

    Args:
        store: CatalogStore (query_products / get_product_by_id)
        hard_filters: Current hard filters
        previous_ids: Products shown last turn; non-empty on a refinement turn

    Returns:
        RetrievalResult; candidates is empty when even the last tier found nothing
    """
    if isinstance(hard_filters, HardFilters):
        active = hard_filters.active()
    else:
        active = HardFilters.model_validate(dict(hard_filters)).active()
    allergens = list(active.get("allergens_exclude", []))
    previous_ids = list(previous_ids or [])
    refinement = bool(previous_ids)

    logger.info("=" * 60)
    logger.info("CANDIDATE RETRIEVAL")
    logger.info("=" * 60)
    logger.info(f"Starting filters: {active}")

    candidates = store.query_products(active)

    if refinement:
        seen = {p["product_id"] for p in candidates}
        for product_id in previous_ids:
            if product_id in seen:
                continue
            product = store.get_product_by_id(product_id)
            if product is None:
                logger.warning(f"Previously recommended product {product_id} no longer exists")
                continue
            candidates.append(product)
            seen.add(product_id)
        logger.info(f"Refinement: union with {len(previous_ids)} previous ids -> {len(candidates)} candidates")

    candidates = exclude_allergens(candidates, allergens)
    logger.info(f"Full filters -> {len(candidates)} candidates")
    if candidates:
        logger.info("=" * 60)
        return RetrievalResult(candidates=candidates, tier=FULL_TIER, refinement=refinement)

    attempted = frozenset(active)
    for tier in RELAXATION_TIERS:
        relaxed = {k: v for k, v in active.items() if k in tier.retained}
        if frozenset(relaxed) == attempted:
            logger.info(f"Tier '{tier.name}' keeps {sorted(relaxed)} (nothing dropped) - skipping")
            continue
        attempted = frozenset(relaxed)

        dropped = [k for k in active if k not in relaxed]
        logger.info(f"Tier '{tier.name}': relaxing {dropped}, keeping {sorted(relaxed)}")
        candidates = exclude_allergens(store.query_products(relaxed), allergens)
        logger.info(f"  -> {len(candidates)} candidates")
        if candidates:
            logger.info("=" * 60)
            return RetrievalResult(
                candidates=candidates,
                tier=tier.name,
                relaxed_filters=dropped,
                refinement=refinement,
            )

    logger.info("No candidates after the last relaxation tier")
    logger.info("=" * 60)
    return RetrievalResult(
        candidates=[],
        tier=None,
        relaxed_filters=[k for k in active if k != "allergens_exclude"],
        refinement=refinement,
    )


__all__ = [
    "RELAXATION_TIERS",
    "RelaxationTier",
    "RetrievalResult",
    "contains_allergen",
    "exclude_allergens",
    "retrieve_candidates",
]
