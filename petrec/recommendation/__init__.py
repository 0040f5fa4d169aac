"""
Candidate retrieval and ranking.

- relaxation: catalog query with progressive constraint relaxation
- ranking: validation and assembly of the model's top picks
"""
from petrec.recommendation.relaxation import retrieve_candidates, RELAXATION_TIERS
from petrec.recommendation.ranking import assemble_ranking

__all__ = [
    "retrieve_candidates",
    "RELAXATION_TIERS",
    "assemble_ranking",
]
