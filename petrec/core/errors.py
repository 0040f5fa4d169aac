"""
Exception hierarchy for petrec.

Transport errors abort a turn; contract errors are raised by a stage and
handled by the orchestrator with a safe fallback.
"""


class PetRecError(RuntimeError):
    """Base class for all petrec errors."""


class StateUpdateError(PetRecError):
    """A partial update could not be merged into a valid conversation state."""


class CapabilityTransportError(PetRecError):
    """The language model could not be reached or returned a transport-level error."""


class CatalogStoreError(PetRecError):
    """The product catalog could not be queried."""


class RankingContractError(PetRecError):
    """The ranking output violated its contract (unknown ids, empty ranking)."""
