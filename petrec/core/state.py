"""
Conversation state schema.

The client owns the state: it is sent with every turn and returned updated.
Every model forbids unknown keys so a malformed update fails validation
instead of being carried along silently.
"""
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

AgeFit = Literal["puppy", "adult", "senior"]
JawHardness = Literal["low", "medium", "high"]
WeightStatus = Literal["underweight", "normal", "overweight"]
Level = Literal["low", "medium", "high"]

HARD_FILTER_KEYS = (
    "age_fit",
    "jaw_hardness_fit",
    "allergens_exclude",
    "shelf_stable",
    "crumb_level",
    "noise_level",
    "category",
    "price_lte",
)


class _StateModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


class PetProfile(_StateModel):
    """Pet attributes known so far. None means unknown."""
    pet_id: Optional[str] = None
    age_fit: Optional[AgeFit] = None
    jaw_hardness_fit: Optional[JawHardness] = None
    weight_status: Optional[WeightStatus] = None
    allergens_exclude: List[str] = Field(default_factory=list)


class ContextInfo(_StateModel):
    """Occasion matched against the context catalog."""
    context_id: Optional[str] = None
    occasion: Optional[str] = None
    matched: bool = False

    @model_validator(mode="after")
    def _matched_needs_id(self) -> "ContextInfo":
        if self.matched and not self.context_id:
            raise ValueError("context.matched requires a context_id")
        return self


class HardFilters(_StateModel):
    """Query predicates. A None value means the predicate is not applied."""
    age_fit: Optional[AgeFit] = None
    jaw_hardness_fit: Optional[JawHardness] = None
    allergens_exclude: Optional[List[str]] = None
    shelf_stable: Optional[bool] = None
    crumb_level: Optional[Level] = None
    noise_level: Optional[Level] = None
    category: Optional[str] = None
    price_lte: Optional[float] = None

    def active(self) -> Dict[str, Any]:
        """Return only the predicates that constrain a query."""
        active = {}
        for key, value in self.model_dump().items():
            if value is None:
                continue
            if key == "allergens_exclude" and not value:
                continue
            active[key] = value
        return active


class ProductFilters(_StateModel):
    hard_filters: HardFilters = Field(default_factory=HardFilters)
    soft_preferences: List[str] = Field(default_factory=list)


class SessionInfo(_StateModel):
    missing_info: List[str] = Field(default_factory=lambda: ["context"])
    user_request_history: List[str] = Field(default_factory=list)
    last_recommendation_ids: List[str] = Field(default_factory=list)


class ConversationState(_StateModel):
    """Everything learned about the pet and the situation so far."""
    profile: PetProfile = Field(default_factory=PetProfile)
    context: ContextInfo = Field(default_factory=ContextInfo)
    filters: ProductFilters = Field(default_factory=ProductFilters)
    session: SessionInfo = Field(default_factory=SessionInfo)


class Recommendation(BaseModel):
    """One ranked product with its justification."""
    product: Dict[str, Any]
    score: int = Field(ge=1, le=10)
    reasoning: str


def create_initial_state(missing_info: Optional[List[str]] = None) -> ConversationState:
    """Build the state for a brand-new conversation."""
    state = ConversationState()
    if missing_info is not None:
        state.session.missing_info = list(missing_info)
    return state
