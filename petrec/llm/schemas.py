"""
Structured outputs requested from the language model.

These are the shapes of the extract-state-update, resolve-context and
rank-candidates calls. Values are raw: the constraint normalizer and the
ranking assembly decide what is usable.
"""
from typing import List, Optional

from pydantic import BaseModel, Field


class ExtractedSignals(BaseModel):
    """Raw signals pulled from the latest user message."""
    age: Optional[str] = Field(None, description="Life stage words as the user said them (e.g. 'puppy', '노견', '3 years old adult')")
    jaw_strength: Optional[str] = Field(None, description="Chewing strength / teeth condition words (e.g. 'weak teeth', 'strong chewer')")
    weight_status: Optional[str] = Field(None, description="Weight condition words (e.g. 'chubby', 'underweight')")
    allergens: List[str] = Field(default_factory=list, description="Ingredients the pet must avoid, as mentioned")
    max_budget: Optional[float] = Field(None, description="Maximum price the user is willing to pay")
    crumb_preference: Optional[str] = Field(None, description="How much crumbling is acceptable (e.g. 'no crumbs')")
    noise_preference: Optional[str] = Field(None, description="How noisy chewing may be (e.g. 'quiet')")
    storage: Optional[str] = Field(None, description="Storage condition (e.g. 'room temperature', 'fridge ok')")
    category: Optional[str] = Field(None, description="Product category if explicitly requested (e.g. 'snack', 'cake')")
    preferences: List[str] = Field(default_factory=list, description="Other wishes as short phrases (e.g. 'low calorie', 'individually wrapped')")
    situation: Optional[str] = Field(None, description="Where/when the treat will be used, in the user's words")
    answered_info: List[str] = Field(
        default_factory=list,
        description="Keys of pending questions the user answered in this message, including 'no preference' answers"
    )
    is_refinement: bool = Field(
        False,
        description="True if the user is amending or narrowing recommendations already shown"
    )


class ContextMatch(BaseModel):
    """Best occasion match for the described situation."""
    context_id: Optional[str] = Field(None, description="context_id of the best matching occasion, or null")
    confidence: float = Field(0.0, ge=0.0, le=1.0, description="Confidence of the match between 0 and 1")
    reasoning: str = Field("", description="Short explanation of the match decision")


class RankedItem(BaseModel):
    product_id: str = Field(description="product_id copied from the candidate list")
    score: int = Field(description="Fit score from 1 (poor) to 10 (perfect)")
    reasoning: str = Field(description="2-3 friendly sentences on why this product fits")


class RankingOutput(BaseModel):
    """Top picks chosen by the model."""
    rankings: List[RankedItem] = Field(default_factory=list)
    message: str = Field("", description="Summary message shown above the recommendations")
