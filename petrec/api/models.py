"""
Pydantic models for petrec API requests and responses.
"""
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List, Literal

from petrec.core.state import ConversationState, Recommendation
from petrec.profile.pet_analyzer import PetAnalysisResult


class ChatRequest(BaseModel):
    """Request model for the chat endpoint."""
    message: str = Field(description="User's latest message")
    state: Optional[ConversationState] = Field(default=None, description="State returned by the previous turn (omit to start)")


class ChatResponse(BaseModel):
    """Response model for the chat endpoint."""
    reply: str = Field(description="Assistant reply")
    state: Optional[ConversationState] = Field(default=None, description="Updated state; null in transcript mode")
    recommendations: Optional[List[Recommendation]] = Field(default=None, description="Ranked picks, best first")
    quick_replies: Optional[List[str]] = Field(default=None, description="Quick reply options for the next question")


class TranscriptMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class TranscriptRequest(BaseModel):
    """Request model for transcript mode: the full running conversation."""
    messages: List[TranscriptMessage] = Field(min_length=1)


class AnalyzePetRequest(BaseModel):
    """Request model for pet analysis."""
    breed: str = Field(description="Breed name, English or Korean")
    months_old: int = Field(ge=0, description="Age in months")
    current_weight: Optional[float] = Field(default=None, gt=0, description="Current weight in kg")
    state: Optional[ConversationState] = Field(default=None, description="State to merge the analysis into")


class AnalyzePetResponse(BaseModel):
    """Response model for pet analysis."""
    success: bool
    result: Optional[PetAnalysisResult] = None
    error: Optional[str] = None
    state: Optional[ConversationState] = None


class HealthResponse(BaseModel):
    """Response model for health check."""
    status: str
    service: str
    version: str
    config: Dict[str, Any]
