"""
API module for petrec.

Provides the REST endpoints for the chat UI.
"""
from petrec.api.models import (
    ChatRequest,
    ChatResponse,
    TranscriptRequest,
    AnalyzePetRequest,
    AnalyzePetResponse,
    HealthResponse,
)

__all__ = [
    "ChatRequest",
    "ChatResponse",
    "TranscriptRequest",
    "AnalyzePetRequest",
    "AnalyzePetResponse",
    "HealthResponse",
]
