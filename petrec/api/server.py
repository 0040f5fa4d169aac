"""
FastAPI server for petrec.

The server holds no session state: the client sends the conversation state
with every turn and gets the updated state back.

Usage:
    python -m petrec.api.server
    # or
    uvicorn petrec.api.server:app --reload --port 8000
"""
from typing import Optional

from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from petrec import __version__
from petrec.api.models import (
    AnalyzePetRequest,
    AnalyzePetResponse,
    ChatRequest,
    ChatResponse,
    HealthResponse,
    TranscriptRequest,
)
from petrec.core.config import get_config
from petrec.core.errors import CapabilityTransportError, CatalogStoreError, StateUpdateError
from petrec.core.merge import apply_update
from petrec.core.orchestrator import TurnOrchestrator, TurnResult
from petrec.core.state import create_initial_state
from petrec.parsing.constraint_normalizer import analysis_to_update
from petrec.profile.pet_analyzer import BreedTable, analyze_pet, get_breed_table
from petrec.utils.analytics import RecommendationLogger
from petrec.utils.logger import get_logger

logger = get_logger("api.server")

RETRY_MESSAGE = "The recommendation service is temporarily unavailable. Please try again in a moment."

# Initialize FastAPI app
app = FastAPI(
    title="petrec API",
    description="Pet treat recommendation over multi-turn conversation",
    version=__version__,
)

# Enable CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_orchestrator: Optional[TurnOrchestrator] = None
_analytics: Optional[RecommendationLogger] = None


def get_orchestrator() -> TurnOrchestrator:
    """Orchestrator over the configured catalog and OpenAI, created on first use."""
    global _orchestrator
    if _orchestrator is None:
        from petrec.data.catalog_store import CatalogStore
        from petrec.llm.capability import LanguageCapability

        config = get_config()
        _orchestrator = TurnOrchestrator(
            store=CatalogStore(page_size=config.product_page_size),
            llm=LanguageCapability(config),
            config=config,
        )
        logger.info("Turn orchestrator initialized")
    return _orchestrator


def get_analytics() -> RecommendationLogger:
    global _analytics
    if _analytics is None:
        _analytics = RecommendationLogger()
    return _analytics


def _to_response(result: TurnResult) -> ChatResponse:
    return ChatResponse(
        reply=result.reply,
        state=result.state,
        recommendations=result.recommendations or None,
        quick_replies=result.quick_replies,
    )


# API Endpoints

@app.get("/", response_model=HealthResponse)
async def root():
    """Health check endpoint."""
    config = get_config()
    return HealthResponse(
        status="online",
        service="petrec API",
        version=__version__,
        config={
            "conversation_model": config.conversation_model,
            "context_confidence_threshold": config.context_confidence_threshold,
            "max_recommendations": config.max_recommendations,
        }
    )


@app.post("/chat", response_model=ChatResponse)
def chat(
    request: ChatRequest,
    background_tasks: BackgroundTasks,
    orchestrator: TurnOrchestrator = Depends(get_orchestrator),
    analytics: RecommendationLogger = Depends(get_analytics),
):
    """
    Main conversation endpoint.

    Send the state returned by the previous turn (or none to start) with the
    latest message; the response carries the updated state.
    """
    state = request.state or create_initial_state(orchestrator.config.initial_missing_info)
    try:
        result = orchestrator.process_turn(state, request.message)
    except (CapabilityTransportError, CatalogStoreError) as e:
        logger.error(f"Transport failure in /chat: {e}")
        raise HTTPException(status_code=503, detail=RETRY_MESSAGE)
    except StateUpdateError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        import traceback
        logger.error(f"Error in /chat: {e}\n{traceback.format_exc()}")
        raise HTTPException(status_code=500, detail=str(e))

    if result.recommendations:
        background_tasks.add_task(analytics.log_recommendation, result.state, result.recommendations)

    return _to_response(result)


@app.post("/chat/transcript", response_model=ChatResponse)
def chat_transcript(
    request: TranscriptRequest,
    orchestrator: TurnOrchestrator = Depends(get_orchestrator),
):
    """
    Transcript mode: send the whole running conversation every turn.

    The state is derived from the transcript and not returned.
    """
    try:
        result = orchestrator.process_transcript([m.model_dump() for m in request.messages])
    except (CapabilityTransportError, CatalogStoreError) as e:
        logger.error(f"Transport failure in /chat/transcript: {e}")
        raise HTTPException(status_code=503, detail=RETRY_MESSAGE)
    except StateUpdateError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        import traceback
        logger.error(f"Error in /chat/transcript: {e}\n{traceback.format_exc()}")
        raise HTTPException(status_code=500, detail=str(e))

    return _to_response(result)


@app.post("/analyze-pet", response_model=AnalyzePetResponse)
def analyze_pet_endpoint(
    request: AnalyzePetRequest,
    breed_table: BreedTable = Depends(get_breed_table),
):
    """
    Derive life stage, chewing strength and weight status from breed and age.

    With a state, the analysis is merged into it.
    """
    result = analyze_pet(request.breed, request.months_old, request.current_weight, table=breed_table)
    if result is None:
        return AnalyzePetResponse(
            success=False,
            error=f"No data for breed '{request.breed}'. For mixed breeds, please describe your dog in the chat.",
            state=request.state,
        )

    state = None
    if request.state is not None:
        try:
            state = apply_update(request.state, analysis_to_update(result.model_dump()))
        except StateUpdateError as e:
            raise HTTPException(status_code=422, detail=str(e))

    return AnalyzePetResponse(success=True, result=result, state=state)


if __name__ == "__main__":
    import uvicorn

    print("=" * 60)
    print("petrec API Server")
    print("=" * 60)
    print("API Documentation: http://localhost:8000/docs")
    print("")
    print("Environment variables:")
    print("  OPENAI_API_KEY   - required for the language model")
    print("  DATABASE_URL     - catalog database (default: sqlite:///data/petrec.db)")
    print("  LOG_LEVEL        - logging level (default: INFO)")
    print("=" * 60)

    uvicorn.run(app, host="0.0.0.0", port=8000)
