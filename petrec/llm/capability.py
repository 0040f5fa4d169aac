"""
Language capability backed by the OpenAI chat completions API.

Four calls: free-text conversation, and three structured outputs
(extract-state-update, resolve-context, rank-candidates). Structured
outputs that fail validation come back as a safe default; network and
API status errors raise CapabilityTransportError and abort the turn.
"""
import json
from typing import Any, Dict, List, Optional, Type, TypeVar

import openai
from openai import OpenAI
from pydantic import BaseModel, ValidationError

from petrec.core.config import PetRecConfig, get_config
from petrec.core.errors import CapabilityTransportError
from petrec.core.state import ConversationState
from petrec.interview.info_slots import InfoSlot, format_slot_context, get_slot_status
from petrec.llm.prompts import (
    build_context_prompt,
    build_conversation_prompt,
    build_extraction_prompt,
    build_ranking_prompt,
)
from petrec.llm.schemas import ContextMatch, ExtractedSignals, RankingOutput
from petrec.utils.logger import get_logger

logger = get_logger("llm.capability")

T = TypeVar("T", bound=BaseModel)

DEFAULT_FOLLOW_UP = "Could you tell me a little more about your dog?"


class LanguageCapability:
    """Thin wrapper over the OpenAI client for the four model calls of a turn."""

    def __init__(self, config: Optional[PetRecConfig] = None, client: Optional[OpenAI] = None):
        self.config = config or get_config()
        self.client = client or OpenAI()

    # ── transport ────────────────────────────────────────────────────────

    def _create(self, model: str, temperature: float, messages: List[Dict[str, str]]) -> str:
        try:
            completion = self.client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=temperature,
            )
        except (openai.APIConnectionError, openai.APIStatusError) as e:
            logger.error(f"Language model call failed ({model}): {e}")
            raise CapabilityTransportError(str(e)) from e
        return (completion.choices[0].message.content or "").strip()

    def _parse(
        self,
        model: str,
        temperature: float,
        messages: List[Dict[str, str]],
        response_format: Type[T],
    ) -> Optional[T]:
        """Request a structured output; None when the output is unusable."""
        try:
            completion = self.client.chat.completions.parse(
                model=model,
                messages=messages,
                response_format=response_format,
                temperature=temperature,
            )
        except (openai.APIConnectionError, openai.APIStatusError) as e:
            logger.error(f"Language model call failed ({model}): {e}")
            raise CapabilityTransportError(str(e)) from e
        except (ValidationError, openai.LengthFinishReasonError, openai.ContentFilterFinishReasonError) as e:
            logger.error(f"Malformed {response_format.__name__} output: {e}")
            return None

        message = completion.choices[0].message
        if getattr(message, "refusal", None):
            logger.error(f"{response_format.__name__} request refused: {message.refusal}")
            return None
        if message.parsed is None:
            logger.error(f"{response_format.__name__}: model returned no parsed output")
            return None
        return message.parsed

    # ── calls ────────────────────────────────────────────────────────────

    def converse(
        self,
        history: List[Dict[str, str]],
        state: ConversationState,
        next_slot: Optional[InfoSlot] = None,
    ) -> str:
        """
        Generate the assistant's next conversational reply.

        Args:
            history: Recent messages [{"role": "user"|"assistant", "content": str}]
            state: Current conversation state (for what is known/missing)
            next_slot: Slot at the head of missing_info, if any

        Returns:
            Reply text, which may contain the readiness sentinel
        """
        system_prompt = build_conversation_prompt(
            format_slot_context(get_slot_status(state)),
            next_slot,
            self.config.readiness_sentinel,
        )
        messages = [{"role": "system", "content": system_prompt}]
        messages.extend(history[-self.config.history_window:])

        reply = self._create(self.config.conversation_model, self.config.conversation_temperature, messages)
        if not reply:
            logger.warning("Conversation call returned empty content; using slot question")
            return next_slot.example_question if next_slot else DEFAULT_FOLLOW_UP
        logger.info(f"Assistant reply: {reply[:80]}...")
        return reply

    def extract_state_update(
        self,
        message: str,
        history: List[Dict[str, str]],
        state: ConversationState,
    ) -> ExtractedSignals:
        """Extract raw signals from the latest user message."""
        system_prompt = build_extraction_prompt(
            state.session.missing_info,
            state.model_dump(include={"profile", "context", "filters"}),
        )
        messages = [{"role": "system", "content": system_prompt}]
        messages.extend(history[-self.config.history_window:])
        messages.append({"role": "user", "content": f"Extract signals from this message:\n\n\"{message}\""})

        signals = self._parse(
            self.config.extraction_model,
            self.config.extraction_temperature,
            messages,
            ExtractedSignals,
        )
        if signals is None:
            return ExtractedSignals()
        logger.info(f"Extracted signals: {signals.model_dump(exclude_defaults=True)}")
        return signals

    def resolve_context(self, situation_text: str, occasions: List[Dict[str, Any]]) -> ContextMatch:
        """Pick the best matching occasion for the described situation."""
        messages = [
            {"role": "system", "content": build_context_prompt(occasions)},
            {"role": "user", "content": situation_text},
        ]
        match = self._parse(
            self.config.context_model,
            self.config.context_temperature,
            messages,
            ContextMatch,
        )
        if match is None:
            return ContextMatch(context_id=None, confidence=0.0, reasoning="malformed output")
        logger.info(f"Context match: {match.context_id} (conf: {match.confidence}) - {match.reasoning}")
        return match

    def rank_candidates(
        self,
        history: List[str],
        candidates: List[Dict[str, Any]],
        soft_preferences: List[str],
        owner_preferences: List[str],
        new_constraints: Optional[str] = None,
        max_items: int = 3,
    ) -> Optional[RankingOutput]:
        """Ask the model for the top picks; None when the output is malformed."""
        messages = [
            {
                "role": "system",
                "content": build_ranking_prompt(
                    history, candidates, soft_preferences, owner_preferences, new_constraints, max_items
                ),
            },
            {"role": "user", "content": "Rank the candidates and write the message."},
        ]
        output = self._parse(
            self.config.ranking_model,
            self.config.ranking_temperature,
            messages,
            RankingOutput,
        )
        if output is not None:
            logger.info(f"Ranking: {json.dumps([r.product_id for r in output.rankings])}")
        return output
