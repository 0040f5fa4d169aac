"""
Turn orchestrator.

Sequences one user turn: extract and merge what the user said, keep
collecting until ready, resolve the situation, retrieve candidates with
relaxation, rank them and build the reply.

The caller's state is never modified. Each turn works on a copy and a new
state is returned only when the whole turn succeeds; transport errors
(CapabilityTransportError, CatalogStoreError) propagate to the caller.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from petrec.context.resolution import parse_owner_preferences, resolve_context
from petrec.core.config import PetRecConfig, get_config
from petrec.core.errors import RankingContractError
from petrec.core.merge import apply_update
from petrec.core.readiness import ReadinessDetector, SentinelReadiness
from petrec.core.state import HARD_FILTER_KEYS, ConversationState, Recommendation, create_initial_state
from petrec.interview.info_slots import next_question
from petrec.llm.schemas import ExtractedSignals
from petrec.parsing.constraint_normalizer import SynonymTable, normalize_signals, resolved_info_keys
from petrec.recommendation.ranking import assemble_ranking, describe_constraints
from petrec.recommendation.relaxation import retrieve_candidates
from petrec.utils.logger import get_logger

logger = get_logger("core.orchestrator")

NO_MATCH_MESSAGE = (
    "Sorry, I couldn't find any treats that match these conditions. "
    "Could you relax some of them, for example the texture or the price?"
)
RANKING_FAILED_MESSAGE = (
    "Sorry, something went wrong while picking the best treats for you. "
    "Could you ask me again in a moment?"
)
RELAXED_NOTE = "I couldn't find an exact match, so I loosened some conditions ({relaxed})."

FILTER_LABELS = {
    "age_fit": "life stage",
    "jaw_hardness_fit": "chewing strength",
    "shelf_stable": "storage",
    "crumb_level": "crumbs",
    "noise_level": "noise",
    "category": "category",
    "price_lte": "price",
}


class TurnPhase(str, Enum):
    COLLECTING = "collecting"
    READY = "ready"
    RESOLVING = "resolving"
    RETRIEVING = "retrieving"
    RANKING = "ranking"
    RESPONDING = "responding"


@dataclass
class TurnResult:
    """Outcome of one turn."""
    reply: str
    state: Optional[ConversationState]  # None in transcript mode
    recommendations: List[Recommendation] = field(default_factory=list)
    quick_replies: Optional[List[str]] = None
    phases: List[TurnPhase] = field(default_factory=list)
    tier: Optional[str] = None
    is_refinement: bool = False


def constraint_changes(before: ConversationState, after: ConversationState) -> Dict[str, Any]:
    """
    Return the constraints `after` adds relative to `before`.

    Hard filters that gained or changed a value, newly excluded allergens
    and newly appended soft preferences.
    """
    changes: Dict[str, Any] = {}
    old = before.filters.hard_filters
    new = after.filters.hard_filters
    for key in HARD_FILTER_KEYS:
        old_value = getattr(old, key)
        new_value = getattr(new, key)
        if key == "allergens_exclude":
            added = [a for a in (new_value or []) if a not in (old_value or [])]
            if added:
                changes[key] = added
        elif new_value is not None and new_value != old_value:
            changes[key] = new_value

    old_prefs = before.filters.soft_preferences
    new_prefs = after.filters.soft_preferences
    if len(new_prefs) > len(old_prefs):
        changes["soft_preferences"] = new_prefs[len(old_prefs):]
    return changes


def _join(*parts: Optional[str]) -> str:
    return "\n\n".join(p for p in parts if p)


class TurnOrchestrator:
    """
    Per-turn state machine.

    Args:
        store: CatalogStore
        llm: LanguageCapability
        config: Configuration; the global config when omitted
        readiness: Readiness detector; sentinel detection when omitted
    """

    def __init__(
        self,
        store,
        llm,
        config: Optional[PetRecConfig] = None,
        readiness: Optional[ReadinessDetector] = None,
    ):
        self.store = store
        self.llm = llm
        self.config = config or get_config()
        self.readiness = readiness or SentinelReadiness(self.config.readiness_sentinel)
        self.synonyms = SynonymTable(self.config.synonyms)

    # ------------------------------------------------------------------ #
    # Public interface
    # ------------------------------------------------------------------ #

    def process_turn(self, state: ConversationState, message: str) -> TurnResult:
        """
        Process one user message against a client-held state.

        Returns:
            TurnResult with the updated state
        """
        logger.info(f"Processing turn: {message[:100]}...")
        working = apply_update(state, {
            "session": {"user_request_history": list(state.session.user_request_history) + [message]},
        })
        history = [{"role": "user", "content": u} for u in state.session.user_request_history]
        return self._run(
            start=state,
            working=working,
            message=message,
            history=history,
            conversation=history + [{"role": "user", "content": message}],
            enqueue_fallback=True,
        )

    def process_transcript(self, messages: List[Dict[str, str]]) -> TurnResult:
        """
        Process a full running transcript; the state is derived from it.

        Returns:
            TurnResult with state None
        """
        user_messages = [m["content"] for m in messages if m.get("role") == "user"]
        logger.info(f"Processing transcript: {len(messages)} messages, {len(user_messages)} from the user")
        start = create_initial_state(self.config.initial_missing_info)
        working = apply_update(start, {"session": {"user_request_history": user_messages}})
        result = self._run(
            start=start,
            working=working,
            message="\n".join(user_messages),
            history=[],
            conversation=list(messages),
            enqueue_fallback=False,
        )
        result.state = None
        return result

    # ------------------------------------------------------------------ #
    # Stages
    # ------------------------------------------------------------------ #

    def _run(
        self,
        start: ConversationState,
        working: ConversationState,
        message: str,
        history: List[Dict[str, str]],
        conversation: List[Dict[str, str]],
        enqueue_fallback: bool,
    ) -> TurnResult:
        phases: List[TurnPhase] = []

        # Extract -> normalize -> merge
        signals = self.llm.extract_state_update(message, history, working)
        working = apply_update(working, normalize_signals(signals, working, self.synonyms))
        working = self._consume_resolved(signals, working)

        # A newly described situation is resolved right away
        if signals.situation:
            phases.append(TurnPhase.RESOLVING)
            working, enqueued = self._resolve_situation(working, signals.situation, enqueue_fallback)
            working = self._consume_resolved(signals, working)
            if enqueued and working.session.missing_info:
                return self._ask_next(working, phases)

        is_refinement = signals.is_refinement and bool(working.session.last_recommendation_ids)
        state_changed = (
            working.model_dump(exclude={"session"}) != start.model_dump(exclude={"session"})
        )

        if not start.session.missing_info and state_changed:
            phases.append(TurnPhase.READY)
            lead_in = None
        else:
            phases.append(TurnPhase.COLLECTING)
            next_slot = next_question(working)
            reply = self.llm.converse(conversation, working, next_slot)
            readiness = self.readiness.detect(reply)
            if not readiness.ready:
                phases.append(TurnPhase.RESPONDING)
                return TurnResult(
                    reply=readiness.clean_reply,
                    state=working,
                    quick_replies=next_slot.example_replies if next_slot else None,
                    phases=phases,
                )
            phases.append(TurnPhase.READY)
            lead_in = readiness.clean_reply

        # The situation was never described; match it from everything said so far
        if "context" in working.session.missing_info:
            phases.append(TurnPhase.RESOLVING)
            situation = "\n".join(working.session.user_request_history)
            working, enqueued = self._resolve_situation(working, situation, enqueue_fallback)
            working = self._consume_resolved(signals, working)
            if enqueued and working.session.missing_info:
                return self._ask_next(working, phases)

        changes = constraint_changes(start, working)
        return self._recommend(working, phases, lead_in, is_refinement, changes)

    def _consume_resolved(self, signals: ExtractedSignals, working: ConversationState) -> ConversationState:
        """Drop the missing_info keys this turn answered."""
        resolved = resolved_info_keys(signals, working)
        if not resolved:
            return working
        logger.info(f"Resolved missing info: {resolved}")
        return apply_update(working, {
            "session": {"missing_info": [k for k in working.session.missing_info if k not in resolved]},
        })

    def _resolve_situation(
        self,
        working: ConversationState,
        situation: str,
        enqueue_fallback: bool,
    ) -> Tuple[ConversationState, List[str]]:
        """Match the situation and merge the result; returns the new state and any queued questions."""
        occasions = self.store.get_all_contexts()
        match = self.llm.resolve_context(situation, occasions)
        resolution = resolve_context(
            match, occasions, working,
            enqueue_fallback=enqueue_fallback,
            threshold=self.config.context_confidence_threshold,
        )
        return apply_update(working, resolution.update), resolution.enqueued

    def _ask_next(self, working: ConversationState, phases: List[TurnPhase]) -> TurnResult:
        """End the turn with the question at the head of missing_info."""
        slot = next_question(working)
        phases.append(TurnPhase.RESPONDING)
        logger.info(f"Asking next: {slot.name if slot else None}")
        return TurnResult(
            reply=slot.example_question if slot else "",
            state=working,
            quick_replies=slot.example_replies if slot else None,
            phases=phases,
        )

    def _recommend(
        self,
        working: ConversationState,
        phases: List[TurnPhase],
        lead_in: Optional[str],
        is_refinement: bool,
        changes: Dict[str, Any],
    ) -> TurnResult:
        phases.append(TurnPhase.RETRIEVING)
        previous_ids = working.session.last_recommendation_ids if is_refinement else []
        retrieval = retrieve_candidates(self.store, working.filters.hard_filters, previous_ids)

        if not retrieval.candidates:
            phases.append(TurnPhase.RESPONDING)
            logger.info("No candidates after relaxation; reporting no match")
            return TurnResult(
                reply=_join(lead_in, NO_MATCH_MESSAGE),
                state=working,
                phases=phases,
                tier=None,
                is_refinement=is_refinement,
            )

        phases.append(TurnPhase.RANKING)
        owner_preferences: List[str] = []
        if working.context.matched:
            occasion = self.store.get_context_by_id(working.context.context_id)
            if occasion:
                owner_preferences = parse_owner_preferences(occasion.get("owner_pref"))

        output = self.llm.rank_candidates(
            working.session.user_request_history[-self.config.history_window:],
            retrieval.candidates,
            working.filters.soft_preferences,
            owner_preferences,
            describe_constraints(changes) if is_refinement else None,
            self.config.max_recommendations,
        )
        try:
            ranking = assemble_ranking(
                output,
                retrieval.candidates,
                is_refinement=is_refinement,
                new_constraints=changes,
                max_items=self.config.max_recommendations,
            )
        except RankingContractError as e:
            logger.error(f"Ranking contract violation: {e}")
            phases.append(TurnPhase.RESPONDING)
            return TurnResult(
                reply=RANKING_FAILED_MESSAGE,
                state=working,
                phases=phases,
                tier=retrieval.tier,
                is_refinement=is_refinement,
            )

        working = apply_update(working, {
            "session": {"last_recommendation_ids": [r.product["product_id"] for r in ranking.recommendations]},
        })

        note = None
        if retrieval.relaxed_filters:
            relaxed = ", ".join(FILTER_LABELS.get(k, k) for k in retrieval.relaxed_filters)
            note = RELAXED_NOTE.format(relaxed=relaxed)

        phases.append(TurnPhase.RESPONDING)
        logger.info(f"Turn complete: {len(ranking.recommendations)} recommendations (tier: {retrieval.tier})")
        return TurnResult(
            reply=_join(ranking.message, note),
            state=working,
            recommendations=ranking.recommendations,
            phases=phases,
            tier=retrieval.tier,
            is_refinement=is_refinement,
        )
