"""
Information slots elicited during the interview.

Each key that can sit in `session.missing_info` has a slot describing how to
ask about it. The orchestrator always asks about the head of the queue.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from petrec.core.state import ConversationState


@dataclass
class InfoSlot:
    """Definition of a single missing_info key."""
    name: str
    display_name: str
    filter_key: Optional[str] = None       # Maps to filters.hard_filters
    example_question: str = ""
    example_replies: List[str] = field(default_factory=list)


INFO_SLOTS: Dict[str, InfoSlot] = {
    slot.name: slot
    for slot in [
        InfoSlot(
            name="context",
            display_name="Situation",
            example_question="Where or when will you be giving the treat?",
            example_replies=["On a drive", "Waiting at the vet", "Training at home", "Walk in the park"],
        ),
        InfoSlot(
            name="age_fit",
            display_name="Life Stage",
            filter_key="age_fit",
            example_question="How old is your dog?",
            example_replies=["Puppy", "Adult", "Senior"],
        ),
        InfoSlot(
            name="jaw_hardness_fit",
            display_name="Chewing Strength",
            filter_key="jaw_hardness_fit",
            example_question="How strong is your dog's chewing? Do they need something soft?",
            example_replies=["Soft please", "Average", "Strong chewer"],
        ),
        InfoSlot(
            name="crumb_level",
            display_name="Crumbs",
            filter_key="crumb_level",
            example_question="Is it important that the treat leaves few crumbs?",
            example_replies=["Few crumbs", "Doesn't matter"],
        ),
        InfoSlot(
            name="noise_level",
            display_name="Noise",
            filter_key="noise_level",
            example_question="Should the treat be quiet to eat?",
            example_replies=["Quiet please", "Doesn't matter"],
        ),
        InfoSlot(
            name="shelf_stable",
            display_name="Storage",
            filter_key="shelf_stable",
            example_question="Does it need to keep at room temperature, or is a fridge fine?",
            example_replies=["Room temperature", "Fridge is fine"],
        ),
        InfoSlot(
            name="ask_soft_prefs",
            display_name="Other Preferences",
            example_question=(
                "Lastly, anything else you'd like? For example low calorie, cute shapes, "
                "a strong smell, or individually wrapped."
            ),
            example_replies=["Low calorie", "Individually wrapped", "No preference"],
        ),
    ]
}


def next_question(state: ConversationState) -> Optional[InfoSlot]:
    """Return the slot at the head of missing_info, or None when nothing is pending."""
    for key in state.session.missing_info:
        slot = INFO_SLOTS.get(key)
        if slot is not None:
            return slot
    return None


def get_slot_status(state: ConversationState) -> Dict[str, Any]:
    """
    Summarize what is known and what is still pending, for prompt context.

    Returns:
        Dict with 'filled' (display name -> value) and 'missing' (ordered slot names)
    """
    hard = state.filters.hard_filters
    filled = {}
    for slot in INFO_SLOTS.values():
        if slot.filter_key and getattr(hard, slot.filter_key) is not None:
            filled[slot.display_name] = getattr(hard, slot.filter_key)
    if state.context.matched:
        filled["Situation"] = state.context.occasion
    if state.profile.allergens_exclude:
        filled["Allergies"] = ", ".join(state.profile.allergens_exclude)
    if state.filters.soft_preferences:
        filled["Other Preferences"] = ", ".join(state.filters.soft_preferences)

    return {"filled": filled, "missing": list(state.session.missing_info)}


def format_slot_context(slot_status: Dict[str, Any]) -> str:
    """Format slot status into a string for LLM context."""
    if slot_status["filled"]:
        filled_str = "\n".join(f"- {k}: {v}" for k, v in slot_status["filled"].items())
    else:
        filled_str = "- Nothing yet"

    missing = [INFO_SLOTS[name].display_name for name in slot_status["missing"] if name in INFO_SLOTS]
    missing_str = ", ".join(missing) if missing else "All key info gathered!"

    return f"""**What we know:**
{filled_str}

**Still to ask (in this order):** {missing_str}"""
