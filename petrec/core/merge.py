"""
State merge engine.

Partial updates are plain nested dicts. Records recurse; everything else,
lists included, is replaced wholesale. Keys absent from the partial are
left alone and nothing is ever deleted.
"""
import copy
from typing import Any, Dict

from pydantic import ValidationError

from petrec.core.errors import StateUpdateError
from petrec.core.state import ConversationState
from petrec.utils.logger import get_logger

logger = get_logger("core.merge")


def deep_merge(base: Dict[str, Any], partial: Dict[str, Any]) -> Dict[str, Any]:
    """
    Recursively merge `partial` into a copy of `base`.

    Args:
        base: Current values
        partial: Update; only the keys present are applied

    Returns:
        New merged dict (inputs are not modified)
    """
    result = copy.deepcopy(base)

    for key, value in partial.items():
        current = result.get(key)
        if isinstance(value, dict) and isinstance(current, dict):
            result[key] = deep_merge(current, value)
        else:
            result[key] = copy.deepcopy(value)

    return result


def apply_update(state: ConversationState, partial: Dict[str, Any]) -> ConversationState:
    """
    Merge a partial update into a state and validate the result.

    Raises:
        StateUpdateError: if the merged data is not a valid ConversationState
            (unknown keys, wrong types, matched context without id)
    """
    if not partial:
        return state.model_copy(deep=True)

    merged = deep_merge(state.model_dump(), partial)
    try:
        return ConversationState.model_validate(merged)
    except ValidationError as e:
        logger.error(f"Rejected state update {partial}: {e}")
        raise StateUpdateError(str(e)) from e
