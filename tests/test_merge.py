"""
Tests for the state merge engine (petrec/core/merge.py).
"""
import copy

import pytest

from petrec.core.errors import StateUpdateError
from petrec.core.merge import apply_update, deep_merge
from petrec.core.state import create_initial_state


# ---------------------------------------------------------------------------
# deep_merge
# ---------------------------------------------------------------------------

class TestDeepMerge:
    def test_records_recurse(self):
        base = {"a": {"x": 1, "y": 2}, "b": 3}
        assert deep_merge(base, {"a": {"y": 20}}) == {"a": {"x": 1, "y": 20}, "b": 3}

    def test_nested_records_recurse(self):
        base = {"a": {"b": {"c": 1, "d": 2}}}
        assert deep_merge(base, {"a": {"b": {"d": 5}}}) == {"a": {"b": {"c": 1, "d": 5}}}

    def test_lists_are_replaced_not_merged(self):
        base = {"tags": ["a", "b"], "other": 1}
        assert deep_merge(base, {"tags": ["c"]}) == {"tags": ["c"], "other": 1}

    def test_absent_keys_untouched(self):
        base = {"a": 1, "b": {"c": 2}}
        assert deep_merge(base, {}) == base

    def test_none_clears_value(self):
        assert deep_merge({"a": {"x": 1}}, {"a": None}) == {"a": None}

    def test_record_replaces_primitive(self):
        assert deep_merge({"a": 1}, {"a": {"x": 1}}) == {"a": {"x": 1}}

    def test_new_keys_added(self):
        assert deep_merge({"a": 1}, {"b": 2}) == {"a": 1, "b": 2}

    def test_inputs_not_mutated(self):
        base = {"a": {"x": 1}, "l": [1]}
        partial = {"a": {"y": 2}, "l": [2]}
        base_before = copy.deepcopy(base)
        partial_before = copy.deepcopy(partial)

        result = deep_merge(base, partial)
        result["l"].append(3)
        result["a"]["z"] = 9

        assert base == base_before
        assert partial == partial_before

    def test_untouched_values_not_shared_with_base(self):
        base = {"history": ["hi"], "profile": {"tags": ["calm"]}, "filters": {"x": 1}}

        result = deep_merge(base, {"filters": {"x": 2}})
        result["history"].append("later")
        result["profile"]["tags"].append("small")

        assert base == {"history": ["hi"], "profile": {"tags": ["calm"]}, "filters": {"x": 1}}


# ---------------------------------------------------------------------------
# apply_update
# ---------------------------------------------------------------------------

class TestApplyUpdate:
    def test_updates_one_nested_field(self):
        state = apply_update(create_initial_state(), {"profile": {"age_fit": "senior"}})
        state = apply_update(state, {"filters": {"hard_filters": {"crumb_level": "low"}}})

        assert state.profile.age_fit == "senior"
        assert state.filters.hard_filters.crumb_level == "low"
        assert state.session.missing_info == ["context"]

    def test_list_field_replaced(self):
        state = apply_update(create_initial_state(), {"filters": {"soft_preferences": ["a", "b"]}})
        state = apply_update(state, {"filters": {"soft_preferences": ["c"]}})
        assert state.filters.soft_preferences == ["c"]

    def test_original_state_untouched(self):
        state = create_initial_state()
        apply_update(state, {"profile": {"allergens_exclude": ["egg"]}})
        assert state.profile.allergens_exclude == []

    def test_empty_update_returns_copy(self):
        state = create_initial_state()
        result = apply_update(state, {})
        assert result == state
        assert result is not state

    def test_unknown_key_rejected(self):
        with pytest.raises(StateUpdateError):
            apply_update(create_initial_state(), {"profile": {"coat_color": "brown"}})

    def test_unknown_top_level_key_rejected(self):
        with pytest.raises(StateUpdateError):
            apply_update(create_initial_state(), {"owner": {"name": "Kim"}})

    def test_invalid_enum_rejected(self):
        with pytest.raises(StateUpdateError):
            apply_update(create_initial_state(), {"profile": {"age_fit": "teenager"}})

    def test_matched_context_requires_id(self):
        with pytest.raises(StateUpdateError):
            apply_update(create_initial_state(), {"context": {"matched": True}})

    def test_matched_context_with_id_accepted(self):
        state = apply_update(
            create_initial_state(),
            {"context": {"context_id": "C001", "occasion": "Drive", "matched": True}},
        )
        assert state.context.matched is True
        assert state.context.context_id == "C001"
