"""
Tests for configuration loading and the interview slots.
"""
from petrec.core.config import PetRecConfig
from petrec.core.merge import apply_update
from petrec.core.state import create_initial_state
from petrec.interview.info_slots import format_slot_context, get_slot_status, next_question


class TestConfig:
    def test_yaml_sections(self, tmp_path, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        path = tmp_path / "config.yaml"
        path.write_text(
            "conversation:\n"
            "  context_confidence_threshold: 0.8\n"
            "recommendation:\n"
            "  max_recommendations: 5\n"
            "models:\n"
            "  ranking: gpt-4o\n"
            "data:\n"
            "  database_url: sqlite:///tmp/test.db\n"
            "synonyms:\n"
            "  age:\n"
            "    golden years: senior\n",
            encoding="utf-8",
        )

        config = PetRecConfig.from_yaml(path)

        assert config.context_confidence_threshold == 0.8
        assert config.max_recommendations == 5
        assert config.ranking_model == "gpt-4o"
        assert config.conversation_model == "gpt-4o-mini"
        assert config.database_url == "sqlite:///tmp/test.db"
        assert config.synonyms == {"age": {"golden years": "senior"}}
        assert config.initial_missing_info == ["context"]

    def test_missing_file_gives_defaults(self, tmp_path, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        config = PetRecConfig.from_yaml(tmp_path / "missing.yaml")
        assert config == PetRecConfig()

    def test_database_url_from_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://user:pw@db/petrec")
        config = PetRecConfig.from_yaml(tmp_path / "missing.yaml")
        assert config.database_url == "postgresql://user:pw@db/petrec"


class TestInfoSlots:
    def test_next_question_is_queue_head(self):
        state = create_initial_state(["crumb_level", "noise_level"])
        assert next_question(state).name == "crumb_level"
        assert next_question(create_initial_state([])) is None

    def test_slot_status(self):
        state = apply_update(create_initial_state(["noise_level"]), {
            "profile": {"allergens_exclude": ["egg"]},
            "context": {"context_id": "C001", "occasion": "Drive", "matched": True},
            "filters": {"hard_filters": {"crumb_level": "low"}, "soft_preferences": ["calming"]},
        })

        status = get_slot_status(state)

        assert status["filled"] == {
            "Crumbs": "low",
            "Situation": "Drive",
            "Allergies": "egg",
            "Other Preferences": "calming",
        }
        assert status["missing"] == ["noise_level"]
        text = format_slot_context(status)
        assert "- Crumbs: low" in text
        assert "Noise" in text

    def test_empty_status(self):
        text = format_slot_context(get_slot_status(create_initial_state([])))
        assert "Nothing yet" in text
        assert "All key info gathered!" in text
