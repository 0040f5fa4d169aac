"""
Tests for readiness detection (petrec/core/readiness.py).
"""
from petrec.core.readiness import SentinelReadiness


class TestSentinelReadiness:
    def setup_method(self):
        self.detector = SentinelReadiness()

    def test_sentinel_marks_ready_and_is_stripped(self):
        result = self.detector.detect("Great, I have everything I need! [READY]")
        assert result.ready is True
        assert result.clean_reply == "Great, I have everything I need!"

    def test_sentinel_in_middle(self):
        result = self.detector.detect("Got it.  [READY]  Searching now.")
        assert result.ready is True
        assert "[READY]" not in result.clean_reply
        assert result.clean_reply == "Got it. Searching now."

    def test_question_not_ready(self):
        result = self.detector.detect("How strong is your dog's jaw?")
        assert result.ready is False
        assert result.clean_reply == "How strong is your dog's jaw?"

    def test_retry_phrase_counts_as_ready(self):
        assert self.detector.detect("No problem, let me search again without egg.").ready is True
        assert self.detector.detect("계란 빼고 다시 찾아볼게요!").ready is True

    def test_empty_reply(self):
        result = self.detector.detect("")
        assert result.ready is False
        assert result.clean_reply == ""

    def test_custom_sentinel_without_retry_pattern(self):
        detector = SentinelReadiness(sentinel="<<GO>>", retry_pattern=None)
        assert detector.detect("search again").ready is False
        result = detector.detect("Okay <<GO>>")
        assert result.ready is True
        assert result.clean_reply == "Okay"
