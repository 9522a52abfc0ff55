"""Tests for history reducers."""

import pytest

from deskcrew.orchestrator import (
    AgentReply,
    KeepAllReducer,
    Transcript,
    TruncationReducer,
    create_history_reducer,
    format_history,
)


def build_transcript(count: int) -> Transcript:
    transcript = Transcript()
    transcript.add_user_message("question")
    for i in range(1, count):
        transcript.add_agent_message(AgentReply(author="Coach", content=f"reply {i}"))
    return transcript


class TestTruncationReducer:
    """Tests for TruncationReducer."""

    def test_keeps_last_message(self) -> None:
        messages = build_transcript(4).messages()
        reduced = TruncationReducer(1).reduce(messages)
        assert reduced == (messages[-1],)

    def test_shorter_history_is_unchanged(self) -> None:
        messages = build_transcript(2).messages()
        assert TruncationReducer(5).reduce(messages) == messages

    def test_does_not_modify_input(self) -> None:
        messages = list(build_transcript(3).messages())
        TruncationReducer(1).reduce(messages)
        assert len(messages) == 3

    def test_empty_history(self) -> None:
        assert TruncationReducer(1).reduce(()) == ()

    def test_invalid_target(self) -> None:
        with pytest.raises(ValueError):
            TruncationReducer(0)


class TestCreateHistoryReducer:
    """Tests for the reducer factory."""

    def test_positive_depth_truncates(self) -> None:
        reducer = create_history_reducer(2)
        assert isinstance(reducer, TruncationReducer)
        assert reducer.target_count == 2

    def test_zero_keeps_all(self) -> None:
        assert isinstance(create_history_reducer(0), KeepAllReducer)


class TestFormatHistory:
    """Tests for rendering history into prompts."""

    def test_empty(self) -> None:
        assert format_history(()) == "(No messages)"

    def test_authors_are_labelled(self) -> None:
        messages = build_transcript(2).messages()
        rendered = format_history(messages)
        assert rendered == "USER: question\n\nCOACH: reply 1"

    def test_long_content_is_clipped(self) -> None:
        transcript = Transcript()
        transcript.add_user_message("x" * 50)
        rendered = format_history(transcript.messages(), max_chars=10)
        assert rendered == "USER: " + "x" * 10 + "..."
