"""
Tests for coworker conversation memory.
"""

import pytest

from worksim_assessment.db import ConversationRepository, session_scope
from worksim_assessment.errors import AnalysisError
from worksim_assessment.memory import ConversationMemoryBuilder, CoworkerMemory
from worksim_assessment.schemas import ChatMessage, ConversationRecord, ConversationType

from conftest import FakeLLMClient, add_conversation, seed_assessment

NAMES = {"alex": "Alex Chen", "sam": "Sam Rivera"}


def _conversation(
    coworker_id: str | None,
    texts: list[str],
    conversation_type: ConversationType = ConversationType.TEXT,
) -> ConversationRecord:
    # alternate candidate and coworker, starting with the candidate
    messages = [
        ChatMessage(role="user" if i % 2 == 0 else "model", text=text) for i, text in enumerate(texts)
    ]
    return ConversationRecord(
        assessment_id="a-1",
        coworker_id=coworker_id,
        type=conversation_type,
        messages=messages,
    )


class TestBuildCoworkerMemory:
    """Tests for build_coworker_memory."""

    @pytest.mark.asyncio
    async def test_no_conversations(self) -> None:
        builder = ConversationMemoryBuilder(FakeLLMClient())

        memory = await builder.build_coworker_memory([], "alex", "Alex Chen")

        assert memory == CoworkerMemory()
        assert builder.format_memory_for_prompt(memory) == ""

    @pytest.mark.asyncio
    async def test_short_history_is_verbatim(self) -> None:
        llm = FakeLLMClient()
        builder = ConversationMemoryBuilder(llm)

        memory = await builder.build_coworker_memory(
            [_conversation("alex", ["hi", "hello", "question?"])], "alex", "Alex Chen"
        )

        assert memory.has_prior_conversations is True
        assert memory.summary is None
        assert [m.text for m in memory.recent_messages] == ["hi", "hello", "question?"]
        assert memory.total_message_count == 3
        assert llm.calls == []

    @pytest.mark.asyncio
    async def test_text_and_voice_are_merged_in_order(self) -> None:
        builder = ConversationMemoryBuilder(FakeLLMClient())
        conversations = [
            _conversation("alex", ["t1", "t2"]),
            _conversation("sam", ["other"]),
            _conversation("alex", ["k1"], ConversationType.KICKOFF),
            _conversation("alex", ["v1", "v2"], ConversationType.VOICE),
        ]

        memory = await builder.build_coworker_memory(conversations, "alex", "Alex Chen")

        assert [m.text for m in memory.recent_messages] == ["t1", "t2", "v1", "v2"]

    @pytest.mark.asyncio
    async def test_older_history_is_summarized(self) -> None:
        llm = FakeLLMClient(["  We discussed the pagination design.  "])
        builder = ConversationMemoryBuilder(llm, max_recent_messages=4)
        texts = [f"m{i}" for i in range(10)]

        memory = await builder.build_coworker_memory([_conversation("alex", texts)], "alex", "Alex Chen")

        assert memory.summary == "We discussed the pagination design."
        assert [m.text for m in memory.recent_messages] == ["m6", "m7", "m8", "m9"]
        assert memory.total_message_count == 10
        prompt = llm.calls[0]["prompt"]
        assert "Candidate: m0" in prompt
        assert "Alex Chen: m5" in prompt
        assert "m6" not in prompt

    @pytest.mark.asyncio
    async def test_summary_input_keeps_newest_text(self) -> None:
        llm = FakeLLMClient(["summary"])
        builder = ConversationMemoryBuilder(llm, max_recent_messages=1, max_summary_input_chars=60)
        texts = [f"message number {i:02d}" for i in range(8)]

        await builder.build_coworker_memory([_conversation("alex", texts)], "alex", "Alex Chen")

        prompt = llm.calls[0]["prompt"]
        assert "message number 06" in prompt
        assert "message number 00" not in prompt

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [AnalysisError("unavailable"), RuntimeError("connection reset"), TimeoutError()],
        ids=["analysis_error", "transport_error", "timeout"],
    )
    async def test_summary_failure_falls_back(self, error) -> None:
        builder = ConversationMemoryBuilder(FakeLLMClient([error]), max_recent_messages=2)

        memory = await builder.build_coworker_memory(
            [_conversation("alex", ["a", "b", "c", "d", "e", "f"])], "alex", "Alex Chen"
        )

        assert memory.summary == "We have had 4 previous exchanges."

    @pytest.mark.asyncio
    async def test_memory_from_stored_conversations(self, session_factory) -> None:
        ids = await seed_assessment(session_factory)
        await add_conversation(session_factory, ids["assessment_id"], ids["alex_id"], [("user", "Hi"), ("model", "Hey")])

        async with session_scope(session_factory) as session:
            records = await ConversationRepository(session).list_records(ids["assessment_id"])
        memory = await ConversationMemoryBuilder(FakeLLMClient()).build_coworker_memory(
            records, ids["alex_id"], "Alex Chen"
        )

        assert [m.role for m in memory.recent_messages] == ["user", "model"]


class TestCrossCoworkerContext:
    def test_mentions_other_coworkers(self) -> None:
        builder = ConversationMemoryBuilder(FakeLLMClient())
        long_question = "x" * 150
        conversations = [
            _conversation("alex", ["hi alex"]),
            _conversation("sam", [long_question, "answer"]),
            _conversation(None, ["system hello"]),
        ]

        context = builder.build_cross_coworker_context(conversations, "alex", NAMES)

        assert "Sam Rivera (2 messages)" in context
        assert "x" * 100 + '..."' in context
        assert "hi alex" not in context
        assert "system hello" not in context

    def test_empty_without_candidate_messages(self) -> None:
        builder = ConversationMemoryBuilder(FakeLLMClient())
        conversations = [
            ConversationRecord(
                assessment_id="a-1",
                coworker_id="sam",
                type=ConversationType.TEXT,
                messages=[ChatMessage(role="model", text="ping")],
            )
        ]

        assert builder.build_cross_coworker_context(conversations, "alex", NAMES) == ""


class TestFormatting:
    def test_format_memory_for_prompt(self) -> None:
        memory = CoworkerMemory(
            has_prior_conversations=True,
            summary="We discussed the API.",
            recent_messages=[ChatMessage(role="user", text="Thanks"), ChatMessage(role="model", text="Anytime")],
            total_message_count=8,
        )

        text = ConversationMemoryBuilder.format_memory_for_prompt(memory)

        assert "We discussed the API." in text
        assert "Candidate: Thanks" in text
        assert "You: Anytime" in text

    def test_format_conversations_for_summary(self) -> None:
        conversations = [
            _conversation("alex", ["one", "two", "three", "four", "five"]),
            _conversation(None, ["welcome"], ConversationType.KICKOFF),
            _conversation("sam", []),
        ]

        digest = ConversationMemoryBuilder.format_conversations_for_summary(conversations, NAMES)

        blocks = digest.split("\n\n")
        assert blocks[0].splitlines() == [
            "### Alex Chen (text, 5 messages)",
            "Candidate: one",
            "Alex Chen: two",
            "...",
            "Alex Chen: four",
            "Candidate: five",
        ]
        assert blocks[1].startswith("### System (kickoff, 1 messages)")
        assert len(blocks) == 2

    def test_format_conversations_for_summary_empty(self) -> None:
        assert ConversationMemoryBuilder.format_conversations_for_summary([], NAMES) == (
            "No conversations with coworkers yet."
        )
