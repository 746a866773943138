"""
Conversation memory module.

Builds the context a coworker persona needs to remember earlier exchanges
with the candidate in the same assessment: a verbatim tail of recent
messages, a model-written summary of older history, and a short note about
conversations the candidate had with other coworkers.
"""

import logging

from pydantic import BaseModel, Field

from worksim_assessment.config import get_settings
from worksim_assessment.models.llm_client import LLMClientBase
from worksim_assessment.schemas import ChatMessage, ConversationRecord, ConversationType

logger = logging.getLogger(__name__)

# Conversation types that count as direct contact with a coworker
MEMORY_CONVERSATION_TYPES = (ConversationType.TEXT, ConversationType.VOICE)

PREVIEW_CHARS = 100
DIGEST_MESSAGE_CHARS = 150
DIGEST_EDGE_MESSAGES = 2


class CoworkerMemory(BaseModel):
    """Memory context for one coworker."""

    has_prior_conversations: bool = Field(default=False)
    summary: str | None = Field(default=None, description="Summary of older history")
    recent_messages: list[ChatMessage] = Field(default_factory=list)
    total_message_count: int = Field(default=0)


def _truncate(text: str, limit: int) -> str:
    return text[:limit] + ("..." if len(text) > limit else "")


class ConversationMemoryBuilder:
    """
    Builds coworker memory from stored conversation transcripts.

    Output is deterministic for the same ordered input, apart from the text
    returned by the summarizer.
    """

    def __init__(
        self,
        llm_client: LLMClientBase,
        max_recent_messages: int | None = None,
        min_messages_for_summary: int | None = None,
        max_summary_input_chars: int | None = None,
        summary_model: str | None = None,
    ) -> None:
        """
        Initialize the builder.

        Args:
            llm_client: Text generation capability used for summaries.
            max_recent_messages: Messages kept verbatim (uses config if not provided).
            min_messages_for_summary: History length above which older
                messages are summarized (uses config if not provided).
            max_summary_input_chars: Character cap on the summarizer input
                (uses config if not provided).
            summary_model: Model for summarization calls (uses config if not provided).
        """
        settings = get_settings()
        self._llm = llm_client
        self._max_recent = (
            settings.memory_max_recent_messages if max_recent_messages is None else max_recent_messages
        )
        self._min_for_summary = (
            settings.memory_min_messages_for_summary
            if min_messages_for_summary is None
            else min_messages_for_summary
        )
        self._max_summary_chars = max_summary_input_chars or settings.memory_max_summary_input_chars
        self._summary_model = summary_model or settings.summary_model

    async def build_coworker_memory(
        self,
        conversations: list[ConversationRecord],
        coworker_id: str,
        coworker_name: str,
    ) -> CoworkerMemory:
        """
        Build memory for a coworker from the assessment's conversations.

        Args:
            conversations: Conversations of the assessment, in creation order.
            coworker_id: Coworker the memory is for.
            coworker_name: Coworker display name, used in the summary prompt.

        Returns:
            The coworker's memory context.
        """
        messages: list[ChatMessage] = []
        for conv in conversations:
            if conv.coworker_id == coworker_id and conv.type in MEMORY_CONVERSATION_TYPES:
                messages.extend(conv.messages)

        total = len(messages)
        if total == 0:
            return CoworkerMemory()

        recent = messages[-self._max_recent :] if self._max_recent > 0 else []
        older = messages[: total - len(recent)]

        summary = None
        if total > self._min_for_summary and older:
            summary = await self._summarize(older, coworker_name)

        return CoworkerMemory(
            has_prior_conversations=True,
            summary=summary,
            recent_messages=recent,
            total_message_count=total,
        )

    async def _summarize(self, messages: list[ChatMessage], coworker_name: str) -> str:
        lines = [
            f"{'Candidate' if m.role == 'user' else coworker_name}: {m.text}" for m in messages
        ]
        transcript = "\n".join(lines)
        if len(transcript) > self._max_summary_chars:
            # Keep the newest text; older lines are dropped first.
            transcript = transcript[-self._max_summary_chars :]
            newline = transcript.find("\n")
            if newline != -1:
                transcript = transcript[newline + 1 :]

        prompt = (
            f"Summarize the following conversation between a job candidate and "
            f"{coworker_name} (a coworker).\n"
            "Focus on:\n"
            "- Key topics discussed\n"
            "- Important information shared\n"
            "- Questions the candidate asked\n"
            "- Commitments or follow-ups mentioned\n\n"
            f"Keep it to 2-4 sentences, written from {coworker_name}'s perspective "
            '(e.g. "We discussed...", "They asked about...").\n\n'
            f"Conversation:\n{transcript}\n\nSummary:"
        )

        try:
            summary = await self._llm.generate_content(prompt, model=self._summary_model)
        except Exception as e:
            logger.warning(f"Conversation summary failed for {coworker_name}: {e}")
            summary = ""
        return summary.strip() or f"We have had {len(messages)} previous exchanges."

    def build_cross_coworker_context(
        self,
        conversations: list[ConversationRecord],
        current_coworker_id: str,
        coworker_names: dict[str, str],
    ) -> str:
        """
        Describe the candidate's conversations with other coworkers.

        Args:
            conversations: Conversations of the assessment.
            current_coworker_id: Coworker the context is built for.
            coworker_names: Coworker id to display name.

        Returns:
            A prompt section, or "" when no other coworker has a candidate message.
        """
        interactions: list[str] = []
        for conv in conversations:
            if conv.coworker_id is None or conv.coworker_id == current_coworker_id:
                continue
            last_user = next((m for m in reversed(conv.messages) if m.role == "user"), None)
            if last_user is None:
                continue
            name = coworker_names.get(conv.coworker_id, "a coworker")
            interactions.append(
                f"- The candidate has also been talking with {name} "
                f'({len(conv.messages)} messages). Recent topic: "{_truncate(last_user.text, PREVIEW_CHARS)}"'
            )

        if not interactions:
            return ""

        return (
            "\n## Context About Other Conversations\n"
            "The candidate has been reaching out to other team members. "
            "This is normal and encouraged.\n"
            + "\n".join(interactions)
            + "\n\nYou can acknowledge these interactions if relevant, "
            "but don't pry into their conversations with others."
        )

    @staticmethod
    def format_memory_for_prompt(memory: CoworkerMemory) -> str:
        """Render a coworker memory as a system prompt section."""
        if not memory.has_prior_conversations:
            return ""

        sections = [
            "\n## Prior Conversation History",
            "You have had previous conversations with this candidate. "
            "Remember and reference these when relevant.",
        ]
        if memory.summary:
            sections.append(f"\n### Summary of Earlier Conversations\n{memory.summary}")
        if memory.recent_messages:
            sections.append("\n### Recent Messages")
            sections.append(
                "\n".join(
                    f"{'Candidate' if m.role == 'user' else 'You'}: {m.text}"
                    for m in memory.recent_messages
                )
            )
        sections.append(
            "\nContinue the conversation naturally. Don't repeat information "
            "you've already shared unless asked."
        )
        return "\n".join(sections)

    @staticmethod
    def format_conversations_for_summary(
        conversations: list[ConversationRecord],
        coworker_names: dict[str, str],
    ) -> str:
        """
        Digest every conversation into its opening and closing messages.

        Used to brief the manager persona before the PR defense call.

        Args:
            conversations: Conversations of the assessment.
            coworker_names: Coworker id to display name.

        Returns:
            The digest, or a placeholder line when there were no conversations.
        """
        blocks: list[str] = []
        for conv in conversations:
            if not conv.messages:
                continue
            name = (
                coworker_names.get(conv.coworker_id, "a coworker")
                if conv.coworker_id
                else "System"
            )
            edge = DIGEST_EDGE_MESSAGES
            if len(conv.messages) > edge * 2:
                shown = [*conv.messages[:edge], None, *conv.messages[-edge:]]
            else:
                shown = list(conv.messages)

            lines = [f"### {name} ({conv.type.value}, {len(conv.messages)} messages)"]
            for message in shown:
                if message is None:
                    lines.append("...")
                    continue
                speaker = "Candidate" if message.role == "user" else name
                lines.append(f"{speaker}: {_truncate(message.text, DIGEST_MESSAGE_CHARS)}")
            blocks.append("\n".join(lines))

        if not blocks:
            return "No conversations with coworkers yet."
        return "\n\n".join(blocks)
