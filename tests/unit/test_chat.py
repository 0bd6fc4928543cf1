"""Unit tests for the chat layer.

All tests run **without** an LLM server by injecting a fake streaming
chat model.  The suite validates:

- Conversation memory ordering and windowing
- Streaming, deadline handling and stream release in the controller
- Warm-up isolation
- Session bookkeeping (what ends up in memory)
- LLM factory configuration
"""

from __future__ import annotations

import asyncio
from unittest.mock import patch

import pytest

from pdf_rag.chat.generation import TIMEOUT_SENTINEL, GenerationController, GenerationResult
from pdf_rag.chat.llm import get_llm
from pdf_rag.chat.memory import ConversationMemory, ConversationTurn
from pdf_rag.chat.session import ChatSession
from pdf_rag.exceptions import EmbeddingUnavailable, GenerationUnavailable
from pdf_rag.ingestion.embedder import Embedder
from pdf_rag.retrieval.context import ContextAssembler
from pdf_rag.retrieval.retriever import SemanticRetriever


# ── Conversation memory ────────────────────────────────────────────────


class TestConversationMemory:
    def test_turns_are_stripped_and_ordered(self) -> None:
        memory = ConversationMemory()
        memory.add_turn("  first question \n")
        memory.add_turn("first answer", role="assistant")

        assert memory.all_turns() == ["first question", "first answer"]
        assert memory.turns == (
            ConversationTurn("user", "first question"),
            ConversationTurn("assistant", "first answer"),
        )
        assert len(memory) == 2

    def test_recent_turns_returns_last_n_chronologically(self) -> None:
        memory = ConversationMemory()
        for i in range(7):
            memory.add_turn(f"t{i}")
        assert memory.recent_turns(5) == ["t2", "t3", "t4", "t5", "t6"]

    def test_recent_turns_with_short_history(self) -> None:
        memory = ConversationMemory()
        memory.add_turn("only")
        assert memory.recent_turns(5) == ["only"]

    def test_recent_turns_non_positive(self) -> None:
        memory = ConversationMemory()
        memory.add_turn("x")
        assert memory.recent_turns(0) == []

    def test_sessions_do_not_share_memory(self) -> None:
        a, b = ConversationMemory(), ConversationMemory()
        a.add_turn("hello")
        assert b.all_turns() == []


# ── Generation controller ──────────────────────────────────────────────


class TestGenerationController:
    @pytest.mark.asyncio
    async def test_completed_stream(self, chat_factory) -> None:
        llm = chat_factory(["Hello", "", " world"])
        seen: list[str] = []
        result = await GenerationController(llm, timeout=5).generate("prompt", on_fragment=seen.append)

        assert result == GenerationResult(answer="Hello world", timed_out=False)
        assert seen == ["Hello", " world"]
        assert llm.prompts == ["prompt"]

    @pytest.mark.asyncio
    async def test_timeout_keeps_partial_answer(self, chat_factory) -> None:
        llm = chat_factory(["a", "b", "c", "d"], delay=0.05)
        seen: list[str] = []
        result = await GenerationController(llm).generate("p", timeout=0.12, on_fragment=seen.append)

        assert result.timed_out is True
        assert result.answer.endswith(TIMEOUT_SENTINEL)
        partial = result.answer[: -len(TIMEOUT_SENTINEL)]
        assert partial == "".join(seen)
        assert 0 < len(seen) < 4

    @pytest.mark.asyncio
    async def test_timeout_with_no_fragments(self, chat_factory) -> None:
        llm = chat_factory(["late"], delay=1.0)
        result = await GenerationController(llm).generate("p", timeout=0.01)
        assert result.answer == TIMEOUT_SENTINEL
        assert result.timed_out

    @pytest.mark.asyncio
    async def test_stream_closed_on_success(self, chat_factory) -> None:
        llm = chat_factory(["x"])
        await GenerationController(llm).generate("p")
        assert (llm.opened, llm.closed) == (1, 1)

    @pytest.mark.asyncio
    async def test_stream_closed_on_timeout(self, chat_factory) -> None:
        llm = chat_factory(["x"] * 10, delay=0.05)
        await GenerationController(llm).generate("p", timeout=0.07)
        assert (llm.opened, llm.closed) == (1, 1)

    @pytest.mark.asyncio
    async def test_stream_error_becomes_generation_unavailable(self, chat_factory) -> None:
        llm = chat_factory(["partial"], error=ConnectionError("connection refused"))
        with pytest.raises(GenerationUnavailable, match="connection refused"):
            await GenerationController(llm).generate("p")
        assert llm.closed == 1

    @pytest.mark.asyncio
    async def test_stream_closed_when_consumer_callback_fails(self, chat_factory) -> None:
        llm = chat_factory(["a", "b"])

        def explode(_: str) -> None:
            raise RuntimeError("terminal gone")

        with pytest.raises(GenerationUnavailable):
            await GenerationController(llm).generate("p", on_fragment=explode)
        assert llm.closed == 1


class TestWarmUp:
    @pytest.mark.asyncio
    async def test_failure_is_swallowed(self, chat_factory) -> None:
        llm = chat_factory(error=ConnectionError("not up yet"))
        task = GenerationController(llm).start_warm_up(timeout=1)
        assert await task is None
        assert llm.opened == 1

    @pytest.mark.asyncio
    async def test_own_short_deadline(self, chat_factory) -> None:
        llm = chat_factory(["slow"], delay=5)
        controller = GenerationController(llm, timeout=250)
        await asyncio.wait_for(controller.start_warm_up(timeout=0.02), timeout=1)
        assert llm.closed == 1

    @pytest.mark.asyncio
    async def test_can_be_cancelled(self, chat_factory) -> None:
        llm = chat_factory(["slow"], delay=5)
        task = GenerationController(llm).start_warm_up(timeout=10)
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task


# ── Session ────────────────────────────────────────────────────────────


@pytest.fixture()
def session_parts(store_factory, embedder: Embedder, match_factory):
    store = store_factory(canned=[match_factory(0.9, page=2, content="Failover is automatic."), match_factory(0.2)])
    retriever = SemanticRetriever(store, embedder)
    return store, retriever


class TestChatSession:
    @pytest.mark.asyncio
    async def test_ask_records_question_and_answer(self, session_parts, chat_factory) -> None:
        _, retriever = session_parts
        llm = chat_factory(["It is ", "automatic."])
        session = ChatSession(retriever, GenerationController(llm))

        seen: list[str] = []
        answer = await session.ask("  How does failover work? ", on_fragment=seen.append)

        assert answer.answer == "It is automatic."
        assert not answer.timed_out
        assert answer.references == ["[90.00%] guide.pdf (Page 2)"]
        assert seen == ["It is ", "automatic."]
        assert session.memory.all_turns() == ["How does failover work?", "It is automatic."]
        assert "[Page 2 - guide.pdf] Failover is automatic." in llm.prompts[0]

    @pytest.mark.asyncio
    async def test_prompt_history_excludes_current_question(self, session_parts, chat_factory) -> None:
        _, retriever = session_parts
        llm = chat_factory(["ok"])
        session = ChatSession(retriever, GenerationController(llm))
        await session.ask("first")
        await session.ask("second")

        second_prompt = llm.prompts[1]
        assert "Previous conversation:\nfirst\nok\n" in second_prompt
        assert second_prompt.count("second") == 1

    @pytest.mark.asyncio
    async def test_timed_out_answer_is_recorded(self, session_parts, chat_factory) -> None:
        _, retriever = session_parts
        llm = chat_factory(["partial", " more"], delay=0.05)
        session = ChatSession(retriever, GenerationController(llm, timeout=0.07))

        answer = await session.ask("q")
        assert answer.timed_out
        assert session.memory.all_turns()[-1] == answer.answer.strip()
        assert session.memory.all_turns()[-1].endswith("[Timed out]")

    @pytest.mark.asyncio
    async def test_generation_failure_propagates(self, session_parts, chat_factory) -> None:
        _, retriever = session_parts
        session = ChatSession(retriever, GenerationController(chat_factory(error=ConnectionError("down"))))

        with pytest.raises(GenerationUnavailable):
            await session.ask("q")
        assert session.memory.all_turns() == ["q"]

    @pytest.mark.asyncio
    async def test_retrieval_failure_records_nothing(self, store_factory, embeddings_factory, chat_factory) -> None:
        embedder = Embedder(embeddings_factory(fail_on=["q"]), dimension=8)
        session = ChatSession(SemanticRetriever(store_factory(canned=[]), embedder), GenerationController(chat_factory()))

        with pytest.raises(EmbeddingUnavailable):
            await session.ask("q")
        assert len(session.memory) == 0

    @pytest.mark.asyncio
    async def test_blank_query_rejected(self, session_parts, chat_factory) -> None:
        _, retriever = session_parts
        session = ChatSession(retriever, GenerationController(chat_factory()))
        with pytest.raises(ValueError):
            await session.ask("   ")

    @pytest.mark.asyncio
    async def test_custom_assembler_is_used(self, session_parts, chat_factory) -> None:
        _, retriever = session_parts
        session = ChatSession(
            retriever,
            GenerationController(chat_factory(["ok"])),
            assembler=ContextAssembler(score_threshold=0.95),
        )
        answer = await session.ask("q")
        assert answer.references == []


# ── LLM factory ────────────────────────────────────────────────────────


class TestGetLlm:
    def test_local_endpoint_uses_dummy_key(self) -> None:
        with patch("pdf_rag.chat.llm.settings") as mock_settings, patch("pdf_rag.chat.llm.ChatOpenAI") as chat_cls:
            mock_settings.llm_model_name = "phi3:mini"
            mock_settings.llm_temperature = 0.0
            mock_settings.llm_base_url = "http://localhost:11434/v1"
            mock_settings.openai_api_key = ""
            get_llm()

        kwargs = chat_cls.call_args.kwargs
        assert kwargs["base_url"] == "http://localhost:11434/v1"
        assert kwargs["api_key"] == "EMPTY"
        assert kwargs["streaming"] is True

    def test_cloud_endpoint(self) -> None:
        with patch("pdf_rag.chat.llm.settings") as mock_settings, patch("pdf_rag.chat.llm.ChatOpenAI") as chat_cls:
            mock_settings.llm_model_name = "gpt-4o-mini"
            mock_settings.llm_temperature = 0.0
            mock_settings.llm_base_url = ""
            mock_settings.openai_api_key = "sk-test"
            get_llm(temperature=0.3)

        kwargs = chat_cls.call_args.kwargs
        assert "base_url" not in kwargs
        assert kwargs["api_key"] == "sk-test"
        assert kwargs["temperature"] == 0.3
