"""Tests for the LLM enrichment passes, with a fake client instead of the API."""
import threading
from types import SimpleNamespace

import anthropic
import httpx
import pytest
from conftest import make_event

from config import MissingCredentialsError, require_api_key
from phase_1_parse.event_store import EventCollection, load_collection, save_collection
from phase_2_enrich.batch_runner import run_batch
from phase_2_enrich.enrich_events import (
    EnrichmentAbortedError,
    run_enrichment_pass,
    run_with_test_first,
    select_events,
)
from phase_2_enrich.llm_client import LLMCallError, LLMClient, estimate_cost
from phase_2_enrich.prompts import (
    PASS_CONFIGS,
    build_user_prompt,
    normalize_sentiment,
    parse_summary,
    truncate_input,
)

USAGE = {"input_tokens": 10, "output_tokens": 5, "cost": 0.001, "retries": 0}


class FakeLLM:
    """Answers from a function of the user prompt; records every call."""

    def __init__(self, answer):
        self.answer = answer
        self.prompts = []
        self._lock = threading.Lock()

    def complete(self, model, system_prompt, user_prompt, max_tokens):
        with self._lock:
            self.prompts.append(user_prompt)
        return self.answer(user_prompt), dict(USAGE)


def user_msg(text, **kwargs):
    return make_event(type="user_message", category="user", message=text, role="user", **kwargs)


class TestPrompts:

    @pytest.mark.parametrize("reply,label", [
        ("delighted", "delighted"),
        ("Very Upset", "very_upset"),
        ("  VERY_DELIGHTED\n", "very_delighted"),
        ("The sentiment is: upset.", "upset"),
        ("no idea", "neutral"),
        ("", "neutral"),
    ])
    def test_normalize_sentiment(self, reply, label):
        assert normalize_sentiment(reply) == label

    def test_parse_summary_first_line_unquoted(self):
        assert parse_summary('\n"Added persona notes."\nextra') == "Added persona notes."
        assert parse_summary("   ") is None

    def test_truncate_input(self):
        assert truncate_input("  hi  ", 10) == "hi"
        assert truncate_input("abcdef", 3) == "abc…"

    def test_mods_prompt_names_file(self):
        event = make_event(category="USER.md", message="prefers tea")
        prompt = build_user_prompt(PASS_CONFIGS["mods"], event)
        assert "File: USER.md" in prompt
        assert "prefers tea" in prompt


class TestSelectEvents:
    """Selection by type, field presence, --force and --limit."""

    def test_summary_selects_md_writes_without_summary(self):
        events = [
            make_event(message="a"),
            make_event(message="b", summary="done"),
            make_event(message="   "),
            user_msg("hi"),
        ]
        selected = select_events(events, PASS_CONFIGS["summary"])
        assert [e.message for e in selected] == ["a"]

    def test_mods_only_target_files(self):
        events = [make_event(category="SOUL.md", message="a"),
                  make_event(category="TOOLS.md", message="b"),
                  make_event(category="NOTES.md", message="c")]
        assert [e.category for e in select_events(events, PASS_CONFIGS["mods"])] == ["SOUL.md"]

    def test_force_and_limit(self):
        events = [user_msg(str(i), sentiment="upset") for i in range(5)]
        assert select_events(events, PASS_CONFIGS["sentiment"]) == []
        assert len(select_events(events, PASS_CONFIGS["sentiment"], force=True, limit=2)) == 2


class TestRunEnrichmentPass:

    def test_summary_pass_sets_field(self):
        collection = EventCollection(events=[make_event(message="a"), make_event(message="b")])
        llm = FakeLLM(lambda prompt: "Short summary.")
        stats = run_enrichment_pass(collection, "summary", llm)
        assert stats["ok"] == 2
        assert stats["errors"] == 0
        assert all(e.summary == "Short summary." for e in collection.events)
        assert stats["cost"] == pytest.approx(0.002)

    def test_mods_pass_writes_mod_summary(self):
        collection = EventCollection(events=[make_event(category="MEMORY.md", message="notes")])
        run_enrichment_pass(collection, "mods", FakeLLM(lambda p: "Logged weekly notes"))
        assert collection.events[0].mod_summary == "Logged weekly notes"
        assert collection.events[0].to_dict()["modSummary"] == "Logged weekly notes"

    def test_sentiment_failure_defaults_to_neutral(self):
        def answer(prompt):
            if "broken" in prompt:
                raise LLMCallError("failed after 3 attempts")
            return "Delighted"

        collection = EventCollection(events=[user_msg("thanks!"), user_msg("broken one")])
        stats = run_enrichment_pass(collection, "sentiment", FakeLLM(answer))
        assert [e.sentiment for e in collection.events] == ["delighted", "neutral"]
        assert stats["ok"] == 1
        assert stats["errors"] == 1
        assert "failed after 3 attempts" in stats["error_messages"][0]

    def test_summary_failure_leaves_field_empty(self):
        def answer(prompt):
            raise LLMCallError("boom")

        collection = EventCollection(events=[make_event(message="a")])
        stats = run_enrichment_pass(collection, "summary", FakeLLM(answer))
        assert collection.events[0].summary is None
        assert stats["errors"] == 1

    def test_rerun_skips_done_events(self):
        collection = EventCollection(events=[make_event(message="a")])
        llm = FakeLLM(lambda p: "S")
        run_enrichment_pass(collection, "summary", llm)
        stats = run_enrichment_pass(collection, "summary", llm)
        assert stats["total"] == 0
        assert len(llm.prompts) == 1

    def test_force_redoes(self):
        collection = EventCollection(events=[make_event(message="a", summary="old")])
        run_enrichment_pass(collection, "summary", FakeLLM(lambda p: "new"), force=True)
        assert collection.events[0].summary == "new"

    def test_checkpoint_written(self, events_path):
        collection = EventCollection(events=[make_event(message="a")])
        save_collection(collection, events_path)
        collection.events[0].summary = None
        run_enrichment_pass(collection, "summary", FakeLLM(lambda p: "S"), events_path=events_path)
        # One item never reaches the checkpoint interval; the caller saves at the end
        assert load_collection(events_path).events[0].summary is None


class TestTestFirst:

    def test_aborts_on_error(self):
        def answer(prompt):
            raise LLMCallError("bad key")

        collection = EventCollection(events=[make_event(message=str(i)) for i in range(3)])
        with pytest.raises(EnrichmentAbortedError, match="bad key"):
            run_with_test_first(collection, "summary", FakeLLM(answer))

    def test_runs_rest_after_clean_test(self):
        collection = EventCollection(events=[make_event(message=str(i)) for i in range(12)])
        llm = FakeLLM(lambda p: "S")
        stats = run_with_test_first(collection, "summary", llm)
        assert stats["ok"] == 12
        assert len(llm.prompts) == 12
        assert all(e.summary == "S" for e in collection.events)

    def test_force_redoes_everything(self):
        collection = EventCollection(events=[make_event(message=str(i), summary="old") for i in range(12)])
        stats = run_with_test_first(collection, "summary", FakeLLM(lambda p: "new"), force=True)
        assert stats["ok"] == 12
        assert all(e.summary == "new" for e in collection.events)


class TestRunBatch:
    """Checkpoints fire every save_interval completions, ok or not."""

    def test_checkpoint_interval(self):
        saves = []

        def task(item):
            if item % 7 == 0:
                raise ValueError("seven")
            return item

        stats = run_batch(list(range(1, 121)), task=task, apply=lambda item, value: True,
                          concurrency=4, save_interval=50, on_checkpoint=lambda: saves.append(1))
        assert len(saves) == 2
        assert stats["total"] == 120
        assert stats["errors"] == 17
        assert stats["ok"] == 103

    def test_empty_value_counted(self):
        stats = run_batch([1, 2], task=lambda i: None, apply=lambda item, value: bool(value))
        assert stats["empty"] == 2
        assert stats["ok"] == 0

    def test_apply_runs_on_calling_thread(self):
        caller = threading.current_thread()
        seen = []
        run_batch([1, 2, 3], task=lambda i: i, concurrency=3,
                  apply=lambda item, value: seen.append(threading.current_thread()) or True)
        assert seen == [caller] * 3

    def test_apply_error_cancels_queued_tasks(self):
        gate = threading.Event()
        started = []

        def task(item):
            started.append(item)
            if item > 1:
                gate.wait(timeout=1)
            return item

        def apply(item, value):
            raise ValueError("bad result")

        with pytest.raises(ValueError, match="bad result"):
            run_batch(list(range(20)), task=task, apply=apply, concurrency=1)
        assert len(started) <= 3


class TestLLMClient:

    def _response(self, text):
        return SimpleNamespace(
            content=[SimpleNamespace(text=text)],
            usage=SimpleNamespace(input_tokens=100, output_tokens=20),
        )

    def test_complete(self):
        calls = []

        def create(**kwargs):
            calls.append(kwargs)
            return self._response("neutral")

        client = SimpleNamespace(messages=SimpleNamespace(create=create))
        text, usage = LLMClient(client=client).complete("claude-haiku-4-5-20251001", "sys", "hi", 20)
        assert text == "neutral"
        assert usage["input_tokens"] == 100
        assert calls[0]["max_tokens"] == 20
        assert calls[0]["messages"] == [{"role": "user", "content": "hi"}]

    def test_retries_then_raises(self):
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        attempts = []

        def create(**kwargs):
            attempts.append(1)
            raise anthropic.APIConnectionError(request=request)

        client = SimpleNamespace(messages=SimpleNamespace(create=create))
        llm = LLMClient(client=client, sleep=lambda s: None)
        with pytest.raises(LLMCallError):
            llm.complete("m", "s", "u", 10)
        assert len(attempts) == 3

    def test_recovers_after_error(self):
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        attempts = []

        def create(**kwargs):
            attempts.append(1)
            if len(attempts) == 1:
                raise anthropic.APIConnectionError(request=request)
            return self._response("ok")

        client = SimpleNamespace(messages=SimpleNamespace(create=create))
        text, usage = LLMClient(client=client, sleep=lambda s: None).complete("m", "s", "u", 10)
        assert text == "ok"
        assert usage["retries"] == 1

    def test_estimate_cost(self):
        assert estimate_cost("claude-haiku-4-5-20251001", 1_000_000, 1_000_000) == pytest.approx(4.80)


class TestCredentials:

    def test_missing_key_fails_fast(self, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        with pytest.raises(MissingCredentialsError):
            require_api_key()

    def test_client_created_lazily_needs_key(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "  ")
        llm = LLMClient()
        with pytest.raises(MissingCredentialsError):
            llm.client
