import json
from pathlib import Path

import pytest

from patternchat.core.chat import Message, MessagePart, Session
from patternchat.core.errors import (
    ContextNotFoundError,
    PatternNotFoundError,
    SessionNotFoundError,
    StrategyNotFoundError,
    TemplateError,
)
from patternchat.core.storage import FileStorage
from patternchat.core.strategy import StrategyLoader
from patternchat.core.templates import apply_template, ensure_input_placeholder


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

def test_apply_template_substitutes_variables_and_input():
    text = "Translate to {{ lang }}:\n{{input}}"
    assert apply_template(text, {"lang": "German"}, "good morning") == "Translate to German:\ngood morning"


def test_input_text_is_not_templated():
    assert apply_template("{{input}}", {}, "keep {{this}} literal") == "keep {{this}} literal"


def test_missing_variables_reported_together():
    with pytest.raises(TemplateError, match="missing required variable\\(s\\): a, b"):
        apply_template("{{b}} and {{a}}", {}, "")


def test_ensure_input_placeholder():
    assert ensure_input_placeholder("Summarize") == "Summarize\n{{input}}"
    assert ensure_input_placeholder("Use {{input}} here") == "Use {{input}} here"
    assert ensure_input_placeholder("") == "{{input}}"


# ---------------------------------------------------------------------------
# FileStorage
# ---------------------------------------------------------------------------

def test_session_round_trip(tmp_path: Path):
    storage = FileStorage(tmp_path)
    session = Session(name="work", messages=[
        Message("user", "hello"),
        Message("user", parts=[MessagePart(type="text", text="see"), MessagePart(type="image_url", url="u")]),
    ])
    storage.save_session(session)

    loaded = storage.get_session("work")
    assert loaded == session
    assert storage.list_sessions() == ["work"]
    assert json.loads((tmp_path / "sessions" / "work.json").read_text())["name"] == "work"


def test_unnamed_session_cannot_be_saved(tmp_path: Path):
    with pytest.raises(ValueError):
        FileStorage(tmp_path).save_session(Session())


def test_missing_artifacts(tmp_path: Path):
    storage = FileStorage(tmp_path)
    with pytest.raises(SessionNotFoundError):
        storage.get_session("nope")
    with pytest.raises(ContextNotFoundError):
        storage.get_context("nope")
    with pytest.raises(PatternNotFoundError, match="could not find pattern nope"):
        storage.get_pattern("nope", {}, "")


def test_context_and_pattern(tmp_path: Path):
    storage = FileStorage(tmp_path)
    storage.save_context("team", "We write Python.")
    storage.save_pattern("review", "Review this {{kind}}:")

    assert storage.get_context("team") == "We write Python."
    assert storage.get_pattern("review", {"kind": "diff"}, "patch") == "Review this diff:\npatch"


def test_pattern_without_variable_replacement(tmp_path: Path):
    storage = FileStorage(tmp_path)
    storage.save_pattern("review", "Review this {{kind}}:\n")
    text = storage.get_pattern("review", {"kind": "diff"}, "patch", apply_variables=False)
    assert text == "Review this {{kind}}:\npatch"


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

def test_strategy_loader(tmp_path: Path):
    (tmp_path / "cot.json").write_text(json.dumps({"prompt": "Think first.", "description": "Chain"}))
    (tmp_path / "broken.json").write_text("{not json")
    loader = StrategyLoader(tmp_path)

    strategy = loader.load("cot")
    assert strategy.prompt == "Think first."
    assert strategy.description == "Chain"
    assert loader.list_strategies() == ["broken", "cot"]
    with pytest.raises(StrategyNotFoundError):
        loader.load("broken")
    with pytest.raises(StrategyNotFoundError):
        loader.load("absent")
