"""Tests for the clarification engine's necessity check and duplicate guard."""

import asyncio
import json

import pytest

from assistant.clarification import (
    ClarificationEngine,
    find_duplicate,
    is_clarification_needed,
    is_duplicate_question,
)
from assistant.generation import TextGenerationService
from assistant.models import ClarificationQuestion, QuestionOption


def question_reply(text, *labels):
    return json.dumps(
        {"question": {"id": "question_1", "question": text, "options": list(labels)}}
    )


def asked(text, qid="q1"):
    return ClarificationQuestion(
        id=qid,
        question=text,
        options=(QuestionOption("a", "A"), QuestionOption("b", "B")),
    )


class TestIsClarificationNeeded:

    def test_uniform_prices_need_no_question(self, make_product):
        products = [make_product("Game A", "£50.00"), make_product("Game B", "£50.00")]

        assert is_clarification_needed(products) is False

    def test_differing_prices_need_a_question(self, make_product):
        products = [make_product("Game A", "£40.00"), make_product("Game B", "£60.00")]

        assert is_clarification_needed(products) is True

    @pytest.mark.parametrize("count", [0, 1])
    def test_one_or_no_candidates(self, make_product, count):
        products = [make_product("Game A", "£40.00")][:count]

        assert is_clarification_needed(products) is False

    def test_missing_prices_do_not_break_uniformity(self, make_product):
        products = [
            make_product("Game A", "£50.00"),
            make_product("Game B"),
            make_product("Game C", "£50.00"),
        ]

        assert is_clarification_needed(products) is False

    def test_no_prices_at_all(self, make_product):
        products = [make_product("Game A"), make_product("Game B")]

        assert is_clarification_needed(products) is True


class TestDuplicateQuestions:

    @pytest.mark.parametrize(
        "new,old",
        [
            ("What condition is it?", "what condition is it?"),
            ("Is it in used or new condition?", "What condition is the item in?"),
            ("What colour is it?", "Which color do you have?"),
            ("Which storage size?", "How much storage does it have?"),
            ("Which edition do you have?", "Is it the standard edition?"),
            ("What colour is the phone?", "Which phone model?"),
        ],
    )
    def test_same_topic_is_duplicate(self, new, old):
        assert is_duplicate_question(new, old) is True

    @pytest.mark.parametrize(
        "new,old",
        [
            ("What condition is it?", "Which edition is it?"),
            ("What colour is it?", "How much storage does it have?"),
            ("Is it boxed?", "Which model year?"),
        ],
    )
    def test_different_topics(self, new, old):
        assert is_duplicate_question(new, old) is False

    def test_find_duplicate_returns_first_match(self):
        history = [asked("Which edition?", "q1"), asked("What condition?", "q2")]

        assert find_duplicate(asked("Condition of the item?", "new"), history).id == "q2"
        assert find_duplicate(asked("Is it boxed?", "new"), history) is None


class TestClarificationEngine:

    def test_generated_question_gets_fresh_id(self, scripted_llm, iphone_products):
        llm = scripted_llm(clarification=[question_reply("What colour is it?", "Black", "White")])
        engine = ClarificationEngine(TextGenerationService(llm), sanity_check=False)

        question = asyncio.run(engine.next_question(iphone_products, [], {}))

        assert question.id.startswith("question_")
        assert question.id != "question_1"
        assert question.option_label("white") == "White"

    def test_duplicate_topic_is_discarded(self, scripted_llm, iphone_products, isolated_interaction_log):
        llm = scripted_llm(
            clarification=[question_reply("Is the item in used or new condition?", "Used", "New")]
        )
        engine = ClarificationEngine(TextGenerationService(llm), sanity_check=False)
        history = [asked("What condition is it?")]

        question = asyncio.run(engine.next_question(iphone_products, history, {"q1": "a"}))

        assert question is None
        events = [
            json.loads(line)["event_type"]
            for f in isolated_interaction_log.glob("*.jsonl")
            for line in f.read_text().splitlines()
        ]
        assert "refinement_duplicate_question" in events

    def test_uniform_prices_skip_the_model(self, scripted_llm, make_product):
        llm = scripted_llm(clarification=[question_reply("Which one?", "A", "B")])
        engine = ClarificationEngine(TextGenerationService(llm), sanity_check=True)
        products = [make_product("Game A", "£50.00"), make_product("Game B", "£50.00")]

        assert asyncio.run(engine.next_question(products, [], {})) is None
        assert llm.calls == []

    def test_sanity_check_only_after_first_question(self, scripted_llm, iphone_products):
        llm = scripted_llm(
            sanity_check=['{"question": null}'],
            clarification=[question_reply("What colour is it?", "Black", "White")],
        )
        engine = ClarificationEngine(TextGenerationService(llm), sanity_check=True)

        first = asyncio.run(engine.next_question(iphone_products, [], {}))
        assert first is not None
        assert llm.calls_for("sanity_check") == []

        second = asyncio.run(engine.next_question(iphone_products, [first], {first.id: "black"}))
        assert second is None
        assert len(llm.calls_for("sanity_check")) == 1
        assert len(llm.calls_for("clarification")) == 1

    def test_sanity_check_disabled(self, scripted_llm, iphone_products):
        llm = scripted_llm(clarification=[question_reply("Which storage size?", "128GB", "256GB")])
        engine = ClarificationEngine(TextGenerationService(llm), sanity_check=False)

        question = asyncio.run(
            engine.next_question(iphone_products, [asked("What colour?")], {"q1": "a"})
        )

        assert question.question == "Which storage size?"
        assert llm.calls_for("sanity_check") == []
