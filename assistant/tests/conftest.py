"""Shared fixtures for the assistant test suite."""

from collections import defaultdict
from typing import Dict, List, Union

import pytest

from assistant import logging_utils, price_check
from scraper.config import DEFAULT_SITE_URL
from scraper.models import ProductRecord, ScrapeResult


@pytest.fixture(autouse=True)
def isolated_interaction_log(tmp_path, monkeypatch):
    """Keep interaction logs out of the source tree."""
    log_dir = tmp_path / "logs"
    monkeypatch.setattr(logging_utils, "LOG_DIR", log_dir)
    return log_dir


class ScriptedLLM:
    """LLMClient stand-in replying from per-task scripts.

    Replies are consumed in order; an exception instance is raised instead
    of returned. A task with no script left replies with "".
    """

    def __init__(self, **scripts: List[Union[str, BaseException]]):
        self.scripts: Dict[str, List[Union[str, BaseException]]] = defaultdict(list)
        for task, replies in scripts.items():
            self.scripts[task] = list(replies)
        self.calls: List[Dict[str, object]] = []

    async def complete(self, system_prompt, user_prompt, max_tokens, task="completion"):
        self.calls.append(
            {"task": task, "system_prompt": system_prompt, "prompt": user_prompt, "max_tokens": max_tokens}
        )
        replies = self.scripts[task]
        if not replies:
            return ""
        reply = replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply

    def calls_for(self, task):
        return [c for c in self.calls if c["task"] == task]


@pytest.fixture
def scripted_llm():
    return ScriptedLLM


def product(title: str, price: str = None) -> ProductRecord:
    return ProductRecord(title=title, source="webuy", price=price)


@pytest.fixture
def make_product():
    return product


@pytest.fixture
def ps5_products():
    return [
        product("PS5 Disc Edition", "£300.00"),
        product("PS5 Digital Edition", "£280.00"),
        product("PS5 Disc Edition Refurbished", "£250.00"),
    ]


@pytest.fixture
def iphone_products():
    return [
        product("iPhone 12 128GB Black", "£300.00"),
        product("iPhone 12 128GB White", "£310.00"),
    ]


class FakeSearch:
    """Replacement for ``search_products`` returning a canned result."""

    def __init__(self, products=None, error=None):
        self.products = list(products or [])
        self.error = error
        self.calls = []

    async def __call__(self, pool, search_term, site_url=DEFAULT_SITE_URL, **kwargs):
        self.calls.append({"pool": pool, "search_term": search_term, "site_url": site_url})
        if self.error:
            return ScrapeResult(success=False, url=site_url, error=self.error)
        return ScrapeResult(
            success=True,
            url=f"{site_url}/search?stext={search_term}",
            products=list(self.products),
            metadata={"search_term": search_term, "site": "webuy"},
        )


@pytest.fixture
def fake_search(monkeypatch):
    """Install a FakeSearch; call it with products or an error to configure."""

    def install(products=None, error=None):
        search = FakeSearch(products, error)
        monkeypatch.setattr(price_check, "search_products", search)
        return search

    return install
