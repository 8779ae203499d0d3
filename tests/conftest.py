import random
from types import SimpleNamespace

import pytest

from calendar_sql.agent import QueryAgent
from calendar_sql.config import Settings
from calendar_sql.database import SessionStore


def completion(content):
    """Build an object shaped like an OpenAI chat completion response"""
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class FakeCompletions:
    """Stands in for client.chat.completions; replies are consumed in order"""

    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, SimpleNamespace):
            return reply
        return completion(reply)


class FakeClient:
    def __init__(self, replies):
        self.chat = SimpleNamespace(completions=FakeCompletions(replies))

    @property
    def calls(self):
        return self.chat.completions.calls


@pytest.fixture
def settings():
    return Settings(openai_api_key="test-key", model="test-model")


@pytest.fixture
def make_agent(settings):
    def _make(*replies):
        client = FakeClient(replies)
        return QueryAgent(settings, client=client), client
    return _make


@pytest.fixture
def store():
    store = SessionStore()
    store.initialize(seed=False)
    yield store
    store.close()


@pytest.fixture
def seeded_store():
    store = SessionStore()
    inserted = store.initialize(seed=True, rng=random.Random(7))
    store.inserted = inserted
    yield store
    store.close()
