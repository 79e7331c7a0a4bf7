from types import SimpleNamespace

import pytest

from aipreview import llm_parsing
from aipreview.config import Settings


@pytest.fixture(autouse=True)
def no_node(monkeypatch):
    # Syntax repairs always run when node is absent, so outputs do not depend on the machine.
    monkeypatch.setattr(llm_parsing, "_node_binary", lambda: None)


@pytest.fixture
def settings():
    return Settings(project_id="demo-project", retry_delay_seconds=0.0, cache_check_period_seconds=0)


def make_response(text, prompt_tokens=10, candidate_tokens=20):
    return SimpleNamespace(
        text=text,
        usage_metadata=SimpleNamespace(
            prompt_token_count=prompt_tokens,
            candidates_token_count=candidate_tokens,
            total_token_count=prompt_tokens + candidate_tokens,
        ),
    )


class FakeHandle:
    """Model handle that replays scripted outcomes; exceptions are raised, anything else returned."""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.prompts = []

    async def generate_content(self, text):
        self.prompts.append(text)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, str):
            return make_response(outcome)
        return outcome

    @property
    def calls(self):
        return len(self.prompts)


class RateLimit(Exception):
    def __init__(self, message="429 Too Many Requests"):
        super().__init__(message)
        self.code = 429


@pytest.fixture
def fake_handle():
    return FakeHandle


@pytest.fixture
def rate_limit():
    return RateLimit
