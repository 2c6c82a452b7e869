"""Shared fixtures: a scripted stand-in for the model gateway."""

import json
from unittest.mock import patch

import pytest

from modelranker import providers

FOUR_MODELS = ["claude-3.5-sonnet", "gpt-4o", "gemini-1.5-pro", "gemini-1.5-flash"]

# Fixed scores every evaluator hands out
SCRIPTED_SCORES = {
    "claude-3.5-sonnet": 92,
    "gpt-4o": 88,
    "gpt-4o-mini": 70,
    "gemini-1.5-pro": 81,
    "gemini-1.5-flash": 64,
}

_RANKING_MARKER = "performing a final independent ranking"


class FakeGateway:
    """Answers prompts, evaluation prompts and ranking prompts like a cooperative model."""

    def __init__(self):
        self.calls = []

    async def __call__(self, model_id, prompt, images=None, **kwargs):
        self.calls.append((model_id, prompt, list(images or [])))
        if "Responses to evaluate:" in prompt:
            scores = [{"model": m, "score": s, "reasoning": f"{model_id} on {m}"}
                      for m, s in SCRIPTED_SCORES.items() if f"from {m}]" in prompt]
            return "Here is my evaluation:\n" + json.dumps({"scores": scores}) + "\nThanks!"
        if _RANKING_MARKER in prompt:
            candidates = [m for m in SCRIPTED_SCORES if f"from {m}]" in prompt]
            candidates.sort(key=lambda m: SCRIPTED_SCORES[m], reverse=True)
            ranking = [{"rank": i, "model": m, "reasoning": f"ranked {i}"} for i, m in enumerate(candidates, 1)]
            return json.dumps({"ranking": ranking})
        return f"{model_id} says: {prompt}"


@pytest.fixture
def fake_gateway():
    gateway = FakeGateway()
    with patch("modelranker.generate.generate", new=gateway), \
            patch("modelranker.evaluate.generate", new=gateway), \
            patch("modelranker.rank.generate", new=gateway):
        yield gateway


@pytest.fixture
def api_keys(monkeypatch):
    for var in ("OPENAI_API_KEY", "ANTHROPIC_API_KEY", "GOOGLE_API_KEY"):
        monkeypatch.setenv(var, f"test-{var.lower()}")


@pytest.fixture
def four_models():
    return list(FOUR_MODELS)


@pytest.fixture(autouse=True)
def fresh_clients():
    providers.clear_clients()
    yield
    providers.clear_clients()
