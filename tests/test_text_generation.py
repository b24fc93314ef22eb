"""Tests for GeminiTextGenerator retry handling, using a stand-in client."""

from types import SimpleNamespace

import pytest

from branchweaver.errors import GenerationError
from branchweaver.refinement import GeminiTextGenerator


class FlakyModels:
    """Fails with ``error`` for the first ``failures`` calls, then answers."""

    def __init__(self, failures=0, error="429 RESOURCE_EXHAUSTED", text=" Polished summary. "):
        self.failures = failures
        self.error = error
        self.text = text
        self.calls = 0

    async def generate_content(self, model, contents):
        self.calls += 1
        if self.calls <= self.failures:
            raise Exception(self.error)
        return SimpleNamespace(text=self.text)


def _generator(models, max_retries=3):
    client = SimpleNamespace(aio=SimpleNamespace(models=models))
    return GeminiTextGenerator(client=client, model="test-model", max_retries=max_retries, base_delay=0)


@pytest.mark.asyncio
class TestGeminiTextGenerator:

    async def test_returns_stripped_text(self):
        models = FlakyModels()
        assert await _generator(models).generate("prompt") == "Polished summary."
        assert models.calls == 1

    async def test_retries_rate_limits(self):
        models = FlakyModels(failures=2)
        assert await _generator(models).generate("prompt") == "Polished summary."
        assert models.calls == 3

    async def test_gives_up_after_max_retries(self):
        models = FlakyModels(failures=10, error="503 UNAVAILABLE")
        with pytest.raises(GenerationError, match="exhausted 3 attempts"):
            await _generator(models).generate("prompt")
        assert models.calls == 3

    async def test_other_errors_not_retried(self):
        models = FlakyModels(failures=1, error="400 INVALID_ARGUMENT")
        with pytest.raises(GenerationError, match="INVALID_ARGUMENT"):
            await _generator(models).generate("prompt")
        assert models.calls == 1

    async def test_empty_response(self):
        with pytest.raises(GenerationError, match="empty response"):
            await _generator(FlakyModels(text="   ")).generate("prompt")
