"""
Unit tests for the model gateway: request translation and error containment.
No network traffic; provider calls are replaced with mocks.
"""

import asyncio
import base64
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from modelranker import providers
from modelranker.providers import (
    build_anthropic_content, build_openai_content, build_google_contents,
    split_image, to_data_url, sanitize_prompt, call_llm, generate,
)

PNG_B64 = base64.b64encode(b"\x89PNG fake image bytes").decode("ascii")
PNG_URL = f"data:image/png;base64,{PNG_B64}"


class TestImages:
    def test_split_data_url(self):
        assert split_image(PNG_URL) == ("image/png", PNG_B64)

    def test_split_bare_base64_defaults_to_jpeg(self):
        assert split_image(PNG_B64) == ("image/jpeg", PNG_B64)

    def test_to_data_url(self):
        assert to_data_url(PNG_URL) == PNG_URL
        assert to_data_url(PNG_B64) == f"data:image/jpeg;base64,{PNG_B64}"


class TestRequestBuilders:
    def test_anthropic_images_before_text(self):
        content = build_anthropic_content("Describe", [PNG_URL, PNG_B64])
        assert [block["type"] for block in content] == ["image", "image", "text"]
        assert content[0]["source"] == {"type": "base64", "media_type": "image/png", "data": PNG_B64}
        assert content[1]["source"]["media_type"] == "image/jpeg"
        assert content[2]["text"] == "Describe"

    def test_openai_text_then_image_urls(self):
        content = build_openai_content("Describe", [PNG_URL])
        assert content == [
            {"type": "text", "text": "Describe"},
            {"type": "image_url", "image_url": {"url": PNG_URL}},
        ]

    def test_openai_without_images(self):
        assert build_openai_content("Hi", []) == [{"type": "text", "text": "Hi"}]

    def test_google_inline_bytes(self):
        contents = build_google_contents("Describe", [PNG_URL])
        assert contents[0].text == "Describe"
        assert contents[1].inline_data.mime_type == "image/png"
        assert contents[1].inline_data.data == b"\x89PNG fake image bytes"


def test_sanitize_prompt():
    assert sanitize_prompt("‘quoted’ — “done”…") == "'quoted' - \"done\"..."


class TestCallLlm:
    @pytest.mark.asyncio
    async def test_dispatches_to_provider_model(self, api_keys):
        openai_call = AsyncMock(return_value=("An answer", 0.5, 10, 20))
        with patch.dict(providers._PROVIDER_CALLS, {"openai": openai_call}):
            result = await call_llm("gpt-4o-mini", "Explain “gravity”", [PNG_URL], max_tokens=100, temperature=0)

        assert result == ("An answer", 0.5, 10, 20)
        args = openai_call.call_args.args
        assert args[0] == "gpt-4o-mini"
        assert args[1] == 'Explain "gravity"'
        assert args[2] == [PNG_URL]
        assert args[3] == "test-openai_api_key"

    @pytest.mark.asyncio
    async def test_maps_public_id_to_provider_version(self, api_keys):
        anthropic_call = AsyncMock(return_value=("ok", 0.1, 1, 1))
        with patch.dict(providers._PROVIDER_CALLS, {"anthropic": anthropic_call}):
            await call_llm("claude-3.5-sonnet", "Hi")
        assert anthropic_call.call_args.args[0] == "claude-3-5-sonnet-20241022"

    @pytest.mark.asyncio
    async def test_unknown_model_raises(self):
        with pytest.raises(ValueError, match="Unsupported model"):
            await call_llm("llama-9", "Hi")


class TestGenerate:
    @pytest.mark.asyncio
    async def test_returns_text(self, api_keys):
        with patch.dict(providers._PROVIDER_CALLS, {"google": AsyncMock(return_value=("Hello", 0.2, 1, 1))}):
            assert await generate("gemini-1.5-flash", "Hi") == "Hello"

    @pytest.mark.asyncio
    async def test_provider_failure_becomes_error_text(self, api_keys, capsys):
        failing = AsyncMock(side_effect=RuntimeError("upstream 503"))
        with patch.dict(providers._PROVIDER_CALLS, {"anthropic": failing}):
            result = await generate("claude-3.5-sonnet", "Hi")

        assert result == "Error: upstream 503"
        assert "[ERROR] claude-3.5-sonnet" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_missing_credential_becomes_error_text(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        assert await generate("gpt-4o", "Hi") == "Error: OPENAI_API_KEY not set"

    @pytest.mark.asyncio
    async def test_unknown_model_becomes_error_text(self):
        assert await generate("not-a-model", "Hi") == "Error: Unsupported model: not-a-model"


@pytest.mark.asyncio
async def test_health_check_reports_each_model(api_keys):
    calls = {
        "openai": AsyncMock(return_value=("OK", 0.3, 1, 1)),
        "anthropic": AsyncMock(side_effect=RuntimeError("401 unauthorized")),
        "google": AsyncMock(return_value=("OK", 0.4, 1, 1)),
    }
    with patch.dict(providers._PROVIDER_CALLS, calls):
        results = await providers.health_check()

    assert results["gpt-4o"]["success"] is True
    assert results["claude-3.5-sonnet"] == {"success": False, "message": "401 unauthorized"}
    assert len(results) == 5


class TestProviderReplies:
    @pytest.mark.asyncio
    async def test_openai_reply_and_request(self):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(return_value=SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="  Gravity bends spacetime.\n"))],
            usage=SimpleNamespace(prompt_tokens=12, completion_tokens=5),
        ))
        with patch.object(providers, "_get_openai_client", return_value=client):
            content, duration, in_tok, out_tok = await providers._call_openai(
                "gpt-4o", "Explain", [PNG_URL], "key", 100, 30, 0.2)

        assert (content, in_tok, out_tok) == ("Gravity bends spacetime.", 12, 5)
        assert duration >= 0
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o"
        assert kwargs["max_tokens"] == 100
        assert kwargs["temperature"] == 0.2
        assert kwargs["messages"] == [{"role": "user", "content": build_openai_content("Explain", [PNG_URL])}]

    @pytest.mark.asyncio
    async def test_openai_without_choices_is_empty_text(self):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(return_value=SimpleNamespace(choices=[], usage=None))
        with patch.object(providers, "_get_openai_client", return_value=client):
            content, _, in_tok, out_tok = await providers._call_openai("gpt-4o", "Hi", [], "key", 10, 30, 0)
        assert (content, in_tok, out_tok) == ("", 0, 0)

    @pytest.mark.asyncio
    async def test_anthropic_joins_text_blocks(self):
        client = MagicMock()
        client.messages.create = AsyncMock(return_value=SimpleNamespace(
            content=[
                SimpleNamespace(type="text", text="Mass attracts mass. "),
                SimpleNamespace(type="tool_use", id="t1"),
                SimpleNamespace(type="text", text="Spacetime curves."),
            ],
            usage=SimpleNamespace(input_tokens=7, output_tokens=9),
        ))
        with patch.object(providers, "_get_anthropic_client", return_value=client):
            content, _, in_tok, out_tok = await providers._call_anthropic(
                "claude-3-5-sonnet-20241022", "Describe", [PNG_URL], "key", 200, 30, 0.7)

        assert (content, in_tok, out_tok) == ("Mass attracts mass. Spacetime curves.", 7, 9)
        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["model"] == "claude-3-5-sonnet-20241022"
        assert kwargs["max_tokens"] == 200
        assert [block["type"] for block in kwargs["messages"][0]["content"]] == ["image", "text"]

    @pytest.mark.asyncio
    async def test_google_falls_back_to_candidate_parts(self):
        client = MagicMock()
        client.aio.models.generate_content = AsyncMock(return_value=SimpleNamespace(
            text=None,
            candidates=[SimpleNamespace(
                content=SimpleNamespace(parts=[SimpleNamespace(text="Mass "), SimpleNamespace(text=None),
                                               SimpleNamespace(text="attracts.")]),
                finish_reason="STOP",
            )],
            usage_metadata=SimpleNamespace(prompt_token_count=3, candidates_token_count=4),
        ))
        with patch.object(providers, "_get_google_client", return_value=client):
            content, _, in_tok, out_tok = await providers._call_google(
                "gemini-1.5-pro", "Describe", [PNG_URL], "key", 50, 30, 0)

        assert (content, in_tok, out_tok) == ("Mass attracts.", 3, 4)
        kwargs = client.aio.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-1.5-pro"
        assert kwargs["config"] == {"temperature": 0, "max_output_tokens": 50}
        assert kwargs["contents"][0].text == "Describe"
        assert kwargs["contents"][1].inline_data.mime_type == "image/png"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("candidates,reason", [
        ([SimpleNamespace(content=None, finish_reason="SAFETY")], "SAFETY"),
        (None, "no_candidates"),
    ])
    async def test_google_empty_reply_raises(self, candidates, reason):
        client = MagicMock()
        client.aio.models.generate_content = AsyncMock(return_value=SimpleNamespace(
            text="", candidates=candidates, usage_metadata=None))
        with patch.object(providers, "_get_google_client", return_value=client):
            with pytest.raises(ValueError, match=f"Google API empty response \\(reason={reason}\\)"):
                await providers._call_google("gemini-1.5-flash", "Hi", [], "key", 10, 30, 0)

    @pytest.mark.asyncio
    async def test_google_empty_reply_becomes_error_text(self, api_keys):
        client = MagicMock()
        client.aio.models.generate_content = AsyncMock(return_value=SimpleNamespace(
            text=None, candidates=None, usage_metadata=None))
        with patch.object(providers, "_get_google_client", return_value=client):
            result = await generate("gemini-1.5-flash", "Hi")
        assert result == "Error: Google API empty response (reason=no_candidates)"


class TestClientCache:
    @pytest.mark.asyncio
    async def test_one_client_per_provider_and_loop(self):
        first = providers._get_openai_client("key", 30)
        assert providers._get_openai_client("key", 30) is first
        assert ("openai", id(asyncio.get_running_loop())) in providers._clients

    def test_each_event_loop_gets_its_own_client(self):
        async def get_client():
            return providers._get_anthropic_client("key", 30)

        loop_a, loop_b = asyncio.new_event_loop(), asyncio.new_event_loop()
        try:
            client_a = loop_a.run_until_complete(get_client())
            client_b = loop_b.run_until_complete(get_client())
        finally:
            loop_a.close()
            loop_b.close()
        assert client_a is not client_b
        assert len(providers._clients) == 2

    @pytest.mark.asyncio
    async def test_close_clients_only_touches_the_running_loop(self):
        loop_id = id(asyncio.get_running_loop())
        openai_client, google_client, other_client = MagicMock(), MagicMock(), MagicMock()
        openai_client.close = AsyncMock()
        google_client.aio.aclose = AsyncMock()
        other_client.close = AsyncMock()
        providers._clients.update({
            ("openai", loop_id): openai_client,
            ("google", loop_id): google_client,
            ("openai", loop_id + 1): other_client,
        })

        await providers.close_clients()

        openai_client.close.assert_awaited_once()
        google_client.aio.aclose.assert_awaited_once()
        other_client.close.assert_not_awaited()
        assert list(providers._clients) == [("openai", loop_id + 1)]

    def test_clear_clients(self):
        providers._clients[("openai", 1)] = object()
        providers.clear_clients()
        assert providers._clients == {}
