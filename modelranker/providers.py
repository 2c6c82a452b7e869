"""
providers.py - Model gateway for the AI Model Ranker

Translates a provider-agnostic "prompt + images" request into the call shape of each
provider SDK and normalizes the reply to plain text.
"""

import asyncio
import base64
import time

from openai import AsyncOpenAI
from anthropic import AsyncAnthropic
from google import genai
from google.genai import types as genai_types

from .config import (
    MAX_TOKENS_ANSWER, DEFAULT_TIMEOUT, TEMPERATURE_DEFAULT,
    DEFAULT_IMAGE_MEDIA_TYPE, ERROR_PREFIX,
    get_api_key, format_duration,
)
from .models import ALL_MODELS, get_model

# Clients bind to the event loop they were created on, so the cache is keyed by (provider, loop id)
_clients: dict = {}


def _client_key(provider: str) -> tuple[str, int]:
    return provider, id(asyncio.get_running_loop())


def clear_clients():
    """Drop every cached client, whatever loop it belongs to."""
    _clients.clear()


async def close_clients():
    """Close and drop the clients created on the running event loop.

    Clients of other loops (e.g. another Streamlit session mid-run) are left alone.
    """
    loop_id = id(asyncio.get_running_loop())
    for key in [k for k in _clients if k[1] == loop_id]:
        client = _clients.pop(key)
        if key[0] == "google":
            aclose = getattr(client.aio, "aclose", None)
            if aclose:
                await aclose()
        else:
            await client.close()


def sanitize_prompt(text: str) -> str:
    """Replace known problematic characters for API compatibility.

    Applied equally to all models for fair comparison.
    """
    replacements = {
        '\u2018': "'", '\u2019': "'",  # Smart single quotes
        '\u201c': '"', '\u201d': '"',  # Smart double quotes
        '\u2013': '-', '\u2014': '-',  # En/em dashes
        '\u2026': '...',               # Ellipsis
        '\u00a0': ' ',                 # Non-breaking space
    }
    for old, new in replacements.items():
        text = text.replace(old, new)
    return text


def split_image(image: str) -> tuple[str, str]:
    """Split a data URL (or bare base64 payload) into (media_type, base64_data)."""
    if image.startswith("data:"):
        header, _, data = image.partition(",")
        media_type = header[len("data:"):].split(";")[0]
        return media_type or DEFAULT_IMAGE_MEDIA_TYPE, data
    return DEFAULT_IMAGE_MEDIA_TYPE, image


def to_data_url(image: str) -> str:
    if image.startswith("data:"):
        return image
    return f"data:{DEFAULT_IMAGE_MEDIA_TYPE};base64,{image}"


# Client factories
def _get_openai_client(api_key: str, timeout: int) -> AsyncOpenAI:
    key = _client_key("openai")
    if key not in _clients:
        _clients[key] = AsyncOpenAI(api_key=api_key, timeout=timeout)
    return _clients[key]


def _get_anthropic_client(api_key: str, timeout: int) -> AsyncAnthropic:
    key = _client_key("anthropic")
    if key not in _clients:
        _clients[key] = AsyncAnthropic(api_key=api_key, timeout=timeout)
    return _clients[key]


def _get_google_client(api_key: str, timeout: int) -> genai.Client:
    key = _client_key("google")
    if key not in _clients:
        # genai timeouts are in milliseconds
        _clients[key] = genai.Client(api_key=api_key,
                                     http_options=genai_types.HttpOptions(timeout=timeout * 1000))
    return _clients[key]


# Request builders (one per provider content format)
def build_anthropic_content(prompt: str, images: list[str]) -> list[dict]:
    content = []
    for img in images:
        media_type, data = split_image(img)
        content.append({
            "type": "image",
            "source": {"type": "base64", "media_type": media_type, "data": data},
        })
    content.append({"type": "text", "text": prompt})
    return content


def build_openai_content(prompt: str, images: list[str]) -> list[dict]:
    content = [{"type": "text", "text": prompt}]
    for img in images:
        content.append({"type": "image_url", "image_url": {"url": to_data_url(img)}})
    return content


def build_google_contents(prompt: str, images: list[str]) -> list:
    contents = [genai_types.Part.from_text(text=prompt)]
    for img in images:
        media_type, data = split_image(img)
        contents.append(genai_types.Part.from_bytes(data=base64.b64decode(data), mime_type=media_type))
    return contents


# Provider implementations
async def _call_openai(model: str, prompt: str, images: list[str], api_key: str, max_tokens: int,
                       timeout: int, temperature: float) -> tuple[str, float, int, int]:
    client = _get_openai_client(api_key, timeout)
    start = time.time()
    response = await client.chat.completions.create(
        model=model,
        messages=[{"role": "user", "content": build_openai_content(prompt, images)}],
        temperature=temperature,
        max_tokens=max_tokens,
    )
    content = response.choices[0].message.content if response.choices else ""

    input_tokens = 0
    output_tokens = 0
    if hasattr(response, 'usage') and response.usage:
        input_tokens = getattr(response.usage, 'prompt_tokens', 0)
        output_tokens = getattr(response.usage, 'completion_tokens', 0)

    return (content.strip() if content else "", time.time() - start, input_tokens, output_tokens)


async def _call_anthropic(model: str, prompt: str, images: list[str], api_key: str, max_tokens: int,
                          timeout: int, temperature: float) -> tuple[str, float, int, int]:
    client = _get_anthropic_client(api_key, timeout)
    start = time.time()
    response = await client.messages.create(
        model=model,
        messages=[{"role": "user", "content": build_anthropic_content(prompt, images)}],
        max_tokens=max_tokens,
        temperature=temperature,
    )
    content = "".join(block.text for block in response.content if block.type == "text")

    input_tokens = getattr(response.usage, 'input_tokens', 0)
    output_tokens = getattr(response.usage, 'output_tokens', 0)

    return (content.strip(), time.time() - start, input_tokens, output_tokens)


async def _call_google(model: str, prompt: str, images: list[str], api_key: str, max_tokens: int,
                       timeout: int, temperature: float) -> tuple[str, float, int, int]:
    client = _get_google_client(api_key, timeout)
    config = {"temperature": temperature, "max_output_tokens": max_tokens}

    start = time.time()
    response = await client.aio.models.generate_content(
        model=model, contents=build_google_contents(prompt, images), config=config)
    duration = time.time() - start

    content = response.text or ""

    # Fallback: extract from candidates
    candidates = getattr(response, 'candidates', None) or []
    if not content and candidates:
        for candidate in candidates:
            parts = getattr(getattr(candidate, 'content', None), 'parts', None) or []
            for part in parts:
                if getattr(part, 'text', None):
                    content += part.text

    if not content:
        reason = getattr(candidates[0], 'finish_reason', 'unknown') if candidates else 'no_candidates'
        raise ValueError(f"Google API empty response (reason={reason})")

    input_tokens = 0
    output_tokens = 0
    if getattr(response, 'usage_metadata', None):
        input_tokens = getattr(response.usage_metadata, 'prompt_token_count', 0) or 0
        output_tokens = getattr(response.usage_metadata, 'candidates_token_count', 0) or 0

    return (content.strip(), duration, input_tokens, output_tokens)


_PROVIDER_CALLS = {
    "openai": _call_openai,
    "anthropic": _call_anthropic,
    "google": _call_google,
}


async def call_llm(model_id: str, prompt: str, images: list[str] | None = None,
                   max_tokens: int = MAX_TOKENS_ANSWER, timeout: int = DEFAULT_TIMEOUT,
                   temperature: float = TEMPERATURE_DEFAULT) -> tuple[str, float, int, int]:
    """
    Call the provider behind a supported model id. Raises on any failure.

    Returns:
        tuple: (content, duration, input_tokens, output_tokens)
    """
    model = get_model(model_id)
    if not model:
        raise ValueError(f"Unsupported model: {model_id}")
    call_fn = _PROVIDER_CALLS.get(model["provider"])
    if not call_fn:
        raise ValueError(f"Unknown provider: {model['provider']}")
    api_key = get_api_key(model["provider"])

    prompt = sanitize_prompt(prompt)
    return await call_fn(model["model_id"], prompt, list(images or []), api_key, max_tokens, timeout, temperature)


async def generate(model_id: str, prompt: str, images: list[str] | None = None,
                   max_tokens: int = MAX_TOKENS_ANSWER,
                   temperature: float = TEMPERATURE_DEFAULT) -> str:
    """Generate a reply from one model. Failures come back as "Error: ..." text, never raised."""
    try:
        content, _, _, _ = await call_llm(model_id, prompt, images, max_tokens=max_tokens, temperature=temperature)
        return content
    except Exception as e:
        print(f"  [ERROR] {model_id}: {type(e).__name__}: {str(e)[:200]}", flush=True)
        return f"{ERROR_PREFIX}{e}"


async def health_check() -> dict:
    """Check API health for all registered models."""
    print(f"\n{'=' * 60}\nLLM API Health Check\n{'=' * 60}\nTesting {len(ALL_MODELS)} models...\n")

    async def check(model_id: str):
        try:
            _, duration, _, _ = await call_llm(model_id, "Say 'OK'.", max_tokens=16, timeout=60)
            return model_id, True, format_duration(duration), ""
        except Exception as e:
            return model_id, False, "", str(e)[:100]

    responses = await asyncio.gather(*[check(m["id"]) for m in ALL_MODELS])

    results = {}
    working = 0
    for model_id, ok, duration, error in responses:
        if ok:
            print(f"  [OK] {model_id} ({duration})")
        else:
            print(f"  [FAIL] {model_id}: {error}")
        results[model_id] = {"success": ok, "message": error or f"OK ({duration})"}
        working += ok

    print(f"\n{'=' * 60}\nResult: {working}/{len(ALL_MODELS)} models OK\n{'=' * 60}")
    return results
