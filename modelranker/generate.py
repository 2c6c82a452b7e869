"""
generate.py - Fan-out generation across the selected models
"""

import asyncio
import time

from .providers import generate
from .results import ModelResponse


async def _generate_one(model_id: str, prompt: str, images: list[str]) -> ModelResponse:
    start = time.time()
    response = await generate(model_id, prompt, images)
    return ModelResponse(model=model_id, response=response, duration=time.time() - start)


async def generate_all(model_ids: list[str], prompt: str, images: list[str] | None = None) -> list[ModelResponse]:
    """Get responses from all models in parallel, in the order requested.

    A failing model yields an error-text response; the rest of the batch is unaffected.
    """
    images = list(images or [])
    tasks = [_generate_one(model_id, prompt, images) for model_id in model_ids]
    return list(await asyncio.gather(*tasks))
