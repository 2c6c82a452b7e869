"""
models.py - Supported model definitions for the AI Model Ranker
"""

# id: public identifier used by the UI and the HTTP API
# model_id: provider-side model version
# vision: whether the model accepts image inputs
ALL_MODELS = [
    {"id": "claude-3.5-sonnet", "provider": "anthropic", "model_id": "claude-3-5-sonnet-20241022", "name": "Claude 3.5 Sonnet", "vision": True},
    {"id": "gpt-4o", "provider": "openai", "model_id": "gpt-4o", "name": "GPT-4o", "vision": True},
    {"id": "gpt-4o-mini", "provider": "openai", "model_id": "gpt-4o-mini", "name": "GPT-4o Mini", "vision": True},
    {"id": "gemini-1.5-pro", "provider": "google", "model_id": "gemini-1.5-pro", "name": "Gemini 1.5 Pro", "vision": True},
    {"id": "gemini-1.5-flash", "provider": "google", "model_id": "gemini-1.5-flash", "name": "Gemini 1.5 Flash", "vision": True},
]

MODEL_IDS = [m["id"] for m in ALL_MODELS]

_BY_ID = {m["id"]: m for m in ALL_MODELS}


def get_model(model_id: str) -> dict | None:
    """Look up a model definition by its public id."""
    return _BY_ID.get(model_id)


def get_display_name(model_id: str) -> str:
    model = _BY_ID.get(model_id)
    return model["name"] if model else model_id
