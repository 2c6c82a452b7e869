"""Request/response models for the AI Model Ranker HTTP API."""

from pydantic import BaseModel, ConfigDict, Field

__all__: list[str] = [
    "GenerateRequest", "GeneratedResponse", "GenerateResponse",
    "ResponseItem", "EvaluateRequest", "ErrorResponse", "HealthResponse",
]


class GenerateRequest(BaseModel):
    """Body of POST /api/generate."""

    models: list[str] = Field(..., description="Model ids to query, usually 4-5")
    prompt: str = Field(..., description="Prompt sent to every model")
    images: list[str] = Field(default_factory=list, description="Base64 data URLs attached to the prompt")


class GeneratedResponse(BaseModel):
    model: str
    response: str
    duration: float = 0.0


class GenerateResponse(BaseModel):
    results: list[GeneratedResponse]


class ResponseItem(BaseModel):
    model: str
    response: str


class EvaluateRequest(BaseModel):
    """Body of POST /api/evaluate."""

    model_config = ConfigDict(populate_by_name=True)

    responses: list[ResponseItem]
    original_prompt: str = Field(..., alias="originalPrompt")


class ErrorResponse(BaseModel):
    error: str = Field(..., examples=["Unknown error"])


class HealthResponse(BaseModel):
    status: str = Field(..., examples=["ok"])
    models: list[str]
