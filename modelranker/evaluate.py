"""
evaluate.py - Cross-evaluation: every participating model scores every response
"""

import asyncio

from .config import (
    MAX_TOKENS_EVAL, TEMPERATURE_EVAL, SCORE_MIN, SCORE_MAX,
    extract_json, is_error_text,
)
from .providers import generate
from .results import ModelResponse, ScoreEntry, Evaluation

EVAL_PROMPT = """You are an expert AI evaluator. Given the original prompt and multiple AI responses, score each response on a scale of {score_min}-{score_max} based on quality, clarity, relevance, and accuracy.

Original Prompt: {prompt}

Responses to evaluate:
{responses}

Provide your evaluation in JSON format:
{{
  "scores": [
    {{"model": "model_name", "score": 85, "reasoning": "brief explanation"}},
    ...
  ]
}}

Use the exact model names shown in the response headers. Be objective and fair. Return ONLY the JSON, no additional text."""


def format_responses_for_eval(responses: list[ModelResponse]) -> str:
    return "\n\n".join(f"\n[Response {i} from {r.model}]:\n{r.response}" for i, r in enumerate(responses, 1))


def build_evaluation_prompt(responses: list[ModelResponse], original_prompt: str) -> str:
    return EVAL_PROMPT.format(
        score_min=SCORE_MIN,
        score_max=SCORE_MAX,
        prompt=original_prompt,
        responses=format_responses_for_eval(responses),
    )


def match_model_name(name, known_models) -> str | None:
    """Match a model name from an evaluator's reply to one of the run's model ids."""
    if not isinstance(name, str):
        return None
    name = name.strip().strip('[]')
    if name in known_models:
        return name
    name_lower = name.lower()
    for model in known_models:
        if model.lower() == name_lower:
            return model
    return None


def coerce_score(value) -> float | None:
    """Convert a reported score to a float clamped to [SCORE_MIN, SCORE_MAX], or None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        score = float(value)
    elif isinstance(value, str):
        try:
            score = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if score != score:  # NaN
        return None
    return float(min(max(score, SCORE_MIN), SCORE_MAX))


def parse_evaluation(evaluator: str, reply: str, known_models) -> Evaluation:
    """Turn an evaluator's free-form reply into an Evaluation. Never raises."""
    if is_error_text(reply):
        return Evaluation(evaluator=evaluator, error=reply)

    data = extract_json(reply)
    if data is None:
        print(f"      [WARN] {evaluator}: no JSON object in evaluation reply", flush=True)
        return Evaluation(evaluator=evaluator, error="No JSON object found in evaluation response")

    entries = data.get("scores")
    if not isinstance(entries, list):
        return Evaluation(evaluator=evaluator, raw=data, error="Evaluation JSON has no scores list")

    scores = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        model = match_model_name(entry.get("model"), known_models)
        if not model:
            continue
        score = coerce_score(entry.get("score"))
        if score is None:
            print(f"      [WARN] Malformed score for {model} by {evaluator}: {str(entry.get('score'))[:50]}", flush=True)
            continue
        reasoning = entry.get("reasoning", "")
        scores.append(ScoreEntry(evaluator=evaluator, model=model, score=score,
                                 reasoning=reasoning if isinstance(reasoning, str) else str(reasoning)))

    return Evaluation(evaluator=evaluator, scores=scores, raw=data)


async def evaluate_with_model(evaluator: str, responses: list[ModelResponse], original_prompt: str) -> Evaluation:
    """Have one model score all responses."""
    prompt = build_evaluation_prompt(responses, original_prompt)
    reply = await generate(evaluator, prompt, max_tokens=MAX_TOKENS_EVAL, temperature=TEMPERATURE_EVAL)
    return parse_evaluation(evaluator, reply, {r.model for r in responses})


async def evaluate_all(responses: list[ModelResponse], original_prompt: str) -> list[Evaluation]:
    """Every model that produced a response evaluates all responses, in parallel."""
    return list(await asyncio.gather(*[
        evaluate_with_model(r.model, responses, original_prompt) for r in responses
    ]))
