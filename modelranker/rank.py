"""
rank.py - Score aggregation, top-N selection and the referee's final ranking
"""

from statistics import mean

from .config import (
    MAX_TOKENS_EVAL, TEMPERATURE_EVAL, REFEREE_MODEL, TOP_N,
    extract_json, is_error_text,
)
from .models import get_display_name
from .providers import generate
from .results import ModelResponse, Evaluation, AggregatedScore, RankEntry, FinalRanking

RANKING_PROMPT = """You are {referee} performing a final independent ranking. Given the original prompt and the top {count} AI responses, rank them from best (1) to worst ({count}).

Original Prompt: {prompt}

Top Responses:
{responses}

Provide your final ranking in JSON format:
{{
  "ranking": [
{example}
  ]
}}

Return ONLY the JSON, no additional text."""

_RANK_HINTS = {1: "why this is the best", 2: "why this is second", 3: "why this is third"}


def aggregate(responses: list[ModelResponse], evaluations: list[Evaluation]) -> list[AggregatedScore]:
    """Average every score each response received, in response order."""
    score_map = {r.model: [] for r in responses}
    for evaluation in evaluations:
        for entry in evaluation.scores:
            if entry.model in score_map:
                score_map[entry.model].append(entry.score)

    return [
        AggregatedScore(
            model=r.model,
            response=r.response,
            scores=list(score_map[r.model]),
            avg_score=float(mean(score_map[r.model])) if score_map[r.model] else 0.0,
        )
        for r in responses
    ]


def top_n(aggregated: list[AggregatedScore], n: int = TOP_N) -> list[AggregatedScore]:
    """Highest average scores first; equal averages keep their original order."""
    return sorted(aggregated, key=lambda a: a.avg_score, reverse=True)[:n]


def build_ranking_prompt(top_entries: list[AggregatedScore], original_prompt: str) -> str:
    count = len(top_entries)
    responses = "\n\n".join(
        f"\n[Response {i} from {e.model}] (Avg Score: {e.avg_score:.1f}):\n{e.response}"
        for i, e in enumerate(top_entries, 1)
    )
    example = ",\n".join(
        f'    {{"rank": {rank}, "model": "model_name", "reasoning": "{_RANK_HINTS.get(rank, "why this is #" + str(rank))}"}}'
        for rank in range(1, count + 1)
    )
    return RANKING_PROMPT.format(
        referee=get_display_name(REFEREE_MODEL),
        count=count,
        prompt=original_prompt,
        responses=responses,
        example=example,
    )


def parse_ranking(reply: str, candidates: list[str]) -> FinalRanking:
    """Turn the referee's reply into a FinalRanking. Never raises.

    Keeps entries naming a candidate with an integer rank in 1..len(candidates),
    each rank and each model used once.
    """
    if is_error_text(reply):
        return FinalRanking(error=reply)

    data = extract_json(reply)
    if data is None:
        print("      [WARN] Referee: no JSON object in ranking reply", flush=True)
        return FinalRanking(error="No JSON object found in ranking response")

    entries = data.get("ranking")
    if not isinstance(entries, list):
        return FinalRanking(error="Ranking JSON has no ranking list")

    lookup = {c.lower(): c for c in candidates}
    seen_ranks, seen_models = set(), set()
    ranking = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        model = entry.get("model")
        model = lookup.get(model.strip().lower()) if isinstance(model, str) else None
        rank = entry.get("rank")
        if isinstance(rank, str) and rank.strip().isdigit():
            rank = int(rank.strip())
        if (model is None or isinstance(rank, bool) or not isinstance(rank, int)
                or not 1 <= rank <= len(candidates) or rank in seen_ranks or model in seen_models):
            print(f"      [WARN] Referee: dropped ranking entry {str(entry)[:80]}", flush=True)
            continue
        seen_ranks.add(rank)
        seen_models.add(model)
        reasoning = entry.get("reasoning", "")
        ranking.append(RankEntry(rank=rank, model=model,
                                 reasoning=reasoning if isinstance(reasoning, str) else str(reasoning)))

    if not ranking:
        return FinalRanking(error="Referee ranking named no valid candidates")
    ranking.sort(key=lambda r: r.rank)
    return FinalRanking(ranking=ranking)


async def rank_top(top_entries: list[AggregatedScore], original_prompt: str) -> FinalRanking:
    """Ask the referee model for an independent best-to-worst ranking of the top entries."""
    if not top_entries:
        return FinalRanking(error="No responses to rank")
    prompt = build_ranking_prompt(top_entries, original_prompt)
    reply = await generate(REFEREE_MODEL, prompt, max_tokens=MAX_TOKENS_EVAL, temperature=TEMPERATURE_EVAL)
    return parse_ranking(reply, [e.model for e in top_entries])
