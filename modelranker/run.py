"""
run.py - One user-triggered run: generate, then evaluate and rank on demand

Stages: idle -> generating -> generated -> evaluating -> evaluated
"""

import time

from .config import MIN_SELECTED_MODELS, MAX_SELECTED_MODELS, TOP_N, format_duration
from .evaluate import evaluate_all
from .rank import aggregate, top_n, rank_top
from .results import ModelResponse, FinalRanking


def can_generate(model_ids: list[str], prompt: str) -> bool:
    return MIN_SELECTED_MODELS <= len(model_ids) <= MAX_SELECTED_MODELS and bool(prompt and prompt.strip())


def can_evaluate(responses: list) -> bool:
    return len(responses) > 0


async def run_evaluation(responses: list[ModelResponse], original_prompt: str) -> dict:
    """Cross-evaluate, aggregate, pick the top entries and ask the referee to rank them.

    Returns the payload served by the evaluate endpoint.
    """
    start = time.time()
    print(f"  Evaluating {len(responses)} responses...", flush=True)

    evaluations = await evaluate_all(responses, original_prompt)
    failed = [e.evaluator for e in evaluations if e.error]
    if failed:
        print(f"  [WARN] No usable scores from: {', '.join(failed)}", flush=True)

    average_scores = aggregate(responses, evaluations)
    top_three = top_n(average_scores, TOP_N)
    final_ranking = await rank_top(top_three, original_prompt)

    print(f"  Evaluation complete in {format_duration(time.time() - start)}", flush=True)
    return {
        "evaluations": [e.to_dict() for e in evaluations],
        "averageScores": [a.to_dict() for a in average_scores],
        "topThree": [a.to_dict() for a in top_three],
        "finalRanking": final_ranking.to_dict(),
    }


def alignment(user_choice: str | None, final_ranking: FinalRanking | dict | None) -> tuple[str | None, int | None]:
    """Compare the user's pick with the referee's ranking.

    Returns ("perfect", 1), ("partial", rank), ("different", None),
    or (None, None) when there is no pick or no ranking yet.
    """
    if isinstance(final_ranking, dict):
        ranking = [(r.get("rank"), r.get("model")) for r in final_ranking.get("ranking") or []]
    elif final_ranking is not None:
        ranking = [(r.rank, r.model) for r in final_ranking.ranking]
    else:
        ranking = []

    if not user_choice or not ranking:
        return None, None
    if ranking[0][1] == user_choice:
        return "perfect", 1
    for rank, model in ranking:
        if model == user_choice:
            return "partial", rank
    return "different", None
