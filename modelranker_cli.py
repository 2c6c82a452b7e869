"""
AI Model Ranker - command line entry point

Usage:
  python modelranker_cli.py --list                      # Show supported models
  python modelranker_cli.py --health                    # Test all provider APIs
  python modelranker_cli.py --prompt "Explain gravity" --models gpt-4o,gpt-4o-mini,gemini-1.5-pro,gemini-1.5-flash
  python modelranker_cli.py --prompt "What is in this picture?" --models ... --image photo.jpg
  python modelranker_cli.py --serve --port 8000         # Start the HTTP API
"""

import argparse
import asyncio
import base64
import mimetypes
import sys
import time
from pathlib import Path

from modelranker.config import (
    MIN_SELECTED_MODELS, MAX_SELECTED_MODELS, REFEREE_MODEL,
    format_duration, format_table,
)
from modelranker.generate import generate_all
from modelranker.models import ALL_MODELS, MODEL_IDS, get_display_name
from modelranker.providers import health_check
from modelranker.run import can_generate, run_evaluation


def load_image(path: str) -> str:
    """Read an image file as a base64 data URL."""
    media_type = mimetypes.guess_type(path)[0] or "image/jpeg"
    data = base64.b64encode(Path(path).read_bytes()).decode("ascii")
    return f"data:{media_type};base64,{data}"


def print_models():
    rows = [[m["id"], m["name"], m["provider"], m["model_id"]] for m in ALL_MODELS]
    print(format_table(["Id", "Name", "Provider", "Model"], rows))
    print(f"\nReferee: {REFEREE_MODEL}")


async def run_once(model_ids: list[str], prompt: str, images: list[str]):
    """Generate, evaluate and rank once, printing each stage."""
    start = time.time()
    print(f"\n{'=' * 60}")
    print("  AI MODEL RANKER")
    print(f"{'-' * 60}")
    print(f"  Models:  {', '.join(model_ids)}")
    print(f"  Images:  {len(images)}")
    print(f"{'=' * 60}\n")

    responses = await generate_all(model_ids, prompt, images)
    for r in responses:
        print(f"--- {get_display_name(r.model)} ({format_duration(r.duration)}) ---\n{r.response}\n")

    result = await run_evaluation(responses, prompt)

    rows = [[a["model"], f"{a['avgScore']:.1f}", ", ".join(f"{s:.0f}" for s in a["scores"]) or "-"]
            for a in sorted(result["averageScores"], key=lambda a: a["avgScore"], reverse=True)]
    print("\n" + format_table(["Model", "Avg Score", "Scores"], rows, ["l", "r", "l"]))

    final_ranking = result["finalRanking"]
    print(f"\nFinal ranking by {get_display_name(REFEREE_MODEL)}:")
    for entry in final_ranking["ranking"]:
        print(f"  #{entry['rank']} {entry['model']}: {entry['reasoning']}")
    if final_ranking.get("error"):
        print(f"  [ERROR] {final_ranking['error']}")

    print(f"\nDone in {format_duration(time.time() - start)}")
    return result


def main():
    parser = argparse.ArgumentParser(
        description="AI Model Ranker - generate, cross-evaluate and rank LLM responses",
        epilog=f"Available models: {', '.join(MODEL_IDS)}"
    )
    parser.add_argument("--prompt", type=str, help="Prompt sent to every model")
    parser.add_argument("--models", type=str, help=f"Models to query ({MIN_SELECTED_MODELS}-{MAX_SELECTED_MODELS}, comma-separated)")
    parser.add_argument("--image", action="append", default=[], help="Image file to attach (repeatable)")
    parser.add_argument("--health", action="store_true", help="Run API health check")
    parser.add_argument("--list", action="store_true", help="List supported models")
    parser.add_argument("--serve", action="store_true", help="Start the HTTP API")
    parser.add_argument("--host", type=str, default="127.0.0.1", help="HTTP API host")
    parser.add_argument("--port", type=int, default=8000, help="HTTP API port")
    args = parser.parse_args()

    if args.list:
        print_models()
        return
    if args.serve:
        # uvicorn runs its own event loop
        from modelranker.server import run
        run(host=args.host, port=args.port)
        return
    if args.health:
        asyncio.run(health_check())
        return
    if not args.prompt:
        parser.print_help()
        return

    model_ids = [m.strip() for m in (args.models or "").split(",") if m.strip()]
    unknown = [m for m in model_ids if m not in MODEL_IDS]
    if unknown:
        print(f"Unknown models: {', '.join(unknown)}")
        sys.exit(1)
    if not can_generate(model_ids, args.prompt):
        print(f"Select {MIN_SELECTED_MODELS}-{MAX_SELECTED_MODELS} models and a non-empty prompt")
        sys.exit(1)

    images = [load_image(p) for p in args.image]
    asyncio.run(run_once(model_ids, args.prompt, images))


if __name__ == "__main__":
    main()
