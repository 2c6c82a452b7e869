"""
config.py - Configuration constants and utilities for the AI Model Ranker
"""

import json
import os

from dotenv import load_dotenv

load_dotenv()

# Token limits
MAX_TOKENS_ANSWER = 2048
MAX_TOKENS_EVAL = 2048
DEFAULT_TIMEOUT = 300  # Upper bound for a single provider call, in seconds

# Temperature settings
TEMPERATURE_DEFAULT = 0.7
TEMPERATURE_EVAL = 0

# Run settings
MIN_SELECTED_MODELS = 4
MAX_SELECTED_MODELS = 5
TOP_N = 3

# Scores outside this range are clamped
SCORE_MIN = 0
SCORE_MAX = 100

# Referee for the final top-3 ranking (fixed, not user-selectable)
REFEREE_MODEL = "gemini-1.5-pro"

# Images without a data URL prefix are sent with this media type
DEFAULT_IMAGE_MEDIA_TYPE = "image/jpeg"

# Gateway failures are returned as display text starting with this prefix
ERROR_PREFIX = "Error: "


def get_api_key(provider: str) -> str:
    key_map = {
        "openai": "OPENAI_API_KEY",
        "anthropic": "ANTHROPIC_API_KEY",
        "google": "GOOGLE_API_KEY",
    }
    env_var = key_map.get(provider)
    if not env_var:
        raise ValueError(f"Unknown provider: {provider}")
    key = os.getenv(env_var)
    if not key:
        raise ValueError(f"{env_var} not set")
    return key


def is_error_text(text: str) -> bool:
    """True when a gateway result is an embedded error rather than a model reply."""
    return isinstance(text, str) and text.startswith(ERROR_PREFIX)


def format_duration(seconds: float) -> str:
    if seconds < 60:
        return f"{seconds:.1f}s"
    return f"{int(seconds // 60)}m {seconds % 60:.1f}s"


def _match_braces(text: str, start: int) -> int:
    """Return the index of the brace closing the one at `start`, or -1.

    Braces inside JSON string literals are ignored.
    """
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
    return -1


def extract_json(text: str) -> dict | None:
    """Extract the first top-level JSON object from text that may contain prose or markdown."""
    if not text:
        return None
    text = text.strip()

    # Direct parse
    try:
        data = json.loads(text)
        if isinstance(data, dict):
            return data
    except json.JSONDecodeError:
        pass

    # Scan for balanced braces, first parseable object wins
    start = text.find("{")
    while start != -1:
        end = _match_braces(text, start)
        if end != -1:
            try:
                data = json.loads(text[start:end + 1])
                if isinstance(data, dict):
                    return data
            except json.JSONDecodeError:
                pass
        start = text.find("{", start + 1)
    return None


def format_table(headers: list[str], rows: list[list[str]], alignments: list[str] | None = None) -> str:
    """Format a markdown table with proper column alignment."""
    alignments = alignments or ['l'] * len(headers)
    widths = [max(len(h), max((len(str(row[i])) for row in rows), default=0)) for i, h in enumerate(headers)]

    def align(text, width, a):
        return text.ljust(width) if a == 'l' else text.rjust(width) if a == 'r' else text.center(width)

    sep = '|'.join(':' + '-' * w + ':' if a == 'c' else '-' * (w + 1) + ':' if a == 'r' else '-' * (w + 2)
                   for w, a in zip(widths, alignments))

    lines = ['| ' + ' | '.join(align(h, widths[i], alignments[i]) for i, h in enumerate(headers)) + ' |',
             '|' + sep + '|']
    lines.extend('| ' + ' | '.join(align(str(c), widths[i], alignments[i]) for i, c in enumerate(row)) + ' |' for row in rows)
    return '\n'.join(lines)
