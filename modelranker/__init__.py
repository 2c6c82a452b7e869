"""
AI Model Ranker - multi-model generation with peer cross-evaluation

Selected models answer the same prompt (optionally with images), score each other's
responses, and a referee model ranks the top three.
"""

from . import config  # noqa: F401
from . import models  # noqa: F401
from . import providers  # noqa: F401

__all__ = ["config", "models", "providers"]
__version__ = "1.0.0"
