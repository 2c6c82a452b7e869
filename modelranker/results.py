"""
results.py - Result records passed between generation, evaluation and ranking
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ModelResponse:
    model: str
    response: str
    duration: float = 0.0

    def to_dict(self) -> dict:
        return {"model": self.model, "response": self.response, "duration": round(self.duration, 2)}


@dataclass
class ScoreEntry:
    evaluator: str
    model: str
    score: float
    reasoning: str = ""


@dataclass
class Evaluation:
    """One evaluator's parsed verdict on every response.

    `raw` is the JSON object found in the evaluator's reply, untouched.
    """
    evaluator: str
    scores: list[ScoreEntry] = field(default_factory=list)
    raw: dict = field(default_factory=lambda: {"scores": []})
    error: str | None = None

    def to_dict(self) -> dict:
        evaluation = dict(self.raw)
        if self.error:
            evaluation["error"] = self.error
        return {"evaluator": self.evaluator, "evaluation": evaluation}


@dataclass
class AggregatedScore:
    model: str
    response: str
    scores: list[float] = field(default_factory=list)
    avg_score: float = 0.0

    def to_dict(self) -> dict:
        return {"model": self.model, "response": self.response,
                "avgScore": self.avg_score, "scores": list(self.scores)}


@dataclass
class RankEntry:
    rank: int
    model: str
    reasoning: str = ""

    def to_dict(self) -> dict:
        return {"rank": self.rank, "model": self.model, "reasoning": self.reasoning}


@dataclass
class FinalRanking:
    ranking: list[RankEntry] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict:
        data = {"ranking": [r.to_dict() for r in self.ranking]}
        if self.error:
            data["error"] = self.error
        return data
