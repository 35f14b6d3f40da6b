"""
Score validation for pool and bracket games.

A game may only be completed on a terminal score: the leader has reached
end_points (and leads by two when win_by_two is on), or the leader has reached
the cap. Equal scores are never terminal.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional

DEFAULT_START_POINTS = 0
DEFAULT_END_POINTS = 21
DEFAULT_CAP = 25

SIDE_A = "A"
SIDE_B = "B"


class ScoreValidationError(ValueError):
    """Raised when a score pair is not a valid final score."""


@dataclass(frozen=True)
class ScoringRules:
    start_points: int = DEFAULT_START_POINTS
    end_points: int = DEFAULT_END_POINTS
    win_by_two: bool = True
    cap: Optional[int] = DEFAULT_CAP

    @classmethod
    def from_json(cls, data: Optional[Dict[str, Any]]) -> "ScoringRules":
        """Build rules from a tournament's scoring_rules JSON, filling defaults for missing keys.

        A missing "cap" key means the default cap; an explicit null means no cap.
        """
        if not data:
            return cls()
        cap = data.get("cap", DEFAULT_CAP)
        return cls(
            start_points=int(data.get("start_points", DEFAULT_START_POINTS)),
            end_points=int(data.get("end_points", DEFAULT_END_POINTS)),
            win_by_two=bool(data.get("win_by_two", True)),
            cap=int(cap) if cap is not None else None,
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "start_points": self.start_points,
            "end_points": self.end_points,
            "win_by_two": self.win_by_two,
            "cap": self.cap,
        }

    def describe(self) -> str:
        parts = [f"{self.end_points}+"]
        if self.win_by_two:
            parts.append("with 2 point lead")
        text = " ".join(parts)
        if self.cap is not None:
            text += f" or {self.cap}"
        return text


def is_valid_completion(team_a_score: int, team_b_score: int, rules: Optional[ScoringRules] = None) -> bool:
    rules = rules or ScoringRules()
    if team_a_score == team_b_score:
        return False
    high = max(team_a_score, team_b_score)
    diff = abs(team_a_score - team_b_score)
    if high >= rules.end_points and (not rules.win_by_two or diff >= 2):
        return True
    return rules.cap is not None and high >= rules.cap


def validate_completion(team_a_score: int, team_b_score: int, rules: Optional[ScoringRules] = None) -> str:
    """
    Check that (team_a_score, team_b_score) is a terminal score under rules.

    Returns the winning side (SIDE_A or SIDE_B).
    Raises ScoreValidationError without touching any state otherwise.
    """
    rules = rules or ScoringRules()
    if not is_valid_completion(team_a_score, team_b_score, rules):
        raise ScoreValidationError(
            f"Game does not meet completion criteria ({rules.describe()}); "
            f"score is {team_a_score}-{team_b_score}"
        )
    return SIDE_A if team_a_score > team_b_score else SIDE_B


def validate_score_values(team_a_score: Any, team_b_score: Any) -> None:
    """Scores must be non-negative integers (bool is rejected)."""
    for value in (team_a_score, team_b_score):
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ScoreValidationError("Invalid scores")
