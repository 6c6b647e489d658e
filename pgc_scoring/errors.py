"""
Exceptions raised by the PGC scoring cycle.
"""


class ScoringError(Exception):
    """Base class for scoring errors."""


class InsufficientDataError(ScoringError):
    """The snapshot cannot be scored yet (no tournament, no tour cards, bad tier tables).

    Expected between seasons or while feeds catch up; callers usually no-op
    and retry on the next run.
    """


class TeamScoringError(ScoringError):
    """A single team could not be scored; the rest of the field is unaffected."""

    def __init__(self, team_id: int, message: str):
        self.team_id = team_id
        super().__init__(f"Team {team_id}: {message}")
