# util/types.py
from typing import Literal


# Flow: Narrow types shared by core, models and repositories.
MatchType = Literal["exact", "paraphrase", "semantic", "weak", "no-match"]
ValidationStatus = Literal["validated", "questionable", "pending"]
ConflictType = Literal["value_disagreement", "confidence_variance", "split_vote"]
Severity = Literal["low", "medium", "high"]
Parity = Literal["even", "odd"]

MATCH_TYPES: tuple[str, ...] = ("exact", "paraphrase", "semantic", "weak", "no-match")
