"""
Running confidence tally over match outcomes.

Every completed match adds one vote for its winner. Confidence for a
template is its share of all votes so far.
"""

from typing import Dict, List, Optional

from tune_finder.models.melody import MatchRecord, RankingRow


class ConfidenceAggregator:
    """Histogram of match winners for one listening session."""

    def __init__(self):
        self._counts: Dict[str, int] = {}
        self.last_winner: Optional[str] = None
        self.last_match: Optional[MatchRecord] = None

    def record(self, match: MatchRecord) -> int:
        """
        Count one win for ``match.name``.

        Returns:
            The winner's new count
        """
        self._counts[match.name] = self._counts.get(match.name, 0) + 1
        self.last_winner = match.name
        self.last_match = match
        return self._counts[match.name]

    def reset(self) -> None:
        self._counts = {}
        self.last_winner = None
        self.last_match = None

    @property
    def counts(self) -> Dict[str, int]:
        return dict(self._counts)

    @property
    def total(self) -> int:
        return sum(self._counts.values())

    def percentages(self) -> Dict[str, float]:
        """Share of wins per template (0-100). Empty until the first match."""
        total = self.total
        if total == 0:
            return {}
        return {
            name: 100.0 * count / total
            for name, count in self._counts.items()
            if count > 0
        }

    def ranking(self) -> List[RankingRow]:
        """Rows sorted by count, highest first; ties keep first-win order."""
        percentages = self.percentages()
        ordered = sorted(self._counts.items(), key=lambda item: -item[1])
        return [
            RankingRow(
                name=name,
                count=count,
                percentage=round(percentages.get(name, 0.0), 2),
                is_last=(name == self.last_winner),
            )
            for name, count in ordered
        ]
