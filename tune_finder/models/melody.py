from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict


class Template(BaseModel):
    """A named reference trajectory, sampled at the tick cadence."""
    model_config = ConfigDict(frozen=True)

    name: str
    frequencies: List[float]
    source: Optional[str] = None

    def __len__(self) -> int:
        return len(self.frequencies)


class MatchRecord(BaseModel):
    name: str
    distance: float
    chunks_evaluated: int = 0


class RankingRow(BaseModel):
    name: str
    count: int
    percentage: float
    is_last: bool = False


class TemplateInfo(BaseModel):
    name: str
    length: int
    duration_seconds: float


class SessionSummary(BaseModel):
    session_id: str
    status: str
    sample_rate: Optional[float] = None
    frequency: float = 0.0
    pitch: str = ""
    trajectory: List[float] = []
    ranking: List[RankingRow] = []
    percentages: Dict[str, float] = {}
    last_winner: Optional[str] = None
    ticks: int = 0
    matches: int = 0
    dropped_ticks: int = 0
    failure_reason: Optional[str] = None
