"""Data structures for flushed metric series points."""
import math
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

Number = Union[int, float]

SERIES_KEY_DELIMITER = "#"
TAG_DELIMITER = "."


@dataclass
class SeriesPoint:
    """A single flushed metric series with one timestamped value."""
    metric: str
    points: List[Tuple[int, Number]]
    type: str
    host: str = ""
    tags: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Render the wire shape expected by reporting sinks."""
        return {
            "metric": self.metric,
            "points": [[ts, value] for ts, value in self.points],
            "type": self.type,
            "host": self.host,
            "tags": list(self.tags),
        }


def make_series_key(name: str, tags: Optional[Sequence[str]] = None) -> str:
    """Generate a stable, order-independent key from a name and its tags."""
    tags = list(tags) if tags else [""]
    return name + SERIES_KEY_DELIMITER + TAG_DELIMITER.join(sorted(tags))


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves rounding towards positive infinity."""
    return int(math.floor(value + 0.5))


def posix_timestamp(timestamp_ms: Optional[Number] = None) -> int:
    """Convert a millisecond timestamp (default: now) to whole seconds."""
    # 0 is a valid timestamp, only None means "now"
    if timestamp_ms is None:
        timestamp_ms = time.time() * 1000
    return round_half_up(timestamp_ms / 1000)
