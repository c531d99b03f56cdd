"""
Position history export.

Format (kept stable for downstream consumers):

    timestamp,x,y
    1718000000000,20.1,19.8
    ...
"""

from pathlib import Path
from typing import Iterable, Union

from uwb_field.proto.position_estimate import PositionHistoryPoint

CSV_HEADER = "timestamp,x,y"
DEFAULT_EXPORT_FILENAME = "uwb_tracking_data.csv"


def history_to_csv(history: Iterable[PositionHistoryPoint]) -> str:
    """Serialize history points as timestamp,x,y rows, header first."""
    rows = [CSV_HEADER]
    rows.extend(f"{p.timestamp_ms},{p.x},{p.y}" for p in history)
    return "\n".join(rows)


def write_history_csv(
    history: Iterable[PositionHistoryPoint],
    path: Union[str, Path] = DEFAULT_EXPORT_FILENAME
) -> Path:
    """
    Write history to a CSV file.

    Returns:
        Path of the written file
    """
    path = Path(path)
    path.write_text(history_to_csv(history), encoding='utf-8')
    return path
