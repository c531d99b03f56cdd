"""
I/O Module: reading sources and export.

- FeedReceiver: live TCP feed, bounded queue, deterministic teardown
- ReadingSimulator: synthetic figure-8 readings for demo mode
- history_to_csv / write_history_csv: timestamp,x,y export
"""

from .feed_receiver import (
    ConnectionStatus,
    FeedMessage,
    FeedReceiver,
    MSG_ANCHOR_READING,
    MSG_LOCALIZATION_RESULT,
    encode_message,
)
from .simulator import ReadingSimulator
from .csv_export import (
    CSV_HEADER,
    DEFAULT_EXPORT_FILENAME,
    history_to_csv,
    write_history_csv,
)

__all__ = [
    'ConnectionStatus',
    'FeedMessage',
    'FeedReceiver',
    'MSG_ANCHOR_READING',
    'MSG_LOCALIZATION_RESULT',
    'encode_message',
    'ReadingSimulator',
    'CSV_HEADER',
    'DEFAULT_EXPORT_FILENAME',
    'history_to_csv',
    'write_history_csv',
]
