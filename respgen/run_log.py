"""
RunLog - Per-run structured event sink, flushed to a dated log file.
"""

import logging
import os
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from .fileio import ensure_dir_exists


@dataclass
class LogEvent:
    """One recorded log event."""
    timestamp: datetime
    level: str
    event: str
    message: str

    def format(self) -> str:
        return (
            f"{self.timestamp.strftime('%Y-%m-%d %H:%M:%S')} "
            f"[{self.level}] {self.event}: {self.message}"
        )


class RunLog(logging.Handler):
    """
    logging.Handler that keeps an ordered list of events for one run.

    Attach it to a logger for the duration of a run; records without an
    'event' extra are kept under the event name 'log'.
    """

    def __init__(self, level: int = logging.INFO):
        super().__init__(level)
        self.events: List[LogEvent] = []
        self.started = datetime.now()

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.events.append(LogEvent(
                timestamp=datetime.fromtimestamp(record.created),
                level=record.levelname,
                event=getattr(record, 'event', 'log'),
                message=record.getMessage(),
            ))
        except Exception:
            self.handleError(record)

    def of(self, event: str) -> List[LogEvent]:
        """Events with the given name, in order."""
        return [e for e in self.events if e.event == event]

    @property
    def filename(self) -> str:
        return f"{self.started.strftime('%Y-%m-%d-%H%M%S')}.log"

    def save(self, directory: str) -> Optional[str]:
        """
        Write all events to <directory>/YYYY-MM-DD-HHMMSS.log.

        Returns:
            Path written, or None if the file could not be written
        """
        path = os.path.join(directory, self.filename)
        try:
            ensure_dir_exists(path)
            with open(path, 'w') as f:
                for event in self.events:
                    f.write(event.format() + '\n')
        except OSError as e:
            logging.getLogger(__name__).error(f"Error saving run log {path}: {e}")
            return None
        return path
