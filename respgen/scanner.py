"""
Scanner - Enumerates candidate source files under the search paths.
"""

import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional

from .config import PipelineConfig


class Scanner:
    """
    Walks each search path for files with an accepted extension.

    Extension matching is case-insensitive. node_modules directories and the
    output tree are never descended into. Results are returned in search-path
    order, then sorted path order within each search path, so discovery order
    is stable across runs.
    """

    IGNORED_DIRS = {'node_modules'}

    def __init__(self, config: PipelineConfig, logger: Optional[logging.Logger] = None):
        """
        Initialize scanner.

        Args:
            config: Pipeline configuration
            logger: Optional logger instance
        """
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self.extensions = {f".{ext.lower().lstrip('.')}" for ext in config.file_extensions}

    def scan(self) -> List[str]:
        """
        Find local source files.

        Returns:
            List of file paths, without duplicates
        """
        found = []
        seen = set()
        for search_path in self.config.search_paths:
            if not os.path.isdir(search_path):
                self.logger.warning(f"Search path does not exist: {search_path}")
                continue
            for filepath in self._scan_path(search_path):
                resolved = os.path.realpath(filepath)
                if resolved in seen:
                    continue
                seen.add(resolved)
                found.append(filepath)

        self.logger.info(f"{len(found)} files found in {len(self.config.search_paths)} search paths")
        return found

    def _scan_path(self, search_path: str) -> Iterable[str]:
        output_root = self._output_root()
        matches = []
        for dirpath, dirnames, filenames in os.walk(search_path):
            dirnames[:] = [
                d for d in dirnames
                if d not in self.IGNORED_DIRS
                and os.path.realpath(os.path.join(dirpath, d)) != output_root
            ]
            for filename in filenames:
                if self.is_accepted(filename):
                    matches.append(os.path.join(dirpath, filename))
        return sorted(matches)

    def _output_root(self) -> Optional[str]:
        if not self.config.output_path:
            return None
        return os.path.realpath(self.config.output_path)

    def is_accepted(self, filename: str) -> bool:
        """True if the file has one of the configured extensions."""
        return Path(filename).suffix.lower() in self.extensions
