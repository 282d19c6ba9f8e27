"""
HumanitZ Log Downloader

Fetches the three text inputs of the stats importer from a Nitrado-hosted
HumanitZ server and caches them in the data directory:

- HMZLog.log              event log (required)
- PlayerConnectedLog.txt  connect/disconnect log (optional)
- PlayerIDMapped.txt      Steam ID to name map (optional)

When the file server cannot be reached at all, the cached copies are used.
"""

import logging
import os
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from ..base import FileBasedTool
from ..errors import RemoteFetchError
from ..nitrado.api_client import ENTRY_TYPE_DIR, NitradoAPIClient

logger = logging.getLogger(__name__)

LOG_CACHE = 'HMZLog-downloaded.log'
LOG_FALLBACK = 'HMZLog.log'
CONNECTED_LOG_CACHE = 'PlayerConnectedLog.txt'
ID_MAP_CACHE = 'PlayerIDMapped.txt'

DEFAULT_LOG_PATH = 'HumanitZServer/HMZLog.log'
DEFAULT_CONNECT_LOG_PATH = 'HumanitZServer/PlayerConnectedLog.txt'
DEFAULT_ID_MAP_PATH = 'HumanitZServer/PlayerIDMapped.txt'

# Directories worth listing when looking for the server files
EXPLORE_PATHS = [
    'HumanitZ', 'humanitz', 'HumanitZServer',
    'HumanitZServer/Saved', 'HumanitZServer/Saved/SaveGames',
    'Saved', 'Logs', 'home', 'server', 'game',
]
SEARCH_PATTERN = re.compile(r'\.(log|txt|sav)$', re.IGNORECASE)
SEARCH_DEPTH = 3


@dataclass
class LogInputs:
    """Raw text of the importer inputs; None for files that are not available."""
    event_log: Optional[str] = None
    connect_log: Optional[str] = None
    id_map: Optional[str] = None


def _size_kb(content: str) -> str:
    return f"{len(content) / 1024:.1f} KB"


class HumanitZLogDownloader(FileBasedTool):
    """Downloads and caches the HumanitZ log files used for player stats."""

    def __init__(self, config: Optional[Dict[str, Any]] = None, api_client: Optional[NitradoAPIClient] = None) -> None:
        super().__init__(config)
        self.initialize_directories()
        self.api_client = api_client or NitradoAPIClient(config)

        self.log_path = self.get_config('humanitz.log_path', DEFAULT_LOG_PATH)
        self.connect_log_path = self.get_config('humanitz.connect_log_path', DEFAULT_CONNECT_LOG_PATH)
        self.id_map_path = self.get_config('humanitz.id_map_path', DEFAULT_ID_MAP_PATH)

    def _read_cache(self, filename: str) -> Optional[str]:
        path = self.data_path(filename)
        if not os.path.exists(path):
            return None
        with open(path, 'r', encoding='utf-8', errors='replace') as f:
            return f.read()

    def _write_cache(self, filename: str, content: str) -> None:
        path = self.data_path(filename)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(content)

    def fetch_file(self, relative_path: str, cache_name: str) -> Optional[str]:
        """
        Download one file and cache it.

        Returns:
            The file text, or None if the file could not be downloaded.
        """
        remote_path = self.api_client.remote_path(relative_path)
        try:
            content = self.api_client.download_text(remote_path)
        except (requests.RequestException, KeyError) as e:
            logger.warning(f"{os.path.basename(relative_path)} - not found: {e}")
            return None

        self._write_cache(cache_name, content)
        logger.info(f"{os.path.basename(relative_path)} - {_size_kb(content)}")
        return content

    def download_files(self) -> LogInputs:
        """
        Download all three inputs.

        Raises:
            RemoteFetchError: If the file server is unreachable and no cached
                event log exists.
        """
        try:
            self.api_client.list_files(self.api_client.game_root)
        except requests.RequestException as e:
            logger.error(f"Nitrado file server not reachable: {e}")
            if self._read_cache(LOG_CACHE) is not None:
                logger.info("Falling back to cached files...")
                return self.load_local_files()
            raise RemoteFetchError(self.api_client.game_root, str(e)) from e

        return LogInputs(
            event_log=self.fetch_file(self.log_path, LOG_CACHE),
            connect_log=self.fetch_file(self.connect_log_path, CONNECTED_LOG_CACHE),
            id_map=self.fetch_file(self.id_map_path, ID_MAP_CACHE),
        )

    def load_local_files(self) -> LogInputs:
        """Load previously cached files from the data directory."""
        logger.info(f"Loading cached files from {self.data_dir}...")
        inputs = LogInputs()

        for filename in (LOG_CACHE, LOG_FALLBACK):
            inputs.event_log = self._read_cache(filename)
            if inputs.event_log is not None:
                logger.info(f"{filename} - {_size_kb(inputs.event_log)}")
                break
        else:
            logger.warning(f"HMZLog.log - not found in {self.data_dir}")

        inputs.connect_log = self._read_cache(CONNECTED_LOG_CACHE)
        if inputs.connect_log is None:
            logger.warning(f"{CONNECTED_LOG_CACHE} - not found in {self.data_dir}")
        else:
            logger.info(f"{CONNECTED_LOG_CACHE} - {_size_kb(inputs.connect_log)}")

        inputs.id_map = self._read_cache(ID_MAP_CACHE)
        if inputs.id_map is None:
            logger.warning(f"{ID_MAP_CACHE} - not found in {self.data_dir}")
        else:
            logger.info(f"{ID_MAP_CACHE} - {_size_kb(inputs.id_map)}")

        return inputs

    def _log_listing(self, directory: str, entries: List[Dict[str, Any]]) -> None:
        logger.info(f"{directory}/ contents:")
        for entry in entries:
            if entry.get('type') == ENTRY_TYPE_DIR:
                logger.info(f"  [DIR] {entry.get('name')}")
            else:
                logger.info(f"  [FILE] {entry.get('name')} ({entry.get('size', 0)} bytes)")

    def search_files(self, directory: str, depth: int = 0, max_depth: int = SEARCH_DEPTH,
                     found: Optional[List[str]] = None) -> List[str]:
        """Recursively collect .log, .txt and .sav files below a remote directory."""
        if found is None:
            found = []
        if depth >= max_depth:
            return found

        try:
            entries = self.api_client.list_files(directory)
        except requests.RequestException as e:
            logger.debug(f"Cannot list {directory}: {e}")
            return found

        for entry in entries:
            full_path = entry.get('path') or f"{directory.rstrip('/')}/{entry.get('name')}"
            if entry.get('type') == ENTRY_TYPE_DIR:
                self.search_files(full_path, depth + 1, max_depth, found)
            elif SEARCH_PATTERN.search(entry.get('name', '')):
                logger.info(f"  {full_path} ({entry.get('size', 0) / 1024:.1f} KB)")
                found.append(full_path)
        return found

    def explore_directories(self) -> List[str]:
        """
        List the game root and the usual HumanitZ directories, then search for
        candidate log files.

        Returns:
            Remote paths of every .log, .txt or .sav file found.
        """
        root = self.api_client.game_root
        self._log_listing(root, self.api_client.list_files(root))

        for relative in EXPLORE_PATHS:
            directory = self.api_client.remote_path(relative)
            try:
                entries = self.api_client.list_files(directory)
            except requests.RequestException:
                continue
            self._log_listing(directory, entries)

        logger.info(f"--- Searching for .log, .txt, .sav files ({SEARCH_DEPTH} levels deep) ---")
        return self.search_files(root)

    def run(self, local: bool = False) -> LogInputs:
        if local:
            return self.load_local_files()
        return self.download_files()
