"""
Base classes for HumanitZ Admin Tools.

This module provides base classes used throughout the package.
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, Optional, List
from datetime import datetime
import json
import logging
import os
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)


class HumanitZTool(ABC):
    """Base class for all HumanitZ admin tools."""

    def __init__(self, config: Optional[Dict[str, Any]] = None) -> None:
        """
        Initialize the tool.

        Args:
            config: Optional configuration dictionary.
        """
        self.config = config or {}
        self.setup_logging()

    @staticmethod
    def add_standard_arguments(parser):
        """
        Add standard arguments that should be consistent across all command-line tools.

        Args:
            parser: The ArgumentParser instance to add arguments to
        """
        parser.add_argument("--profile", default=None,
                            help="Configuration profile to use (default: use default profile)")
        parser.add_argument("--console", action="store_true",
                            help="Log detailed output summary (in addition to regular logging)")
        parser.add_argument("--verbose", "-v", action="store_true",
                            help="Enable verbose (debug) logging")

    @staticmethod
    def load_config(profile: Optional[str] = None) -> Dict[str, Any]:
        """
        Load configuration from a specified profile and set up logging from it.

        Args:
            profile: Name of the profile to load. If None, uses the default profile.

        Returns:
            The configuration dictionary.
        """
        from config.config import Config

        config_obj = Config(profile=profile)
        config_data = config_obj.get()

        log_level = config_data.get('general', {}).get('log_level', 'INFO').upper()

        # Reset any existing handlers to avoid duplicated logs
        for handler in logging.root.handlers[:]:
            logging.root.removeHandler(handler)

        logging.basicConfig(
            level=getattr(logging, log_level, logging.INFO),
            format='%(asctime)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        logging.getLogger().setLevel(getattr(logging, log_level, logging.INFO))

        logging.debug(f"Logging initialized with level: {log_level}")

        return config_data

    def setup_logging(self, level: int = logging.INFO):
        """
        Set up logging for this tool.

        Args:
            level: The logging level to use.
        """
        log_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        logging.basicConfig(level=level, format=log_format)

    def get_config(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value using dot notation.

        Args:
            key: The configuration key (e.g. "humanitz.log_path").
            default: Default value if the key is not found.

        Returns:
            The configuration value, or the default if not found.
        """
        value = self.config

        for part in key.split('.'):
            if isinstance(value, dict) and part in value:
                value = value[part]
            else:
                return default

        return value

    @abstractmethod
    def run(self) -> Any:
        """
        Run the tool. Must be implemented by subclasses.

        Returns:
            The result of running the tool.
        """
        pass


class FileBasedTool(HumanitZTool):
    """Base class for tools that work with files."""

    def __init__(self, config: Optional[Dict[str, Any]] = None) -> None:
        """
        Initialize the file-based tool.

        Args:
            config: Optional configuration dictionary.
        """
        super().__init__(config)
        self.log_dir = None
        self.output_dir = None
        self.data_dir = None

    def initialize_directories(self):
        """
        Initialize common directories from configuration.

        Sets up the log download, output and data directories.
        """
        self.log_dir = self.get_config('general.log_download_path', 'logs')
        self.output_dir = self.get_config('general.output_path', 'output')
        self.data_dir = self.get_config('paths.data_dir', 'data')

        for label, directory in (("Log", self.log_dir), ("Output", self.output_dir), ("Data", self.data_dir)):
            if directory:
                resolved = self.resolve_path(directory)
                os.makedirs(resolved, exist_ok=True)
                logger.debug(f"{label} directory: {resolved}")

    def resolve_path(self, path: str) -> str:
        """
        Resolve a path, expanding user paths and environment variables.

        Args:
            path: The path to resolve.

        Returns:
            The resolved absolute path.
        """
        expanded_path = os.path.expanduser(os.path.expandvars(path))
        return os.path.abspath(expanded_path)

    def ensure_dir(self, directory: str) -> str:
        """
        Ensure a directory exists, create it if it doesn't.

        Args:
            directory: The directory path.

        Returns:
            The absolute path to the directory.
        """
        path = Path(self.resolve_path(directory))
        os.makedirs(path, exist_ok=True)
        return str(path)

    def data_path(self, filename: str) -> str:
        """Absolute path of a file inside the data directory."""
        return os.path.join(self.resolve_path(self.data_dir or 'data'), filename)

    def backup_file(self, file_path: str, backup_dir: Optional[str] = None) -> str:
        """
        Create a timestamped backup of a file.

        Args:
            file_path: Path to the file to back up.
            backup_dir: Directory to store the backup in (default: next to the file).

        Returns:
            Path to the backup file.
        """
        source_path = Path(self.resolve_path(file_path))
        stamp = datetime.now().strftime('%Y%m%d_%H%M%S')

        if backup_dir:
            backup_path = Path(self.ensure_dir(backup_dir)) / f"{source_path.stem}_{stamp}{source_path.suffix}"
        else:
            backup_path = source_path.with_name(f"{source_path.stem}_backup_{stamp}{source_path.suffix}")

        shutil.copy2(str(source_path), str(backup_path))
        logger.info(f"Created backup: {backup_path}")
        return str(backup_path)

    def write_csv(self, data_rows: List, output_path: str, headers: List[str] = None) -> str:
        """
        Write data to a CSV file.

        Args:
            data_rows: List of dictionaries with data to write
            output_path: Path to the output CSV file (relative paths land in the output directory)
            headers: Optional list of header columns (if None, uses keys from first row)

        Returns:
            Absolute path to the created CSV file
        """
        import csv

        if self.output_dir and not os.path.isabs(output_path):
            output_dir_norm = os.path.normpath(self.output_dir)
            if not os.path.normpath(output_path).startswith(output_dir_norm):
                output_path = os.path.join(self.output_dir, output_path)

        resolved_path = self.resolve_path(output_path)
        logger.debug(f"Writing CSV to {resolved_path}")
        os.makedirs(os.path.dirname(resolved_path), exist_ok=True)

        if headers is None and data_rows and isinstance(data_rows[0], dict):
            headers = list(data_rows[0].keys())

        with open(resolved_path, "w", newline="", encoding="utf-8") as f:
            if data_rows and isinstance(data_rows[0], dict) and headers:
                writer = csv.DictWriter(f, fieldnames=headers)
                writer.writeheader()
                writer.writerows(data_rows)
            else:
                writer = csv.writer(f)
                if headers:
                    writer.writerow(headers)
                writer.writerows(data_rows)

        if not data_rows:
            logger.warning(f"No data to write, empty CSV created at {resolved_path}")
        else:
            logger.info(f"Results written to {resolved_path}")
        return resolved_path

    def generate_timestamped_filename(self, base_name: str, extension: str, prefix: str = "", suffix: str = "") -> str:
        """
        Generate a filename with a timestamp.

        Args:
            base_name: The base name for the file
            extension: File extension (without the dot)
            prefix: Optional prefix to add before the timestamp
            suffix: Optional suffix to add after the timestamp

        Returns:
            A filename in the format: base_name_prefix_YYYYMMDD_HHMMSS_suffix.extension
        """
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

        prefix_str = f"{prefix}_" if prefix else ""
        suffix_str = f"_{suffix}" if suffix else ""

        filename = f"{base_name}_{prefix_str}{timestamp}{suffix_str}.{extension}"
        return filename.replace("__", "_")


class JSONTool(FileBasedTool):
    """Base class for tools that work with JSON files."""

    def __init__(self, config: Optional[Dict[str, Any]] = None) -> None:
        """
        Initialize the JSON tool.

        Args:
            config: Optional configuration dictionary.
        """
        super().__init__(config)
        self.initialize_directories()

    def read_json(self, file_path: str) -> Any:
        """
        Read a JSON file.

        Args:
            file_path: Path to the JSON file.

        Returns:
            The parsed JSON content.

        Raises:
            json.JSONDecodeError: If the file contains invalid JSON.
            FileNotFoundError: If the file doesn't exist.
        """
        resolved_path = self.resolve_path(file_path)
        logger.debug(f"Reading JSON file: {resolved_path}")

        with open(resolved_path, 'r', encoding='utf-8') as f:
            return json.load(f)

    def write_json(self, data: Any, file_path: str, indent: int = 2) -> str:
        """
        Write data to a JSON file.

        Args:
            data: The data to write.
            file_path: Path to the output file.
            indent: Number of spaces for indentation (default: 2).

        Returns:
            The absolute path to the created file.
        """
        resolved_path = self.resolve_path(file_path)
        os.makedirs(os.path.dirname(resolved_path), exist_ok=True)

        with open(resolved_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=indent, ensure_ascii=False)

        logger.info(f"JSON data written to {resolved_path}")
        return resolved_path
