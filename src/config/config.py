"""
Configuration Reader for HumanitZ Admin Tools

Profile-based JSON configuration:
- profiles/<profile>.json holds the regular settings
- secrets/<profile>_secrets.json holds the Nitrado token and IDs and is deep-merged
  over the profile
- values are read with dot notation, e.g. config.get('humanitz.log_path')

Usage:
    from config import Config
    config = Config(profile='my_server')
    data_dir = config.get('paths.data_dir', 'data')
"""

import copy
import logging
from typing import Dict, Any, List, Optional
from pathlib import Path

from humanitz_admin_tools.base import JSONTool

logger = logging.getLogger(__name__)

# Written when the default profile does not exist yet
DEFAULT_PROFILE_TEMPLATE = {
    "general": {
        "log_level": "INFO",
        "output_path": "output",
        "log_download_path": "logs"
    },
    "paths": {
        "data_dir": "data"
    },
    "nitrado_server": {
        "remote_base_path": "/gameservers/file_server",
        "ssl_verify": True
    },
    "humanitz": {
        "log_path": "HumanitZServer/HMZLog.log",
        "connect_log_path": "HumanitZServer/PlayerConnectedLog.txt",
        "id_map_path": "HumanitZServer/PlayerIDMapped.txt"
    },
    "stats": {
        "leaderboard_size": 10
    }
}


class Config(JSONTool):
    """
    JSON configuration reader with profiles and secrets.

    Attributes:
        config_dir (str): Directory containing profile JSON files
        secrets_dir (str): Directory containing secrets JSON files
        profile (str): Currently active profile name
        data (dict): Loaded configuration data
    """

    DEFAULT_CONFIG_DIR = str(Path(__file__).parent / 'profiles')
    DEFAULT_SECRETS_DIR = str(Path(__file__).parent / 'secrets')
    DEFAULT_PROFILE = "default"

    def __init__(self, config_dir: str = None, secrets_dir: str = None, profile: str = None,
                 config: Optional[Dict[str, Any]] = None):
        super().__init__(config)

        self.config_dir = config_dir or self.DEFAULT_CONFIG_DIR
        self.secrets_dir = secrets_dir or self.DEFAULT_SECRETS_DIR
        self.profile = profile or self.DEFAULT_PROFILE
        self.data = {}

        Path(self.config_dir).mkdir(parents=True, exist_ok=True)
        Path(self.secrets_dir).mkdir(parents=True, exist_ok=True)

        self._load()

    def run(self) -> Dict[str, Any]:
        return self.data

    def _load(self):
        """Load the active profile and merge its secrets over it."""
        profile_path = Path(self.config_dir) / f"{self.profile}.json"

        if not profile_path.exists():
            if self.profile == self.DEFAULT_PROFILE:
                self._create_default_profile(str(profile_path))
            else:
                logger.warning(f"Profile '{self.profile}' not found. Using empty configuration.")
                self.data = {}
                return

        try:
            self.data = self.read_json(str(profile_path))
        except (OSError, ValueError) as e:
            logger.error(f"Error loading configuration profile '{self.profile}': {e}")
            self.data = {}
            return

        logger.info(f"Loaded configuration from '{self.profile}'")
        self._load_secrets()

    def _create_default_profile(self, profile_path: str):
        self.data = copy.deepcopy(DEFAULT_PROFILE_TEMPLATE)
        try:
            self.write_json(self.data, profile_path)
            logger.info(f"Created default profile at '{profile_path}'")
        except OSError as e:
            logger.error(f"Error creating default configuration: {e}")

    def _load_secrets(self):
        """
        Deep-merge secrets/<profile>_secrets.json over the profile.

        A missing secrets file is normal for local-only use (--local), so it
        is only logged at debug level.
        """
        secrets_path = Path(self.secrets_dir) / f"{self.profile}_secrets.json"
        if not secrets_path.exists():
            logger.debug(f"No secrets file found for profile '{self.profile}'")
            return

        try:
            secrets = self.read_json(str(secrets_path))
        except (OSError, ValueError) as e:
            logger.error(f"Error loading secrets for profile '{self.profile}': {e}")
            return

        if isinstance(secrets, dict):
            self._deep_merge(self.data, secrets)
            logger.info(f"Merged secrets from '{secrets_path}'")

    def _deep_merge(self, target: Dict[str, Any], source: Dict[str, Any]):
        """Recursively merge source into target; non-dict values replace."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._deep_merge(target[key], value)
            else:
                target[key] = value

    def get(self, path: str = None, default: Any = None) -> Any:
        """
        Get a configuration value by dot-notation path.

        Examples:
            >>> config.get('humanitz.log_path')
            'HumanitZServer/HMZLog.log'
            >>> config.get()  # whole configuration
            {'general': {...}, 'humanitz': {...}}
        """
        if path is None:
            return self.data

        current = self.data
        for key in path.split('.'):
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default
        return current

    def list_profiles(self) -> List[str]:
        return sorted(f.stem for f in Path(self.config_dir).glob("*.json"))

    def switch_profile(self, profile: str) -> bool:
        """Reload from another profile; False if that profile does not exist."""
        profile_path = Path(self.config_dir) / f"{profile}.json"
        if not profile_path.exists():
            logger.warning(f"Profile '{profile}' not found.")
            return False
        self.profile = profile
        self._load()
        return True

    def get_path(self, path_key: str, fallback: str = None) -> str:
        """
        Resolve a filesystem path setting.

        Relative paths are resolved against the config package directory.
        Returns an empty string when the setting is empty.
        """
        path = self.get(path_key, fallback)
        if not path:
            return ""
        path_obj = Path(path)
        if path_obj.is_absolute():
            return str(path_obj)
        return str(Path(__file__).parent / path)
