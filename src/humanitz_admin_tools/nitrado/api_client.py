"""
Nitrado API Client

File server access for a HumanitZ game server hosted at Nitrado: listing
directories and downloading files through the two-step token download.
"""

import requests
import logging
from typing import Dict, Any, List, Optional
import urllib3
from ..base import HumanitZTool

logger = logging.getLogger(__name__)

NITRADO_API_BASE_URL = "https://api.nitrado.net/services/"

ENTRY_TYPE_DIR = 'dir'
ENTRY_TYPE_FILE = 'file'


class NitradoAPIClient(HumanitZTool):
    """Client for the Nitrado game server file API."""

    def __init__(self, config: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(config)
        self.token = self.get_config('api_token', '')
        self.service_id = self.get_config('service_id', '')
        self.server_id = self.get_config('server_id', '')
        self.remote_base_path = self.get_config('nitrado_server.remote_base_path', '/gameservers/file_server')
        self.ssl_verify = self.get_config('nitrado_server.ssl_verify', True)

        if not self.ssl_verify:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

        if not self.token:
            logger.warning("No Nitrado API token configured. File server calls will fail.")
        if not self.service_id:
            logger.warning("No Nitrado service ID configured. File server calls will fail.")

        self.headers = {"Authorization": f"Bearer {self.token}"}
        logger.debug(f"Nitrado client for service {self.service_id}, server {self.server_id}")

    @property
    def game_root(self) -> str:
        """Remote directory holding the HumanitZ server files."""
        return f"/games/{self.server_id}/ftproot"

    def remote_path(self, relative_path: str) -> str:
        """Join a path relative to the game root (e.g. 'HumanitZServer/HMZLog.log')."""
        return f"{self.game_root}/{relative_path.lstrip('/')}"

    def make_request(self, endpoint: str, method: str = 'GET',
                     params: Optional[Dict[str, Any]] = None,
                     data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Call a service endpoint and return the decoded JSON body.

        Raises:
            requests.RequestException: If the request fails.
        """
        url = f"{NITRADO_API_BASE_URL}{self.service_id}{endpoint}"

        try:
            response = requests.request(
                method=method,
                url=url,
                headers=self.headers,
                params=params,
                json=data,
                verify=self.ssl_verify
            )
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            logger.error(f"Nitrado request {method} {endpoint} failed: {e}")
            if getattr(e, 'response', None) is not None:
                logger.error(f"Response: {e.response.text}")
            raise

    def list_files(self, directory: str) -> List[Dict[str, Any]]:
        """
        List a remote directory.

        Returns:
            Entries with at least 'type' ('dir' or 'file'), 'name', 'path' and 'size'.
        """
        response = self.make_request(f"{self.remote_base_path}/list", params={'dir': directory})
        return response.get('data', {}).get('entries', [])

    def _get_download_token(self, remote_path: str) -> Dict[str, Any]:
        return self.make_request(f"{self.remote_base_path}/download", params={'file': remote_path})

    def download_file(self, remote_path: str) -> bytes:
        """
        Download a remote file: fetch a download token, then the file itself.

        Raises:
            requests.RequestException: If either request fails.
            KeyError: If the token response is not shaped as expected.
        """
        token_response = self._get_download_token(remote_path)
        token_data = token_response.get('data', {}).get('token')
        if not token_data or 'url' not in token_data:
            raise KeyError(f"No download token in Nitrado response for {remote_path}")

        try:
            download_response = requests.get(
                token_data['url'],
                params={'token': token_data.get('token')},
                verify=self.ssl_verify
            )
            download_response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Error downloading {remote_path}: {e}")
            raise

        logger.debug(f"Downloaded {remote_path} ({len(download_response.content)} bytes)")
        return download_response.content

    def download_text(self, remote_path: str, encoding: str = 'utf-8') -> str:
        """Download a remote text file; undecodable bytes are replaced."""
        return self.download_file(remote_path).decode(encoding, errors='replace')

    def run(self) -> List[Dict[str, Any]]:
        """List the game root directory."""
        return self.list_files(self.game_root)
