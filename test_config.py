#!/usr/bin/env python3
"""
Tests for profile and secrets loading.
"""

import json
import os
import sys
import tempfile

sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from config.config import DEFAULT_PROFILE_TEMPLATE, Config


def _dirs(root):
    return os.path.join(root, 'profiles'), os.path.join(root, 'secrets')


def _tool_config(root):
    # Keeps the JSONTool working directories inside the temporary root
    return {
        'general': {
            'log_download_path': os.path.join(root, 'logs'),
            'output_path': os.path.join(root, 'output'),
        },
        'paths': {'data_dir': os.path.join(root, 'data')},
    }


def _write(path, data):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f)


def test_default_profile_is_created():
    with tempfile.TemporaryDirectory() as root:
        config_dir, secrets_dir = _dirs(root)

        config = Config(config_dir, secrets_dir, config=_tool_config(root))

        assert config.get() == DEFAULT_PROFILE_TEMPLATE
        assert os.path.exists(os.path.join(config_dir, 'default.json'))
        assert config.get('humanitz.log_path') == 'HumanitZServer/HMZLog.log'
        assert config.get('stats.leaderboard_size') == 10


def test_secrets_are_deep_merged():
    with tempfile.TemporaryDirectory() as root:
        config_dir, secrets_dir = _dirs(root)
        _write(os.path.join(config_dir, 'server.json'), {
            'nitrado_server': {'ssl_verify': True, 'remote_base_path': '/gameservers/file_server'},
            'paths': {'data_dir': 'data'},
        })
        _write(os.path.join(secrets_dir, 'server_secrets.json'), {
            'api_token': 'token',
            'nitrado_server': {'ssl_verify': False},
        })

        config = Config(config_dir, secrets_dir, profile='server', config=_tool_config(root))

        assert config.get('api_token') == 'token'
        assert config.get('nitrado_server.ssl_verify') is False
        assert config.get('nitrado_server.remote_base_path') == '/gameservers/file_server'
        assert config.get('missing.key', 'fallback') == 'fallback'


def test_unknown_profile_is_empty():
    with tempfile.TemporaryDirectory() as root:
        config_dir, secrets_dir = _dirs(root)

        config = Config(config_dir, secrets_dir, profile='nope', config=_tool_config(root))

        assert config.get() == {}
        assert not config.switch_profile('still-nope')


def test_list_and_switch_profiles():
    with tempfile.TemporaryDirectory() as root:
        config_dir, secrets_dir = _dirs(root)
        _write(os.path.join(config_dir, 'b.json'), {'name': 'b'})
        _write(os.path.join(config_dir, 'a.json'), {'name': 'a'})

        config = Config(config_dir, secrets_dir, profile='a', config=_tool_config(root))

        assert config.list_profiles() == ['a', 'b']
        assert config.switch_profile('b')
        assert config.get('name') == 'b'


def test_get_path():
    with tempfile.TemporaryDirectory() as root:
        config_dir, secrets_dir = _dirs(root)
        _write(os.path.join(config_dir, 'p.json'), {'paths': {'data_dir': root, 'empty': ''}})

        config = Config(config_dir, secrets_dir, profile='p', config=_tool_config(root))

        assert config.get_path('paths.data_dir') == root
        assert config.get_path('paths.empty') == ''


if __name__ == "__main__":
    test_default_profile_is_created()
    test_secrets_are_deep_merged()
    test_list_and_switch_profiles()
    print("Config tests passed")
