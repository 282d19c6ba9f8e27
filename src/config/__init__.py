# Configuration package initialization
"""
HumanitZ Admin Tools - Configuration System

    from config import Config
    config = Config(profile='my_server')
    value = config.get('humanitz.log_path')
"""

from config.config import Config

__all__ = ['Config']
