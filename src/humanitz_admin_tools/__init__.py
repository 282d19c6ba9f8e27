"""
HumanitZ Admin Tools - Python package for HumanitZ server administration

Rebuilds per-player statistics, playtime and Steam ID mappings from the logs of
a Nitrado-hosted HumanitZ server. Configuration comes from the top-level config
package.
"""

__version__ = '0.1.0'
