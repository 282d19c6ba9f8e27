"""
HumanitZ player stats engine: aggregation, identity resolution, playtime
reconstruction, merging and validation.
"""

from .aggregator import PlayerStatsAggregator
from .identity import IdentityMap, IdentityResolver
from .merge import MergeEngine, validate_against_store
from .pipeline import run_pipeline
from .sessions import SessionReconstructor

__all__ = [
    'IdentityMap',
    'IdentityResolver',
    'MergeEngine',
    'PlayerStatsAggregator',
    'SessionReconstructor',
    'run_pipeline',
    'validate_against_store',
]
