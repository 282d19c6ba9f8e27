"""
One complete stats import pass over in-memory inputs.

No file or network access happens here; callers fetch the inputs first and
persist the documents afterwards.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..errors import MissingEventLogError
from .aggregator import PlayerStatsAggregator
from .identity import IdentityMap, IdentityResolver, parse_id_map_feed
from .merge import MergeEngine, MergeResult
from .sessions import PlaytimeResult, SessionReconstructor

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    aggregator: PlayerStatsAggregator
    playtime: PlaytimeResult
    merge: MergeResult
    identity_map: IdentityMap

    def stats_document(self) -> Dict[str, Any]:
        return self.merge.stats_document()

    def playtime_document(self) -> Dict[str, Any]:
        return self.playtime.to_dict()


def run_pipeline(event_log: Optional[str], connect_log: Optional[str] = None, id_map: Optional[str] = None,
                 previous_playtime: Optional[Dict[str, Any]] = None, now: Optional[datetime] = None) -> PipelineResult:
    """
    Parse, resolve, reconstruct and merge.

    Args:
        event_log: Text of HMZLog.log (required)
        connect_log: Text of PlayerConnectedLog.txt; None switches to estimated playtime
        id_map: Text of PlayerIDMapped.txt
        previous_playtime: Last persisted playtime.json, read for its peaks block
        now: Wall-clock instant for empty inputs (defaults to the current time)

    Raises:
        MissingEventLogError: If no event log text was given.
    """
    if not event_log:
        raise MissingEventLogError("No HMZLog.log content available")

    now = now or datetime.now(timezone.utc)

    feed_entries = parse_id_map_feed(id_map)
    identity_map = IdentityMap.from_entries(feed_entries)
    if len(identity_map):
        logger.info(f"ID map: {len(identity_map)} player(s)")

    aggregator = PlayerStatsAggregator()
    aggregator.ingest(event_log)

    reconstructor = SessionReconstructor(previous_peaks=(previous_playtime or {}).get('peaks'), now=now)
    if connect_log:
        playtime = reconstructor.from_connect_log(connect_log)
    else:
        logger.warning("PlayerConnectedLog.txt not available, estimating playtime from log activity")
        playtime = reconstructor.estimate(aggregator.activity)

    engine = MergeEngine(IdentityResolver(identity_map), feed_entries)
    merge_result = engine.merge(aggregator, playtime, now=now)

    return PipelineResult(aggregator=aggregator, playtime=playtime, merge=merge_result, identity_map=identity_map)
