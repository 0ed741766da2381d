"""Pick the weather observation that applies to a request."""
from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Optional

from ..domain import Forecast


def select_forecast(
    observations: Iterable[Forecast],
    station_id: int,
    target: Optional[datetime],
    today: date,
) -> Optional[Forecast]:
    """
    Without a target: the most recent observation dated ``today``.
    With a target: the observation on the target's calendar date closest to
    it; equally close observations resolve to the earlier one.
    """
    candidates = [o for o in observations if o.station_id == station_id]

    if target is None:
        todays = [o for o in candidates if o.observed_at.date() == today]
        if not todays:
            return None
        # max() keeps the first of equal keys, i.e. storage order
        return max(todays, key=lambda o: o.observed_at)

    same_day = [o for o in candidates if o.observed_at.date() == target.date()]
    if not same_day:
        return None
    return min(same_day, key=lambda o: (abs((o.observed_at - target).total_seconds()), o.observed_at))
