"""
Circle-circle proximity between tracked body-part zones and targets.

Every overlapping (zone, target) pair emits an event on every frame it
overlaps; debouncing "continuous contact" is left to consumers. Events go
into a bounded ring that keeps the most recent ones in arrival order.
"""

import math
import logging
from collections import deque
from typing import List, Mapping, Optional, Sequence, Tuple

from bodytrack.core.types import CollisionEvent, Target, TrackedZone
from bodytrack.utils.config import TrackingConfig

logger = logging.getLogger(__name__)


def detect_collisions(zones: Mapping[str, TrackedZone], targets: Sequence[Target],
                      timestamp_ms: int) -> List[CollisionEvent]:
    """Return one event per (zone, target) pair whose circles overlap.

    Tangent circles (distance == r1 + r2) do not collide.
    """
    events = []
    for target in targets:
        for part, zone in zones.items():
            distance = math.hypot(zone.x - target.x, zone.y - target.y)
            if distance < zone.radius + target.radius:
                events.append(CollisionEvent(
                    body_part=part,
                    target_id=target.id,
                    timestamp_ms=int(timestamp_ms),
                    x=zone.x,
                    y=zone.y,
                ))
    return events


class CollisionHistory:
    """Bounded ring of recent collision events (oldest evicted first)."""

    def __init__(self, max_size: int = 50, fade_ms: int = 1000):
        self._events = deque(maxlen=max_size)
        self._fade_ms = fade_ms

    def extend(self, events: Sequence[CollisionEvent]):
        self._events.extend(events)

    @property
    def events(self) -> Tuple[CollisionEvent, ...]:
        """Snapshot of retained events, oldest first."""
        return tuple(self._events)

    def recent(self, now_ms: int) -> List[Tuple[CollisionEvent, float]]:
        """Events inside the visual relevance window with their fade alpha."""
        active = []
        for event in self._events:
            age = now_ms - event.timestamp_ms
            if 0 <= age < self._fade_ms:
                active.append((event, 1.0 - age / self._fade_ms))
        return active

    def clear(self):
        self._events.clear()

    def __len__(self):
        return len(self._events)


class CollisionDetector:
    """Runs the proximity test and feeds the bounded history."""

    def __init__(self, config: Optional[TrackingConfig] = None):
        config = config or TrackingConfig()
        self.history = CollisionHistory(
            max_size=config.collision_history_size,
            fade_ms=config.collision_fade_ms,
        )
        self._total = 0

    def detect(self, zones: Mapping[str, TrackedZone], targets: Sequence[Target],
               timestamp_ms: int) -> List[CollisionEvent]:
        events = detect_collisions(zones, targets, timestamp_ms)
        if events:
            self.history.extend(events)
            self._total += len(events)
            logger.debug("%d collision(s) at %dms: %s", len(events), timestamp_ms,
                         ", ".join(f"{e.body_part}->{e.target_id}" for e in events))
        return events

    @property
    def total_collisions(self) -> int:
        return self._total

    def reset(self):
        self.history.clear()
        self._total = 0
