"""Storage key derivation for circuit state and statistics."""

import hashlib
from dataclasses import dataclass

KEY_PREFIX = "circuits"
STATS_SEGMENT = "stats"
WINDOW_SEGMENT = "window"
CACHE_SEGMENT = "cache"


def align_time(timestamp: float, window: float) -> int:
    """Return the start of the ``window``-second bucket holding ``timestamp``."""
    seconds = int(timestamp)
    step = int(window)
    if step <= 0:
        return seconds
    return seconds - (seconds % step)


@dataclass(frozen=True)
class CircuitKeys:
    """Build hierarchical keys for one ``(service, partition)`` pair.

    Keys look like ``circuits:<service>[:<partition>]:<part>:<part>``. An empty
    or missing partition is omitted rather than leaving an empty segment.
    """

    service: str
    partition: str | None = None

    def storage_key(self, *parts: object, without_partition: bool = False) -> str:
        segments = [KEY_PREFIX, self.service]
        if self.partition and not without_partition:
            segments.append(self.partition)
        segments.extend(str(part) for part in parts)
        return ":".join(segments)

    def stat_key(
        self,
        event: str,
        bucket: int,
        *,
        without_partition: bool = False,
    ) -> str:
        return self.storage_key(
            STATS_SEGMENT,
            bucket,
            event,
            without_partition=without_partition,
        )

    def window_key(self, event: str, bucket: int) -> str:
        """Return the key of a trip-decision counter for one time window."""
        return self.storage_key(WINDOW_SEGMENT, bucket, event)

    def response_key(self, args: object) -> str:
        """Return a stable content hash for a call's arguments.

        Used to key stale responses served while the circuit is open.
        """
        key = self.storage_key(CACHE_SEGMENT, repr(args))
        return hashlib.sha1(key.encode("utf-8")).hexdigest()

    @property
    def circuit_name(self) -> str:
        """Return the ``service:partition`` label used by notifiers."""
        if self.partition:
            return f"{self.service}:{self.partition}"
        return self.service
