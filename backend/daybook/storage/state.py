"""
Daybook Backend — Connection State
===================================

What:  The single owned record of "is the remote store usable right now".
Why:   Every request handler reads this flag; only the manager writes it.
How:   A mutable dataclass held by the StorageAvailabilityManager, plus a
       frozen ConnectionStatus snapshot handed out to everybody else.

State Machine:
    DISCONNECTED(n) ──connect() ok──────────────▶ CONNECTED (n = 0)
    DISCONNECTED(n) ──connect() fails, n < max──▶ DISCONNECTED(n + 1) + retry timer
    DISCONNECTED(max) ──connect() fails─────────▶ DISCONNECTED(exhausted), no timer
    CONNECTED ──disconnect event────────────────▶ DISCONNECTED(n)
    any ──health check while disconnected───────▶ DISCONNECTED(0) then connect()

    CONNECTING is only observable while an attempt is in flight.
"""

from dataclasses import dataclass
from enum import Enum


class ConnectionPhase(str, Enum):
    """Observable phases of the remote store connection."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


@dataclass(frozen=True)
class ConnectionStatus:
    """
    Read-only snapshot of the connection state.

    Returned by StorageAvailabilityManager.status so routes and the health
    endpoint can report state without being able to mutate it.
    """

    phase: ConnectionPhase
    connected: bool
    retry_count: int
    max_retries: int
    exhausted: bool

    @property
    def backend(self) -> str:
        """Which store is authoritative: 'remote' or 'memory'."""
        return "remote" if self.connected else "memory"


@dataclass
class ConnectionState:
    """
    Mutable connection bookkeeping owned by the manager.

    Attributes:
        connected:             True only after a successful connect and until
                               a disconnect or error event
        retry_count:           Automatic retries scheduled since the last success
                               or health check
        max_retries:           Retry budget (default 5)
        retry_interval:        Seconds between automatic retries (default 30)
        health_check_interval: Seconds between health checks (default 300)
    """

    max_retries: int = 5
    retry_interval: float = 30.0
    health_check_interval: float = 300.0
    connected: bool = False
    retry_count: int = 0
    phase: ConnectionPhase = ConnectionPhase.DISCONNECTED

    @property
    def exhausted(self) -> bool:
        """Retry budget consumed; automatic retries paused until the next health check."""
        return not self.connected and self.retry_count >= self.max_retries

    @property
    def can_retry(self) -> bool:
        return self.retry_count < self.max_retries

    def mark_connecting(self) -> None:
        self.phase = ConnectionPhase.CONNECTING

    def mark_connected(self) -> None:
        self.connected = True
        self.retry_count = 0
        self.phase = ConnectionPhase.CONNECTED

    def mark_disconnected(self) -> None:
        self.connected = False
        self.phase = ConnectionPhase.DISCONNECTED

    def snapshot(self) -> ConnectionStatus:
        return ConnectionStatus(
            phase=self.phase,
            connected=self.connected,
            retry_count=self.retry_count,
            max_retries=self.max_retries,
            exhausted=self.exhausted,
        )
