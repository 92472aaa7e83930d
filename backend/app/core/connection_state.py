"""Connection State Machine - lifecycle of the synchronization client's single connection.

Invariants:
    - States: DISCONNECTED, CONNECTING, CONNECTED, FAILED
    - begin_connect is a no-op (returns False) while CONNECTING or CONNECTED
    - Each handshake failure increments attempts; reaching max_attempts moves to FAILED
    - FAILED is terminal until the next explicit begin_connect, which resets attempts to 0
    - close() from any state lands in DISCONNECTED
    - Illegal transitions raise ConnectionTransitionError

Design Decisions:
    - Pure dataclass, no IO, no timers: services/sync_client.py drives it and owns the sleeping
"""

from dataclasses import dataclass

from app.core.domain_types import ConnectionStatus, MAX_RECONNECT_ATTEMPTS
from app.core.errors import ConnectionTransitionError


@dataclass
class ConnectionMachine:
    """Connection lifecycle - pure dataclass, no IO."""

    max_attempts: int = MAX_RECONNECT_ATTEMPTS
    status: ConnectionStatus = ConnectionStatus.DISCONNECTED
    attempts: int = 0

    @property
    def is_active(self) -> bool:
        """Connecting or connected."""
        return self.status in (ConnectionStatus.CONNECTING, ConnectionStatus.CONNECTED)

    def begin_connect(self) -> bool:
        if self.is_active:
            return False
        self.status = ConnectionStatus.CONNECTING
        self.attempts = 0
        return True

    def handshake_succeeded(self) -> None:
        self._require(ConnectionStatus.CONNECTING, "complete handshake")
        self.status = ConnectionStatus.CONNECTED
        self.attempts = 0

    def handshake_failed(self) -> ConnectionStatus:
        """Count one failed attempt. Returns the resulting status."""
        self._require(ConnectionStatus.CONNECTING, "record handshake failure")
        self.attempts += 1
        if self.attempts >= self.max_attempts:
            self.status = ConnectionStatus.FAILED
        return self.status

    def connection_lost(self) -> None:
        """Unexpected drop while connected: start over with a fresh counter."""
        self._require(ConnectionStatus.CONNECTED, "recover lost connection")
        self.status = ConnectionStatus.CONNECTING
        self.attempts = 0

    def close(self) -> None:
        self.status = ConnectionStatus.DISCONNECTED
        self.attempts = 0

    def _require(self, expected: ConnectionStatus, attempted: str) -> None:
        if self.status is not expected:
            raise ConnectionTransitionError(self.status.value, attempted)
