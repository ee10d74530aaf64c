"""
Transfer Endpoint

The (host, port) destination of a photo transfer.

Endpoints are immutable values. The user-editable setting lives in
EndpointSetting, which hands out the committed value by copy so a transfer
that has already started never sees a later edit.
"""

import logging
from dataclasses import dataclass, replace
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_HOST = '192.168.1.1'
DEFAULT_PORT = 49000


@dataclass(frozen=True)
class Endpoint:
    """Destination of a transfer."""
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT

    @classmethod
    def parse(cls, value: str) -> 'Endpoint':
        """
        Parse a 'host:port' string.

        Raises:
            ValueError: if the string has no port or the port is not an integer
        """
        host, sep, port = value.strip().rpartition(':')
        if not sep or not host:
            raise ValueError(f"Invalid endpoint: {value!r} (use host:port)")
        return cls(host=host, port=int(port))

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


class EndpointSetting:
    """
    The current endpoint as edited by the user.

    Starts from a default value and is overwritten by edits. Nothing is
    persisted across restarts.
    """

    def __init__(self, initial: Optional[Endpoint] = None):
        self._value = initial or Endpoint()

    def current(self) -> Endpoint:
        """Get the latest committed endpoint."""
        return self._value

    def update(self, host: Optional[str] = None,
               port: Optional[int] = None) -> Endpoint:
        """Commit an edit. Fields left as None keep their value."""
        changes = {}
        if host is not None:
            changes['host'] = host
        if port is not None:
            changes['port'] = int(port)

        self._value = replace(self._value, **changes)
        logger.debug(f"Endpoint set to {self._value}")
        return self._value
