"""Forwarding of log records to a remote JSON log sink over TCP or UDP."""

from __future__ import annotations

import collections
import datetime
import ipaddress
import json
import logging
import re
import socket
import threading
from dataclasses import dataclass, field
from typing import Any, Union
from urllib.parse import urlsplit

DEFAULT_BUFFER_CAPACITY = 1048576

_OPERATION_TIMEOUT = 1.0

_LEVEL_NAMES = (
    (logging.CRITICAL, "fatal"),
    (logging.ERROR, "error"),
    (logging.WARNING, "warn"),
    (logging.INFO, "info"),
)

_TIME_RE = re.compile(
    r"(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:\d{2})"
)

IPInterface = Union[ipaddress.IPv4Interface, ipaddress.IPv6Interface]


def _level_name(levelno: int) -> str:
    for threshold, name in _LEVEL_NAMES:
        if levelno >= threshold:
            return name
    return "debug"


def _format_time(moment: datetime.datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.astimezone()

    text = moment.strftime("%Y-%m-%dT%H:%M:%S")
    if moment.microsecond:
        text += f".{moment.microsecond:06d}".rstrip("0")

    offset = moment.utcoffset()
    if not offset:
        return text + "Z"

    total = int(offset.total_seconds())
    sign = "+" if total >= 0 else "-"
    total = abs(total)
    return f"{text}{sign}{total // 3600:02d}:{total % 3600 // 60:02d}"


def _parse_time(text: str) -> datetime.datetime:
    match = _TIME_RE.fullmatch(text)
    if match is None:
        raise ValueError(f"invalid timestamp {text!r}")

    stamp, fraction, zone = match.groups()
    micro = (fraction or "").ljust(6, "0")[:6]
    if zone == "Z":
        zone = "+00:00"
    return datetime.datetime.fromisoformat(f"{stamp}.{micro}{zone}")


@dataclass
class LogEvent:
    """A single log message waiting to be delivered."""

    msg: str
    time: datetime.datetime
    level: str = "info"
    fields: dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> bytes:
        """Encode the event for the local buffer."""
        return json.dumps(
            {
                "Fields": self.fields,
                "Time": _format_time(self.time),
                "Msg": self.msg,
                "Level": self.level,
            },
            default=str,
        ).encode()

    @classmethod
    def from_json(cls, data: bytes | str) -> LogEvent:
        """Decode an event produced by :meth:`to_json`."""
        raw = json.loads(data)
        if not isinstance(raw, dict):
            raise ValueError("log event must be a JSON object")
        if "Time" not in raw:
            raise ValueError("log event has no time")

        return cls(
            msg=raw.get("Msg", ""),
            time=_parse_time(raw["Time"]),
            level=raw.get("Level", "info"),
            fields=dict(raw.get("Fields") or {}),
        )


def _wire_payload(event: LogEvent) -> bytes:
    payload = dict(event.fields)
    payload["msg"] = event.msg
    payload["talos-time"] = _format_time(event.time)
    payload["talos-level"] = event.level
    return json.dumps(payload, sort_keys=True, default=str).encode()


class LogSender:
    """Sends events as JSON over TCP (newline delimited) or UDP (one per packet)."""

    def __init__(self, endpoint: str):
        parts = urlsplit(endpoint)
        self.endpoint = endpoint
        self._scheme = parts.scheme
        self._address = (parts.hostname or "", parts.port or 0)
        self._state_lock = threading.Lock()
        self._conn_lock = threading.Lock()
        self._conn: socket.socket | None = None
        self._iface = ""
        self._local_addr: IPInterface | None = None

    def configure(self, iface: str, local_addr) -> None:
        """Set the interface and the local address the sender connects from."""
        address = ipaddress.ip_interface(str(local_addr))
        with self._state_lock:
            self._iface = iface
            self._local_addr = address

    def ready(self) -> bool:
        """Whether an interface has been configured."""
        with self._state_lock:
            return self._iface != ""

    def _dial(self, local_ip, timeout: float) -> socket.socket:
        source = (str(local_ip), 0)

        if self._scheme == "tcp":
            return socket.create_connection(
                self._address, timeout=timeout, source_address=source
            )

        if self._scheme == "udp":
            family = socket.AF_INET6 if local_ip.version == 6 else socket.AF_INET
            sock = socket.socket(family, socket.SOCK_DGRAM)
            try:
                sock.bind(source)
                sock.connect(self._address)
            except OSError:
                sock.close()
                raise
            return sock

        raise ValueError(f"dial {self._scheme}: unknown network {self._scheme}")

    def send(self, event: LogEvent, timeout: float = _OPERATION_TIMEOUT) -> None:
        """Deliver one event, connecting first if needed."""
        with self._state_lock:
            iface = self._iface
            local_addr = self._local_addr

        if not iface or local_addr is None:
            raise RuntimeError("the log sender is not ready yet")

        payload = _wire_payload(event)
        if self._scheme == "tcp":
            payload += b"\n"

        if not self._conn_lock.acquire(timeout=timeout):
            raise TimeoutError("timed out waiting for the log sender")

        try:
            if self._conn is None:
                self._conn = self._dial(local_addr.ip, timeout)

            self._conn.settimeout(timeout)
            try:
                self._conn.sendall(payload)
            except OSError:
                self._conn.close()
                self._conn = None
                raise
        finally:
            self._conn_lock.release()

    def close(self, timeout: float = _OPERATION_TIMEOUT) -> None:
        """Close the current connection, if any."""
        if not self._conn_lock.acquire(timeout=timeout):
            raise TimeoutError("timed out waiting for the log sender")

        try:
            conn, self._conn = self._conn, None
            if conn is not None:
                conn.close()
        finally:
            self._conn_lock.release()


class SinkHandler(logging.Handler):
    """Logging handler that forwards records to the sink, buffering while it is unreachable."""

    def __init__(
        self,
        endpoint: str,
        capacity: int = DEFAULT_BUFFER_CAPACITY,
        level: int = logging.NOTSET,
    ):
        super().__init__(level)
        self.sender = LogSender(endpoint)
        self._capacity = capacity
        self._pending: collections.deque[bytes] = collections.deque()
        self._pending_size = 0

    def configure_interface(self, link_name: str, address) -> None:
        """Point the sender at an interface and deliver whatever was buffered."""
        self.sender.configure(link_name, address)
        self.flush()

    def _buffer(self, data: bytes) -> None:
        self._pending.append(data)
        self._pending_size += len(data)
        while self._pending_size > self._capacity:
            self._pending_size -= len(self._pending.popleft())

    def _flush_buffer(self, timeout: float) -> None:
        if not self.sender.ready():
            return

        while self._pending:
            data = self._pending[0]
            self.sender.send(LogEvent.from_json(data), timeout)
            self._pending.popleft()
            self._pending_size -= len(data)

    def _event_from_record(self, record: logging.LogRecord) -> LogEvent:
        fields = dict(getattr(record, "fields", None) or {})
        message = record.getMessage()
        if fields:
            message = f"{message} {json.dumps(fields, default=str)}"

        return LogEvent(
            msg=message,
            time=datetime.datetime.fromtimestamp(record.created, datetime.timezone.utc),
            level=_level_name(record.levelno),
            fields=fields,
        )

    def emit(self, record: logging.LogRecord) -> None:
        """Send a record, or keep it for later if the sink cannot take it now."""
        try:
            self._flush_buffer(_OPERATION_TIMEOUT)
        except (OSError, ValueError):
            self.handleError(record)
            return

        event = self._event_from_record(record)

        try:
            self.sender.send(event, _OPERATION_TIMEOUT)
        except (OSError, RuntimeError, ValueError):
            self._buffer(event.to_json())

    def flush(self) -> None:
        """Deliver buffered events if the sender is configured."""
        self.acquire()
        try:
            self._flush_buffer(_OPERATION_TIMEOUT)
        finally:
            self.release()

    def close(self) -> None:
        """Close the sender's connection and the handler."""
        try:
            self.sender.close(_OPERATION_TIMEOUT)
        finally:
            super().close()