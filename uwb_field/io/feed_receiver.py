"""
Live feed receiver.

Accepts TCP clients that forward newly inserted upstream rows as
length-prefixed JSON messages:

    [4-byte big-endian length][UTF-8 JSON]

    {"type": "anchor_reading", "data": {"anchor_id": "2", "distance_cm": 151.5, "rssi": -61}}
    {"type": "localization_result", "data": {"est_x": 20.0, "est_y": 18.5}}

Decoded messages are stamped with their receipt time and placed on a
bounded queue. Socket threads never touch localization state; the session
loop drains the queue with poll().
"""

from dataclasses import dataclass
from queue import Empty, Full, Queue
from typing import Any, Callable, Dict, List, Optional
import json
import logging
import socket
import threading

from uwb_field.metrics import get_metrics

logger = logging.getLogger(__name__)

MSG_ANCHOR_READING = "anchor_reading"
MSG_LOCALIZATION_RESULT = "localization_result"
KNOWN_MESSAGE_TYPES = (MSG_ANCHOR_READING, MSG_LOCALIZATION_RESULT)


@dataclass(frozen=True)
class ConnectionStatus:
    """Connectivity signal for the presentation layer."""

    connected: bool
    message: Optional[str] = None


@dataclass(frozen=True)
class FeedMessage:
    """One decoded feed message."""

    kind: str
    payload: Dict[str, Any]
    received_ms: int


def encode_message(kind: str, payload: Dict[str, Any]) -> bytes:
    """Frame a message for the feed (used by forwarders and tests)."""
    body = json.dumps({"type": kind, "data": payload}).encode('utf-8')
    return len(body).to_bytes(4, byteorder='big') + body


class FeedReceiver:
    """
    TCP server for the live reading feed.

    Usage:
        receiver = FeedReceiver("0.0.0.0", 8765, status_callback=on_status)
        if receiver.start():
            for message in receiver.poll():
                ...
        receiver.stop()
    """

    def __init__(
        self,
        host: str,
        port: int,
        clock: Callable[[], int],
        status_callback: Optional[Callable[[ConnectionStatus], None]] = None,
        max_queue_size: int = 1000,
    ):
        """
        Args:
            host: Listen address
            port: Listen port (0 = pick a free port)
            clock: Returns the current time in epoch milliseconds
            status_callback: Receives ConnectionStatus changes
            max_queue_size: Bound on undrained messages
        """
        self.host = host
        self.port = port
        self._clock = clock
        self._status_callback = status_callback
        self.metrics = get_metrics()

        self._queue: Queue = Queue(maxsize=max_queue_size)
        self._server_socket: Optional[socket.socket] = None
        self._accept_thread: Optional[threading.Thread] = None
        self._client_threads: List[threading.Thread] = []
        self._clients: List[socket.socket] = []
        self._clients_lock = threading.Lock()
        self.running = False

    @property
    def bound_port(self) -> Optional[int]:
        """Actual listening port (differs from port when port=0)."""
        if self._server_socket is None:
            return None
        return self._server_socket.getsockname()[1]

    def start(self) -> bool:
        """Bind, listen and start accepting clients."""
        try:
            self._server_socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            self._server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            self._server_socket.bind((self.host, self.port))
            self._server_socket.listen(5)
            self._server_socket.settimeout(0.5)
        except OSError as e:
            logger.error(f"Failed to start feed receiver on {self.host}:{self.port}: {e}")
            if self._server_socket is not None:
                self._server_socket.close()
                self._server_socket = None
            self._report(ConnectionStatus(False, f"Connection failed: {e}"))
            return False

        self.running = True
        self._accept_thread = threading.Thread(target=self._accept_loop, daemon=True)
        self._accept_thread.start()

        logger.info(f"Feed receiver listening on {self.host}:{self.bound_port}")
        self._report(ConnectionStatus(True, f"Listening on {self.host}:{self.bound_port}"))
        return True

    def stop(self):
        """Close all sockets and join receiver threads."""
        if not self.running and self._server_socket is None:
            return
        self.running = False

        with self._clients_lock:
            for client in self._clients:
                try:
                    client.close()
                except OSError:
                    pass
            self._clients.clear()

        if self._server_socket is not None:
            try:
                self._server_socket.close()
            except OSError:
                pass
            self._server_socket = None

        if self._accept_thread is not None:
            self._accept_thread.join(timeout=2.0)
            self._accept_thread = None
        for thread in self._client_threads:
            thread.join(timeout=2.0)
        self._client_threads.clear()

        logger.info("Feed receiver stopped")
        self._report(ConnectionStatus(False, "Disconnected"))

    def poll(self, max_messages: int = 100) -> List[FeedMessage]:
        """Drain up to max_messages pending messages without blocking."""
        messages = []
        while len(messages) < max_messages:
            try:
                messages.append(self._queue.get_nowait())
            except Empty:
                break
        return messages

    def pending(self) -> int:
        return self._queue.qsize()

    def _report(self, status: ConnectionStatus):
        if self._status_callback is not None:
            self._status_callback(status)

    def _accept_loop(self):
        server_socket = self._server_socket
        while self.running:
            try:
                client_socket, address = server_socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self.running:
                    logger.error(f"Accept failed: {e}")
                break

            logger.info(f"Feed client connected: {address}")
            with self._clients_lock:
                self._clients.append(client_socket)

            client_thread = threading.Thread(
                target=self._handle_client,
                args=(client_socket, address),
                daemon=True
            )
            self._client_threads.append(client_thread)
            client_thread.start()

    def _handle_client(self, client_socket: socket.socket, address):
        buffer = b''
        client_socket.settimeout(0.5)

        try:
            while self.running:
                try:
                    data = client_socket.recv(4096)
                except socket.timeout:
                    continue

                if not data:
                    logger.info(f"Feed client disconnected: {address}")
                    break

                buffer += data

                while len(buffer) >= 4:
                    msg_length = int.from_bytes(buffer[:4], byteorder='big')
                    if len(buffer) < 4 + msg_length:
                        break  # Incomplete frame
                    self.handle_frame(buffer[4:4 + msg_length])
                    buffer = buffer[4 + msg_length:]
        except OSError as e:
            if self.running:
                logger.error(f"Feed client {address} error: {e}")
        finally:
            with self._clients_lock:
                if client_socket in self._clients:
                    self._clients.remove(client_socket)
            try:
                client_socket.close()
            except OSError:
                pass

    def handle_frame(self, frame: bytes):
        """Decode one message body and enqueue it."""
        self.metrics.increment('messages_in')

        try:
            message = json.loads(frame.decode('utf-8'))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            self.metrics.increment_drop('parse_error')
            logger.warning(f"Failed to decode feed message: {e}")
            return

        if not isinstance(message, dict):
            self.metrics.increment_drop('parse_error')
            logger.warning("Feed message is not a JSON object")
            return

        kind = message.get("type", "")
        payload = message.get("data")
        if kind not in KNOWN_MESSAGE_TYPES or not isinstance(payload, dict):
            self.metrics.increment_drop('parse_error')
            logger.debug(f"Ignoring feed message of type {kind!r}")
            return

        try:
            self._queue.put_nowait(FeedMessage(kind, payload, self._clock()))
        except Full:
            self.metrics.increment_drop('queue_full')
            logger.warning("Feed queue full, dropping message")
