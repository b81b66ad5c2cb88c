"""
Live device data for an application, pushed over the application's websocket.

A DataStream owns the websocket and reads it from a worker thread. Consumers read
from two channels: `messages` (DataMessage objects) and `errors` (StreamError
objects). Any decode failure, transport failure, "Error" frame or delivery timeout
ends the stream: the websocket is closed and then both channels are closed.
There is no reconnect, open a new stream to resume.
"""
import collections
import json
import logging
import queue
import threading
import time
from urllib.parse import urlparse

from websockets.exceptions import InvalidHandshake, InvalidURI, WebSocketException
from websockets.sync.client import connect

from congress_api_wrapper.errors import CongressConnectionError, StreamError
from congress_api_wrapper.objects import JSON_DECODE_OPTIONS, DataMessage

#Seconds the worker waits for the consumer to accept a message before giving up
STREAM_SEND_TIMEOUT = 0.4

#Envelope types
DEVICE_DATA = "DeviceData"
ERROR = "Error"

class ChannelClosed(Exception):
    """Raised when reading from a channel that is closed and drained."""

class Channel:
    """
    Bounded, closeable, thread safe channel between the stream worker and a consumer.

    `get()` raises `queue.Empty` when the wait times out and `ChannelClosed` once the
    channel is closed and every item has been read.
    """
    def __init__(self, maxsize: int = 1):
        self._items = collections.deque()
        self._maxsize = maxsize
        self._closed = False
        self._cond = threading.Condition()

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    def put(self, item, timeout: float | None = None) -> None:
        """Hand an item to the consumer, raises `queue.Full` if no room frees up within timeout."""
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._cond:
            while not self._closed and len(self._items) >= self._maxsize:
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    raise queue.Full
                self._cond.wait(remaining)
            if self._closed:
                raise ChannelClosed
            self._items.append(item)
            self._cond.notify_all()

    def get(self, timeout: float | None = None):
        """Take the next item, waiting at most timeout seconds."""
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._cond:
            while not self._items:
                if self._closed:
                    raise ChannelClosed
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    raise queue.Empty
                self._cond.wait(remaining)
            item = self._items.popleft()
            self._cond.notify_all()
            return item

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def __iter__(self):
        while True:
            try:
                yield self.get()
            except ChannelClosed:
                return

def stream_url(addr: str, application_eui: str) -> str:
    """Websocket URL of an application's data stream on the Congress host at addr."""
    host = urlparse(addr).netloc or addr
    return f"wss://{host}/applications/{application_eui}/stream"

class DataStream:
    """
    Data stream for one application.

    Use `CongressClient.data_stream()` to open one. Read device data from
    `stream.messages` and errors from `stream.errors`; both are closed when the
    stream ends.

    Params:
    - websocket: An open websocket connection, owned by the stream from now on.
    - send_timeout (optional): Seconds to wait for the consumer to accept a message.
    """
    def __init__(self, websocket, send_timeout: float = STREAM_SEND_TIMEOUT):
        self._ws = websocket
        self._send_timeout = send_timeout
        self.messages = Channel()
        self.errors = Channel()
        self._worker = threading.Thread(target=self._run, name="congress-data-stream", daemon=True)

    @classmethod
    def open(cls, addr: str, token: str, application_eui: str, token_header: str, open_timeout: float | None = 10):
        """Connect to the application's stream endpoint and start the worker."""
        url = stream_url(addr, application_eui)
        logging.debug(f"DataStream.open(): connecting {url}...")
        try:
            ws = connect(url, additional_headers={token_header: token}, open_timeout=open_timeout)
        except (InvalidHandshake, InvalidURI) as e:
            logging.error(f"DataStream.open(): Websocket handshake with {url} failed - {e}")
            raise CongressConnectionError(f"Websocket handshake failed: {e}") from e
        except (OSError, TimeoutError, WebSocketException) as e:
            logging.error(f"DataStream.open(): Couldn't connect to {url} - {e}")
            raise CongressConnectionError(f"Websocket connection failed: {e}") from e
        stream = cls(ws)
        stream.start()
        logging.info(f"DataStream.open(): Streaming data for application {application_eui}")
        return stream

    def start(self) -> None:
        self._worker.start()

    def is_alive(self) -> bool:
        return self._worker.is_alive()

    def join(self, timeout: float | None = None) -> None:
        self._worker.join(timeout)

    def _fail(self, message: str) -> None:
        logging.error(f"DataStream._run(): {message}")
        #errors has room for the single error a stream can report
        self.errors.put(StreamError(message), timeout=0)

    def _run(self) -> None:
        try:
            while True:
                try:
                    envelope = json.loads(self._ws.recv(), **JSON_DECODE_OPTIONS)
                except (WebSocketException, OSError) as e:
                    self._fail(f"Error reading from websocket: {e}")
                    return
                except ValueError as e:
                    self._fail(f"Error decoding stream message: {e}")
                    return
                if not isinstance(envelope, dict):
                    self._fail(f"Unexpected stream message: {envelope!r}")
                    return

                msg_type = envelope.get("type")
                if msg_type == DEVICE_DATA:
                    try:
                        msg = DataMessage.from_dict(envelope.get("data"))
                    except (ValueError, TypeError, OverflowError) as e:
                        self._fail(f"Error decoding device data: {e}")
                        return
                    try:
                        self.messages.put(msg, timeout=self._send_timeout)
                    except queue.Full:
                        self._fail("Timed out writing to socket")
                        return
                elif msg_type == ERROR:
                    self._fail(f"Error from server: {envelope.get('message', '')}")
                    return
                else:
                    logging.debug(f"DataStream._run(): Ignoring message of type {msg_type!r}")
        finally:
            try:
                self._ws.close()
            except (WebSocketException, OSError) as e:
                logging.error(f"DataStream._run(): Error closing websocket - {e}")
            finally:
                self.messages.close()
                self.errors.close()
