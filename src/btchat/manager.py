import enum
import logging
import threading

from btchat import settings
from btchat.attempt import ConnectionAcceptor, ConnectionInitiator
from btchat.channel import DataChannel
from btchat.errors import ListenSetupError, NoActiveConnectionError, WriteError
from btchat.events import ConnectionEstablishedEvent, ConnectionLostEvent, FrameReceivedEvent, WriteFailedEvent, \
    ListenFailedEvent, ConnectFailedEvent
from btchat.support.events import EventSource
from btchat.transport.base import Transport, close_quietly

logger = logging.getLogger(__name__)


class ConnectionState(enum.Flag):
    IDLE = 0
    LISTENING = enum.auto()
    CONNECTING = enum.auto()
    CONNECTED = enum.auto()


class ConnectionManager:
    """
    Maintains at most one connection to a peer, established either by listening for the peer
    or by connecting to it. Listening and connecting may run at the same time; whichever
    produces a socket first wins, and any later socket replaces the connection it made.

    State changes are serialized by a lock. Attempts and channels report back through the
    attempt_* and channel_* methods, and their reports are ignored once they are no longer current.

    Fires the events in btchat.events through `events`. Events are fired on the thread that
    caused them, after the lock is released.

    :param transport   The transport providing the sockets
    :param events      The event source to fire events to. Pass a QueuedEventSource to dispatch
        events on a thread of your choosing.
    :param buffer_size The read buffer size for channels. Defaults to settings.read_buffer_size
    """

    def __init__(self, transport: Transport, events=None, buffer_size=None, log=logger):
        self.transport = transport
        self.events = events if events is not None else EventSource()
        self.buffer_size = buffer_size
        self.logger = log
        self._lock = threading.RLock()
        self._acceptor = None
        self._initiator = None
        self._channel = None
        self._loops = []

    @property
    def state(self) -> ConnectionState:
        with self._lock:
            state = ConnectionState.IDLE
            if self._acceptor is not None:
                state |= ConnectionState.LISTENING
            if self._initiator is not None:
                state |= ConnectionState.CONNECTING
            if self._channel is not None:
                state |= ConnectionState.CONNECTED
            return state

    @property
    def connected(self) -> bool:
        return self._channel is not None

    @property
    def channel(self) -> DataChannel:
        return self._channel

    @property
    def peer(self):
        """ the peer currently connected, or None """
        channel = self._channel
        return channel.peer if channel is not None else None

    def start_listening(self, service_id=None):
        """
        Listens for a peer to connect. Any outbound attempt in progress is cancelled, as is any
        previous listen.
        :param service_id: the service to listen on. Defaults to the configured service.
        :return: True if listening, False if the transport could not listen. The failure is
            also fired as a ListenFailedEvent.
        """
        service_id = service_id or settings.service_id()
        with self._lock:
            self._cancel_initiator()
            self._cancel_acceptor()
            acceptor = ConnectionAcceptor(self.transport, service_id, self)
            try:
                acceptor.listen()
            except ListenSetupError as e:
                self.logger.warning(str(e))
                event = ListenFailedEvent(self, service_id, e)
            else:
                self._acceptor = acceptor
                self._start(acceptor)
                self.logger.info("listening for service %s" % service_id)
                event = None
        if event is not None:
            self.events.fire(event)
        return event is None

    def start_connecting(self, peer, service_id=None):
        """
        Connects to a peer. Any previous outbound attempt is cancelled first. A listen in
        progress is left running.
        :param peer: the peer to connect to
        :param service_id: the service to connect to. Defaults to the configured service.
        """
        service_id = service_id or settings.service_id()
        with self._lock:
            self._cancel_initiator()
            initiator = self._initiator = ConnectionInitiator(self.transport, peer, service_id, self)
            self._start(initiator)
            self.logger.info("connecting to %s" % peer)

    def on_socket_established(self, sock, peer, attempt=None):
        """
        Makes the given socket the connection, replacing any existing connection.
        :param sock: the connected StreamSocket
        :param peer: the peer at the other end
        :param attempt: the attempt that produced the socket. If this is no longer the manager's
            current attempt, the socket is closed and the connection is unchanged.
        :return: True if the socket became the connection
        """
        with self._lock:
            if attempt is not None:
                if attempt is self._acceptor:
                    self._acceptor = None
                elif attempt is self._initiator:
                    self._initiator = None
                else:
                    self.logger.info("dropping connection to %s from a retired attempt" % peer)
                    close_quietly(sock, self.logger)
                    return False
            previous = self._channel
            if previous is not None:
                self.logger.info("replacing the connection to %s" % previous.peer)
                previous.cancel()
            channel = self._channel = DataChannel(sock, peer, self, self.buffer_size)
            self._start(channel)
            self.logger.info("connected to %s" % peer)
        self.events.fire(ConnectionEstablishedEvent(self, peer))
        return True

    def write(self, data: bytes):
        """
        Writes to the connected peer.
        Raises NoActiveConnectionError if not connected, and WriteError if the write fails.
        A failed write is also fired as a WriteFailedEvent.
        """
        channel = self._channel
        if channel is None:
            raise NoActiveConnectionError("no connection to write to")
        try:
            channel.write(data)
        except WriteError as e:
            self.events.fire(WriteFailedEvent(self, channel.peer, e))
            raise

    def stop(self):
        """ Cancels any listen, outbound attempt and connection. """
        with self._lock:
            self._cancel_initiator()
            self._cancel_acceptor()
            channel = self._channel
            self._channel = None
            if channel is not None:
                channel.cancel()
        self.logger.info("stopped")

    def join(self, timeout=None):
        """
        Waits for the background threads started by this manager to finish, including those of
        attempts and connections already cancelled.
        :return: True if they all finished within the timeout
        """
        with self._lock:
            loops = list(self._loops)
        return all([loop.join(timeout) for loop in loops])

    def _start(self, loop):
        self._loops = [running for running in self._loops if running.alive]
        self._loops.append(loop)
        loop.start()

    def _cancel_acceptor(self):
        acceptor = self._acceptor
        self._acceptor = None
        if acceptor is not None:
            acceptor.cancel()

    def _cancel_initiator(self):
        initiator = self._initiator
        self._initiator = None
        if initiator is not None:
            initiator.cancel()

    # callbacks from attempts and channels. These run on the attempt/channel thread.

    def attempt_succeeded(self, attempt, sock, peer):
        self.on_socket_established(sock, peer, attempt)

    def attempt_failed(self, attempt, error):
        with self._lock:
            if attempt is self._acceptor:
                self._acceptor = None
                event = ListenFailedEvent(self, attempt.service_id, error)
            elif attempt is self._initiator:
                self._initiator = None
                event = ConnectFailedEvent(self, attempt.peer, attempt.service_id, error)
            else:
                event = None
        if event is not None:
            self.events.fire(event)

    def frame_received(self, channel, data):
        with self._lock:
            current = channel is self._channel
        if not current:
            self.logger.debug("dropping %d bytes from retired channel to %s" % (len(data), channel.peer))
            return
        try:
            self.events.fire(FrameReceivedEvent(self, channel.peer, data))
        except Exception as e:
            # a failing handler must not end the connection
            self.logger.exception("error handling data from %s: %s" % (channel.peer, e))

    def channel_terminated(self, channel, reason):
        with self._lock:
            if channel is self._channel:
                self._channel = None
        self.events.fire(ConnectionLostEvent(self, channel.peer, reason))
