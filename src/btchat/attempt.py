"""
Connection attempts. Each attempt makes a single blocking accept or connect call on its own
thread and reports the outcome to a listener (the ConnectionManager):

- listener.attempt_succeeded(attempt, sock, peer) with the connected StreamSocket
- listener.attempt_failed(attempt, error) with a LinkError

A cancelled attempt reports nothing. Any socket it obtains after being cancelled is closed.
"""
import logging
import threading

from btchat.errors import ListenSetupError, AcceptError, ConnectError, SocketCreateError
from btchat.support.async_loop import AsyncLoop
from btchat.transport.base import Transport, close_quietly

logger = logging.getLogger(__name__)


class ConnectionAttempt(AsyncLoop):
    """
    One in-flight accept or connect.
    :param transport The transport providing the sockets
    :param service_id The service to listen on or connect to
    :param listener Receives the outcome of the attempt
    """
    role = None
    peer = None

    def __init__(self, transport: Transport, service_id, listener, log=logger):
        super().__init__(name="%s %s" % (self.role, service_id), log=log)
        self.transport = transport
        self.service_id = service_id
        self.listener = listener
        self.socket = None
        self._cancelled = threading.Event()
        self._lock = threading.Lock()

    @property
    def cancelled(self):
        return self._cancelled.is_set()

    def cancel(self):
        """
        Cancels the attempt by closing its socket, which unblocks a pending accept or connect.
        Safe to call more than once, and from any thread.
        """
        self._cancelled.set()
        self.stop()
        with self._lock:
            sock = self.socket
        if sock is not None:
            self.logger.debug("cancelling %s: closing %s" % (self, sock))
            close_quietly(sock, self.logger)

    def loop(self):
        try:
            self._attempt()
        finally:
            self.stop()     # one attempt only

    def _attempt(self):
        raise NotImplementedError

    def _set_socket(self, sock):
        """ records the socket so cancel() can close it.
        :return: True if the attempt has already been cancelled """
        with self._lock:
            self.socket = sock
            return self.cancelled

    def _succeeded(self, sock, peer):
        if self.cancelled:
            self.logger.debug("%s cancelled, dropping connection to %s" % (self, peer))
            close_quietly(sock, self.logger)
        else:
            self.listener.attempt_succeeded(self, sock, peer)

    def _failed(self, error, cause=None):
        error.__cause__ = cause
        if self.cancelled:
            self.logger.debug("%s cancelled: %s" % (self, error))
        else:
            self.logger.warning(str(error))
            self.listener.attempt_failed(self, error)

    def __str__(self):
        return self.name


class ConnectionAcceptor(ConnectionAttempt):
    """
    Listens for a single inbound connection on a service.
    Call listen() to create the listening socket, then start() to accept on a background thread.
    The listening socket is closed once the accept returns - to listen again, create a new acceptor.
    """
    role = 'accepting'

    def listen(self):
        """
        Creates the listening socket.
        Raises ListenSetupError if the transport cannot listen, e.g. Bluetooth is off.
        """
        try:
            server = self.transport.listen(self.service_id)
        except OSError as e:
            raise ListenSetupError("unable to listen for service %s: %s" % (self.service_id, e)) from e
        if self._set_socket(server):
            close_quietly(server, self.logger)

    def _attempt(self):
        server = self.socket
        if server is None:
            self._failed(AcceptError("not listening for service %s - call listen() first" % self.service_id))
            return
        self.logger.debug("waiting for a connection on %s" % server)
        try:
            sock = server.accept()
        except OSError as e:
            self._failed(AcceptError("error accepting connections for service %s: %s" %
                                     (self.service_id, e)), e)
            return
        finally:
            close_quietly(server, self.logger)
        self.logger.info("accepted connection from %s" % sock.peer)
        self._succeeded(sock, sock.peer)


class ConnectionInitiator(ConnectionAttempt):
    """
    Connects to a service on a peer. Creating the initiator does no socket work; the socket is
    created and connected on the background thread started by start().
    """
    role = 'initiating'

    def __init__(self, transport: Transport, peer, service_id, listener, log=logger):
        self.peer = peer
        super().__init__(transport, service_id, listener, log)
        self.name = "%s %s on %s" % (self.role, service_id, peer)

    def _attempt(self):
        try:
            sock = self.transport.open_client_socket(self.peer, self.service_id)
        except OSError as e:
            self._failed(SocketCreateError("could not create a socket to %s for service %s: %s" %
                                           (self.peer, self.service_id, e)), e)
            return
        if self._set_socket(sock):
            close_quietly(sock, self.logger)
            return

        try:
            self.transport.cancel_discovery()
        except OSError as e:
            self.logger.warning("unable to cancel discovery: %s" % e)

        try:
            sock.connect()
        except OSError as e:
            close_quietly(sock, self.logger)
            self._failed(ConnectError("could not connect to service %s on %s: %s" %
                                      (self.service_id, self.peer, e)), e)
            return
        self.logger.info("connected to %s" % self.peer)
        self._succeeded(sock, self.peer)
