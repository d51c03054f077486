import logging
import threading

from btchat import settings
from btchat.errors import ReadLoopTerminated, WriteError
from btchat.support.async_loop import AsyncLoop
from btchat.transport.base import close_quietly

logger = logging.getLogger(__name__)


class DataChannel(AsyncLoop):
    """
    A connected socket to a peer. Once started, a background thread reads from the socket and
    passes each chunk received to listener.frame_received(channel, data).

    The read loop ends when the peer closes the connection, on a read error, or when
    cancel() closes the socket. The channel then closes the socket and calls
    listener.channel_terminated(channel, reason) exactly once. Channels do not reconnect.

    :param sock     The connected StreamSocket
    :param peer     The identity of the remote end
    :param listener Receives frames and the termination of the channel
    :param buffer_size The most bytes read at a time. Defaults to settings.read_buffer_size
    """

    def __init__(self, sock, peer, listener, buffer_size=None, log=logger):
        super().__init__(name="channel to %s" % (peer,), log=log)
        self.socket = sock
        self.peer = peer
        self.listener = listener
        self.buffer_size = buffer_size or settings.read_buffer_size
        self.reason = None
        self._reason_lock = threading.Lock()

    def loop(self):
        try:
            data = self.socket.recv(self.buffer_size)
        except OSError as e:
            self._terminate("error reading from %s: %s" % (self.peer, e), e)
            return
        if not data:
            self._terminate("connection closed by %s" % self.peer)
            return
        self.logger.debug("received %d bytes from %s" % (len(data), self.peer))
        try:
            self.listener.frame_received(self, data)
        except Exception as e:
            self.logger.exception("error passing on data from %s: %s" % (self.peer, e))

    def exception_handler(self, e):
        super().exception_handler(e)
        self._terminate("unexpected error on the channel to %s: %s" % (self.peer, e), e)

    def shutdown(self):
        close_quietly(self.socket, self.logger)
        self.logger.info("channel to %s ended: %s" % (self.peer, self.reason))
        self.listener.channel_terminated(self, self.reason)

    def _terminate(self, message, cause=None):
        # the first reason given wins, so a cancel isn't reported as the read error it causes
        with self._reason_lock:
            if self.reason is None:
                reason = ReadLoopTerminated(message)
                reason.__cause__ = cause
                self.reason = reason
        self.stop()

    def write(self, data: bytes):
        """
        Writes all the data to the peer, blocking until done.
        Raises WriteError on failure. The channel is not closed - callers may retry or cancel.
        """
        try:
            self.socket.sendall(data)
        except OSError as e:
            self.logger.warning("error writing to %s: %s" % (self.peer, e))
            raise WriteError("error writing to %s: %s" % (self.peer, e)) from e
        self.logger.debug("wrote %d bytes to %s" % (len(data), self.peer))

    def cancel(self):
        """ closes the socket, which ends the read loop. """
        self._terminate("channel to %s cancelled" % self.peer)
        close_quietly(self.socket, self.logger)

    @property
    def reading(self):
        """ True while the read loop is running. """
        return self.alive and self.running()
