import logging
import socket
import uuid
from abc import abstractmethod

logger = logging.getLogger(__name__)


def close_quietly(resource, log=logger):
    """
    Closes a socket, logging rather than raising any error.
    Teardown is best effort - the resource is released either way.
    :return: True if the resource closed without error
    """
    try:
        resource.close()
        return True
    except OSError as e:
        log.error("error closing %s: %s" % (resource, e))
        return False


def _shutdown_and_close(sock: socket.socket):
    # shutdown wakes any thread blocked in accept/recv on this socket. close() alone does not.
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError:
        pass    # not connected, or the peer already went away
    finally:
        sock.close()


class StreamSocket:
    """
    A connection-oriented socket to a peer. Either already connected (from an accept) or
    connected later by calling connect().
    :param sock The underlying socket
    :param address The address passed to socket.connect(). Not needed for accepted sockets.
    :param peer The identity of the remote endpoint.
    """
    def __init__(self, sock: socket.socket, address=None, peer=None):
        self.sock = sock
        self.address = address
        self.peer = peer

    def connect(self):
        """ blocks until connected. Raises OSError on failure. """
        self.sock.connect(self.address)

    def recv(self, size) -> bytes:
        return self.sock.recv(size)

    def sendall(self, data):
        self.sock.sendall(data)

    def close(self):
        _shutdown_and_close(self.sock)

    @property
    def open(self) -> bool:
        return self.sock.fileno() >= 0

    def __str__(self):
        return "socket to %s" % (self.peer,)


class ListeningSocket:
    """
    A socket that accepts inbound connections.
    """
    def __init__(self, sock: socket.socket, address=None):
        self.sock = sock
        self.address = address

    def accept(self) -> StreamSocket:
        """
        Blocks until a peer connects. Raises OSError if the socket is closed while waiting.
        The peer identity of the returned socket is the host part of the remote address.
        """
        client, address = self.sock.accept()
        return StreamSocket(client, peer=address[0])

    def close(self):
        _shutdown_and_close(self.sock)

    def __str__(self):
        return "listening socket on %s" % (self.address,)


class Transport:
    """
    The primitives needed from the platform to establish a stream connection.
    All methods that fail at the OS level raise OSError.
    """

    @abstractmethod
    def listen(self, service_id: uuid.UUID) -> ListeningSocket:
        """ creates a socket listening for connections to the given service """
        raise NotImplementedError

    @abstractmethod
    def open_client_socket(self, peer, service_id: uuid.UUID) -> StreamSocket:
        """ creates an unconnected socket that will connect to the service on the given peer """
        raise NotImplementedError

    def cancel_discovery(self):
        """
        Stops any device discovery in progress. Discovery slows down or breaks connection
        setup, so this is called before each connect. The default does nothing.
        """


class SocketTransport(Transport):
    """
    A transport built on the stdlib socket module. Service identifiers are mapped to a port
    number (an RFCOMM channel or a TCP port) through a lookup table with a default.

    :param default_port The port used for any service not in service_ports
    :param service_ports A mapping from service identifier (UUID or string form) to port
    """
    backlog = 1

    def __init__(self, default_port, service_ports=None):
        self.default_port = default_port
        self.service_ports = {uuid.UUID(str(k)): int(v) for k, v in (service_ports or {}).items()}

    def port_for(self, service_id):
        """
        >>> SocketTransport(4, {'fa87c0d0-afac-11de-8a39-0800200c9a66': 7}).port_for(uuid.UUID(int=0))
        4
        >>> SocketTransport(4, {'fa87c0d0-afac-11de-8a39-0800200c9a66': 7}).port_for(
        ...     uuid.UUID('fa87c0d0-afac-11de-8a39-0800200c9a66'))
        7
        """
        return self.service_ports.get(service_id, self.default_port)

    def listen(self, service_id):
        address = self._listen_address(service_id)
        sock = self._new_socket()
        try:
            self._configure_listener(sock)
            sock.bind(address)
            sock.listen(self.backlog)
        except OSError:
            sock.close()
            raise
        logger.info("listening for service %s on %s" % (service_id, address))
        return ListeningSocket(sock, address)

    def open_client_socket(self, peer, service_id):
        address = self._connect_address(peer, service_id)
        return StreamSocket(self._new_socket(), address, peer)

    @abstractmethod
    def _new_socket(self) -> socket.socket:
        raise NotImplementedError

    @abstractmethod
    def _listen_address(self, service_id):
        raise NotImplementedError

    @abstractmethod
    def _connect_address(self, peer, service_id):
        raise NotImplementedError

    def _configure_listener(self, sock):
        pass
