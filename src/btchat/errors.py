"""
The errors raised and reported by the connection classes.

Attempts and channels translate the OSError from the underlying socket into one of these,
chaining the original as the cause.
"""


class LinkError(Exception):
    """ Base class for errors concerning the point-to-point link. """


class ListenSetupError(LinkError):
    """ The transport could not create a listening socket, e.g. Bluetooth is off or unsupported. """


class AcceptError(LinkError):
    """ Waiting for an inbound connection failed. """


class ConnectError(LinkError):
    """ An outbound connection could not be established. """


class SocketCreateError(ConnectError):
    """ The client socket for an outbound connection could not be created. """


class ReadLoopTerminated(LinkError):
    """ The read loop of a data channel ended - the peer went away or the socket was closed. """


class WriteError(LinkError):
    """ A write to the connected peer failed. The connection is left as it is. """


class NoActiveConnectionError(LinkError):
    """ A write was attempted with no connection established. """
