"""
The notifications fired by a ConnectionManager through its `events` source.
"""


class ConnectionEvent:
    """ base class for connection events. """
    def __init__(self, manager):
        self.manager = manager

    def __repr__(self):
        fields = ", ".join("%s=%r" % (k, v) for k, v in sorted(self.__dict__.items()) if k != 'manager')
        return "%s(%s)" % (type(self).__name__, fields)


class ConnectionEstablishedEvent(ConnectionEvent):
    """ A connection to the peer is established and data can be written. """
    def __init__(self, manager, peer):
        super().__init__(manager)
        self.peer = peer


class ConnectionLostEvent(ConnectionEvent):
    """ A connection ended. Fired once for every connection established.
        The reason is a ReadLoopTerminated error. """
    def __init__(self, manager, peer, reason):
        super().__init__(manager)
        self.peer = peer
        self.reason = reason


class FrameReceivedEvent(ConnectionEvent):
    """ Bytes received from the peer. """
    def __init__(self, manager, peer, data: bytes):
        super().__init__(manager)
        self.peer = peer
        self.data = data


class WriteFailedEvent(ConnectionEvent):
    """ A write failed. The connection remains open. """
    def __init__(self, manager, peer, reason):
        super().__init__(manager)
        self.peer = peer
        self.reason = reason


class ListenFailedEvent(ConnectionEvent):
    """ Listening could not be started, or the accept failed. """
    def __init__(self, manager, service_id, reason):
        super().__init__(manager)
        self.service_id = service_id
        self.reason = reason


class ConnectFailedEvent(ConnectionEvent):
    """ An outbound connection could not be established. """
    def __init__(self, manager, peer, service_id, reason):
        super().__init__(manager)
        self.peer = peer
        self.service_id = service_id
        self.reason = reason
