"""
The transport package provides the platform primitives used to establish a stream connection:
listening for a service, opening a client socket to a peer, and the sockets themselves.

RfcommTransport uses Bluetooth RFCOMM sockets. TcpTransport provides the same contract over TCP,
which is handy for trying out two ends on a single machine.
"""
from btchat.transport.base import Transport, StreamSocket, ListeningSocket, SocketTransport, close_quietly
from btchat.transport.rfcomm import RfcommTransport
from btchat.transport.tcp import TcpTransport
