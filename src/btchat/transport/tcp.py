import socket

from btchat import settings
from btchat.transport.base import SocketTransport


class TcpTransport(SocketTransport):
    """
    The connection contract over TCP. Peers are host names or IP addresses, and services
    map to TCP ports.
    """
    def __init__(self, host=None, port=None, service_ports=None):
        super().__init__(port if port is not None else settings.tcp_port, service_ports)
        self.host = host if host is not None else settings.tcp_host

    def _new_socket(self):
        return socket.socket(socket.AF_INET, socket.SOCK_STREAM)

    def _configure_listener(self, sock):
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

    def _listen_address(self, service_id):
        return self.host, self.port_for(service_id)

    def _connect_address(self, peer, service_id):
        return peer or self.host, self.port_for(service_id)
