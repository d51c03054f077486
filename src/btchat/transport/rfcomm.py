import logging
import socket

from btchat import settings
from btchat.transport.base import SocketTransport

logger = logging.getLogger(__name__)

# Native Bluetooth sockets need a full address to bind to. This one means any local adapter.
BDADDR_ANY = "00:00:00:00:00:00"


class RfcommTransport(SocketTransport):
    """
    Bluetooth RFCOMM sockets, as exposed by the socket module on Linux.
    A service identifier is resolved to an RFCOMM channel via the service_channels table, or
    the default channel. Both ends must agree on the channel, just as they agree on the service.

    :param adapter_address The local adapter to listen on. Empty for any adapter (BDADDR_ANY).
    :param channel The default RFCOMM channel
    :param service_channels mapping of service identifier to RFCOMM channel
    :param discovery An optional device discovery with a cancel() method.
        It is cancelled before each outbound connection.
    """
    def __init__(self, adapter_address=None, channel=None, service_channels=None, discovery=None):
        super().__init__(channel if channel is not None else settings.rfcomm_channel, service_channels)
        self.adapter_address = adapter_address if adapter_address is not None else settings.adapter_address
        self.discovery = discovery

    @staticmethod
    def supported():
        """ determines if this Python build has Bluetooth sockets """
        return hasattr(socket, 'AF_BLUETOOTH') and hasattr(socket, 'BTPROTO_RFCOMM')

    def _new_socket(self):
        if not self.supported():
            raise OSError("this Python build does not support Bluetooth sockets (AF_BLUETOOTH)")
        return socket.socket(socket.AF_BLUETOOTH, socket.SOCK_STREAM, socket.BTPROTO_RFCOMM)

    def _listen_address(self, service_id):
        return self.adapter_address or BDADDR_ANY, self.port_for(service_id)

    def _connect_address(self, peer, service_id):
        return peer, self.port_for(service_id)

    def cancel_discovery(self):
        discovery = self.discovery
        if discovery is not None:
            logger.debug("cancelling device discovery")
            discovery.cancel()
