"""
A line-based chat over a single connection.

    btchat listen                   wait for a peer to connect
    btchat connect 00:11:22:33:44:55   connect to a peer

Each line typed is sent to the peer, and text received is printed. End with Ctrl-D.
Use --tcp to chat over TCP instead of Bluetooth, e.g. to try both ends on one machine.
"""
import argparse
import logging
import sys
import uuid

from configobj import ConfigObjError

from btchat import settings
from btchat.errors import LinkError
from btchat.events import ConnectionEstablishedEvent, ConnectionLostEvent, FrameReceivedEvent, ListenFailedEvent, \
    ConnectFailedEvent
from btchat.manager import ConnectionManager
from btchat.transport.rfcomm import RfcommTransport
from btchat.transport.tcp import TcpTransport

logger = logging.getLogger(__name__)


class ConsoleChat:
    """
    Prints connection events and forwards input lines to the connection.
    """
    def __init__(self, manager: ConnectionManager, out=sys.stdout, encoding='utf-8'):
        self.manager = manager
        self.out = out
        self.encoding = encoding
        manager.events.add(self.on_event)

    def on_event(self, event):
        if isinstance(event, FrameReceivedEvent):
            self._print("%s> %s" % (event.peer, event.data.decode(self.encoding, errors='replace').rstrip('\n')))
        elif isinstance(event, ConnectionEstablishedEvent):
            self._print("* connected to %s" % event.peer)
        elif isinstance(event, ConnectionLostEvent):
            self._print("* disconnected from %s: %s" % (event.peer, event.reason))
        elif isinstance(event, ListenFailedEvent):
            self._print("* unable to listen: %s" % event.reason)
        elif isinstance(event, ConnectFailedEvent):
            self._print("* unable to connect to %s: %s" % (event.peer, event.reason))

    def send(self, line):
        try:
            self.manager.write(line.encode(self.encoding))
            return True
        except LinkError as e:
            self._print("* not sent: %s" % e)
            return False

    def run(self, lines):
        """ sends each line until the input ends """
        for line in lines:
            self.send(line)

    def _print(self, text):
        print(text, file=self.out, flush=True)


def parse_args(args=None):
    parser = argparse.ArgumentParser(prog='btchat', description='Chat with a peer over Bluetooth RFCOMM.')
    parser.add_argument('--tcp', action='store_true', help='use TCP rather than Bluetooth')
    parser.add_argument('--service', type=uuid.UUID, default=None, help='the service UUID')
    parser.add_argument('--config', default=None, help='a configuration file overriding ~/btchat.cfg')
    parser.add_argument('-v', '--verbose', action='store_true', help='log debug messages')
    commands = parser.add_subparsers(dest='command')
    commands.required = True
    commands.add_parser('listen', help='wait for a peer to connect')
    connect = commands.add_parser('connect', help='connect to a peer')
    connect.add_argument('peer', help='the address of the peer')
    return parser.parse_args(args)


def new_transport(tcp):
    return TcpTransport() if tcp else RfcommTransport()


def main(args=None, lines=None):
    options = parse_args(args)
    logging.basicConfig(level=logging.DEBUG if options.verbose else logging.WARNING,
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    try:
        settings.configure(user_file=options.config)
    except ConfigObjError as e:
        logger.error("invalid configuration: %s" % e)
        return 2

    manager = ConnectionManager(new_transport(options.tcp))
    chat = ConsoleChat(manager)
    if options.command == 'listen':
        if not manager.start_listening(options.service):
            return 1
    else:
        manager.start_connecting(options.peer, options.service)
    try:
        chat.run(lines if lines is not None else sys.stdin)
    except KeyboardInterrupt:
        pass
    finally:
        manager.stop()
        manager.join(1)
    return 0


if __name__ == '__main__':   # pragma no cover
    sys.exit(main())
