import io
import unittest
import uuid
from unittest.mock import Mock, patch

from configobj import ConfigObjError
from hamcrest import assert_that, is_, contains_string, instance_of

from btchat.console import ConsoleChat, parse_args, new_transport, main
from btchat.errors import NoActiveConnectionError, ReadLoopTerminated, ConnectError
from btchat.events import FrameReceivedEvent, ConnectionEstablishedEvent, ConnectionLostEvent, ConnectFailedEvent
from btchat.support.events import EventSource
from btchat.transport.rfcomm import RfcommTransport
from btchat.transport.tcp import TcpTransport


class ConsoleChatTest(unittest.TestCase):
    def setUp(self):
        self.manager = Mock()
        self.manager.events = EventSource()
        self.out = io.StringIO()
        self.sut = ConsoleChat(self.manager, self.out)

    def test_prints_frames(self):
        self.manager.events.fire(FrameReceivedEvent(self.manager, 'peer', 'héllo\n'.encode('utf-8')))
        assert_that(self.out.getvalue(), is_('peer> héllo\n'))

    def test_undecodable_frames_are_replaced(self):
        self.manager.events.fire(FrameReceivedEvent(self.manager, 'peer', b'\xffok'))
        assert_that(self.out.getvalue(), is_('peer> �ok\n'))

    def test_prints_connection_changes(self):
        self.manager.events.fire(ConnectionEstablishedEvent(self.manager, 'peer'))
        self.manager.events.fire(ConnectionLostEvent(self.manager, 'peer', ReadLoopTerminated('gone')))
        self.manager.events.fire(ConnectFailedEvent(self.manager, 'other', None, ConnectError('refused')))
        output = self.out.getvalue()
        assert_that(output, contains_string('connected to peer'))
        assert_that(output, contains_string('disconnected from peer: gone'))
        assert_that(output, contains_string('unable to connect to other: refused'))

    def test_send(self):
        assert_that(self.sut.send('hi'), is_(True))
        self.manager.write.assert_called_once_with(b'hi')

    def test_send_failure_is_printed(self):
        self.manager.write.side_effect = NoActiveConnectionError('no connection to write to')
        assert_that(self.sut.send('hi'), is_(False))
        assert_that(self.out.getvalue(), contains_string('not sent: no connection'))

    def test_run_sends_each_line(self):
        self.sut.run(['a\n', 'b\n'])
        assert_that(self.manager.write.call_count, is_(2))


class ConsoleMainTest(unittest.TestCase):
    def test_parse_connect(self):
        options = parse_args(['--tcp', 'connect', 'localhost'])
        assert_that(options.tcp, is_(True))
        assert_that(options.command, is_('connect'))
        assert_that(options.peer, is_('localhost'))

    def test_parse_service(self):
        options = parse_args(['--service', '00001101-0000-1000-8000-00805f9b34fb', 'listen'])
        assert_that(options.service, is_(uuid.UUID('00001101-0000-1000-8000-00805f9b34fb')))

    def test_new_transport(self):
        assert_that(new_transport(True), instance_of(TcpTransport))
        assert_that(new_transport(False), instance_of(RfcommTransport))

    @patch('btchat.console.settings')
    @patch('btchat.console.ConnectionManager')
    def test_main_listen(self, manager_class, settings):
        manager = manager_class.return_value
        manager.events = EventSource()
        manager.start_listening.return_value = True
        assert_that(main(['--tcp', 'listen'], lines=['hello\n']), is_(0))
        manager.start_listening.assert_called_once_with(None)
        manager.write.assert_called_once_with(b'hello\n')
        manager.stop.assert_called_once_with()

    @patch('btchat.console.settings')
    @patch('btchat.console.ConnectionManager')
    def test_main_listen_failure(self, manager_class, settings):
        manager = manager_class.return_value
        manager.events = EventSource()
        manager.start_listening.return_value = False
        assert_that(main(['listen'], lines=[]), is_(1))

    @patch('btchat.console.settings')
    @patch('btchat.console.ConnectionManager')
    def test_main_connect(self, manager_class, settings):
        manager = manager_class.return_value
        manager.events = EventSource()
        assert_that(main(['connect', '00:11:22:33:44:55'], lines=[]), is_(0))
        manager.start_connecting.assert_called_once_with('00:11:22:33:44:55', None)
        manager.stop.assert_called_once_with()

    @patch('btchat.console.settings')
    @patch('btchat.console.ConnectionManager')
    def test_main_invalid_configuration(self, manager_class, settings):
        settings.configure.side_effect = ConfigObjError("service_uuid is not a UUID")
        assert_that(main(['listen'], lines=[]), is_(2))
        manager_class.assert_not_called()


if __name__ == '__main__':  # pragma: no cover
    unittest.main()
