import errno
import socket
import time
import unittest
from unittest.mock import Mock, patch

import timeout_decorator
from hamcrest import assert_that, calling, instance_of, is_, raises

from gprsmonitor.conduit.socket_conduit import SocketConduit
from gprsmonitor.connector.base import CommunicationTimeoutError, ConnectorError
from gprsmonitor.connector.socketconn import COMMUNICATION_TIME, CONNECTION_TIME, SocketConnector, address_key

server_host = '127.0.0.1'


def wait_until(predicate, timeout=2):
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            return False
        time.sleep(0.01)
    return True


class SocketConnectorTest(unittest.TestCase):

    def test_constructor(self):
        sut = SocketConnector('10.0.0.5', 502)
        assert_that(sut.endpoint, is_(('10.0.0.5', 502)))
        assert_that(sut.address, is_('10.0.0.5:502'))
        assert_that(sut.connect_timeout, is_(CONNECTION_TIME))
        assert_that(sut.communication_timeout, is_(COMMUNICATION_TIME))

    def test_address_key(self):
        assert_that(address_key('host', 7), is_('host:7'))

    def test_not_connected_before_connect(self):
        sut = SocketConnector(server_host, 1)
        assert_that(sut.connected, is_(False))
        assert_that(sut.connecting, is_(False))
        assert_that(sut.timed_out, is_(False))

    def test_connect_error_is_raised_as_connector_error(self):
        sut = SocketConnector(server_host, 502)
        with patch('gprsmonitor.connector.socketconn.socket.socket') as factory:
            factory.return_value.connect_ex.return_value = errno.ECONNREFUSED
            assert_that(calling(sut.connect), raises(ConnectorError))
            factory.return_value.close.assert_called_once_with()
        assert_that(sut.connecting, is_(False))

    def test_resolution_error_is_raised_as_connector_error(self):
        sut = SocketConnector('no-such-host', 502)
        with patch('gprsmonitor.connector.socketconn.socket.socket') as factory:
            factory.return_value.connect_ex.side_effect = socket.gaierror('unknown host')
            assert_that(calling(sut.connect), raises(ConnectorError, 'no-such-host:502'))

    def test_attempt_times_out(self):
        clock = Mock(return_value=100)
        sut = SocketConnector(server_host, 502, connect_timeout=10, clock=clock)
        with patch('gprsmonitor.connector.socketconn.socket.socket') as factory, \
                patch('gprsmonitor.connector.socketconn.select.select', return_value=([], [], [])):
            sock = factory.return_value
            sock.connect_ex.return_value = errno.EINPROGRESS
            sut.connect()
            sock.setblocking.assert_called_once_with(False)
            assert_that(sut.connecting, is_(True))
            clock.return_value = 110
            assert_that(sut.connecting, is_(True))
            clock.return_value = 111
            assert_that(sut.connected, is_(False))
            assert_that(sut.connecting, is_(False))
            assert_that(sut.timed_out, is_(True))
            sock.close.assert_called_once_with()

    def test_connect_clears_timed_out(self):
        sut = SocketConnector(server_host, 502)
        sut._timed_out = True
        with patch('gprsmonitor.connector.socketconn.socket.socket') as factory:
            factory.return_value.connect_ex.return_value = errno.EINPROGRESS
            sut.connect()
        assert_that(sut.timed_out, is_(False))


class SocketConnectorIntegrationTest(unittest.TestCase):
    """ connects to a listening socket on the loopback interface. """

    def setUp(self):
        self.server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self.server.bind((server_host, 0))
        self.server.listen(5)
        self.port = self.server.getsockname()[1]
        self.sut = SocketConnector(server_host, self.port, communication_timeout=0.2)
        self.client = None

    def tearDown(self):
        self.sut.disconnect()
        if self.client is not None:
            self.client.close()
        self.server.close()

    def accept(self):
        self.server.settimeout(2)
        self.client, _ = self.server.accept()
        self.client.settimeout(2)
        return self.client

    @timeout_decorator.timeout(5)
    def test_connect_establishes_connection(self):
        self.sut.connect()
        assert_that(wait_until(lambda: self.sut.connected), is_(True))
        assert_that(self.sut.connecting, is_(False))
        assert_that(self.sut.conduit, is_(instance_of(SocketConduit)))

    @timeout_decorator.timeout(5)
    def test_write_and_read(self):
        self.sut.connect()
        assert_that(wait_until(lambda: self.sut.connected), is_(True))
        client = self.accept()
        self.sut.write(b'ping')
        assert_that(client.recv(4), is_(b'ping'))
        client.sendall(b'pong')
        assert_that(self.sut.read(4), is_(b'pong'))

    @timeout_decorator.timeout(5)
    def test_read_times_out(self):
        self.sut.connect()
        assert_that(wait_until(lambda: self.sut.connected), is_(True))
        self.accept()
        assert_that(calling(self.sut.read).with_args(4), raises(CommunicationTimeoutError))
        assert_that(self.sut.timed_out, is_(True))
        assert_that(self.sut.connected, is_(False))

    @timeout_decorator.timeout(5)
    def test_peer_close_is_detected_on_read(self):
        self.sut.connect()
        assert_that(wait_until(lambda: self.sut.connected), is_(True))
        self.accept().close()
        self.client = None
        assert_that(calling(self.sut.read).with_args(4), raises(ConnectorError))
        assert_that(self.sut.connected, is_(False))

    @timeout_decorator.timeout(5)
    def test_refused_attempt_resolves(self):
        self.server.close()
        try:
            self.sut.connect()
        except ConnectorError:
            pass    # refused before the attempt was in flight
        assert_that(wait_until(lambda: not self.sut.connecting), is_(True))
        assert_that(self.sut.connected, is_(False))
        assert_that(self.sut.timed_out, is_(False))


if __name__ == '__main__':
    unittest.main()
