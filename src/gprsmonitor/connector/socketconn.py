import errno
import logging
import os
import select
import socket
import time

from gprsmonitor.conduit.socket_conduit import SocketConduit
from gprsmonitor.connector.base import AbstractConnector, ConnectorError

logger = logging.getLogger(__name__)

# time limit (seconds) to establish a connection
CONNECTION_TIME = 10

# time limit (seconds) to send or receive a response
COMMUNICATION_TIME = 600

_IN_PROGRESS = (0, errno.EINPROGRESS, errno.EWOULDBLOCK, errno.EALREADY)


def address_key(host, port):
    """
    >>> address_key('10.0.0.5', 502)
    '10.0.0.5:502'
    """
    return '%s:%d' % (host, port)


class SocketConnector(AbstractConnector):
    """
    A TCP connector whose connection attempts do not block.

    connect() only issues the attempt. The handshake is completed by polling `connected` or
    `connecting`, which inspect the socket without waiting. An attempt that is not
    established within connect_timeout is dropped and reported through `timed_out`.
    Once established, reads and writes block for at most communication_timeout.
    """
    def __init__(self, host, port, connect_timeout=CONNECTION_TIME, communication_timeout=COMMUNICATION_TIME,
                 clock=time.monotonic):
        super().__init__()
        self.host = host
        self.port = port
        self.connect_timeout = connect_timeout
        self.communication_timeout = communication_timeout
        self._clock = clock
        self._sock = None
        self._started = None

    @property
    def endpoint(self):
        return self.host, self.port

    @property
    def address(self):
        return address_key(self.host, self.port)

    @property
    def connected(self):
        self._poll()
        return self._conduit is not None and self._conduit.open

    @property
    def connecting(self):
        self._poll()
        return self._sock is not None and self._conduit is None

    def connect(self):
        self.disconnect()
        self._timed_out = False
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setblocking(False)
        try:
            error = sock.connect_ex(self.endpoint)
        except OSError as e:
            sock.close()
            raise ConnectorError("error opening socket to %s: %s" % (self.address, e)) from e
        if error not in _IN_PROGRESS:
            sock.close()
            e = ConnectorError("error opening socket to %s: %s" % (self.address, os.strerror(error)))
            e.code = error
            raise e
        self._sock = sock
        self._started = self._clock()
        logger.debug("connecting to %s" % self.address)

    def _poll(self):
        """ completes the pending handshake, if any, without blocking. """
        sock = self._sock
        if sock is None or self._conduit is not None:
            return
        _, writable, _ = select.select([], [sock], [], 0)
        if writable:
            error = sock.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
            if error:
                logger.debug("unable to connect to %s: %s" % (self.address, os.strerror(error)))
                self._drop_socket()
                return
            sock.settimeout(self.communication_timeout)
            self._conduit = SocketConduit(sock)
            logger.debug("opened socket to %s" % self.address)
        elif self._clock() - self._started > self.connect_timeout:
            logger.debug("connection to %s timed out" % self.address)
            self._timed_out = True
            self._drop_socket()

    def _drop_socket(self):
        sock = self._sock
        self._sock = None
        if sock is not None:
            sock.close()

    def _disconnect(self):
        self._drop_socket()
