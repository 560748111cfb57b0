import logging
import socket
from abc import abstractmethod

from gprsmonitor.conduit.base import Conduit

logger = logging.getLogger(__name__)


class ConnectorError(Exception):
    """ Indicates an error condition with a connection. """

    code = 0


class ConnectionNotConnectedError(ConnectorError):
    """ Indicates a connection is in the disconnected state when a connection is required. """


class CommunicationTimeoutError(ConnectorError):
    """ Indicates a read or write did not complete within the communication timeout. """


class Connector:
    """ A connector describes an endpoint to which a conduit can be established. """

    @property
    @abstractmethod
    def endpoint(self):
        """ the endpoint that this connector reaches out to """
        raise NotImplementedError

    @property
    @abstractmethod
    def address(self) -> str:
        """ a printable form of the endpoint, used as the key for the connection """
        raise NotImplementedError

    @property
    @abstractmethod
    def connected(self) -> bool:
        """
        Determines if this connector has an active connection to its endpoint.
        :rtype: bool
        """
        raise NotImplementedError

    @property
    @abstractmethod
    def connecting(self) -> bool:
        """
        Determines if a connection attempt has been issued and has not yet resolved.
        :rtype: bool
        """
        raise NotImplementedError

    @property
    @abstractmethod
    def timed_out(self) -> bool:
        """ True when the last connection attempt or I/O operation exceeded its timeout. """
        raise NotImplementedError

    @abstractmethod
    def connect(self):
        """
        Issues a new connection attempt. The attempt completes in the background;
        callers poll `connected` to find out when it is established.
        Raises ConnectorError if the attempt cannot be issued.
        """
        raise NotImplementedError

    @abstractmethod
    def disconnect(self):
        raise NotImplementedError

    @abstractmethod
    def read(self, size) -> bytes:
        raise NotImplementedError

    @abstractmethod
    def write(self, data):
        raise NotImplementedError


class AbstractConnector(Connector):
    """ Reads and writes through the conduit of an established connection.

    Any stream error closes the conduit so that the connection is seen as lost on the next
    readiness check. Timeouts are remembered in `timed_out` until the next connection attempt.
    """

    def __init__(self):
        self._conduit = None
        self._timed_out = False

    @property
    def timed_out(self):
        return self._timed_out

    @property
    def conduit(self) -> Conduit:
        """
        Retrieves the conduit for this connection.
        raises ConnectionNotConnectedError if not connected
        """
        self.check_connected()
        return self._conduit

    def check_connected(self):
        if not self.connected:
            raise ConnectionNotConnectedError("not connected to %s" % self.address)

    def disconnect(self):
        conduit = self._conduit
        self._conduit = None
        if conduit is not None:
            conduit.close()
            logger.debug("closed connection to %s" % self.address)
        self._disconnect()

    def read(self, size) -> bytes:
        conduit = self.conduit
        try:
            data = conduit.input.read(size)
        except socket.timeout as e:
            self._stream_failed(timed_out=True)
            raise CommunicationTimeoutError("read from %s timed out" % self.address) from e
        except OSError as e:
            self._stream_failed()
            raise ConnectorError("read from %s failed: %s" % (self.address, e)) from e
        if data is None or len(data) < size:
            self._stream_failed()
            raise ConnectorError("connection closed by %s" % self.address)
        return data

    def write(self, data):
        conduit = self.conduit
        try:
            conduit.output.write(data)
            conduit.output.flush()
        except socket.timeout as e:
            self._stream_failed(timed_out=True)
            raise CommunicationTimeoutError("write to %s timed out" % self.address) from e
        except OSError as e:
            self._stream_failed()
            raise ConnectorError("write to %s failed: %s" % (self.address, e)) from e

    def _stream_failed(self, timed_out=False):
        self._timed_out = timed_out
        self.disconnect()

    @abstractmethod
    def _disconnect(self):
        """ perform any actions needed on disconnection, after the conduit has been closed. """
        raise NotImplementedError
