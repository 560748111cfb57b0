import itertools
import logging
from collections import namedtuple

from gprsmonitor.connector.base import Connector
from gprsmonitor.connector.socketconn import COMMUNICATION_TIME, CONNECTION_TIME, SocketConnector, address_key
from gprsmonitor.log import poll_log
from gprsmonitor.support.retry_strategy import RetryStrategy

logger = logging.getLogger(__name__)


SessionStatus = namedtuple('SessionStatus', ['session', 'ready', 'error'])
SessionStatus.__doc__ = """
The outcome of asking for the session of an address.
session is None only when the session could not be created. error is the exception raised while
creating or reconnecting the session, or None.
"""


class Session:
    """
    The connection kept for one address.

    A session is pending from the moment a connection attempt is issued until that attempt
    resolves. While pending, no further attempt is issued.

    :param: address         the address key, "host:port"
    :param: connector       the connector to the modem
    :param: retry_strategy  decides when a lost connection may be retried. The default retries
        on every readiness check.
    """
    def __init__(self, address, connector: Connector, retry_strategy=None):
        self.address = address
        self.connector = connector
        self.retry_strategy = retry_strategy if retry_strategy is not None else RetryStrategy()
        self.pending = False
        self._transactions = itertools.count(1)

    def open(self):
        """ issues the first connection attempt. """
        self.pending = True
        self.connector.connect()

    def ready(self, log, current_time=None) -> bool:
        """
        Determines if the session has an active connection, reconnecting it if the connection
        was lost and no attempt is in flight.
        :param log: the log attributed to this session
        :return: True if the session can be used
        """
        connector = self.connector
        if connector.connected:
            if self.pending:
                self.pending = False
                log.log_connection('established')
            return True

        if self.pending and not connector.connecting:
            self.pending = False        # the attempt failed or timed out

        if not self.pending and self.retry_strategy(current_time) <= 0:
            self.pending = True
            self._reconnect(log)
        return False

    def _reconnect(self, log):
        connector = self.connector
        if connector.timed_out:
            log.log_connection('communication timeout')
        log.log_notice('trying new connection')
        connector.connect()

    def next_transaction(self):
        """ the id for the next request sent on this session. """
        return next(self._transactions) & 0xFFFF

    def read(self, size) -> bytes:
        return self.connector.read(size)

    def write(self, data):
        self.connector.write(data)

    def __repr__(self):
        return 'Session(%r, pending=%r)' % (self.address, self.pending)


class ConnectionManager:
    """
    Keeps one session per modem address and hands out the sessions that are ready for use.

    Sessions are created on first request and live for as long as the manager. The manager never
    closes a session: a lost connection is reconnected the next time the session is requested.

    :param log: the poll log. Lines about a session are attributed to it.
    :param connector_factory: creates the connector for a host and port
    :param retry_strategy_factory: creates the retry strategy of each new session
    """
    def __init__(self, log=None, connector_factory=None, retry_strategy_factory=RetryStrategy,
                 connect_timeout=CONNECTION_TIME, communication_timeout=COMMUNICATION_TIME):
        self.log = log if log is not None else poll_log(__name__)
        self.connect_timeout = connect_timeout
        self.communication_timeout = communication_timeout
        self._connector_factory = connector_factory or self._socket_connector
        self._retry_strategy_factory = retry_strategy_factory
        self._sessions = dict()   # a map from address to Session

    def _socket_connector(self, host, port):
        return SocketConnector(host, port, self.connect_timeout, self.communication_timeout)

    def _new_session(self, address, host, port):
        return Session(address, self._connector_factory(host, port), self._retry_strategy_factory())

    @property
    def sessions(self):
        """ retrieves a mapping from the address to the Session. Sessions may or may not be ready. """
        return dict(self._sessions)

    def status(self, host, port, current_time=None) -> SessionStatus:
        """
        Retrieves the session for an address, creating it on first use.
        Errors raised while connecting are returned in the status rather than raised.
        """
        address = address_key(host, port)
        session = self._sessions.get(address)
        log = self.log
        try:
            if session is None:
                session = self._sessions[address] = self._new_session(address, host, port)
                log = self.log.bind(connection=session)
                session.open()
            else:
                log = self.log.bind(connection=session)
            return SessionStatus(session, session.ready(log, current_time), None)
        except Exception as e:
            log.log_exception(e)
            if logger.isEnabledFor(logging.DEBUG):
                logger.exception(e)
            return SessionStatus(session, False, e)

    def get(self, host, port):
        """
        Retrieves the session for an address if it is ready for use.
        :return: the Session, or None when the address is not connected yet or could not be connected.
        """
        status = self.status(host, port)
        return status.session if status.ready else None
