"""
Activity log for the polling loop.

Every line written while polling is attributed to a modem and a connection: the record carries
the command (NOTICE, INFO, DATA, CONNECTION, WRITE, READ, EXCEPTION), the stage of the attributed
modem (-1 when there is none) and the address of the attributed connection ("none" when there is
none). The attribution is an explicit value - a PollLog adapter bound to a modem and connection -
so a line logged for one modem can never pick up the context of another.

Records are emitted through the standard logging module, so the usual handlers and levels apply.
Use LOG_FORMAT together with PollLogFilter to render the attribution.
"""
import binascii
import logging

NOTICE = 'NOTICE'
INFO = 'INFO'
DATA = 'DATA'
CONNECTION = 'CONNECTION'
WRITE = 'WRITE'
READ = 'READ'
EXCEPTION = 'EXCEPTION'

LOG_FORMAT = '%(asctime)s %(command)s %(stage)d %(address)s %(message)s'

NO_STAGE = -1
NO_ADDRESS = 'none'

_levels = {
    NOTICE: logging.INFO,
    INFO: logging.INFO,
    DATA: logging.DEBUG,
    CONNECTION: logging.INFO,
    WRITE: logging.DEBUG,
    READ: logging.DEBUG,
    EXCEPTION: logging.ERROR,
}


def hexlify(data) -> str:
    """
    >>> hexlify(b'\\x01\\xab')
    '01AB'
    """
    return binascii.hexlify(bytes(data)).decode('ascii').upper()


def error_code(exception) -> int:
    """ the numeric code of an exception: its code attribute, else its errno, else 0. """
    for name in ('code', 'errno'):
        value = getattr(exception, name, None)
        if isinstance(value, int):
            return value
    return 0


class PollLog(logging.LoggerAdapter):
    """
    A logger adapter attributed to a modem and a connection, either of which may be None.
    The stage and address are read when a record is emitted.
    """

    def __init__(self, logger, modem=None, connection=None):
        super().__init__(logger, {})
        self.modem = modem
        self.connection = connection

    def bind(self, modem=None, connection=None) -> 'PollLog':
        """ creates a log attributed to the given modem and connection. """
        return PollLog(self.logger, modem, connection)

    @property
    def stage(self) -> int:
        return self.modem.stage if self.modem is not None else NO_STAGE

    @property
    def address(self) -> str:
        return self.connection.address if self.connection is not None else NO_ADDRESS

    def process(self, msg, kwargs):
        extra = {'stage': self.stage, 'address': self.address}
        extra.update(kwargs.get('extra') or {})
        kwargs['extra'] = extra
        return msg, kwargs

    def _command(self, command, message, *args):
        level = _levels[command]
        if self.isEnabledFor(level):
            self.log(level, "'" + message + "'", *args, extra={'command': command})

    def log_notice(self, message, *args):
        self._command(NOTICE, message, *args)

    def log_info(self, message, *args):
        self._command(INFO, message, *args)

    def log_data(self, data):
        self._command(DATA, hexlify(data))

    def log_connection(self, message, *args):
        self._command(CONNECTION, message, *args)

    def log_write(self, message, *args):
        self._command(WRITE, message, *args)

    def log_read(self, message, *args):
        self._command(READ, message, *args)

    def log_exception(self, exception):
        self._command(EXCEPTION, 'class: %s, code: %d, message: "%s"',
                      type(exception).__name__, error_code(exception), exception)


class PollLogFilter(logging.Filter):
    """ provides the attribution fields for records that were not logged through a PollLog. """

    def filter(self, record):
        if not hasattr(record, 'command'):
            record.command = logging.getLevelName(record.levelno)
        if not hasattr(record, 'stage'):
            record.stage = NO_STAGE
        if not hasattr(record, 'address'):
            record.address = NO_ADDRESS
        return True


def poll_log(name=None) -> PollLog:
    """ a log with no modem or connection attributed. """
    return PollLog(logging.getLogger(name or 'gprsmonitor'))
