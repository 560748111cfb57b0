import logging
from abc import abstractmethod
from enum import Enum

from gprsmonitor.connector.base import CommunicationTimeoutError, ConnectorError
from gprsmonitor.protocol.frames import HEADER_SIZE, FrameError, decode_header, decode_read_response, \
    encode_read_request

logger = logging.getLogger(__name__)


class ActionResult(Enum):
    COMPLETED = 'completed'     # the command was written and the response decoded
    SKIPPED = 'skipped'         # the command was not needed
    FAILED = 'failed'


class StageContext:
    """
    What an action needs to talk to one modem during one tick.

    :param: modem       the ModemEntity being polled
    :param: session     the ready Session to the modem
    :param: log         the PollLog attributed to the modem and session
    :param: conversions a callable that looks up a ConversionEntity by id, returning None if unknown
    """
    def __init__(self, modem, session, log, conversions):
        self.modem = modem
        self.session = session
        self.log = log
        self._conversions = conversions

    def conversion(self, sensor):
        """ the conversion of a sensor of the modem, or None. """
        conversion_id = self.modem.conversion_id(sensor)
        return self._conversions(conversion_id) if conversion_id is not None else None


class Action:
    """
    Reads one block of registers from a modem and stores the decoded fields on the modem.

    The command is only written when should_write() holds, and the response is only read when the
    command was written. Subclasses define the block (read_address, register_count) and decode().
    """

    read_address = None
    register_count = 1

    def __init__(self, context: StageContext):
        self.context = context
        self.modem = context.modem
        self.session = context.session
        self.log = context.log
        self.transaction = None

    def should_write(self) -> bool:
        return True

    def write_command(self) -> bool:
        """
        Writes the read command if the precondition holds.
        :return: True if the command was written
        """
        if not self.should_write():
            return False
        self.transaction = self.session.next_transaction()
        frame = encode_read_request(self.transaction, self.read_address, self.register_count, self.modem.unit)
        self.log.log_write('read %d registers from %d', self.register_count, self.read_address)
        self.log.log_data(frame)
        self.session.write(frame)
        return True

    def read_response(self):
        """ Waits for the response to the command and decodes it into the modem fields. """
        header = self.session.read(HEADER_SIZE)
        received, unit, remaining = decode_header(header)
        pdu = self.session.read(remaining)
        self.log.log_data(header + pdu)
        registers = decode_read_response(self.transaction, received, pdu)
        self.log.log_read('%d registers from %d', len(registers), self.read_address)
        if len(registers) < self.register_count:
            raise FrameError("expected %d registers, got %d" % (self.register_count, len(registers)))
        self.decode(registers)

    @abstractmethod
    def decode(self, registers):
        """ stores the fields carried by the registers on the modem. """
        raise NotImplementedError

    def execute(self) -> ActionResult:
        """
        Writes the command then reads the response.
        Communication and decoding errors are logged and reported as FAILED.
        """
        try:
            if not self.write_command():
                return ActionResult.SKIPPED
            self.read_response()
            return ActionResult.COMPLETED
        except CommunicationTimeoutError as e:
            self.log.log_connection('communication timeout')
            self.log.log_exception(e)
        except ConnectorError as e:
            self.log.log_exception(e)
        except ValueError as e:
            self.log.log_exception(e)
        return ActionResult.FAILED

    def __repr__(self):
        return '%s(%r)' % (type(self).__name__, self.modem)
