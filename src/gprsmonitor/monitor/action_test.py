import itertools
import struct
import unittest
from unittest.mock import Mock, call

from hamcrest import assert_that, has_entries, is_, none

from gprsmonitor.connector.base import CommunicationTimeoutError, ConnectorError
from gprsmonitor.entities import ModemEntity
from gprsmonitor.monitor.action import Action, ActionResult, StageContext
from gprsmonitor.protocol.frames import encode_read_response


class ModemSession:
    """ a session answering register reads from a register map, as a modem would.
        Reads with no answer pending time out. """

    def __init__(self, registers=None, address='10.0.0.5:502'):
        self.address = address
        self.registers = registers if registers is not None else {}   # start address -> values
        self.written = []
        self.responses = b''
        self._transactions = itertools.count(1)

    def next_transaction(self):
        return next(self._transactions)

    def write(self, data):
        self.written.append(bytes(data))
        transaction, _, _, unit, _, address, count = struct.unpack('>HHHBBHH', data)
        if address in self.registers:
            self.responses += encode_read_response(transaction, self.registers[address][:count], unit)

    def read(self, size):
        data, self.responses = self.responses[:size], self.responses[size:]
        if len(data) < size:
            raise CommunicationTimeoutError('no response from %s' % self.address)
        return data

    @property
    def addresses_read(self):
        return [struct.unpack('>H', frame[8:10])[0] for frame in self.written]


def new_modem(**kwargs):
    record = {'id': 1, 'host': '10.0.0.5', 'port': 502}
    record.update(kwargs)
    return ModemEntity(record)


def new_context(modem=None, session=None, conversions=None):
    return StageContext(modem or new_modem(), session or ModemSession(), Mock(),
                        conversions or (lambda conversion_id: None))


class EchoAction(Action):
    read_address = 100
    register_count = 2

    def decode(self, registers):
        self.modem.set_data('echo', registers)


class SilentAction(EchoAction):

    def should_write(self):
        return False


class StageContextTest(unittest.TestCase):

    def test_conversion_lookup_by_key(self):
        conversion = Mock()
        modem = new_modem(sensors=[{'index': 0, 'conversion': 'c1'}])
        lookup = Mock(return_value=conversion)
        sut = new_context(modem, conversions=lookup)
        assert_that(sut.conversion(0), is_(conversion))
        lookup.assert_called_once_with('c1')
        assert_that(sut.conversion(1), is_(none()))


class ActionTest(unittest.TestCase):

    def setUp(self):
        self.session = ModemSession({100: [7, 8, 9]})
        self.context = new_context(session=self.session)
        self.log = self.context.log

    def test_completed(self):
        sut = EchoAction(self.context)
        assert_that(sut.execute(), is_(ActionResult.COMPLETED))
        assert_that(self.context.modem.data, has_entries({'echo': [7, 8]}))
        assert_that(self.session.addresses_read, is_([100]))

    def test_write_is_logged(self):
        EchoAction(self.context).execute()
        self.log.log_write.assert_called_once_with('read %d registers from %d', 2, 100)
        assert_that(self.log.log_data.call_args_list[0], is_(call(self.session.written[0])))
        self.log.log_read.assert_called_once_with('%d registers from %d', 2, 100)

    def test_uses_modem_unit(self):
        self.context.modem.unit = 9
        EchoAction(self.context).execute()
        assert_that(self.session.written[0][6], is_(9))

    def test_skipped_when_precondition_fails(self):
        sut = SilentAction(self.context)
        assert_that(sut.write_command(), is_(False))
        assert_that(sut.execute(), is_(ActionResult.SKIPPED))
        assert_that(self.session.written, is_([]))
        assert_that(self.context.modem.get_data('echo'), is_(none()))

    def test_read_timeout_fails(self):
        self.session.registers = {}
        sut = EchoAction(self.context)
        assert_that(sut.execute(), is_(ActionResult.FAILED))
        self.log.log_connection.assert_called_once_with('communication timeout')
        assert_that(self.log.log_exception.call_count, is_(1))

    def test_write_error_fails(self):
        self.session.write = Mock(side_effect=ConnectorError('reset'))
        sut = EchoAction(self.context)
        assert_that(sut.execute(), is_(ActionResult.FAILED))
        self.log.log_connection.assert_not_called()
        assert_that(self.log.log_exception.call_count, is_(1))

    def test_short_response_fails(self):
        self.session.registers = {100: [1]}
        sut = EchoAction(self.context)
        assert_that(sut.execute(), is_(ActionResult.FAILED))
        assert_that(self.context.modem.get_data('echo'), is_(none()))

    def test_mismatched_transaction_fails(self):
        self.session.responses = encode_read_response(99, [1, 2])
        self.session.registers = {}
        sut = EchoAction(self.context)
        assert_that(sut.execute(), is_(ActionResult.FAILED))
        assert_that(self.context.modem.get_data('echo'), is_(none()))

    def test_decode_error_fails(self):
        class BrokenAction(EchoAction):
            def decode(self, registers):
                raise ValueError('bad value')

        assert_that(BrokenAction(self.context).execute(), is_(ActionResult.FAILED))


if __name__ == '__main__':
    unittest.main()
