"""
The actions a modem monitor can run. Each action reads one register block.
"""
from enum import Enum

from gprsmonitor.monitor.action import Action
from gprsmonitor.protocol.frames import signed

SIGNAL = 'modem.signal'

CHANNEL_COUNT = 16
SENSOR_COUNT = 8


def channel_field(channel):
    return 'channel.%d.status' % channel


def sensor_field(sensor, name):
    return 'sensor.%d.%s' % (sensor, name)


class GetStatusAction(Action):
    """ Reads the battery voltage, board temperature and firmware version. """

    read_address = 64300
    register_count = 3

    def decode(self, registers):
        battery, temperature, firmware = registers[:3]
        self.modem.set_data('modem.battery', battery / 100)
        self.modem.set_data('modem.temperature', signed(temperature) / 10)
        self.modem.set_data('modem.firmware', '%d.%d' % (firmware >> 8, firmware & 0xFF))


class GetSignalAction(Action):
    """ Reads whether the modem has signal, and its level. """

    read_address = 64330
    register_count = 2

    def decode(self, registers):
        self.modem.set_data(SIGNAL, bool(registers[0]))
        self.modem.set_data('modem.signal.level', registers[1])


class SignalRequiredAction(Action):
    """ An action only worth running when the modem last reported signal. """

    def should_write(self):
        return bool(self.modem.get_data(SIGNAL))


class GetChannelsAction(SignalRequiredAction):
    """ Reads the status of the channels. Each register bit is one channel. """

    read_address = 64360
    register_count = 1

    def decode(self, registers):
        status = registers[0]
        for channel in range(CHANNEL_COUNT):
            self.modem.set_data(channel_field(channel), bool(status & (1 << channel)))


class GetSensorsAction(SignalRequiredAction):
    """ Reads the raw sensor values and converts those with a known conversion. """

    read_address = 64400
    register_count = SENSOR_COUNT

    def decode(self, registers):
        for sensor, raw in enumerate(registers[:SENSOR_COUNT]):
            raw = signed(raw)
            self.modem.set_data(sensor_field(sensor, 'raw'), raw)
            conversion = self.context.conversion(sensor)
            if conversion is not None:
                self.modem.set_data(sensor_field(sensor, 'value'), conversion.convert(raw))


class ActionType(Enum):
    STATUS = GetStatusAction
    SIGNAL = GetSignalAction
    CHANNELS = GetChannelsAction
    SENSORS = GetSensorsAction

    def create(self, context) -> Action:
        return self.value(context)
