"""
Monitor for ABS modems.
"""
from gprsmonitor.monitor.actions import ActionType
from gprsmonitor.monitor.base import MonitorBase

# the modem type of ABS modems in the API
ABS_MODEM_TYPE = 1

READ_STATUS = 10
READ_SIGNAL = 20
READ_CHANNELS = 30
READ_SENSORS = 40


class ABSModemMonitor(MonitorBase):
    """
    Cycles each modem through: status, signal, channels, sensors.
    Channels and sensors are skipped while the modem reports no signal.
    """

    def __init__(self, modems, connections, type=ABS_MODEM_TYPE, **kwargs):
        super().__init__(modems, connections, type, **kwargs)
        self.add_listener(READ_STATUS).add(ActionType.STATUS)
        self.add_listener(READ_SIGNAL).add(ActionType.SIGNAL)
        self.add_listener(READ_CHANNELS).add(ActionType.CHANNELS)
        self.add_listener(READ_SENSORS).add(ActionType.SENSORS)
