"""
In-memory records of the modems being polled and of the conversions applied to their sensors.

Both are created from the records loaded from the backend API and updated in place on each refresh.
A modem refers to conversions by id only; the conversion table itself is owned by the monitor.
"""
from gprsmonitor.support.mixins import CommonEqualityMixin


class EntityError(ValueError):
    """ Raised when a record loaded from the API cannot describe an entity. """


def _require(record, *names):
    missing = [name for name in names if record.get(name) is None]
    if missing:
        raise EntityError("record is missing %s: %r" % (', '.join(missing), record))


class ConversionEntity(CommonEqualityMixin):
    """ The rule translating raw readings of one sensor type: value = raw * factor + offset. """

    def __init__(self, record):
        _require(record, 'id')
        self.id = record['id']
        self.factor = 1.0
        self.offset = 0.0
        self.unit = ''
        self.decimals = None
        self.update(record)

    def update(self, record):
        """ merges a record loaded from the API. Nothing changes if any field is invalid. """
        if record.get('id', self.id) != self.id:
            raise EntityError("conversion %s cannot be updated from record %r" % (self.id, record))
        factor = float(record.get('factor', self.factor))
        offset = float(record.get('offset', self.offset))
        unit = record.get('unit', self.unit) or ''
        decimals = record.get('decimals', self.decimals)
        decimals = int(decimals) if decimals is not None else None
        self.factor, self.offset, self.unit, self.decimals = factor, offset, unit, decimals

    def convert(self, raw):
        value = raw * self.factor + self.offset
        if self.decimals is not None:
            value = round(value, self.decimals)
        return value

    def __repr__(self):
        return 'ConversionEntity(%r)' % self.id


class ModemEntity:
    """
    A remote modem polled over TCP.

    `stage` is the position of the modem in the polling cycle and wraps at `max_stage`, which the
    monitor keeps equal to the number of registered listeners. `data` holds the telemetry read so
    far, keyed by field name such as 'modem.signal'. It survives updates from the API.
    """

    def __init__(self, record, stage=0):
        _require(record, 'id', 'host', 'port')
        self.id = record['id']
        self.stage = stage
        self.max_stage = 0
        self.data = {}
        self.host = None
        self.port = None
        self.unit = 1
        self.name = None
        self.conversions = {}   # sensor index -> conversion id
        self.update(record)

    def update(self, record):
        """ merges a record loaded from the API. Telemetry already read is kept.
            Nothing changes if any field is invalid. """
        if record.get('id', self.id) != self.id:
            raise EntityError("modem %s cannot be updated from record %r" % (self.id, record))
        _require(record, 'host', 'port')
        host = str(record['host'])
        port = int(record['port'])
        unit = int(record.get('unit', self.unit))
        name = record.get('name', self.name)
        conversions = self.conversions
        sensors = record.get('sensors')
        if sensors is not None:
            conversions = {int(sensor['index']): sensor['conversion'] for sensor in sensors
                           if sensor.get('conversion') is not None}
        self.host, self.port, self.unit, self.name = host, port, unit, name
        self.conversions = conversions

    def get_data(self, name, default=None):
        return self.data.get(name, default)

    def set_data(self, name, value):
        self.data[name] = value

    def conversion_id(self, sensor):
        return self.conversions.get(sensor)

    def set_max_stage(self, max_stage):
        self.max_stage = max_stage

    def next_stage(self):
        self.stage += 1
        if self.max_stage:
            self.stage %= self.max_stage
        return self.stage

    def __repr__(self):
        return 'ModemEntity(%r, %s:%d)' % (self.id, self.host, self.port)
