import logging
import time

from gprsmonitor.api import ApiError, ModemManager
from gprsmonitor.connection_manager import ConnectionManager
from gprsmonitor.entities import ConversionEntity, ModemEntity
from gprsmonitor.log import poll_log
from gprsmonitor.monitor.action import StageContext
from gprsmonitor.monitor.listener import MonitorStageListener

logger = logging.getLogger(__name__)

# seconds between refreshes of the data from the API
API_UPDATE_TIME = 300

# seconds to wait before polling each modem, so the gateway and the local server are not overloaded
THROTTLE_TIME = 1


class DuplicateListenerError(Exception):
    """ Raised when two listeners are registered with the same code. """


class MonitorBase:
    """
    Polls the modems of one type.

    Each call to monitore() is one tick: the modem and conversion tables are refreshed from the API
    when they are older than API_UPDATE_TIME, then every modem with a ready session is handed to
    the listener at position (stage mod listener count) in registration order.

    Subclasses register their listeners with add_listener() when constructed.

    :param: modems      the ModemManager the records are loaded from
    :param: connections the ConnectionManager providing the sessions to the modems
    :param: type        the type of modem polled by this monitor
    :param: sleep       called with THROTTLE_TIME before polling each modem
    :param: clock       the time source for the refresh schedule
    """

    def __init__(self, modems: ModemManager, connections: ConnectionManager, type, log=None,
                 sleep=time.sleep, clock=time.monotonic):
        self.type = type
        self.modems = modems
        self.connections = connections
        self.log = log if log is not None else poll_log(__name__)
        self._sleep = sleep
        self._clock = clock
        self._actived = True
        self._last_update = None
        self._modem_entities = dict()       # id -> ModemEntity, in order of discovery
        self._conversion_entities = dict()  # id -> ConversionEntity
        self._listeners = dict()            # code -> MonitorStageListener, in order of registration

    def add_listener(self, code) -> MonitorStageListener:
        """
        Registers the listener for the next stage of the cycle.
        :raises DuplicateListenerError: when a listener with the code was already added
        """
        if code in self._listeners:
            raise DuplicateListenerError("a listener with the code '%d' was already added" % code)
        listener = self._listeners[code] = MonitorStageListener(code)
        return listener

    @property
    def listeners(self):
        return dict(self._listeners)

    @property
    def modem_entities(self):
        return dict(self._modem_entities)

    @property
    def conversion_entities(self):
        return dict(self._conversion_entities)

    def conversion(self, conversion_id):
        return self._conversion_entities.get(conversion_id)

    @property
    def actived(self):
        return self._actived

    def active(self):
        self._actived = True

    def deactive(self):
        """ stops future ticks. A tick in progress runs to completion. """
        self._actived = False

    def update_conversion_list(self):
        records = self.modems.load_conversions()
        loaded, updated, seen = self._merge(records, self._conversion_entities, ConversionEntity)
        removed = self._prune(self._conversion_entities, seen)
        self.log.log_info('%d loaded and %d updated conversions', loaded, updated)
        if removed:
            self.log.log_info('%d removed conversions', removed)

    def update_modem_list(self):
        records = self.modems.load_modems(self.type)
        loaded, updated, seen = self._merge(records, self._modem_entities, ModemEntity)
        removed = self._prune(self._modem_entities, seen)
        self.log.log_info('%d loaded and %d updated modems', loaded, updated)
        if removed:
            self.log.log_info('%d removed modems', removed)

    def _merge(self, records, entities, factory):
        """ inserts the records with new ids and updates the entities with known ids, in place. """
        loaded = updated = 0
        seen = set()
        for record in records:
            try:
                id = record['id']
                seen.add(id)
                entity = entities.get(id)
                if entity is None:
                    entities[id] = factory(record)
                    loaded += 1
                else:
                    entity.update(record)
                    updated += 1
            except (KeyError, TypeError, ValueError) as e:
                self.log.log_exception(e)
        return loaded, updated, seen

    def _prune(self, entities, seen):
        stale = [id for id in entities if id not in seen]
        for id in stale:
            del entities[id]
        return len(stale)

    def update(self, current_time=None):
        """
        Refreshes the conversions and then the modems when more than API_UPDATE_TIME has passed
        since the last successful refresh.
        :return: True if the tables were refreshed
        """
        now = self._clock() if current_time is None else current_time
        if self._last_update is not None and now - self._last_update <= API_UPDATE_TIME:
            return False
        try:
            self.update_conversion_list()
            self.update_modem_list()
        except ApiError as e:
            self.log.log_exception(e)
            return False
        self._last_update = now
        return True

    def monitore(self):
        """
        Runs one tick.
        :return: the number of modems dispatched to a listener
        """
        if not self._actived:
            return 0

        self.update()

        listener_keys = list(self._listeners)
        if not listener_keys:
            self.log.log_notice('no listeners registered')
            return 0

        polled = 0
        for modem in list(self._modem_entities.values()):
            try:
                if self._poll(modem, listener_keys):
                    polled += 1
            except Exception as e:
                self.log.bind(modem).log_exception(e)
                if logger.isEnabledFor(logging.DEBUG):
                    logger.exception("unexpected exception polling %r" % modem)
        return polled

    def _poll(self, modem, listener_keys):
        session = self.connections.get(modem.host, modem.port)
        if session is None:
            return False

        self._sleep(THROTTLE_TIME)

        log = self.log.bind(modem, session)
        listener_count = len(listener_keys)
        modem.set_max_stage(listener_count)
        listener = self._listeners[listener_keys[modem.stage % listener_count]]
        listener.execute(StageContext(modem, session, log, self.conversion))
        return True
