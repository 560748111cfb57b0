"""
Loads the modem and conversion records from the backend API.
"""
import logging
from abc import abstractmethod

import requests

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """ Raised when the backend API cannot be reached or returns an unusable response. """

    def __init__(self, message, code=0):
        super().__init__(message)
        self.code = code


class ModemManager:
    """ The source of the records describing the modems and their conversions. """

    @abstractmethod
    def load_modems(self, type) -> list:
        """
        :param type: the modem type handled by the monitor
        :return: the records of the modems of that type. Each has at least id, host and port.
        """
        raise NotImplementedError

    @abstractmethod
    def load_conversions(self) -> list:
        """
        :return: the records of the sensor conversions. Each has at least an id.
        """
        raise NotImplementedError


class ApiModemManager(ModemManager):
    """
    Loads records over HTTP. Both resources return a JSON list, optionally wrapped as {"data": [...]}.

    :param base_url: the root of the API, e.g. http://backend/api
    :param token: sent as a bearer token when given
    :param timeout: seconds to wait for each response
    """

    def __init__(self, base_url, token=None, timeout=30, session=None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()
        if token:
            self.session.headers['Authorization'] = 'Bearer %s' % token

    def load_modems(self, type):
        return self._fetch('modems', {'type': type})

    def load_conversions(self):
        return self._fetch('conversions')

    def _fetch(self, resource, params=None):
        url = '%s/%s' % (self.base_url, resource)
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            body = response.json()
        except requests.HTTPError as e:
            raise ApiError("GET %s failed: %s" % (url, e), e.response.status_code) from e
        except requests.RequestException as e:
            raise ApiError("GET %s failed: %s" % (url, e)) from e
        except ValueError as e:
            raise ApiError("GET %s returned invalid JSON: %s" % (url, e)) from e

        if isinstance(body, dict):
            body = body.get('data')
        if not isinstance(body, list):
            raise ApiError("GET %s returned %s, expected a list" % (url, type(body).__name__))
        logger.debug("loaded %d %s" % (len(body), resource))
        return body
