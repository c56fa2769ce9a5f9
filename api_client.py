"""HTTP access to the quotation backend.

Every response is checked for a JSON content type before it is parsed, and
every failure is raised as one of the errors in ``errors``. GET requests are
retried with exponential backoff; writes are sent exactly once.
"""

import logging
import time

import requests

from errors import NetworkError, ServerError, UnknownError, error_for_status

logger = logging.getLogger(__name__)


class ApiClient:
    def __init__(self, base_url, timeout=30, retries=3, retry_delay=1.0, backoff=1.5,
                 health_timeout=5, verify=True, session=None, sleep=time.sleep):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.retries = max(int(retries), 1)
        self.retry_delay = retry_delay
        self.backoff = backoff
        self.health_timeout = health_timeout
        self.verify = verify
        self.http = session or requests.Session()
        self.http.headers.update({
            'Content-Type': 'application/json',
            'Accept': 'application/json',
        })
        self._sleep = sleep

    @classmethod
    def from_config(cls, config, **kwargs):
        return cls(
            config['QUOTATION_API_URL'],
            timeout=config['REQUEST_TIMEOUT'],
            retries=config['REQUEST_RETRIES'],
            retry_delay=config['RETRY_DELAY'],
            backoff=config['RETRY_BACKOFF'],
            health_timeout=config['HEALTH_TIMEOUT'],
            verify=config['CA_BUNDLE'],
            **kwargs,
        )

    def url(self, path):
        return f"{self.base_url}/{path.lstrip('/')}"

    def get(self, path, timeout=None, retry=True):
        attempts = self.retries if retry else 1
        delay = self.retry_delay
        for attempt in range(1, attempts + 1):
            try:
                return self.request('GET', path, timeout=timeout)
            except (NetworkError, ServerError) as e:
                if attempt >= attempts:
                    raise
                logger.warning(f"GET {path} failed ({e.message}), retrying in {delay:.2f}s "
                               f"({attempts - attempt} attempts left)")
                self._sleep(delay)
                delay *= self.backoff

    def post(self, path, data, timeout=None):
        return self.request('POST', path, data=data, timeout=timeout)

    def put(self, path, data, timeout=None):
        return self.request('PUT', path, data=data, timeout=timeout)

    def delete(self, path, timeout=None):
        return self.request('DELETE', path, timeout=timeout)

    def request(self, method, path, data=None, timeout=None):
        url = self.url(path)
        try:
            resp = self.http.request(
                method,
                url,
                json=data,
                timeout=timeout or self.timeout,
                verify=self.verify,
            )
        except requests.Timeout as e:
            logger.error(f"{method} {url} timed out")
            raise NetworkError("Request timed out. The server took too long to respond.", original=e) from e
        except requests.ConnectionError as e:
            logger.error(f"{method} {url} could not connect: {e}")
            raise NetworkError("Network error. Unable to connect to the server.", original=e) from e
        except requests.RequestException as e:
            logger.error(f"{method} {url} failed: {e}")
            raise UnknownError(str(e) or "An unknown error occurred.", original=e) from e

        if not resp.ok:
            raise self._error_from_response(method, url, resp)

        if resp.status_code == 204 or not resp.content:
            return None
        return self._json_body(method, url, resp)

    def _json_body(self, method, url, resp):
        content_type = resp.headers.get('Content-Type', '')
        if 'application/json' not in content_type:
            logger.error(f"{method} {url} returned non-JSON content ({content_type or 'no content type'})")
            raise UnknownError(f"Unexpected response from server (content type {content_type or 'missing'})",
                               status_code=resp.status_code)
        try:
            return resp.json()
        except ValueError as e:
            logger.error(f"{method} {url} returned malformed JSON: {e}")
            raise UnknownError("Invalid JSON response from server", status_code=resp.status_code,
                               original=e) from e

    def _error_from_response(self, method, url, resp):
        message = f"Request failed with status {resp.status_code}"
        if 'application/json' in resp.headers.get('Content-Type', ''):
            try:
                details = resp.json()
            except ValueError:
                details = None
            if isinstance(details, dict):
                message = details.get('message') or details.get('error') or message
        logger.error(f"{method} {url} -> {resp.status_code}: {message}")
        return error_for_status(resp.status_code, message)

    def health(self):
        """True when the backend answers its liveness probe with a 2xx."""
        try:
            resp = self.http.get(self.url('/health'), timeout=self.health_timeout, verify=self.verify)
        except requests.RequestException as e:
            logger.warning(f"Health check failed: {e}")
            return False
        return resp.ok
