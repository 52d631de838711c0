import logging
import time
from typing import Optional

import requests
from pydantic import ValidationError

from airgradient_bridge.schemas import TelemetryPayload
from airgradient_core.domain.errors import HttpStatusError, NetworkError, ParseError
from airgradient_core.domain.models import TelemetrySnapshot
from airgradient_core.domain.ports import TelemetrySource

logger = logging.getLogger(__name__)


class HttpTelemetrySource(TelemetrySource):
    """Fetches AirGradient telemetry with one HTTP GET per call.

    Args:
        endpoint: URL of the sensor's JSON metrics endpoint.
        timeout: Seconds to wait for the response. None keeps the requests
            default, which is to wait indefinitely.
        session: Optional requests session, mostly for tests. A private
            session is created otherwise and closed by close().
    """

    def __init__(
        self,
        endpoint: str,
        *,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.endpoint = endpoint
        self.timeout = timeout
        self._owns_session = session is None
        self._session = session or requests.Session()

    def __repr__(self) -> str:
        return f"HttpTelemetrySource({self.endpoint!r})"

    def fetch(self) -> TelemetrySnapshot:
        """Fetch and parse one snapshot.

        Raises:
            NetworkError: the request could not be completed.
            HttpStatusError: the endpoint answered with a non-2xx status.
            ParseError: the body is not a telemetry object.
        """
        try:
            response = self._session.get(self.endpoint, timeout=self.timeout)
        except requests.RequestException as e:
            raise NetworkError(self.endpoint, str(e)) from e

        if not 200 <= response.status_code < 300:
            raise HttpStatusError(self.endpoint, response.status_code)

        try:
            body = response.json()
        except ValueError as e:
            raise ParseError(self.endpoint, f"response is not valid JSON: {e}") from e

        logger.debug("API response from %s: %s", self.endpoint, body)

        try:
            payload = TelemetryPayload.model_validate(body)
        except ValidationError as e:
            raise ParseError(
                self.endpoint, f"unexpected telemetry shape ({e.error_count()} errors)"
            ) from e

        return payload.to_domain(fetched_at=time.time())

    def close(self) -> None:
        if self._owns_session:
            self._session.close()
