"""
Blocking HTTP client for the controller's REST API.

Covers the read-mostly endpoints the console needs outside the hub:
state, configuration, joint limits, serial ports and speed.
"""

import logging
from typing import Any, List, Optional

import requests

from robot_console.models import (
    CommandResult, JointLimit, RobotConfiguration, RobotState, limits_from_list,
)

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """HTTP request to the controller failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RobotApiClient:
    """Thin wrapper around a requests.Session bound to the API base URL."""

    def __init__(self, base_url: str = "http://localhost:5132/api",
                 timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({'Content-Type': 'application/json'})

    def get_state(self) -> RobotState:
        return RobotState.from_dict(self._request('GET', '/robot/state'))

    def get_configuration(self) -> RobotConfiguration:
        return RobotConfiguration.from_dict(self._request('GET', '/configuration'))

    def get_joint_limits(self) -> List[JointLimit]:
        return limits_from_list(self._request('GET', '/configuration/limits') or [])

    def get_ports(self) -> List[str]:
        """Serial ports the controller can see."""
        return [str(p) for p in self._request('GET', '/robot/ports') or []]

    def set_speed(self, speed_percent: float) -> CommandResult:
        return CommandResult.from_dict(
            self._request('POST', '/robot/speed', json={'speedPercent': speed_percent}))

    def close(self):
        self.session.close()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = self.base_url + path
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            logger.error("%s %s failed: %s", method, url, e)
            raise ApiError(f"{method} {path} failed: {e}", status_code=status) from e
        except requests.exceptions.RequestException as e:
            logger.error("%s %s failed: %s", method, url, e)
            raise ApiError(f"{method} {path} failed: {e}") from e

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(f"{method} {path} returned invalid JSON", response.status_code) from e
