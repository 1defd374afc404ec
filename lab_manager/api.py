# /*
# Copyright 2026 The Rancher Lab Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""Thin client for the Rancher management REST API."""

from __future__ import annotations

from http import HTTPStatus
from typing import Any

import requests
from pydantic import ValidationError

from lab_manager import logger
from lab_manager.auth import Session
from lab_manager.config import RunConfig
from lab_manager.constants import (
    API_CLUSTERS,
    API_GLOBAL_ROLE_BINDINGS,
    API_LOGIN,
    API_REGISTRATION_TOKENS,
    API_SETTINGS,
    API_USERS,
)
from lab_manager.errors import ApiUnavailable
from lab_manager.models import (
    ClusterList,
    GlobalRoleBinding,
    GlobalRoleBindingList,
    LoginResponse,
    Resource,
    Setting,
    User,
    UserList,
)


class RancherApi:
    """Management API calls used by the lab steps.

    Authenticated calls read the bearer token from the shared :class:`Session`;
    the client never acquires a token on its own.
    """

    def __init__(self, cfg: RunConfig, session: Session, http: requests.Session | None = None) -> None:
        self.base_url = cfg.base_url
        self.timeout = cfg.request_timeout_seconds
        self.session = session
        self.verify = cfg.verify_tls
        self.http = http or requests.Session()

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.session.token:
            headers["Authorization"] = f"Bearer {self.session.token}"
        return headers

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        logger.debug("%s %s", method, path)
        return self.http.request(
            method, f"{self.base_url}{path}",
            headers=self._headers(), timeout=self.timeout, verify=self.verify, **kwargs,
        )

    def _json(self, response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as err:
            raise ApiUnavailable(f"Non-JSON response from {response.url}", response.text) from err

    def _parse(self, model: type, response: requests.Response) -> Any:
        body = self._json(response)
        try:
            return model.model_validate(body)
        except ValidationError as err:
            raise ApiUnavailable(f"Unexpected response from {response.url}", response.text) from err

    # -- Unauthenticated --

    def is_reachable(self) -> bool:
        """Return True when the base URL answers HTTP 200; transport errors count as not reachable."""
        try:
            response = self.http.get(self.base_url, timeout=self.timeout, verify=self.verify)
        except requests.RequestException as err:
            logger.info("Rancher Manager at %s not reachable: %s", self.base_url, err)
            return False
        return response.status_code == HTTPStatus.OK

    def login(self, username: str, password: str) -> LoginResponse:
        """Exchange credentials for a token.

        Transport errors and non-JSON bodies are reported as a failed login so
        that the caller retries them within its attempt budget.
        """
        try:
            response = self.http.post(
                f"{self.base_url}{API_LOGIN}",
                json={"username": username, "password": password},
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
                verify=self.verify,
            )
        except requests.RequestException as err:
            return LoginResponse(message=f"Login request failed: {err}")
        try:
            return LoginResponse.model_validate(response.json())
        except (ValueError, ValidationError):
            return LoginResponse(message=f"HTTP {response.status_code}: unexpected login response")

    # -- Settings --

    def get_setting(self, name: str) -> Setting:
        return self._parse(Setting, self._request("GET", f"{API_SETTINGS}/{name}"))

    def put_setting(self, name: str, value: str) -> Setting:
        return self._parse(Setting, self._request("PUT", f"{API_SETTINGS}/{name}", json={"value": value}))

    # -- Clusters --

    def list_clusters(self) -> ClusterList:
        """Fetch the full cluster list.

        Raises:
            ApiUnavailable: If the body has no ``data`` list.
        """
        return self._parse(ClusterList, self._request("GET", API_CLUSTERS))

    def create_cluster(self, name: str) -> Resource:
        return self._parse(Resource, self._request("POST", API_CLUSTERS, json={"type": "cluster", "name": name}))

    def registration_tokens_raw(self) -> str:
        """Return the registration token listing as raw text; it needs sanitizing before parsing."""
        return self._request("GET", API_REGISTRATION_TOKENS).text

    # -- Users --

    def find_user(self, username: str) -> User | None:
        users = self._parse(UserList, self._request("GET", API_USERS, params={"username": username}))
        return next((user for user in users.data if user.username == username), None)

    def create_user(self, username: str, password: str, display_name: str) -> User:
        payload = {
            "type": "user",
            "username": username,
            "password": password,
            "name": display_name,
            "enabled": True,
        }
        return self._parse(User, self._request("POST", API_USERS, json=payload))

    def find_role_binding(self, user_id: str, role: str) -> GlobalRoleBinding | None:
        """Return the existing binding of *role* to *user_id*, if any."""
        params = {"userId": user_id, "globalRoleId": role}
        bindings = self._parse(GlobalRoleBindingList, self._request("GET", API_GLOBAL_ROLE_BINDINGS, params=params))
        return next(
            (b for b in bindings.data if b.user_id == user_id and b.global_role_id == role and b.created), None
        )

    def bind_global_role(self, user_id: str, role: str) -> Resource:
        payload = {"type": "globalRoleBinding", "userId": user_id, "globalRoleId": role}
        return self._parse(Resource, self._request("POST", API_GLOBAL_ROLE_BINDINGS, json=payload))
