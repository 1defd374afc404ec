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

"""Bearer token acquisition and reuse for the management API."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from tenacity import RetryError, Retrying, before_sleep_log, retry_if_result, stop_after_attempt, wait_fixed

from lab_manager import console, logger
from lab_manager.config import RunConfig
from lab_manager.errors import AuthExhausted
from lab_manager.readiness import await_ready

if TYPE_CHECKING:
    from lab_manager.api import RancherApi


@dataclass
class Session:
    """Run-scoped bearer token state.

    Attributes:
        token: Current bearer token, or None until acquired.
        acquired_at: When the token was acquired.
    """

    token: str | None = None
    acquired_at: datetime | None = None


class Authenticator:
    """Owns the :class:`Session` and fills it on first use.

    Login is retried independently of the liveness probe because the manager
    answers HTTP 200 on its root path before its auth provider is bootstrapped.
    """

    def __init__(
        self,
        cfg: RunConfig,
        api: RancherApi,
        session: Session,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.cfg = cfg
        self.api = api
        self.session = session
        self.sleep = sleep

    def wait_until_reachable(self) -> None:
        console.print(f"[yellow]ℹ️  Checking if Rancher Manager at {self.cfg.rancher_url} is responsive...[/yellow]")
        await_ready(self.api.is_reachable, self.cfg.poll_interval_seconds, sleep=self.sleep)
        console.print("[green]  ✓ Rancher Manager is responsive[/green]")

    def _attempt_login(self) -> str | None:
        logger.info("Trying to authenticate with Rancher Manager as %s", self.cfg.admin_username)
        response = self.api.login(self.cfg.admin_username, self.cfg.default_pass or "")
        if not response.succeeded:
            logger.info("Authentication failed with error: %s", response.message or "no token returned")
            return None
        return response.token

    def acquire_token(self) -> str:
        """Return the cached token, or wait for the manager and log in.

        Returns:
            Bearer token for authenticated API calls.

        Raises:
            AuthExhausted: If no login succeeds within ``login_max_attempts``.
        """
        if self.session.token:
            logger.info("Valid bearer token found, proceeding")
            return self.session.token

        self.wait_until_reachable()
        console.print("[yellow]ℹ️  Authenticating with Rancher Manager...[/yellow]")
        retrying = Retrying(
            stop=stop_after_attempt(self.cfg.login_max_attempts),
            wait=wait_fixed(self.cfg.poll_interval_seconds),
            retry=retry_if_result(lambda token: token is None),
            sleep=self.sleep,
            before_sleep=before_sleep_log(logger, logging.INFO),
        )
        try:
            token = retrying(self._attempt_login)
        except RetryError as err:
            raise AuthExhausted(
                f"Could not authenticate to {self.cfg.rancher_url} after {self.cfg.login_max_attempts} attempts"
            ) from err

        self.session.token = token
        self.session.acquired_at = datetime.now(timezone.utc)
        console.print("[green]  ✓ Authenticated to Rancher Manager, bearer token acquired[/green]")
        return token

    def reset(self) -> None:
        self.session.token = None
        self.session.acquired_at = None
