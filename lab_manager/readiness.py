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

"""Blocking liveness polling."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from tenacity import Retrying, before_sleep_log, retry_if_result, wait_fixed

from lab_manager import logger


def await_ready(
    probe: Callable[[], bool],
    interval: float,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """Call *probe* until it returns True, sleeping *interval* seconds between failures.

    There is no attempt limit: the caller blocks until the probe succeeds.

    Args:
        probe: Zero-argument check; any falsy result means "not ready yet".
        interval: Seconds to wait between consecutive attempts.
        sleep: Sleep function, replaceable in tests.
    """
    retrying = Retrying(
        retry=retry_if_result(lambda ok: not ok),
        wait=wait_fixed(interval),
        sleep=sleep,
        before_sleep=before_sleep_log(logger, logging.INFO),
    )
    retrying(probe)
