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

"""Management-plane settings and demo user setup."""

from __future__ import annotations

from lab_manager import console
from lab_manager.api import RancherApi
from lab_manager.auth import Authenticator
from lab_manager.config import RunConfig
from lab_manager.constants import (
    AGENT_TLS_MODE_SYSTEM_STORE,
    DEFAULT_DEMO_GLOBAL_ROLE,
    SETTING_AGENT_TLS_MODE,
)
from lab_manager.errors import ApiUnavailable


def ensure_agent_tls_mode(api: RancherApi, authenticator: Authenticator,
                          value: str = AGENT_TLS_MODE_SYSTEM_STORE) -> None:
    """Set ``agent-tls-mode`` to *value* unless it already is.

    Raises:
        ApiUnavailable: If the setting cannot be read, the update is not
            acknowledged, or the value does not change.
    """
    authenticator.acquire_token()
    current = api.get_setting(SETTING_AGENT_TLS_MODE)
    if current.value is None:
        raise ApiUnavailable(f"Failed to retrieve the {SETTING_AGENT_TLS_MODE} setting value")
    if current.value == value:
        console.print(f"[yellow]   {SETTING_AGENT_TLS_MODE} is already '{value}', skipping update[/yellow]")
        return

    console.print(f"[yellow]ℹ️  Changing {SETTING_AGENT_TLS_MODE} from '{current.value}' to '{value}'...[/yellow]")
    if not api.put_setting(SETTING_AGENT_TLS_MODE, value).created:
        raise ApiUnavailable(f"Failed to update {SETTING_AGENT_TLS_MODE}: no 'id' returned")
    updated = api.get_setting(SETTING_AGENT_TLS_MODE)
    if updated.value != value:
        raise ApiUnavailable(f"{SETTING_AGENT_TLS_MODE} is not '{value}', current value is '{updated.value}'")
    console.print(f"[green]  ✓ {SETTING_AGENT_TLS_MODE} set to '{value}'[/green]")


def ensure_demo_user(cfg: RunConfig, api: RancherApi, authenticator: Authenticator) -> str:
    """Create the demo user (or reuse an existing one) and grant it the standard global role.

    Returns:
        The user's identifier.

    Raises:
        ApiUnavailable: If the user or the role binding is not created.
    """
    authenticator.acquire_token()
    user = api.find_user(cfg.demo_username)
    if user is not None and user.created:
        console.print(f"[yellow]   User {cfg.demo_username} already exists with ID {user.id}[/yellow]")
    else:
        user = api.create_user(cfg.demo_username, cfg.default_pass, cfg.demo_display_name)
        if not user.created:
            raise ApiUnavailable(f"Failed to create user {cfg.demo_username}: no 'id' returned")
        console.print(f"[green]  ✓ User {cfg.demo_username} created with ID {user.id}[/green]")

    existing = api.find_role_binding(user.id, DEFAULT_DEMO_GLOBAL_ROLE)
    if existing is not None:
        console.print(f"[yellow]   Global role '{DEFAULT_DEMO_GLOBAL_ROLE}' already assigned to "
                      f"{cfg.demo_username}, skipping[/yellow]")
        return user.id

    binding = api.bind_global_role(user.id, DEFAULT_DEMO_GLOBAL_ROLE)
    if not binding.created:
        raise ApiUnavailable(f"Failed to assign global role '{DEFAULT_DEMO_GLOBAL_ROLE}' to {cfg.demo_username}")
    console.print(f"[green]  ✓ Global role '{DEFAULT_DEMO_GLOBAL_ROLE}' assigned to {cfg.demo_username}[/green]")
    return user.id
