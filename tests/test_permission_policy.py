from __future__ import annotations

import pytest

from mcp_servers.apex_agent.errors import PolicyError
from mcp_servers.apex_agent.permissions import AgentPermissions, AgentPolicy


def test_every_capability_is_granted_by_default() -> None:
    perms = AgentPermissions()
    assert all(perms.to_dict().values())
    assert perms.granted("showCursor") is True
    assert perms.granted("teleport") is False


def test_parse_accepts_json_object_and_comma_list() -> None:
    from_json = AgentPermissions.parse('{"scripts": false, "showTooltips": "no"}')
    assert from_json.scripts is False
    assert from_json.show_tooltips is False
    assert from_json.navigation is True

    from_list = AgentPermissions.parse("mouse, keyboard,screenshot")
    assert from_list.to_dict() == {
        "mouse": True,
        "keyboard": True,
        "navigation": False,
        "scripts": False,
        "screenshot": True,
        "showCursor": False,
        "highlightTarget": False,
        "showTooltips": False,
    }

    assert AgentPermissions.parse("") == AgentPermissions()


def test_parse_rejects_malformed_json() -> None:
    with pytest.raises(ValueError, match="Invalid permissions JSON"):
        AgentPermissions.parse("{scripts: false")


@pytest.mark.parametrize(
    ("capability", "message"),
    [
        ("navigation", "Navigation not permitted"),
        ("screenshot", "Screenshots not permitted"),
        ("scripts", "Script execution not permitted"),
    ],
)
def test_denied_capability_raises_policy_error(capability: str, message: str) -> None:
    policy = AgentPolicy(enabled=True, permissions=AgentPermissions.from_mapping({capability: False}))
    with pytest.raises(PolicyError, match=message):
        policy.require(capability)


def test_capability_checks_are_skipped_while_disabled() -> None:
    policy = AgentPolicy(enabled=False, permissions=AgentPermissions.only([]))
    policy.require("scripts")


def test_update_merges_permissions_and_toggles_enabled() -> None:
    policy = AgentPolicy()
    policy.update(enabled=False, permissions={"scripts": False})
    policy.update(permissions={"screenshot": False})

    assert policy.to_dict() == {
        "enabled": False,
        "permissions": {
            "mouse": True,
            "keyboard": True,
            "navigation": True,
            "scripts": False,
            "screenshot": False,
            "showCursor": True,
            "highlightTarget": True,
            "showTooltips": True,
        },
    }


def test_update_with_full_mapping_replaces_every_grant() -> None:
    policy = AgentPolicy()
    policy.update(permissions={"scripts": False})
    policy.update(permissions={"mouse": False})
    assert policy.permissions.scripts is False

    full = dict.fromkeys(policy.permissions.to_dict(), True)
    policy.update(permissions={**full, "keyboard": False})
    assert policy.permissions.to_dict() == {**full, "keyboard": False}

    policy.update(permissions=None)
    assert policy.permissions.keyboard is False
