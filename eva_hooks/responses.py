"""Decision payloads returned to the host on stdout.

Gate hooks get an explicit "allow" so the EVA hooks never hold up the
agent; observation-only hooks get an empty object.
"""

from typing import Any

from eva_hooks.events import EventKind

EMPTY_RESPONSE: dict[str, Any] = {}

_RESPONSES: dict[str, dict[str, Any]] = {
    EventKind.SESSION_START.value: {"continue": True},
    EventKind.BEFORE_SUBMIT_PROMPT.value: {"continue": True},
    EventKind.PRE_TOOL_USE.value: {"decision": "allow"},
    EventKind.SUBAGENT_START.value: {"decision": "allow"},
    EventKind.BEFORE_SHELL_EXECUTION.value: {"permission": "allow"},
    EventKind.BEFORE_MCP_EXECUTION.value: {"permission": "allow"},
    EventKind.BEFORE_READ_FILE.value: {"permission": "allow"},
}


def build_response(kind: str | None) -> dict[str, Any]:
    """Return a fresh decision dict for an event kind."""
    if kind is None:
        return dict(EMPTY_RESPONSE)
    return dict(_RESPONSES.get(kind, EMPTY_RESPONSE))
