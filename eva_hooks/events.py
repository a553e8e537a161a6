"""Hook event model for the EVA sound hooks.

The host agent sends one JSON object per invocation on stdin. Only a few
fields matter for sound selection (``hook_event_name``, ``tool_name`` and
``status``); everything else (conversation ids, model, workspace roots, ...)
is kept in ``raw`` and otherwise ignored so newer host versions never break
the hook.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class MalformedEventError(ValueError):
    """Raised when the stdin payload is not a usable hook event."""
    pass


class EventKind(str, Enum):
    """Hook event names, camelCase as the host sends them."""

    SESSION_START = "sessionStart"
    SESSION_END = "sessionEnd"
    PRE_TOOL_USE = "preToolUse"
    POST_TOOL_USE = "postToolUse"
    POST_TOOL_USE_FAILURE = "postToolUseFailure"
    BEFORE_SHELL_EXECUTION = "beforeShellExecution"
    AFTER_SHELL_EXECUTION = "afterShellExecution"
    BEFORE_READ_FILE = "beforeReadFile"
    AFTER_FILE_EDIT = "afterFileEdit"
    BEFORE_MCP_EXECUTION = "beforeMCPExecution"
    AFTER_MCP_EXECUTION = "afterMCPExecution"
    BEFORE_SUBMIT_PROMPT = "beforeSubmitPrompt"
    SUBAGENT_START = "subagentStart"
    SUBAGENT_STOP = "subagentStop"
    STOP = "stop"
    PRE_COMPACT = "preCompact"
    AFTER_AGENT_THOUGHT = "afterAgentThought"


class ToolName(str, Enum):
    """Tool names that get special treatment during key resolution."""

    SHELL = "Shell"
    READ = "Read"
    GREP = "Grep"
    WRITE = "Write"
    STR_REPLACE = "StrReplace"
    DELETE = "Delete"


class StopStatus(str, Enum):
    """Terminal status reported with the ``stop`` event."""

    COMPLETED = "completed"
    ABORTED = "aborted"
    ERROR = "error"


ALL_EVENT_KINDS: tuple[str, ...] = tuple(kind.value for kind in EventKind)


@dataclass(frozen=True)
class HookEvent:
    """A single hook notification.

    ``kind`` is kept as a plain string rather than an ``EventKind`` so that
    unknown, future event names still flow through resolution (and simply
    find no sound).
    """

    kind: str
    tool_name: str | None = None
    status: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_payload(cls, payload: Any) -> "HookEvent":
        """Build an event from a decoded JSON payload.

        Args:
            payload: Whatever ``json.loads`` returned for stdin

        Returns:
            HookEvent with the fields used for sound selection

        Raises:
            MalformedEventError: If payload is not an object or has no
                string ``hook_event_name``
        """
        if not isinstance(payload, dict):
            raise MalformedEventError(
                f"Hook payload must be a JSON object, got {type(payload).__name__}"
            )

        kind = payload.get("hook_event_name")
        if not isinstance(kind, str) or not kind.strip():
            raise MalformedEventError("Hook payload has no hook_event_name")

        tool_name = payload.get("tool_name")
        status = payload.get("status")

        return cls(
            kind=kind.strip(),
            tool_name=tool_name if isinstance(tool_name, str) else None,
            status=status if isinstance(status, str) else None,
            raw=dict(payload),
        )

    @property
    def is_known(self) -> bool:
        """True if the host sent one of the event kinds we know about."""
        return self.kind in ALL_EVENT_KINDS
