"""Event → sound key resolution.

Resolution is an ordered list of rules; the first rule whose predicate
matches decides the key. ``None`` means "play nothing". No state is kept
between calls, so the same event always resolves to the same key.

Tools that have a dedicated hook of their own (shell, file read, file
write/edit) are silenced on the generic tool hooks so one action never
announces twice.
"""

from dataclasses import dataclass
from typing import Callable

from eva_hooks.events import EventKind, HookEvent, ToolName

# Tools covered by beforeShellExecution / beforeReadFile / afterFileEdit
_PRE_TOOL_SILENCED = frozenset({
    ToolName.SHELL.value,
    ToolName.READ.value,
    ToolName.WRITE.value,
    ToolName.STR_REPLACE.value,
})

# Grep is silenced after the fact too: reading has no "done" announcement
_POST_TOOL_SILENCED = _PRE_TOOL_SILENCED | {ToolName.GREP.value}


def stop_sound_key(status: str | None) -> str | None:
    """Composite key for the stop event, e.g. ``stop:completed``.

    A stop without a status has nothing to announce and stays silent.
    """
    if not status:
        return None
    return f"stop:{status}"


@dataclass(frozen=True)
class SoundKeyRule:
    """One row of the resolution table."""

    name: str
    matches: Callable[[HookEvent], bool]
    key: Callable[[HookEvent], str | None]


def _is(kind: EventKind, tools: frozenset[str] | None = None) -> Callable[[HookEvent], bool]:
    def predicate(event: HookEvent) -> bool:
        if event.kind != kind.value:
            return False
        return tools is None or event.tool_name in tools
    return predicate


def _silent(event: HookEvent) -> None:
    return None


def _constant(key: str) -> Callable[[HookEvent], str]:
    return lambda event: key


RULES: tuple[SoundKeyRule, ...] = (
    SoundKeyRule(
        "stop-status",
        _is(EventKind.STOP),
        lambda event: stop_sound_key(event.status),
    ),
    SoundKeyRule(
        "pre-tool-dedicated-hook",
        _is(EventKind.PRE_TOOL_USE, _PRE_TOOL_SILENCED),
        _silent,
    ),
    # "Training." - grep counts as reading
    SoundKeyRule(
        "pre-tool-grep-as-read",
        _is(EventKind.PRE_TOOL_USE, frozenset({ToolName.GREP.value})),
        _constant(EventKind.BEFORE_READ_FILE.value),
    ),
    SoundKeyRule(
        "post-tool-dedicated-hook",
        _is(EventKind.POST_TOOL_USE, _POST_TOOL_SILENCED),
        _silent,
    ),
    # "Unit lost." - something was destroyed, even on success
    SoundKeyRule(
        "post-tool-delete-as-loss",
        _is(EventKind.POST_TOOL_USE, frozenset({ToolName.DELETE.value})),
        _constant(EventKind.POST_TOOL_USE_FAILURE.value),
    ),
    # Failed reads are usually existence checks before a create
    SoundKeyRule(
        "read-failure-expected",
        _is(EventKind.POST_TOOL_USE_FAILURE, frozenset({ToolName.READ.value})),
        _silent,
    ),
    SoundKeyRule(
        "event-kind",
        lambda event: True,
        lambda event: event.kind,
    ),
)


def explain_sound_key(event: HookEvent) -> tuple[str, str | None]:
    """Resolve an event and report which rule decided.

    Returns:
        (rule name, sound key or None)
    """
    for rule in RULES:
        if rule.matches(event):
            return rule.name, rule.key(event)
    # Unreachable while the catch-all rule is last
    return "none", None


def resolve_sound_key(event: HookEvent) -> str | None:
    """Return the sound key for an event, or None to stay silent."""
    return explain_sound_key(event)[1]
