#!/usr/bin/env python3
"""
Red Alert 2 EVA hook handler for IDE agent events.

Usage:
    eva-hook < event.json
    python -m eva_hooks.sounds < event.json

Reads one hook event (JSON) from stdin, writes the host decision (JSON plus
newline) to stdout, then plays the matching EVA line. Odd hours use the
Allied EVA, even hours the Soviet EVA.

Fail-open: malformed input, missing sounds, lock timeouts and player errors
all end with a valid decision on stdout ({} at worst) and exit status 0.
"""

import json
import signal
import sys
import threading
from typing import Any, TextIO

from eva_hooks.config import HookConfig, load_config
from eva_hooks.events import HookEvent, MalformedEventError
from eva_hooks.log import get_logger, setup_logging
from eva_hooks.player import PlaybackCoordinator, PlaybackOutcome, play_hook_sound
from eva_hooks.responses import EMPTY_RESPONSE, build_response

logger = get_logger("hook")

STDIN_TIMEOUT = 5


class ResponseWriter:
    """Writes exactly one decision line and remembers that it did."""

    def __init__(self, out: TextIO):
        self.out = out
        self.sent = False

    def send(self, response: dict[str, Any]) -> None:
        if self.sent:
            return
        self.sent = True
        self.out.write(json.dumps(response) + "\n")
        self.out.flush()


def _read_stdin_with_timeout(timeout_seconds: int = STDIN_TIMEOUT) -> str:
    """Read all of stdin, giving up after a timeout so the hook never hangs."""
    result: list[str] = []
    done = threading.Event()

    def reader():
        try:
            result.append(sys.stdin.buffer.read().decode("utf-8", errors="replace"))
        except (OSError, ValueError, AttributeError) as e:
            logger.warning(f"Cannot read stdin: {e}")
        finally:
            done.set()

    t = threading.Thread(target=reader, daemon=True)
    t.start()
    if not done.wait(timeout=timeout_seconds):
        logger.warning(f"Timed out reading stdin after {timeout_seconds}s")
    return result[0] if result else ""


def parse_event(raw: str) -> HookEvent:
    """Decode stdin text into a HookEvent.

    Raises:
        MalformedEventError: On empty input, invalid JSON or a bad payload
    """
    if not raw or not raw.strip():
        raise MalformedEventError("Empty hook input")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as e:
        raise MalformedEventError(f"Invalid JSON: {e}") from e
    return HookEvent.from_payload(payload)


def run_hook(
    raw: str,
    writer: ResponseWriter,
    config: HookConfig | None = None,
    coordinator: PlaybackCoordinator | None = None,
    hour: int | None = None,
) -> PlaybackOutcome | None:
    """Handle one invocation: send the decision, then play the sound.

    The decision goes out before playback so a long EVA line never delays
    the host's permission check.

    Returns:
        PlaybackOutcome, or None if the input was unusable or playback failed
    """
    try:
        event = parse_event(raw)
    except MalformedEventError as e:
        logger.warning(f"Ignoring hook input: {e}")
        writer.send(EMPTY_RESPONSE)
        return None

    logger.info(f"Hook: {event.kind}")
    writer.send(build_response(event.kind))

    try:
        if config is None:
            config = load_config()
        return play_hook_sound(event, config, coordinator=coordinator, hour=hour)
    except Exception as e:
        # The decision is already out; sound problems must not surface
        logger.error(f"Sound playback failed: {e}")
        return None


def _exit_quietly(signum, frame):
    # SystemExit unwinds through the coordinator's finally, releasing the lock
    sys.exit(0)


def main() -> None:
    """Hook entry point."""
    for sig in (signal.SIGTERM, signal.SIGINT):
        signal.signal(sig, _exit_quietly)
    if hasattr(signal, "SIGHUP"):
        signal.signal(signal.SIGHUP, _exit_quietly)

    writer = ResponseWriter(sys.stdout)
    try:
        setup_logging()
        run_hook(_read_stdin_with_timeout(), writer)
    except Exception as e:
        logger.error(f"Hook failed: {e}")
    finally:
        if not writer.sent:
            try:
                writer.send(EMPTY_RESPONSE)
            except OSError:
                pass  # Host closed stdout; nothing left to tell it
    sys.exit(0)


if __name__ == "__main__":
    main()
