"""Options controlling where and how hardware information is gathered."""

from __future__ import annotations

import dataclasses
import io
import os
import sys
from dataclasses import dataclass
from typing import Callable, Mapping, TextIO

DEFAULT_CHROOT = "/"

ENV_CHROOT = "GHW_CHROOT"
ENV_DISABLE_WARNINGS = "GHW_DISABLE_WARNINGS"
ENV_DISABLE_TOOLS = "GHW_DISABLE_TOOLS"
ENV_SNAPSHOT_PATH = "GHW_SNAPSHOT_PATH"
ENV_SNAPSHOT_ROOT = "GHW_SNAPSHOT_ROOT"
ENV_SNAPSHOT_EXCLUSIVE = "GHW_SNAPSHOT_EXCLUSIVE"
ENV_SNAPSHOT_PRESERVE = "GHW_SNAPSHOT_PRESERVE"

Alerter = Callable[[str], None]


class _DiscardStream(io.TextIOBase):
    """A text stream that accepts and drops everything written to it."""

    def write(self, text: str) -> int:
        return len(text)


class _StreamAlerter:
    """Write each warning as a line to a stream; standard error by default."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    def __call__(self, message: str) -> None:
        stream = self._stream if self._stream is not None else sys.stderr
        stream.write(message if message.endswith("\n") else message + "\n")


NULL_ALERTER: Alerter = _StreamAlerter(_DiscardStream())
_STDERR_ALERTER: Alerter = _StreamAlerter()


def env_or_default_alerter() -> Alerter:
    """Return the warning sink: stderr, or nothing if warnings are disabled."""
    if ENV_DISABLE_WARNINGS in os.environ:
        return NULL_ALERTER
    return _STDERR_ALERTER


def env_or_default_chroot() -> str:
    """Return the chroot from the environment, or "/"."""
    return os.environ.get(ENV_CHROOT, DEFAULT_CHROOT)


def env_or_default_snapshot_path() -> str:
    """Return the snapshot path from the environment, or "" for none."""
    return os.environ.get(ENV_SNAPSHOT_PATH, "")


def env_or_default_snapshot_root() -> str:
    """Return the snapshot unpack root from the environment, or ""."""
    return os.environ.get(ENV_SNAPSHOT_ROOT, "")


def env_or_default_snapshot_exclusive() -> bool:
    """Return True if the exclusive-snapshot variable is set."""
    return ENV_SNAPSHOT_EXCLUSIVE in os.environ


def env_or_default_snapshot_preserve() -> bool:
    """Return True if unpacked snapshots should be kept."""
    return ENV_SNAPSHOT_PRESERVE in os.environ


def env_or_default_tools() -> bool:
    """Return True unless external tools have been disabled."""
    return ENV_DISABLE_TOOLS not in os.environ


@dataclass
class SnapshotOptions:
    """How a snapshot should be consumed."""

    path: str = ""
    root: str | None = None
    exclusive: bool = False


@dataclass
class Option:
    """A set of optional settings; None means "not set"."""

    chroot: str | None = None
    snapshot: SnapshotOptions | None = None
    alerter: Alerter | None = None
    enable_tools: bool | None = None
    path_overrides: dict[str, str] | None = None

    def warn(self, msg: str, *args) -> None:
        """Emit a warning, printf-style, through the configured alerter."""
        text = msg % args if args else msg
        alerter = self.alerter if self.alerter is not None else env_or_default_alerter()
        alerter(text)


def with_chroot(directory: str) -> Option:
    """Override the root directory used to read system files."""
    return Option(chroot=directory)


def with_snapshot(opts: SnapshotOptions) -> Option:
    """Set snapshot-processing options."""
    return Option(snapshot=dataclasses.replace(opts))


def with_alerter(alerter: Alerter) -> Option:
    """Send warnings to ``alerter``."""
    return Option(alerter=alerter)


def with_null_alerter() -> Option:
    """Discard all warnings."""
    return Option(alerter=NULL_ALERTER)


def with_disable_tools() -> Option:
    """Forbid calling external programs to learn about hardware."""
    return Option(enable_tools=False)


def with_path_overrides(overrides: Mapping[str, str]) -> Option:
    """Override specific mount roots such as "/proc" or "/sys"."""
    return Option(path_overrides=dict(overrides))


def merge(*args: Option) -> Option:
    """Merge options, later ones winning, and fill defaults from the environment."""
    merged = Option()
    for opt in args:
        for field in dataclasses.fields(Option):
            value = getattr(opt, field.name)
            if value is not None:
                setattr(merged, field.name, value)
    if merged.chroot is None:
        merged.chroot = env_or_default_chroot()
    if merged.alerter is None:
        merged.alerter = env_or_default_alerter()
    if merged.snapshot is None:
        merged.snapshot = SnapshotOptions(
            path=env_or_default_snapshot_path(),
            root=env_or_default_snapshot_root(),
            exclusive=env_or_default_snapshot_exclusive(),
        )
    if merged.enable_tools is None:
        merged.enable_tools = env_or_default_tools()
    return merged