"""Deterministic merge policy.

This module contains *no* payload parsing. It answers two questions the merge
engine asks for every event: does a message kind signal a build-pipeline phase
transition, and does that transition make the project snapshot stale for the
current host type.
"""

from __future__ import annotations

from enum import StrEnum

from pydevsync.models.message import MessageKind
from pydevsync.models.project import HostType


class PhaseSignal(StrEnum):
    NONE = "none"
    TUNNEL_READY = "tunnel_ready"
    BUNDLER_STARTED = "bundler_started"


# Every MessageKind member must be classified here; tests enforce it.
_PHASE_SIGNALS: dict[MessageKind, PhaseSignal] = {
    MessageKind.LOG: PhaseSignal.NONE,
    MessageKind.ISSUE: PhaseSignal.NONE,
    MessageKind.METRO_INITIALIZE_STARTED: PhaseSignal.BUNDLER_STARTED,
    MessageKind.BUILD_PROGRESS: PhaseSignal.NONE,
    MessageKind.BUILD_FINISHED: PhaseSignal.NONE,
    MessageKind.BUILD_ERROR: PhaseSignal.NONE,
    MessageKind.TUNNEL_READY: PhaseSignal.TUNNEL_READY,
    MessageKind.UNKNOWN: PhaseSignal.NONE,
}


def phase_signal(kind: MessageKind) -> PhaseSignal:
    return _PHASE_SIGNALS[kind]


def should_refresh_snapshot(kind: MessageKind, host_type: HostType | None) -> bool:
    """Whether a new message of *kind* means the project snapshot must be refetched.

    In tunnel mode the project URLs change once the tunnel is up; otherwise
    they change when the bundler starts.
    """
    signal = phase_signal(kind)
    if host_type == HostType.TUNNEL:
        return signal == PhaseSignal.TUNNEL_READY
    return signal == PhaseSignal.BUNDLER_STARTED


def clamp_unread(unread_count: int, count: int) -> int:
    """Keep ``0 <= unread_count <= count``."""
    return max(0, min(unread_count, count))
