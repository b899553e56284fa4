"""
Escalation Policy: how loudly to remind about a pending review.

    elapsed < start_after                  -> NONE
    start_after <= elapsed < channel_after -> DIRECT (engaged users, else assigned)
    elapsed >= channel_after               -> BROADCAST (@channel)

Lower bounds are inclusive. The policy is a pure function of its inputs;
fetching engagement and sending messages belong to the caller.
"""

from dataclasses import dataclass
from datetime import timedelta
from enum import Enum

CHANNEL_MENTION = "<!channel>"

DIRECT_TONE = "This PR is awaiting your review."

_UNITS = (
    ("day", timedelta(days=1)),
    ("hour", timedelta(hours=1)),
    ("minute", timedelta(minutes=1)),
    ("second", timedelta(seconds=1)),
)


class EscalationTier(str, Enum):
    NONE = "none"
    DIRECT = "direct"
    BROADCAST = "broadcast"


@dataclass(frozen=True)
class Escalation:
    """Outcome of evaluating the policy for one review."""
    tier: EscalationTier
    recipients: tuple[str, ...] = ()
    tone: str = ""

    @property
    def should_notify(self) -> bool:
        return self.tier != EscalationTier.NONE

    @property
    def is_broadcast(self) -> bool:
        return self.tier == EscalationTier.BROADCAST


NO_ESCALATION = Escalation(tier=EscalationTier.NONE)


def describe_wait(duration: timedelta) -> str:
    """Render a duration in its largest whole unit, e.g. '3+ days' or '20+ seconds'."""
    for name, size in _UNITS:
        if duration >= size:
            count = duration // size
            return f"{count}+ {name}{'s' if count != 1 else ''}"
    return "a moment"


@dataclass(frozen=True)
class EscalationPolicy:
    """Two-threshold reminder policy."""
    start_after: timedelta
    channel_after: timedelta

    def __post_init__(self):
        if self.start_after < timedelta(0):
            raise ValueError("start_after must not be negative")
        if not self.start_after < self.channel_after:
            raise ValueError(
                f"start_after ({self.start_after}) must be shorter than "
                f"channel_after ({self.channel_after})"
            )

    @property
    def broadcast_tone(self) -> str:
        return f"This PR has been waiting for review for {describe_wait(self.channel_after)}."

    def evaluate(
        self,
        elapsed: timedelta,
        assigned: frozenset[str] | set[str],
        engaged: frozenset[str] | set[str],
    ) -> Escalation:
        if elapsed < self.start_after:
            return NO_ESCALATION

        if elapsed >= self.channel_after:
            return Escalation(
                tier=EscalationTier.BROADCAST,
                recipients=(CHANNEL_MENTION,),
                tone=self.broadcast_tone,
            )

        # Watchers take over from the assigned reviewers; with neither, the
        # reminder goes out without mentions
        recipients = engaged if engaged else assigned
        return Escalation(
            tier=EscalationTier.DIRECT,
            recipients=tuple(sorted(recipients)),
            tone=DIRECT_TONE,
        )
