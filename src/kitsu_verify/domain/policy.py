"""
Outcome policy - Decision table for provider error codes.

Error codes reach the gateway from two places: the client's error
signal and the provider's ``requires_input`` webhook. In both cases
the code is read from a freshly fetched session and looked up here.
Keeping the mapping in one table lets operators change how a code is
treated without touching the orchestrator.
"""

from dataclasses import dataclass, field
from enum import Enum

UNDER_SUPPORTED_AGE = "under_supported_age"
CONSENT_DECLINED = "consent_declined"
SESSION_CANCELLED = "session_cancelled"


class Action(str, Enum):
    DENY = "deny"  # permanent deny written to the moderation note
    FAIL = "fail"  # failure reported, session kept for a retry
    IGNORE = "ignore"


class RequiresInputPolicy(str, Enum):
    """What a ``requires_input`` webhook does."""

    CLASSIFY = "classify"  # same table as the client error signal
    IGNORE = "ignore"


@dataclass(frozen=True)
class Outcome:
    action: Action
    reason: str | None = None


IGNORED = Outcome(Action.IGNORE)


def _default_table() -> dict[str, Outcome]:
    return {
        UNDER_SUPPORTED_AGE: Outcome(Action.DENY, "underage"),
        CONSENT_DECLINED: Outcome(Action.FAIL, "noconsent"),
        SESSION_CANCELLED: IGNORED,
    }


@dataclass(frozen=True)
class OutcomePolicy:
    """
    Maps a provider error code to the action the gateway takes.

    Unlisted codes fail the attempt with the code itself as the reason;
    a missing code is ignored.
    """

    table: dict[str, Outcome] = field(default_factory=_default_table)
    requires_input: RequiresInputPolicy = RequiresInputPolicy.CLASSIFY

    @classmethod
    def from_options(
        cls,
        consent_declined_action: Action | str = Action.FAIL,
        requires_input: RequiresInputPolicy | str = RequiresInputPolicy.CLASSIFY,
    ) -> "OutcomePolicy":
        table = _default_table()
        action = Action(consent_declined_action)
        table[CONSENT_DECLINED] = (
            IGNORED if action is Action.IGNORE else Outcome(action, "noconsent")
        )
        return cls(table=table, requires_input=RequiresInputPolicy(requires_input))

    def classify(self, code: str | None) -> Outcome:
        if not code:
            return IGNORED
        return self.table.get(code, Outcome(Action.FAIL, code))

    def is_client_retry(self, code: str | None) -> bool:
        """True for client-reported codes that mean the user will try again."""
        return code == SESSION_CANCELLED
