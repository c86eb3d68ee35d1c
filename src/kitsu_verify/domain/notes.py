"""
Moderation note codec - Token grammar for durable verification state.

The platform moderation note is free text. The gateway recognizes a
closed set of tokens inside it and is the only code allowed to read
or rewrite them:

    ADM-ID/minor                    pending minor, verification required
    ADM-ID/Verified - <session id>  verified by the given provider session
    susp/minor + ADM-ID/Perm        permanently denied (suspension + deny)

The deny tag is written as ``ADM-ID/Perm`` but older records carry
``ADM-ID/perm``. Both literal forms are read until the casing is
settled upstream.
"""

import re
from enum import Enum

PENDING_MINOR_TAG = "ADM-ID/minor"
VERIFIED_TAG_PREFIX = "ADM-ID/Verified - "
SUSPENSION_TAG = "susp/minor"
DENY_TAG = "ADM-ID/Perm"
DENY_TAG_READ_FORMS = ("ADM-ID/Perm", "ADM-ID/perm")

PERMANENT_DENY_NOTE = f"{SUSPENSION_TAG}\n{DENY_TAG}"

_VERIFIED_TAG_RE = re.compile(re.escape(VERIFIED_TAG_PREFIX) + r"(\S+)")


class NoteTag(Enum):
    """Recognized tag kinds, in classification precedence order."""

    PENDING_MINOR = "pending_minor"
    PERMANENT_DENY = "permanent_deny"
    VERIFIED = "verified"
    NONE = "none"


class BanType(str, Enum):
    """Ban classification reported to identify queries."""

    CONDITIONAL = "conditional"  # may still verify
    PERMANENT = "permanent"  # lost the ability to appeal
    NONE = "none"  # no record on file, or already verified


def verified_tag(session_id: str) -> str:
    """Render the verified tag for a provider session id."""
    if not session_id or any(ch.isspace() for ch in session_id):
        raise ValueError(f"Invalid session id for verified tag: {session_id!r}")
    return f"{VERIFIED_TAG_PREFIX}{session_id}"


def has_pending_minor_tag(note: str | None) -> bool:
    return PENDING_MINOR_TAG in (note or "")


def has_permanent_deny_tag(note: str | None) -> bool:
    text = note or ""
    return any(form in text for form in DENY_TAG_READ_FORMS)


def verified_session_id(note: str | None) -> str | None:
    """Return the session id of the verified tag, if the note carries one."""
    match = _VERIFIED_TAG_RE.search(note or "")
    return match.group(1) if match else None


def parse(note: str | None) -> NoteTag:
    """
    Identify the tag a note carries.

    Pending-minor wins over deny, matching how identify queries have
    always been answered.
    """
    if has_pending_minor_tag(note):
        return NoteTag.PENDING_MINOR
    if has_permanent_deny_tag(note):
        return NoteTag.PERMANENT_DENY
    if verified_session_id(note) is not None:
        return NoteTag.VERIFIED
    return NoteTag.NONE


def classify(note: str | None) -> BanType:
    tag = parse(note)
    if tag is NoteTag.PENDING_MINOR:
        return BanType.CONDITIONAL
    if tag is NoteTag.PERMANENT_DENY:
        return BanType.PERMANENT
    return BanType.NONE


def apply_verified(note: str | None, session_id: str) -> str:
    """
    Replace the pending-minor tag with the verified tag.

    Only the tag is rewritten; every other character of the note is
    kept verbatim. A note without the pending-minor tag is returned
    unchanged, so the tag is never reinstated or duplicated.

    Args:
        note: Current moderation note (None treated as empty)
        session_id: Provider session that verified the user

    Returns:
        The rewritten note
    """
    return (note or "").replace(PENDING_MINOR_TAG, verified_tag(session_id), 1)


def apply_permanent_deny(note: str | None) -> str:
    """
    Overwrite the whole note with the suspension and deny tags.

    Unlike apply_verified this discards the existing note content.
    """
    return PERMANENT_DENY_NOTE
