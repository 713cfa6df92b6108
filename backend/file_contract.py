"""Vault path contract: filename sanitization and deterministic output paths.

Note paths are grouped into <YYYY>/<MM> folders using the caller's calendar,
while the "YYYY-MM-DD HH.MM" filename stamp is always computed in UTC. The two
can disagree around midnight; existing vaults depend on both, so keep them.
"""

import re
from datetime import datetime, timezone, tzinfo
from typing import Optional

from domain.models import MeetingPaths, VaultFolders

UNTITLED = "Untitled"
MAX_TITLE_LENGTH = 120

# Path separators plus characters that break on macOS, Windows and sync tools.
FORBIDDEN_CHARS = set('/\\:?%*|"<>\t\n')

ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _is_control(ch: str) -> bool:
    code = ord(ch)
    return code < 0x20 or 0x7F <= code < 0xA0


def sanitize_title(raw_title: str) -> str:
    """Turn an arbitrary title into a single safe path segment.

    Not reversible and not collision-free; see VaultWriter reservation.
    """
    text = (raw_title or "").replace("\r\n", "\n").replace("\r", "\n").strip()

    chars: list[str] = []
    last_was_space = False
    for ch in text:
        if ch in FORBIDDEN_CHARS or _is_control(ch) or ch.isspace():
            if not last_was_space:
                chars.append(" ")
                last_was_space = True
            continue
        chars.append(ch)
        last_was_space = False

    result = "".join(chars).strip()
    if result in ("", ".", ".."):
        result = UNTITLED

    if len(result) > MAX_TITLE_LENGTH:
        result = result[:MAX_TITLE_LENGTH].rstrip()

    return result


def _to_utc(date: datetime) -> datetime:
    # Naive datetimes are taken as local time, matching datetime.astimezone().
    return date.astimezone(timezone.utc)


def iso_date(date: datetime) -> str:
    """YYYY-MM-DD of `date` in UTC."""
    return _to_utc(date).strftime("%Y-%m-%d")


def iso_datetime_prefix(date: datetime) -> str:
    """Filename stamp "YYYY-MM-DD HH.MM" of `date` in UTC."""
    return _to_utc(date).strftime("%Y-%m-%d %H.%M")


def parse_iso_date(value: str) -> Optional[datetime]:
    """Parse a YYYY-MM-DD string as UTC midnight; None if it isn't one."""
    if not ISO_DATE_RE.match(value or ""):
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").replace(tzinfo=timezone.utc)
    except ValueError:
        return None


def collision_title(title: str, attempt: int) -> str:
    """Title stem for the n-th reservation attempt: "T", "T (2)", "T (3)", ..."""
    safe_title = sanitize_title(title)
    if attempt <= 1:
        return safe_title
    return f"{safe_title} ({attempt})"


class MeetingFileContract:
    """Computes the vault-relative note, audio and transcript paths."""

    def __init__(self, folders: Optional[VaultFolders] = None):
        self.folders = folders or VaultFolders()

    def note_path(self, date: datetime, title: str, tz: Optional[tzinfo] = None) -> str:
        return self._note_path(date, sanitize_title(title), tz)

    def audio_path(self, date: datetime, title: str) -> str:
        return f"{self.folders.audio_root}/{self._stem(date, sanitize_title(title))}.wav"

    def transcript_path(self, date: datetime, title: str) -> str:
        return f"{self.folders.transcripts_root}/{self._stem(date, sanitize_title(title))}.md"

    def paths(self, date: datetime, title: str, attempt: int = 1, tz: Optional[tzinfo] = None) -> MeetingPaths:
        """All three paths for one reservation attempt, sharing the same suffix."""
        safe_title = collision_title(title, attempt)
        stem = self._stem(date, safe_title)
        return MeetingPaths(
            note=self._note_path(date, safe_title, tz),
            audio=f"{self.folders.audio_root}/{stem}.wav",
            transcript=f"{self.folders.transcripts_root}/{stem}.md",
        )

    def _note_path(self, date: datetime, safe_title: str, tz: Optional[tzinfo]) -> str:
        local = date.astimezone(tz)
        return "/".join([
            self.folders.meetings_root,
            f"{local.year:04d}",
            f"{local.month:02d}",
            f"{self._stem(date, safe_title)}.md",
        ])

    @staticmethod
    def _stem(date: datetime, safe_title: str) -> str:
        return f"{iso_datetime_prefix(date)} - {safe_title}"
