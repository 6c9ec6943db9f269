"""File-backed session store: one markdown record per finished interview."""

import logging
import re
from datetime import datetime
from pathlib import Path

import frontmatter

from intake.models import Answer, SessionRecord, answers_to_dict

logger = logging.getLogger(__name__)


def _slug(text: str, max_len: int = 40) -> str:
    """Convert text to a filename-safe slug."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:max_len] or "session"


class SessionStore:
    """Writes records as YAML-frontmatter markdown files under root."""

    def __init__(self, root: Path) -> None:
        self._root = root

    @property
    def root(self) -> Path:
        return self._root

    def save(self, record: SessionRecord) -> Path:
        """Persist one record and return its path."""
        self._root.mkdir(parents=True, exist_ok=True)

        post = frontmatter.Post(
            record.summary,
            session_id=record.session_id,
            created_at=record.created_at.isoformat(),
            answers=answers_to_dict(record.answers),
            tags=dict(record.tags),
        )
        stamp = record.created_at.strftime("%Y%m%d_%H%M%S_%f")
        filepath = self._root / f"{stamp}_{_slug(record.session_id)}.md"
        filepath.write_text(frontmatter.dumps(post), encoding="utf-8")
        logger.info("Session %s saved to: %s", record.session_id, filepath)
        return filepath

    def load_all(self) -> list[SessionRecord]:
        """Return every stored record, oldest first."""
        if not self._root.exists():
            return []
        records = [self._load(path) for path in self._root.glob("*.md")]
        return sorted(records, key=lambda r: r.created_at)

    @staticmethod
    def _load(path: Path) -> SessionRecord:
        post = frontmatter.load(str(path))
        meta = post.metadata
        answers = {
            key: (Answer(text=str(value["text"]), quality=int(value["quality"])) if value else None)
            for key, value in (meta.get("answers") or {}).items()
        }
        return SessionRecord(
            session_id=str(meta["session_id"]),
            created_at=datetime.fromisoformat(str(meta["created_at"])),
            answers=answers,
            summary=post.content.strip(),
            tags={k: str(v) for k, v in (meta.get("tags") or {}).items()},
        )
