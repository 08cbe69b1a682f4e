# control_panel/host/mail_config.py
"""Postfix / Dovecot virtual mailbox files."""

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, List

from control_panel.core.errors import UpstreamError

logger = logging.getLogger(__name__)


class MailConfigWriter:
    """
    Maintains the flat files postfix and dovecot read:

    - vhosts:   one domain per line
    - vmailbox: "user@domain domain/user/"
    - users:    "user@domain:{BLF-CRYPT}hash"
    """

    def __init__(self, vhosts_file: str, vmailbox_file: str, dovecot_users_file: str):
        self._vhosts = Path(vhosts_file)
        self._vmailbox = Path(vmailbox_file)
        self._users = Path(dovecot_users_file)
        self._lock = threading.Lock()

    # -------------------------
    # Domains
    # -------------------------

    def add_domain(self, domain: str) -> None:
        self._add_line(self._vhosts, domain, lambda line: line.strip() == domain)

    def remove_domain(self, domain: str) -> None:
        self._remove_lines(self._vhosts, lambda line: line.strip() == domain)

    def domains(self) -> List[str]:
        return [line.strip() for line in self._read(self._vhosts) if line.strip()]

    # -------------------------
    # Mailboxes
    # -------------------------

    def add_mailbox(self, email: str, maildir: str, password_hash: str) -> None:
        self._add_line(self._vmailbox, f"{email} {maildir}", self._starts_with(email + " "))
        try:
            self.set_password(email, password_hash)
        except UpstreamError:
            self._remove_lines(self._vmailbox, self._starts_with(email + " "))
            raise

    def set_password(self, email: str, password_hash: str) -> None:
        self._remove_lines(self._users, self._starts_with(email + ":"))
        self._add_line(self._users, f"{email}:{{BLF-CRYPT}}{password_hash}", self._starts_with(email + ":"))

    def remove_mailbox(self, email: str) -> None:
        self._remove_lines(self._vmailbox, self._starts_with(email + " "))
        self._remove_lines(self._users, self._starts_with(email + ":"))

    # -------------------------
    # File helpers
    # -------------------------

    @staticmethod
    def _starts_with(prefix: str) -> Callable[[str], bool]:
        return lambda line: line.startswith(prefix)

    @staticmethod
    def _read(path: Path) -> List[str]:
        if not path.exists():
            return []
        return path.read_text(encoding="utf-8").splitlines()

    def _write(self, path: Path, lines: List[str]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("".join(f"{line}\n" for line in lines), encoding="utf-8")

    @contextmanager
    def _file_access(self, path: Path):
        """Hold the lock and turn I/O failures into UpstreamError."""
        with self._lock:
            try:
                yield
            except OSError as e:
                logger.error(f"[mail_config] {path}: {e}")
                raise UpstreamError(f"Could not update mail configuration {path}", details=str(e)) from e

    def _add_line(self, path: Path, line: str, exists: Callable[[str], bool]) -> None:
        with self._file_access(path):
            lines = self._read(path)
            if any(exists(existing) for existing in lines):
                return
            lines.append(line)
            self._write(path, lines)
        logger.info(f"[mail_config] {path}: added entry")

    def _remove_lines(self, path: Path, match: Callable[[str], bool]) -> None:
        with self._file_access(path):
            lines = self._read(path)
            kept = [line for line in lines if not match(line)]
            if len(kept) != len(lines):
                self._write(path, kept)
