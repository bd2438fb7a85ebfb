"""In-memory session storage.

The store is the only owner of Session objects. Callers get deep copies;
every change goes through ``update``, which runs the mutator on a copy
under the session's write lock, checks the field invariants and only then
commits. A mutator that raises leaves the stored session untouched.
"""

import secrets
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, Iterator

from errors import SessionNotFoundError
from models.session_models import Session
from services.field_type_service import infer_field_types


class SessionInvariantError(RuntimeError):
    """A mutator left answers/questions/types keyed by a field the session does not have."""


class ReadWriteLock:
    """Many readers or one writer. Waiting writers block new readers."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class _Entry:
    __slots__ = ("session", "lock")

    def __init__(self, session: Session):
        self.session = session
        self.lock = ReadWriteLock()


def generate_session_id() -> str:
    return secrets.token_hex(16)


def check_invariants(session: Session) -> None:
    if len(set(session.fields)) != len(session.fields):
        raise SessionInvariantError("Session fields contain duplicates")
    known = set(session.fields)
    for name in ("answers", "questions", "field_types"):
        extra = set(getattr(session, name)) - known
        if extra:
            raise SessionInvariantError(f"{name} has keys outside the session fields: {sorted(extra)}")
    missing_types = known - set(session.field_types)
    if missing_types:
        raise SessionInvariantError(f"field_types is missing: {sorted(missing_types)}")


class SessionStore:
    """
    Sessions keyed by id. The map has its own lock for create/delete;
    each session has its own lock, so work on one session never waits on another.
    """

    def __init__(self) -> None:
        self._lock = ReadWriteLock()
        self._entries: Dict[str, _Entry] = {}

    def _entry(self, session_id: str) -> _Entry:
        with self._lock.read_locked():
            entry = self._entries.get(session_id)
        if entry is None:
            raise SessionNotFoundError("Session not found.")
        return entry

    def create(self, document: bytes, fields: Iterable[str]) -> Session:
        fields = list(dict.fromkeys(fields))
        session = Session(
            id=generate_session_id(),
            original_document=document,
            fields=fields,
            field_types=infer_field_types(fields),
        )
        check_invariants(session)

        with self._lock.write_locked():
            while session.id in self._entries:
                session.id = generate_session_id()
            self._entries[session.id] = _Entry(session)
        return session.model_copy(deep=True)

    def get(self, session_id: str) -> Session:
        entry = self._entry(session_id)
        with entry.lock.read_locked():
            return entry.session.model_copy(deep=True)

    def update(self, session_id: str, mutator: Callable[[Session], None]) -> Session:
        """Apply mutator atomically and return the committed session."""
        entry = self._entry(session_id)
        with entry.lock.write_locked():
            draft = entry.session.model_copy(deep=True)
            mutator(draft)
            draft.id = entry.session.id
            draft.original_document = entry.session.original_document
            draft.fields = list(entry.session.fields)
            check_invariants(draft)
            # Deleted while we waited for the lock or while the mutator ran
            with self._lock.read_locked():
                if self._entries.get(session_id) is not entry:
                    raise SessionNotFoundError("Session not found.")
            draft.updated_at = datetime.now(timezone.utc)
            entry.session = draft
            return draft.model_copy(deep=True)

    def delete(self, session_id: str) -> None:
        with self._lock.write_locked():
            if session_id not in self._entries:
                raise SessionNotFoundError("Session not found.")
            del self._entries[session_id]

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._entries)

    def __contains__(self, session_id: object) -> bool:
        with self._lock.read_locked():
            return session_id in self._entries
