"""
In-memory form and submission store.

Reference implementation of the store the flow service talks to. Any
object with the same methods (a database-backed client, for instance)
can be passed in its place.

Reads and writes go through deep copies: a caller mutating a returned
submission changes nothing until it calls ``save_submission``.

Writes for one session must be serialized by the caller:

    with store.session_lock(session_id):
        submission = store.find_submission(session_id)
        ...
        store.save_submission(submission)
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from formflow.models import Form, FormStats, Submission

logger = logging.getLogger(__name__)


class _SessionLock:
    """A session's lock and the number of callers holding or awaiting it."""

    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class InMemoryStore:
    """Thread-safe dictionaries of forms and submissions."""

    def __init__(self, forms: Optional[list[Form]] = None):
        self._forms: dict[str, Form] = {}
        self._submissions: dict[str, Submission] = {}
        self._lock = threading.RLock()
        self._session_locks: dict[str, _SessionLock] = {}
        for form in forms or []:
            self.add_form(form)

    # ── Forms ────────────────────────────────────────────────

    def add_form(self, form: Form) -> None:
        with self._lock:
            self._forms[form.id] = form.model_copy(deep=True)

    def get_form(self, form_id: str) -> Optional[Form]:
        with self._lock:
            form = self._forms.get(form_id)
            return form.model_copy(deep=True) if form else None

    def find_form_by_public_url(self, public_url: str) -> Optional[Form]:
        with self._lock:
            for form in self._forms.values():
                if form.public_url == public_url:
                    return form.model_copy(deep=True)
        return None

    def list_forms(self) -> list[Form]:
        with self._lock:
            return [form.model_copy(deep=True) for form in self._forms.values()]

    def increment_counter(self, form_id: str, counter: str) -> FormStats:
        """Apply one counter increment and return the updated stats."""
        with self._lock:
            form = self._forms.get(form_id)
            if form is None:
                raise KeyError(f"Unknown form: {form_id}")
            form.stats.apply(counter)
            return form.stats.model_copy()

    # ── Submissions ──────────────────────────────────────────

    def find_submission(self, session_id: str) -> Optional[Submission]:
        with self._lock:
            submission = self._submissions.get(session_id)
            return submission.model_copy(deep=True) if submission else None

    def create_submission(self, submission: Submission) -> tuple[Submission, bool]:
        """
        Insert ``submission`` unless one exists for its session.

        Returns the stored submission and whether it was created by
        this call.
        """
        with self._lock:
            existing = self._submissions.get(submission.session_id)
            if existing is not None:
                return existing.model_copy(deep=True), False
            self._submissions[submission.session_id] = submission.model_copy(deep=True)
            return submission.model_copy(deep=True), True

    def save_submission(self, submission: Submission) -> None:
        with self._lock:
            self._submissions[submission.session_id] = submission.model_copy(deep=True)

    def list_submissions(self, form_id: str) -> list[Submission]:
        with self._lock:
            return [
                s.model_copy(deep=True)
                for s in self._submissions.values()
                if s.form_id == form_id
            ]

    @contextmanager
    def session_lock(self, session_id: str) -> Iterator[None]:
        """
        Hold the per-session write lock.

        Locks are created on first use and dropped when the last holder
        or waiter leaves, so the table only holds sessions in flight.
        """
        with self._lock:
            entry = self._session_locks.get(session_id)
            if entry is None:
                entry = self._session_locks[session_id] = _SessionLock()
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._lock:
                entry.users -= 1
                if entry.users == 0:
                    del self._session_locks[session_id]
