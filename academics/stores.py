# academics/stores.py
"""
Record stores the marks reconciler writes through.

A store only knows three round trips: exact-match lookup by natural key
(student, subject, exam type), insert, and update of the score by record
id. Each call is atomic on its own; there is no transaction spanning calls.
"""
import logging
from dataclasses import dataclass

import httpx
from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import DatabaseError
from django.db.models import Q
from postgrest.exceptions import APIError
from supabase import create_client

from .exceptions import StoreInsertError, StoreLookupError, StoreUpdateError
from .models import Mark

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredMark:
    id: object
    student_key: str
    subject_key: str
    exam_kind: str
    score: int


class MarkStore:
    """Interface used by ``academics.marks_import.reconcile``."""

    def find_by_key(self, student_key: str, subject_key: str, exam_kind: str) -> list[StoredMark]:
        raise NotImplementedError

    def insert(self, student_key: str, subject_key: str, exam_kind: str, score: int) -> None:
        raise NotImplementedError

    def update(self, record_id, score: int) -> None:
        raise NotImplementedError


# =========================
# Django ORM
# =========================

def _student_ids(student_key: str) -> list:
    """
    A student key is either the profile id or the register number
    printed on the class roll. Returns every student it could name;
    more than one means the key is ambiguous.
    """
    q = Q(register_number=student_key)
    if student_key.isdigit():
        q |= Q(id=int(student_key))
    qs = get_user_model().objects.filter(q, role="student").order_by("id")
    return list(qs.values_list("id", flat=True)[:2])


class DjangoMarkStore(MarkStore):
    def _resolve(self, student_key, key):
        ids = _student_ids(student_key)
        if len(ids) > 1:
            raise StoreLookupError(f"student key {student_key!r} matches more than one student", natural_key=key)
        return ids[0] if ids else None

    def find_by_key(self, student_key, subject_key, exam_kind):
        key = (student_key, subject_key, exam_kind)
        try:
            student_id = self._resolve(student_key, key)
            qs = (
                Mark.objects.filter(
                    student_id__in=[student_id] if student_id is not None else [],
                    subject_id=subject_key,
                    exam_type=exam_kind,
                )
                .order_by("id")
                .values("id", "marks")
            )
            rows = list(qs)
        except (DatabaseError, ValueError) as e:
            raise StoreLookupError(str(e), natural_key=key) from e
        return [
            StoredMark(r["id"], student_key, str(subject_key), exam_kind, r["marks"])
            for r in rows
        ]

    def insert(self, student_key, subject_key, exam_kind, score):
        key = (student_key, subject_key, exam_kind)
        try:
            student_id = self._resolve(student_key, key)
            if student_id is None:
                raise StoreInsertError(f"unknown student {student_key!r}", natural_key=key)
            Mark.objects.create(
                student_id=student_id,
                subject_id=subject_key,
                exam_type=exam_kind,
                marks=score,
            )
        except (StoreLookupError, DatabaseError, ValueError) as e:
            raise StoreInsertError(str(e), natural_key=key) from e

    def update(self, record_id, score):
        try:
            changed = Mark.objects.filter(id=record_id).update(marks=score)
        except DatabaseError as e:
            raise StoreUpdateError(str(e)) from e
        if not changed:
            raise StoreUpdateError(f"mark {record_id} no longer exists")


# =========================
# Hosted backend (Supabase REST tables)
# =========================

class SupabaseMarkStore(MarkStore):
    table_name = "marks"

    def __init__(self, client=None, url=None, key=None):
        if client is None:
            url = url or getattr(settings, "SUPABASE_URL", "")
            key = key or getattr(settings, "SUPABASE_KEY", "")
            if not url or not key:
                raise ValueError("SUPABASE_URL and SUPABASE_KEY must be configured")
            client = create_client(url, key)
        self.client = client

    def _table(self):
        return self.client.table(self.table_name)

    def find_by_key(self, student_key, subject_key, exam_kind):
        key = (student_key, subject_key, exam_kind)
        try:
            response = (
                self._table()
                .select("id, student_id, subject_id, exam_type, marks")
                .eq("student_id", student_key)
                .eq("subject_id", subject_key)
                .eq("exam_type", exam_kind)
                .order("created_at")
                .execute()
            )
        except (APIError, httpx.HTTPError) as e:
            raise StoreLookupError(str(e), natural_key=key) from e
        return [
            StoredMark(r["id"], r["student_id"], r["subject_id"], r["exam_type"], r["marks"])
            for r in (response.data or [])
        ]

    def insert(self, student_key, subject_key, exam_kind, score):
        row = {
            "student_id": student_key,
            "subject_id": subject_key,
            "exam_type": exam_kind,
            "marks": score,
        }
        try:
            self._table().insert(row).execute()
        except (APIError, httpx.HTTPError) as e:
            raise StoreInsertError(str(e), natural_key=(student_key, subject_key, exam_kind)) from e

    def update(self, record_id, score):
        try:
            self._table().update({"marks": score}).eq("id", record_id).execute()
        except (APIError, httpx.HTTPError) as e:
            raise StoreUpdateError(str(e)) from e


def get_mark_store() -> MarkStore:
    backend = getattr(settings, "MARKS_STORE", "django")
    if backend == "supabase":
        return SupabaseMarkStore()
    if backend != "django":
        logger.warning("Unknown MARKS_STORE %r, falling back to the database", backend)
    return DjangoMarkStore()
