import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from academics.exceptions import StoreInsertError, StoreLookupError, StoreUpdateError
from academics.models import SchoolClass, Subject
from academics.stores import MarkStore, StoredMark


class FakeMarkStore(MarkStore):
    """In-memory store; can be told to fail round trips for given student keys."""

    def __init__(self, fail_lookup=(), fail_insert=(), fail_update=()):
        self.rows = {}
        self.calls = []
        self.fail_lookup = set(fail_lookup)
        self.fail_insert = set(fail_insert)
        self.fail_update = set(fail_update)
        self._next_id = 1

    def find_by_key(self, student_key, subject_key, exam_kind):
        self.calls.append(("find", student_key))
        if student_key in self.fail_lookup:
            raise StoreLookupError("backend unreachable")
        return [
            r for _, r in sorted(self.rows.items())
            if (r.student_key, r.subject_key, r.exam_kind) == (student_key, subject_key, exam_kind)
        ]

    def insert(self, student_key, subject_key, exam_kind, score):
        self.calls.append(("insert", student_key))
        if student_key in self.fail_insert:
            raise StoreInsertError("insert rejected")
        rid = self._next_id
        self._next_id += 1
        self.rows[rid] = StoredMark(rid, student_key, subject_key, exam_kind, score)

    def update(self, record_id, score):
        row = self.rows[record_id]
        self.calls.append(("update", row.student_key))
        if row.student_key in self.fail_update:
            raise StoreUpdateError("update rejected")
        self.rows[record_id] = StoredMark(row.id, row.student_key, row.subject_key, row.exam_kind, score)

    def scores(self):
        return {(r.student_key, r.subject_key, r.exam_kind): r.score for r in self.rows.values()}


@pytest.fixture
def fake_store():
    return FakeMarkStore()


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def teacher(db):
    return get_user_model().objects.create_user(
        email="teacher@example.com", password="secret123", name="Jane Smith", role="teacher",
    )


@pytest.fixture
def school_class(teacher):
    return SchoolClass.objects.create(name="Class 10A", teacher=teacher)


@pytest.fixture
def subject(school_class, teacher):
    return Subject.objects.create(name="Mathematics", clazz=school_class, teacher=teacher)


@pytest.fixture
def make_student(db, school_class):
    def make(name, register_number="", **extra):
        slug = name.lower().replace(" ", ".")
        return get_user_model().objects.create_user(
            email=f"{slug}@example.com",
            password="secret123",
            name=name,
            role="student",
            register_number=register_number,
            clazz=school_class,
            **extra,
        )
    return make


@pytest.fixture
def student(make_student):
    return make_student("John Doe", register_number="REG001", batch="A")


@pytest.fixture
def teacher_client(api_client, teacher):
    api_client.force_authenticate(user=teacher)
    return api_client


@pytest.fixture
def student_client(api_client, student):
    api_client.force_authenticate(user=student)
    return api_client
