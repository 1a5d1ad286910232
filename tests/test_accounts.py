import pytest
from django.contrib.auth import get_user_model
from rest_framework_simplejwt.tokens import AccessToken

from accounts.models import Role
from accounts.roles import (
    Principal,
    can_manage_academics,
    can_request_leave,
    principal_from_request,
)


def test_roles_are_a_closed_set():
    teacher = Principal(1, Role.TEACHER)
    student = Principal(2, Role.STUDENT)
    assert can_manage_academics(teacher) and not can_request_leave(teacher)
    assert can_request_leave(student) and not can_manage_academics(student)
    assert not can_manage_academics(None)
    assert not can_request_leave(None)


@pytest.mark.django_db
def test_principal_from_request(teacher, rf):
    from django.contrib.auth.models import AnonymousUser

    request = rf.get("/")
    request.user = AnonymousUser()
    assert principal_from_request(request) is None

    request.user = teacher
    assert principal_from_request(request) == Principal(teacher.id, Role.TEACHER, "Jane Smith")

    teacher.role = "admin"
    assert principal_from_request(request) is None


@pytest.mark.django_db
def test_create_user_normalizes_email():
    user = get_user_model().objects.create_user("  Someone@Example.COM ", "pw123456", name="Some One")
    assert user.email == "someone@example.com"
    assert user.role == Role.STUDENT
    assert user.check_password("pw123456")


@pytest.mark.django_db
def test_create_user_requires_email():
    with pytest.raises(ValueError):
        get_user_model().objects.create_user("", "pw")


@pytest.mark.django_db
def test_create_superuser_is_teacher():
    admin = get_user_model().objects.create_superuser("root@example.com", "pw123456", name="Root")
    assert admin.is_staff and admin.is_superuser
    assert admin.is_teacher


@pytest.mark.django_db
def test_register_and_login(api_client):
    resp = api_client.post(
        "/api/auth/register/",
        {"email": "New@Example.com", "name": "New Teacher", "password": "secret123", "role": "teacher"},
        format="json",
    )
    assert resp.status_code == 201
    assert resp.data["email"] == "new@example.com"
    assert resp.data["role"] == "teacher"
    assert "password" not in resp.data

    resp = api_client.post(
        "/api/auth/login/", {"email": "new@example.com", "password": "secret123"}, format="json",
    )
    assert resp.status_code == 200
    token = AccessToken(resp.data["access"])
    assert token["role"] == "teacher"
    assert token["name"] == "New Teacher"


@pytest.mark.django_db
@pytest.mark.parametrize("payload", [
    {"email": "a@example.com", "name": "Al", "password": "123", "role": "student"},
    {"email": "a@example.com", "name": "A", "password": "secret123", "role": "student"},
    {"email": "a@example.com", "name": "Al", "password": "secret123", "role": "principal"},
    {"email": "not-an-email", "name": "Al", "password": "secret123", "role": "student"},
])
def test_register_validation(api_client, payload):
    resp = api_client.post("/api/auth/register/", payload, format="json")
    assert resp.status_code == 400


@pytest.mark.django_db
def test_register_duplicate_email(api_client, teacher):
    resp = api_client.post(
        "/api/auth/register/",
        {"email": "TEACHER@example.com", "name": "Copy", "password": "secret123", "role": "teacher"},
        format="json",
    )
    assert resp.status_code == 400


@pytest.mark.django_db
def test_login_wrong_password(api_client, teacher):
    resp = api_client.post(
        "/api/auth/login/", {"email": "teacher@example.com", "password": "nope"}, format="json",
    )
    assert resp.status_code == 401


@pytest.mark.django_db
def test_me(student_client, student):
    resp = student_client.get("/api/auth/me/")
    assert resp.status_code == 200
    assert resp.data["email"] == student.email
    assert resp.data["class_name"] == "Class 10A"
    assert resp.data["is_student"] is True
    assert resp.data["is_teacher"] is False


@pytest.mark.django_db
def test_me_requires_auth(api_client):
    assert api_client.get("/api/auth/me/").status_code == 401
