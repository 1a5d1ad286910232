from django.contrib import admin
from django.contrib.auth import forms as auth_forms
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import Role, User


class UserCreationForm(auth_forms.UserCreationForm):
    class Meta:
        model = User
        fields = ("email", "name", "role", "clazz")

    def clean_email(self):
        return User.objects.normalize_login(self.cleaned_data["email"])


class UserChangeForm(auth_forms.UserChangeForm):
    """Keeps password hashed; use the dedicated 'change password' action for changes."""
    class Meta:
        model = User
        fields = "__all__"


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    add_form = UserCreationForm
    form = UserChangeForm
    model = User
    list_display = ("id", "email", "name", "role", "register_number", "clazz", "batch", "is_active")
    list_filter = ("role", "clazz", "batch", "board", "is_active")
    list_select_related = ("clazz",)
    ordering = ("name",)
    search_fields = ("email", "name", "register_number")
    actions = ("make_teacher", "make_student")

    fieldsets = (
        (None, {"fields": ("email", "password")}),
        ("Profile", {"fields": ("name", "role", "avatar_url")}),
        ("School", {"fields": ("register_number", "clazz", "batch", "board")}),
        ("Access", {"fields": ("is_active", "is_staff", "is_superuser", "groups")}),
        ("Dates", {"fields": ("last_login", "date_joined")}),
    )
    add_fieldsets = (
        (None, {
            "classes": ("wide",),
            "fields": ("email", "name", "role", "clazz", "password1", "password2"),
        }),
    )

    @admin.action(description="Set role to teacher")
    def make_teacher(self, request, queryset):
        queryset.update(role=Role.TEACHER)

    @admin.action(description="Set role to student")
    def make_student(self, request, queryset):
        queryset.update(role=Role.STUDENT)
