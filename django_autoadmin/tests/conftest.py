"""
Pytest configuration for django-autoadmin tests.
"""

import os
import sys

import pytest

# Add the package root to the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))


def pytest_configure():
    """Configure Django settings before tests run."""
    from django.conf import settings

    if not settings.configured:
        settings.configure(
            SECRET_KEY="test-secret-key",
            DEBUG=True,
            INSTALLED_APPS=[
                "django.contrib.contenttypes",
                "django.contrib.auth",
                "django_autoadmin",
                "django_autoadmin.tests.testapp",
            ],
            DATABASES={
                "default": {
                    "ENGINE": "django.db.backends.sqlite3",
                    "NAME": ":memory:",
                }
            },
            DEFAULT_AUTO_FIELD="django.db.models.BigAutoField",
            USE_TZ=True,
            AUTOADMIN={
                "APP_LABELS": ["testapp"],
                "DEFAULT_PER_PAGE": 10,
                "MAX_PER_PAGE": 100,
            },
        )

    import django

    django.setup()


@pytest.fixture
def settings_path(tmp_path, monkeypatch):
    """
    Write a settings document generated from the test app and point
    AUTOADMIN['SETTINGS_FILE'] at it.

    Display fields and multi-relation editing are customised the way an
    admin user would through the settings UI.
    """
    from django_autoadmin.admin_settings import save_admin_settings
    from django_autoadmin.conf import autoadmin_settings
    from django_autoadmin.generator import generate_admin_settings

    generated = generate_admin_settings(["testapp"])

    display_fields = {"Author": ["name"], "Post": ["title"], "Tag": ["name"]}
    models = []
    for model in generated.models:
        fields = []
        for field in model.fields:
            if model.id == "Post" and field.name == "tags":
                field = field.model_copy(update={"create": True, "update": True})
            fields.append(field)
        models.append(
            model.model_copy(update={"display_fields": display_fields.get(model.id, model.display_fields), "fields": fields})
        )

    path = tmp_path / "adminSettings.json"
    save_admin_settings(generated.model_copy(update={"models": models}), path)
    monkeypatch.setattr(autoadmin_settings, "SETTINGS_FILE", str(path))
    return path


@pytest.fixture
def admin_settings(settings_path):
    from django_autoadmin.admin_settings import load_admin_settings

    return load_admin_settings(settings_path)


@pytest.fixture
def authors(db):
    from django_autoadmin.tests.testapp.models import Author

    return [
        Author.objects.create(name="Ada Lovelace", email="ada@example.com"),
        Author.objects.create(name="Alan Turing", email="alan@example.com"),
        Author.objects.create(name="Grace Hopper", email="grace@example.com"),
    ]


@pytest.fixture
def tags(db):
    from django_autoadmin.tests.testapp.models import Tag

    return [Tag.objects.create(name="django"), Tag.objects.create(name="python"), Tag.objects.create(name="sql")]


@pytest.fixture
def posts(authors, tags):
    from django_autoadmin.tests.testapp.models import Post

    ada, alan, grace = authors
    django_tag, python_tag, sql_tag = tags

    first = Post.objects.create(title="Hello Django", body="Intro post", published=True, views=10, author=ada)
    first.tags.set([django_tag, python_tag])
    second = Post.objects.create(title="Query tricks", body="Working with Q objects", views=25, author=alan)
    second.tags.set([django_tag])
    third = Post.objects.create(title="Compilers", body="Grace on compilers", published=True, views=3, author=grace)
    third.tags.set([sql_tag])
    fourth = Post.objects.create(title="Drafts", views=0)
    return [first, second, third, fourth]
