"""
Tests for django_autoadmin package metadata.
"""


class TestPackageMetadata:
    """Tests for version and author attributes."""

    def test_version(self):
        import django_autoadmin

        assert django_autoadmin.__version__ == "0.1.0"

    def test_author(self):
        import django_autoadmin

        assert django_autoadmin.__author__ == "django-autoadmin contributors"
