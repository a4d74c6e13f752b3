"""
Django-Autoadmin Settings

Configuration is read from Django settings under the AUTOADMIN key.
All settings have sensible defaults.

Example:
    # settings.py
    AUTOADMIN = {
        'SETTINGS_FILE': BASE_DIR / 'adminSettings.json',
        'APP_LABELS': ['blog'],
        'DEFAULT_PER_PAGE': 25,
    }
"""

from django.conf import settings

DEFAULTS = {
    # Settings document
    "SETTINGS_FILE": "adminSettings.json",
    "APP_LABELS": [],  # Apps read by the generator, empty = all project apps
    # Pagination
    "DEFAULT_PER_PAGE": 10,
    "MAX_PER_PAGE": 100,
    # CSV import
    "IMPORT_BATCH_SIZE": 10,
    "IMPORT_MAX_ERRORS": 100,
    # File fields
    "UPLOAD_PREFIX": "uploads/",
    # Security
    "REQUIRE_STAFF": True,
    "CSRF_EXEMPT": False,  # Set True ONLY for token-only APIs (no session auth)
}


class AutoadminSettings:
    """
    A settings object that allows django-autoadmin settings to be accessed as
    properties. For example:

        from django_autoadmin.conf import autoadmin_settings
        print(autoadmin_settings.DEFAULT_PER_PAGE)

    Settings can be overridden in Django settings.py under AUTOADMIN key.
    """

    def __init__(self, defaults=None):
        self.defaults = defaults or DEFAULTS
        self._cached_attrs = set()

    @property
    def user_settings(self):
        if not hasattr(self, "_user_settings"):
            self._user_settings = getattr(settings, "AUTOADMIN", {})
        return self._user_settings

    def __getattr__(self, attr):
        if attr not in self.defaults:
            raise AttributeError(f"Invalid django-autoadmin setting: '{attr}'")

        try:
            val = self.user_settings[attr]
        except KeyError:
            val = self.defaults[attr]

        # Cache the result
        self._cached_attrs.add(attr)
        setattr(self, attr, val)
        return val

    def reload(self):
        """Reload settings (useful for testing)."""
        for attr in self._cached_attrs:
            try:
                delattr(self, attr)
            except AttributeError:
                pass
        self._cached_attrs.clear()
        if hasattr(self, "_user_settings"):
            delattr(self, "_user_settings")


autoadmin_settings = AutoadminSettings(DEFAULTS)
