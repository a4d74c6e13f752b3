from django.apps import AppConfig


class AutoadminConfig(AppConfig):
    name = "django_autoadmin"
    verbose_name = "Django Autoadmin"
