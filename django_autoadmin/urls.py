"""
Django-Autoadmin URL configuration.

Include under any prefix:

    path("admin-api/", include("django_autoadmin.urls"))
"""

from django.urls import path

from django_autoadmin import views


app_name = "django_autoadmin"

urlpatterns = [
    path("", views.ModelIndexView.as_view(), name="models"),
    path("settings/", views.SettingsView.as_view(), name="settings"),
    path("settings/<str:model_name>/", views.ModelSettingsView.as_view(), name="model-settings"),
    path("<str:model_name>/", views.ModelListView.as_view(), name="model-list"),
    path("<str:model_name>/bulk-delete/", views.BulkDeleteView.as_view(), name="bulk-delete"),
    path("<str:model_name>/export/", views.ExportView.as_view(), name="export"),
    path("<str:model_name>/import/", views.ImportView.as_view(), name="import"),
    path("<str:model_name>/filters/", views.FiltersView.as_view(), name="filters"),
    path("<str:model_name>/<str:pk>/", views.RecordView.as_view(), name="record"),
    path("<str:model_name>/<str:pk>/related/<str:field_name>/", views.RelatedView.as_view(), name="related"),
]
