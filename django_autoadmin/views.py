"""
Django-Autoadmin Views

JSON API behind the admin UI: model index, list tables, record forms,
bulk actions, CSV import/export, filter panels and the settings editor.

Features:
- Staff-only access (see AUTOADMIN['REQUIRE_STAFF'])
- Admin exceptions mapped to JSON error responses
- CSRF protection unless AUTOADMIN['CSRF_EXEMPT'] is set

Example:
    # urls.py
    from django.urls import include, path

    urlpatterns = [
        path("admin-api/", include("django_autoadmin.urls")),
    ]

    # Requests:
    # GET  /admin-api/post/?page=2&search=django
    # POST /admin-api/post/            -> create
    # GET  /admin-api/post/3/          -> edit form values
    # POST /admin-api/post/import/     -> CSV import
"""

import json

from django.core.exceptions import ValidationError
from django.http import HttpResponse
from django.views import View
from django.views.decorators.csrf import csrf_exempt
from pydantic import ValidationError as SchemaValidationError

from django_autoadmin.admin_settings import (
    get_create_fields,
    get_filter_configs,
    load_admin_settings,
    save_admin_settings,
    update_model_settings,
)
from django_autoadmin.conf import autoadmin_settings
from django_autoadmin.crud import (
    create_model_record,
    delete_model_record,
    delete_model_records,
    export_records,
    get_model_data,
    get_model_record,
    update_model_record,
)
from django_autoadmin.filters import decode_filters, encode_filters
from django_autoadmin.importer import import_csv_data, parse_csv, suggest_mappings
from django_autoadmin.permissions import has_admin_access
from django_autoadmin.relations import get_relation_view_all_filter
from django_autoadmin.response import AdminResponse


class InvalidJSON(ValueError):
    """Request body is not valid JSON."""


class AdminAPIView(View):
    """
    Base view for the admin API.

    CSRF Protection:
        By default, CSRF protection is ENABLED (secure by default).
        To disable for token-only APIs, set CSRF_EXEMPT=True in settings.
    """

    # Optional: require an admin user
    require_auth = True

    @classmethod
    def as_view(cls, **initkwargs):
        """Override as_view to conditionally apply csrf_exempt based on settings."""
        view = super().as_view(**initkwargs)
        if autoadmin_settings.CSRF_EXEMPT:
            view = csrf_exempt(view)
        return view

    def get_user(self, request):
        """Get the user for access checking. Override for custom auth."""
        return request.user if hasattr(request, "user") else None

    def check_auth(self, request):
        """Check admin access. Override for custom auth logic."""
        if not self.require_auth:
            return True
        return has_admin_access(self.get_user(request))

    def dispatch(self, request, *args, **kwargs):
        if not self.check_auth(request):
            user = self.get_user(request)
            if user is None or not user.is_authenticated:
                return AdminResponse.error("UNAUTHORIZED").to_json_response()
            return AdminResponse.error("PERMISSION_DENIED", "Admin access required").to_json_response()

        try:
            return super().dispatch(request, *args, **kwargs)
        except InvalidJSON as e:
            return AdminResponse.error("INVALID_JSON", str(e)).to_json_response()
        except SchemaValidationError as e:
            return AdminResponse.error("VALIDATION_ERROR", str(e)).to_json_response()
        except (PermissionError, LookupError, ValidationError, ValueError) as e:
            return AdminResponse.from_exception(e).to_json_response()
        except Exception as e:
            # Database and configuration failures, logged by from_exception
            return AdminResponse.from_exception(e).to_json_response()

    def get_json_body(self, request):
        """Parse a JSON request body (empty body -> {})."""
        if not request.body:
            return {}
        try:
            return json.loads(request.body)
        except json.JSONDecodeError as e:
            raise InvalidJSON(f"Invalid JSON in request body: {e}") from e

    def get_form_data(self, request):
        """
        Submitted form values.

        JSON bodies are accepted as well as form-encoded and multipart posts.
        """
        if request.content_type == "application/json":
            return self.get_json_body(request), None
        return request.POST, request.FILES


class ModelIndexView(AdminAPIView):
    """GET: models exposed in the admin with their operation flags."""

    def get(self, request):
        admin_settings = load_admin_settings()
        models = [
            {
                "id": model.id,
                "name": model.name or model.id,
                "read": model.read,
                "create": model.create,
                "update": model.update,
                "delete": model.delete,
            }
            for model in admin_settings.models
        ]
        return AdminResponse.ok(models=models).to_json_response()


class SettingsView(AdminAPIView):
    """GET: the whole settings document. POST: replace it."""

    def get(self, request):
        return AdminResponse.ok(**load_admin_settings().to_json_dict()).to_json_response()

    def post(self, request):
        saved = save_admin_settings(self.get_json_body(request))
        return AdminResponse.ok(**saved.to_json_dict()).to_json_response()


class ModelSettingsView(AdminAPIView):
    """GET: one model's settings. POST: partial update of the model and its fields."""

    def get(self, request, model_name):
        model = load_admin_settings().get_model(model_name)
        if model is None:
            raise LookupError(f"Model {model_name} not found")
        return AdminResponse.ok(**model.to_json_dict()).to_json_response()

    def post(self, request, model_name):
        model = update_model_settings(model_name, self.get_json_body(request))
        return AdminResponse.ok(**model.to_json_dict()).to_json_response()


class ModelListView(AdminAPIView):
    """GET: one page of a model's list table. POST: create a record."""

    def get_list_options(self, request):
        params = request.GET
        return {
            "page": params.get("page"),
            "per_page": params.get("perPage") or params.get("per_page"),
            "order_by": params.get("sort") or params.get("orderBy"),
            "order": params.get("order"),
            "search": params.get("search"),
            "filters": decode_filters(params.get("filters")),
        }

    def get(self, request, model_name):
        result = get_model_data(model_name, self.get_list_options(request))
        return AdminResponse.ok(**result).to_json_response()

    def post(self, request, model_name):
        form_data, files = self.get_form_data(request)
        record_id = create_model_record(model_name, form_data, files)
        return AdminResponse.created(id=record_id).to_json_response()


class RecordView(AdminAPIView):
    """GET: edit form values. POST: update. DELETE: delete."""

    def get(self, request, model_name, pk):
        record = get_model_record(model_name, pk)
        if record is None:
            raise LookupError(f"{model_name} record {pk} not found")
        return AdminResponse.ok(record=record).to_json_response()

    def post(self, request, model_name, pk):
        form_data, files = self.get_form_data(request)
        record_id = update_model_record(model_name, pk, form_data, files)
        return AdminResponse.ok(id=record_id).to_json_response()

    def delete(self, request, model_name, pk):
        delete_model_record(model_name, pk)
        return AdminResponse.ok(deleted=1).to_json_response()


class BulkDeleteView(AdminAPIView):
    """POST: delete the records listed in "ids"."""

    def post(self, request, model_name):
        if request.content_type == "application/json":
            ids = self.get_json_body(request).get("ids") or []
        else:
            ids = request.POST.getlist("ids[]") or request.POST.getlist("ids")
        deleted = delete_model_records(model_name, ids)
        return AdminResponse.ok(deleted=deleted).to_json_response()


class ExportView(AdminAPIView):
    """GET: download records as CSV or JSON (?format=csv|json&ids=1,2)."""

    CONTENT_TYPES = {
        "csv": "text/csv; charset=utf-8",
        "json": "application/json",
    }

    def get(self, request, model_name):
        export_format = request.GET.get("format", "csv")
        ids = request.GET.get("ids")
        record_ids = [i for i in ids.split(",") if i] if ids else None

        content = export_records(model_name, record_ids, export_format)

        response = HttpResponse(content, content_type=self.CONTENT_TYPES[export_format])
        response["Content-Disposition"] = f'attachment; filename="{model_name.lower()}-export.{export_format}"'
        return response


class ImportView(AdminAPIView):
    """
    POST: import a CSV file.

    Multipart fields:
        file: The CSV file
        mappings: JSON object of CSV header -> field name
        skipFirstRow: "true" when the first row is a header row (default)

    Without mappings, the response previews the headers and suggested
    mappings instead of importing.
    """

    def read_file(self, request):
        upload = request.FILES.get("file")
        if upload is None:
            raise ValueError("No file uploaded")
        return upload.read().decode("utf-8-sig")

    def post(self, request, model_name):
        csv_text = self.read_file(request)
        raw_mappings = request.POST.get("mappings")

        if not raw_mappings:
            rows = parse_csv(csv_text)
            if not rows:
                raise ValueError("CSV file is empty")
            mappings = suggest_mappings(rows[0], get_create_fields(model_name))
            return AdminResponse.ok(headers=rows[0], mappings=mappings).to_json_response()

        try:
            mappings = json.loads(raw_mappings)
        except json.JSONDecodeError as e:
            raise InvalidJSON(f"Invalid mappings: {e}") from e

        skip_first_row = request.POST.get("skipFirstRow", "true") == "true"
        result = import_csv_data(model_name, csv_text, mappings, skip_first_row)
        return AdminResponse.ok(**result).to_json_response()


class FiltersView(AdminAPIView):
    """GET: filter panel configuration for a model."""

    def get(self, request, model_name):
        admin_settings = load_admin_settings()
        if admin_settings.get_model(model_name) is None:
            raise LookupError(f"Model {model_name} not found")
        return AdminResponse.ok(filters=get_filter_configs(model_name, admin_settings)).to_json_response()


class RelatedView(AdminAPIView):
    """GET: "view all" navigation target for a record's relation field."""

    def get(self, request, model_name, pk, field_name):
        admin_settings = load_admin_settings()
        model = admin_settings.get_model(model_name)
        if model is None:
            raise LookupError(f"Model {model_name} not found")

        field = model.get_field(field_name)
        if field is None or not field.relation_field:
            raise LookupError(f"Relation {field_name} not found on {model.id}")

        view_all = get_relation_view_all_filter(admin_settings, model.id, field, pk)
        if view_all is None:
            raise LookupError(f"Model {field.type} not found")

        return AdminResponse.ok(
            model=field.type,
            filters=[view_all],
            param=encode_filters([view_all]),
        ).to_json_response()
