"""
Tests for django_autoadmin.generator module and the regenerate_admin_settings command.
"""

import json
from io import StringIO

import pytest


@pytest.fixture
def generated():
    from django_autoadmin.generator import generate_admin_settings

    return generate_admin_settings(["testapp"])


class TestTitleCase:
    """Tests for title_case function."""

    @pytest.mark.parametrize(
        "name,title",
        [
            ("title", "Title"),
            ("published_at", "Published At"),
            ("createdAt", "Created At"),
            ("BlogPost", "Blog Post"),
            ("author_id", "Author Id"),
        ],
    )
    def test_titles(self, name, title):
        from django_autoadmin.generator import title_case

        assert title_case(name) == title


class TestGenerateAdminSettings:
    """Tests for generating the settings document from models."""

    def test_models(self, generated):
        assert sorted(m.id for m in generated.models) == ["Article", "Author", "Comment", "Post", "Profile", "Tag", "Writer"]

        post = generated.get_model("Post")
        assert post.name == "Post"
        assert post.id_field == "id"
        assert post.display_fields == ["id"]
        assert (post.read, post.create, post.update, post.delete) == (True, True, True, True)

    def test_field_order(self, generated):
        post = generated.get_model("Post")

        assert [f.name for f in post.fields] == [
            "id",
            "title",
            "body",
            "status",
            "published",
            "views",
            "rating",
            "metadata",
            "published_at",
            "created_at",
            "author",
            "author_id",
            "tags",
            "comments",
        ]

    def test_scalar_fields(self, generated):
        post = generated.get_model("Post")

        assert post.get_field("id").is_id is True
        assert post.get_field("id").create is False
        assert post.get_field("title").required is True
        assert post.get_field("title").type == "String"
        assert post.get_field("body").required is False
        assert post.get_field("views").type == "Int"
        assert post.get_field("views").required is False
        assert post.get_field("rating").type == "Float"
        assert post.get_field("metadata").type == "Json"
        assert post.get_field("published_at").title == "Published At"
        assert post.get_field("created_at").create is False
        assert post.get_field("created_at").update is False

    def test_enum_fields(self, generated):
        status = generated.get_model("Post").get_field("status")

        assert status.kind == "enum"
        assert status.type == "PostStatus"
        assert generated.get_enum("PostStatus").fields == ["draft", "published"]

    def test_foreign_key(self, generated):
        post = generated.get_model("Post")
        author = post.get_field("author")
        author_id = post.get_field("author_id")

        assert author.kind == "object"
        assert author.type == "Author"
        assert author.list is False
        assert author.relation_type == "many-to-one"
        assert author.relation_from == "author_id"
        assert author.relation_to == "id"
        assert author.relation_name == "Post.author"
        assert author.relation_display_mode == "dropdown"
        assert author.sort is False
        assert author_id.type == "BigInt"
        assert author_id.read is False
        assert author_id.create is True

    def test_list_relations(self, generated):
        post = generated.get_model("Post")
        tags = post.get_field("tags")
        comments = post.get_field("comments")

        assert (tags.relation_type, tags.list, tags.relation_name) == ("many-to-many", True, "Post.tags")
        assert (comments.relation_type, comments.type, comments.list) == ("one-to-many", "Comment", True)
        assert tags.create is False
        assert comments.relation_display_mode == "count"

    def test_reverse_relations(self, generated):
        author = generated.get_model("Author")
        tag = generated.get_model("Tag")

        assert author.get_field("profile").relation_type == "one-to-one"
        assert author.get_field("profile").list is False
        assert author.get_field("posts").relation_type == "one-to-many"
        assert tag.get_field("posts").relation_type == "many-to-many"

    def test_each_field_appears_once(self, generated):
        for model in generated.models:
            names = [f.name for f in model.fields]
            assert len(names) == len(set(names)), model.id

    def test_many_to_many_has_no_scalar_column(self, generated):
        tags = [f for f in generated.get_model("Post").fields if f.name == "tags"]

        assert len(tags) == 1
        assert tags[0].kind == "object"

    def test_two_foreign_keys_to_one_model(self, generated):
        article = generated.get_model("Article")
        writer = generated.get_model("Writer")

        assert article.get_field("author").relation_name == "Article.author"
        assert article.get_field("editor").relation_name == "Article.editor"
        assert writer.get_field("articles").relation_name == "Article.author"
        assert writer.get_field("edited_articles").relation_name == "Article.editor"

    def test_default_app_selection_skips_django_apps(self, monkeypatch):
        from django_autoadmin.conf import autoadmin_settings
        from django_autoadmin.generator import get_admin_models

        monkeypatch.setattr(autoadmin_settings, "APP_LABELS", [])

        labels = {model._meta.app_label for model in get_admin_models()}

        assert labels == {"testapp"}


class TestMergeAdminSettings:
    """Tests for merge_admin_settings function."""

    def customised(self, generated):
        post = generated.get_model("Post")
        fields = [
            f.model_copy(update={"title": "Headline", "filter": False}) if f.name == "title" else f
            for f in post.fields
            if f.name != "rating"
        ]
        fields.append(post.get_field("rating").model_copy(update={"name": "score", "order": 99}))
        post = post.model_copy(update={"name": "Articles", "display_fields": ["title"], "delete": False, "fields": fields})
        return generated.model_copy(update={"models": [post]})

    def test_customisations_survive(self, generated):
        from django_autoadmin.generator import merge_admin_settings

        merged = merge_admin_settings(generated, self.customised(generated))
        post = merged.get_model("Post")

        assert post.name == "Articles"
        assert post.display_fields == ["title"]
        assert post.delete is False
        assert post.get_field("title").title == "Headline"
        assert post.get_field("title").filter is False
        assert post.get_field("title").required is True

    def test_schema_changes_win(self, generated):
        from django_autoadmin.generator import merge_admin_settings

        merged = merge_admin_settings(generated, self.customised(generated))
        post = merged.get_model("Post")

        assert post.get_field("rating") is not None
        assert post.get_field("score") is None
        assert merged.get_model("Author") is not None
        assert merged.get_enum("PostStatus") is not None

    def test_foreign_key_columns_stay_hidden(self, generated):
        from django_autoadmin.generator import merge_admin_settings

        post = generated.get_model("Post")
        fields = [f.model_copy(update={"read": True}) if f.name == "author_id" else f for f in post.fields]
        existing = generated.model_copy(update={"models": [post.model_copy(update={"fields": fields})]})

        merged = merge_admin_settings(generated, existing)

        assert merged.get_model("Post").get_field("author_id").read is False

    def test_relation_preferences_survive(self, generated):
        from django_autoadmin.generator import merge_admin_settings

        post = generated.get_model("Post")
        fields = [
            f.model_copy(update={"relation_display_mode": "badge"}) if f.name == "author" else f for f in post.fields
        ]
        existing = generated.model_copy(update={"models": [post.model_copy(update={"fields": fields})]})

        merged = merge_admin_settings(generated, existing)

        assert merged.get_model("Post").get_field("author").relation_display_mode == "badge"

    def test_without_existing(self, generated):
        from django_autoadmin.generator import merge_admin_settings

        assert merge_admin_settings(generated, None) is generated


class TestRegenerateCommand:
    """Tests for the regenerate_admin_settings management command."""

    def test_generates_file(self, tmp_path):
        from django.core.management import call_command

        path = tmp_path / "adminSettings.json"
        out = StringIO()

        call_command("regenerate_admin_settings", output=str(path), app_labels=["testapp"], stdout=out)

        document = json.loads(path.read_text())
        assert {m["id"] for m in document["models"]} == {"Article", "Author", "Comment", "Post", "Profile", "Tag", "Writer"}
        assert "Generated admin settings" in out.getvalue()

    def test_merges_existing_file(self, tmp_path):
        from django.core.management import call_command
        from django_autoadmin.admin_settings import load_admin_settings, update_model_settings

        path = tmp_path / "adminSettings.json"
        call_command("regenerate_admin_settings", output=str(path), app_labels=["testapp"], stdout=StringIO())
        update_model_settings("Post", {"name": "Articles"}, path)

        out = StringIO()
        call_command("regenerate_admin_settings", output=str(path), app_labels=["testapp"], stdout=out)

        assert load_admin_settings(path).get_model("Post").name == "Articles"
        assert "Merged admin settings" in out.getvalue()

    def test_overwrite_discards_customisations(self, tmp_path):
        from django.core.management import call_command
        from django_autoadmin.admin_settings import load_admin_settings, update_model_settings

        path = tmp_path / "adminSettings.json"
        call_command("regenerate_admin_settings", output=str(path), app_labels=["testapp"], stdout=StringIO())
        update_model_settings("Post", {"name": "Articles"}, path)

        call_command("regenerate_admin_settings", output=str(path), app_labels=["testapp"], overwrite=True, stdout=StringIO())

        assert load_admin_settings(path).get_model("Post").name == "Post"

    def test_invalid_existing_file(self, tmp_path):
        from django.core.management import call_command
        from django.core.management.base import CommandError

        path = tmp_path / "adminSettings.json"
        path.write_text("{broken")

        with pytest.raises(CommandError, match="--overwrite"):
            call_command("regenerate_admin_settings", output=str(path), stdout=StringIO())
