"""
Tests for django_autoadmin.filters module.
"""

import pytest
from django.db.models import Q


class TestBuildFilterValue:
    """Tests for build_filter_value function."""

    def test_equals_is_bare_value(self):
        from django_autoadmin.filters import build_filter_value

        assert build_filter_value("equals", True) is True
        assert build_filter_value("equals", "draft") == "draft"

    def test_comparison_operators(self):
        from django_autoadmin.filters import build_filter_value

        assert build_filter_value("gte", 10) == {"gte": 10}
        assert build_filter_value("lt", 5) == {"lt": 5}
        assert build_filter_value("not", "draft") == {"not": "draft"}

    def test_list_operators_wrap_scalars(self):
        from django_autoadmin.filters import build_filter_value

        assert build_filter_value("in", "draft") == {"in": ["draft"]}
        assert build_filter_value("notIn", ["a", "b"]) == {"notIn": ["a", "b"]}

    def test_string_operators_are_case_insensitive(self):
        from django_autoadmin.filters import build_filter_value

        assert build_filter_value("contains", "hello") == {"contains": "hello", "mode": "insensitive"}
        assert build_filter_value("startsWith", "He") == {"startsWith": "He", "mode": "insensitive"}
        assert build_filter_value("endsWith", "lo") == {"endsWith": "lo", "mode": "insensitive"}

    def test_relation_operator_wraps_nested_where(self):
        from django_autoadmin.filters import build_filter_value

        nested = {"name": {"contains": "ada"}}
        assert build_filter_value("some", nested, "relation") == {"some": nested}
        assert build_filter_value("is", nested) == {"is": nested}

    def test_unknown_operator_raises(self):
        from django_autoadmin.filters import build_filter_value

        with pytest.raises(ValueError, match="Unknown filter operator"):
            build_filter_value("between", [1, 2])


class TestBuildWhere:
    """Tests for build_where function."""

    def test_boolean_and_numeric_filters(self):
        from django_autoadmin.filters import build_where

        where = build_where(
            [
                {"field": "published", "operator": "equals", "value": True},
                {"field": "views", "operator": "gte", "value": 10},
            ]
        )

        assert where == {"published": True, "views": {"gte": 10}}

    def test_null_operators_ignore_value(self):
        from django_autoadmin.filters import build_where

        where = build_where(
            [
                {"field": "author_id", "operator": "isNull"},
                {"field": "published_at", "operator": "isNotNull", "value": ""},
            ]
        )

        assert where == {"author_id": None, "published_at": {"not": None}}

    def test_empty_values_are_skipped(self):
        from django_autoadmin.filters import build_where

        where = build_where(
            [
                {"field": "title", "operator": "contains", "value": ""},
                {"field": "status", "operator": "in", "value": []},
                {"field": "views", "operator": "gt", "value": None},
            ]
        )

        assert where is None

    def test_no_filters_returns_none(self):
        from django_autoadmin.filters import build_where

        assert build_where([]) is None
        assert build_where(None) is None

    def test_later_condition_on_same_field_wins(self):
        from django_autoadmin.filters import build_where

        where = build_where(
            [
                {"field": "views", "operator": "gte", "value": 10},
                {"field": "views", "operator": "lt", "value": 5},
            ]
        )

        assert where == {"views": {"lt": 5}}

    def test_relation_filter(self):
        from django_autoadmin.filters import build_where

        where = build_where([{"field": "tags", "operator": "some", "value": {"name": "django"}, "type": "relation"}])

        assert where == {"tags": {"some": {"name": "django"}}}

    def test_accepts_filter_value_objects(self):
        from django_autoadmin.filters import build_where
        from django_autoadmin.schema import FilterValue

        where = build_where([FilterValue(field="views", operator="lte", value=3)])

        assert where == {"views": {"lte": 3}}


class TestLegacyAndSearch:
    """Tests for legacy filters, search and merging."""

    def test_legacy_filters(self):
        from django_autoadmin.filters import build_legacy_where

        where = build_legacy_where({"title": "intro", "published": True, "body": ""})

        assert where == {"title": {"contains": "intro", "mode": "insensitive"}, "published": True}

    def test_search_covers_single_string_fields(self):
        from django_autoadmin.filters import build_search_where

        fields = [
            {"name": "title", "type": "String", "list": False},
            {"name": "views", "type": "Int", "list": False},
            {"name": "aliases", "type": "String", "list": True},
            {"name": "body", "type": "String"},
        ]

        assert build_search_where("hello", fields) == {
            "OR": [
                {"title": {"contains": "hello", "mode": "insensitive"}},
                {"body": {"contains": "hello", "mode": "insensitive"}},
            ]
        }

    def test_search_without_string_fields(self):
        from django_autoadmin.filters import build_search_where

        assert build_search_where("hello", [{"name": "views", "type": "Int"}]) is None
        assert build_search_where("", [{"name": "title", "type": "String"}]) is None

    def test_merge_uses_and_when_both_present(self):
        from django_autoadmin.filters import merge_where_conditions

        filter_where = {"published": True}
        search_where = {"OR": [{"title": {"contains": "x", "mode": "insensitive"}}]}

        assert merge_where_conditions(filter_where, search_where) == {"AND": [filter_where, search_where]}
        assert merge_where_conditions(filter_where, None) == filter_where
        assert merge_where_conditions(None, search_where) == search_where
        assert merge_where_conditions(None, None) is None

    def test_build_model_where(self):
        from django_autoadmin.filters import build_model_where

        where = build_model_where(
            [{"field": "published", "operator": "equals", "value": True}],
            "django",
            [{"name": "title", "type": "String"}],
        )

        assert where == {
            "AND": [
                {"published": True},
                {"OR": [{"title": {"contains": "django", "mode": "insensitive"}}]},
            ]
        }

    def test_extract_filter_fields(self):
        from django_autoadmin.filters import extract_filter_fields

        assert extract_filter_fields([{"field": "title", "operator": "contains", "value": "x"}]) == ["title"]
        assert extract_filter_fields({"status": "draft"}) == ["status"]
        assert extract_filter_fields(None) == []


class TestWhereToQ:
    """Tests for compiling where clauses into Q objects."""

    def test_equality(self):
        from django_autoadmin.filters import where_to_q

        assert where_to_q({"published": True}) == Q(published=True)

    def test_insensitive_contains(self):
        from django_autoadmin.filters import where_to_q

        assert where_to_q({"title": {"contains": "hi", "mode": "insensitive"}}) == Q(title__icontains="hi")

    def test_case_sensitive_contains(self):
        from django_autoadmin.filters import where_to_q

        assert where_to_q({"title": {"contains": "hi"}}) == Q(title__contains="hi")

    def test_null_checks(self):
        from django_autoadmin.filters import where_to_q

        assert where_to_q({"author_id": None}) == Q(author_id__isnull=True)
        assert where_to_q({"author_id": {"not": None}}) == Q(author_id__isnull=False)

    def test_not_in_is_negated(self):
        from django_autoadmin.filters import where_to_q

        assert where_to_q({"status": {"notIn": ["draft"]}}) == ~Q(status__in=["draft"])

    def test_empty_where_matches_everything(self):
        from django_autoadmin.filters import where_to_q

        assert where_to_q(None) == Q()
        assert where_to_q({}) == Q()

    def test_every_requires_model(self):
        from django_autoadmin.filters import where_to_q

        with pytest.raises(ValueError, match="every"):
            where_to_q({"tags": {"every": {"name": "django"}}})


@pytest.mark.django_db
class TestWhereToQQueries:
    """Tests running compiled where clauses against the database."""

    def titles(self, where):
        from django_autoadmin.filters import where_to_q
        from django_autoadmin.tests.testapp.models import Post

        return set(Post.objects.filter(where_to_q(where, Post)).distinct().values_list("title", flat=True))

    def test_scalar_operators(self, posts):
        assert self.titles({"views": {"gte": 10}}) == {"Hello Django", "Query tricks"}
        assert self.titles({"views": {"gt": 0, "lt": 10}}) == {"Compilers"}
        assert self.titles({"title": {"startsWith": "hello", "mode": "insensitive"}}) == {"Hello Django"}
        assert self.titles({"views": {"in": [0, 3]}}) == {"Compilers", "Drafts"}

    def test_and_or_not(self, posts):
        assert self.titles({"AND": [{"published": True}, {"views": {"gte": 5}}]}) == {"Hello Django"}
        assert self.titles({"OR": [{"views": 0}, {"views": 25}]}) == {"Drafts", "Query tricks"}
        assert self.titles({"NOT": {"published": True}}) == {"Query tricks", "Drafts"}

    def test_relation_is(self, posts):
        where = {"author": {"is": {"name": {"startsWith": "a", "mode": "insensitive"}}}}

        assert self.titles(where) == {"Hello Django", "Query tricks"}

    def test_relation_is_not(self, posts):
        titles = self.titles({"author": {"isNot": {"name": {"startsWith": "a", "mode": "insensitive"}}}})

        assert "Compilers" in titles
        assert "Hello Django" not in titles
        assert "Query tricks" not in titles

    def test_relation_some_and_none(self, posts):
        assert self.titles({"tags": {"some": {"name": "django"}}}) == {"Hello Django", "Query tricks"}
        assert self.titles({"tags": {"none": {"name": "django"}}}) == {"Compilers", "Drafts"}

    def test_relation_every(self, posts):
        # Posts without tags match vacuously
        assert self.titles({"tags": {"every": {"name": "django"}}}) == {"Query tricks", "Drafts"}

    def test_nested_where_without_operator(self, posts):
        assert self.titles({"author": {"name": "Grace Hopper"}}) == {"Compilers"}

    def test_relation_null(self, posts):
        assert self.titles({"author": None}) == {"Drafts"}

    def test_reverse_relation(self, posts):
        from django_autoadmin.filters import where_to_q
        from django_autoadmin.tests.testapp.models import Author

        names = Author.objects.filter(where_to_q({"posts": {"some": {"views": {"gte": 20}}}}, Author)).values_list(
            "name", flat=True
        )

        assert list(names) == ["Alan Turing"]


class TestWireFormat:
    """Tests for the URL filter parameter format."""

    def test_round_trip(self):
        from django_autoadmin.filters import decode_filters, encode_filters

        filters = [
            {"field": "title", "operator": "contains", "value": "a, b & c"},
            {"field": "tags", "operator": "some", "value": {"name": "django"}, "type": "relation"},
        ]

        assert decode_filters(encode_filters(filters)) == filters

    def test_encoded_form_is_url_safe(self):
        from django_autoadmin.filters import encode_filters

        encoded = encode_filters([{"field": "published", "operator": "equals", "value": True}])

        assert encoded.startswith("%5B%7B")
        assert " " not in encoded and "&" not in encoded

    def test_decode_accepts_plain_json(self):
        from django_autoadmin.filters import decode_filters

        assert decode_filters('[{"field":"views","operator":"gt","value":1}]') == [
            {"field": "views", "operator": "gt", "value": 1}
        ]

    def test_decode_empty(self):
        from django_autoadmin.filters import decode_filters

        assert decode_filters(None) == []
        assert decode_filters("") == []

    def test_decode_rejects_malformed_input(self):
        from django_autoadmin.filters import decode_filters

        with pytest.raises(ValueError):
            decode_filters("not-json")
        with pytest.raises(ValueError):
            decode_filters('{"field": "title"}')
        with pytest.raises(ValueError):
            decode_filters('[{"operator": "equals", "value": 1}]')
