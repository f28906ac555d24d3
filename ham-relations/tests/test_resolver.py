"""
Tests for relation definitions: name and key inference, overrides and errors.
"""
from abc import ABC, abstractmethod
from unittest.mock import patch

import pytest

from ham_relations import (BelongsTo, BelongsToMany, HasMany, HasManyThrough, HasOne, HasOneThrough,
                           InstantiationError, NamingInferenceError, QueryBuilder, RelationalModel,
                           RelationKind)
from ham_relations.resolver import _accessor_name

from entities import Country, Post, Profile, Tag, User


class AbstractEntity(RelationalModel, ABC):
    @abstractmethod
    def kind(self):
        ...


class BrokenEntity(RelationalModel):
    def __init__(self):
        raise RuntimeError("constructor exploded")


class TestBelongsTo:

    def test_relation_name_from_accessor(self):
        rel = Post().author()

        assert isinstance(rel, BelongsTo)
        assert rel.kind is RelationKind.BELONGS_TO
        assert rel.relation_name == "author"
        assert rel.foreign_key == "author_id"
        assert rel.other_key == "id"

    def test_explicit_foreign_key_keeps_accessor_name(self):
        rel = Post().writer()

        assert rel.relation_name == "writer"
        assert rel.foreign_key == "user_id"

    def test_explicit_relation_name(self):
        rel = Post().belongs_to(User, relation="creator")

        assert rel.relation_name == "creator"
        assert rel.foreign_key == "creator_id"

    def test_explicit_keys_used_verbatim(self):
        rel = Post().belongs_to(User, foreign_key="custom_id", other_key="uuid", relation="owner")

        assert rel.keys() == {"foreign_key": "custom_id", "other_key": "uuid", "relation_name": "owner"}

    def test_caller_function_name_is_used(self):
        rel = Post().belongs_to(User)
        assert rel.relation_name == "test_caller_function_name_is_used"

    def test_camel_case_accessor(self):
        class Comment(RelationalModel):
            def parentPost(self):
                return self.belongs_to(Post)

        rel = Comment().parentPost()
        assert rel.relation_name == "parentPost"
        assert rel.foreign_key == "parent_post_id"

    def test_lambda_caller_fails(self):
        post = Post()
        with pytest.raises(NamingInferenceError, match="<lambda>"):
            (lambda: post.belongs_to(User))()

    def test_query_is_fresh_and_unconstrained(self):
        rel = Post().author()

        assert isinstance(rel.query, QueryBuilder)
        assert rel.query.model is User
        assert not rel.query.is_constrained

    def test_owner_back_reference(self):
        post = Post()
        assert post.author().owner is post

    def test_empty_name_and_foreign_key_are_kept(self):
        rel = Post().belongs_to(User, foreign_key="", other_key="", relation="")

        assert rel.relation_name == ""
        assert rel.foreign_key == ""
        assert rel.other_key == "id"


class TestBelongsToMany:

    def test_defaults(self):
        rel = Post().tags()

        assert isinstance(rel, BelongsToMany)
        assert rel.kind is RelationKind.BELONGS_TO_MANY
        assert rel.relation_name == "tags"
        assert rel.table == "post_tag"
        assert rel.foreign_key == "post_id"
        assert rel.other_key == "tag_id"

    def test_join_table_is_symmetric(self):
        assert Post().tags().table == Tag().posts().table

    def test_string_reference_resolved_through_registry(self):
        rel = Post().labels()

        assert rel.relation_name == "labels"
        assert rel.query.model is Tag
        assert rel.other_key == "tag_id"

    def test_overrides(self):
        rel = Post().belongs_to_many(Tag, "taggings", "article_id", "label_id", "topics")

        assert rel.keys() == {
            "table": "taggings",
            "foreign_key": "article_id",
            "other_key": "label_id",
            "relation_name": "topics",
        }

    def test_empty_table_and_name_are_kept(self):
        rel = Post().belongs_to_many(Tag, table="", foreign_key="", relation="")

        assert rel.table == ""
        assert rel.relation_name == ""
        assert rel.foreign_key == "post_id"

    def test_internal_dispatch_frames_are_skipped(self):
        namespace = {"__name__": "ham_relations.dispatch"}
        exec(
            "def many(entity, related):\n"
            "    return entity.belongs_to_many(related)\n"
            "def one(entity, related):\n"
            "    return entity.belongs_to(related)\n",
            namespace,
        )

        def topics(post):
            return namespace["many"](post, Tag)

        def owner(post):
            return namespace["one"](post, User)

        assert topics(Post()).relation_name == "topics"
        # belongs_to only looks at its direct caller
        assert owner(Post()).relation_name == "one"


class TestHasOneOrMany:

    def test_has_many_qualifies_foreign_key(self):
        rel = User().posts()

        assert isinstance(rel, HasMany)
        assert rel.kind is RelationKind.HAS_MANY
        assert rel.foreign_key == "posts.user_id"
        assert rel.plain_foreign_key == "user_id"
        assert rel.local_key == "id"
        assert rel.relation_name is None

    def test_has_one(self):
        rel = User().profile()

        assert isinstance(rel, HasOne)
        assert rel.kind is RelationKind.HAS_ONE
        assert rel.foreign_key == "profiles.user_id"
        assert rel.local_key == "id"

    def test_overrides(self):
        rel = User().has_many(Post, "custom_id", "uuid")

        assert rel.foreign_key == "posts.custom_id"
        assert rel.local_key == "uuid"

    def test_factory_reference(self):
        rel = User().has_many(lambda: Post())
        assert rel.foreign_key == "posts.user_id"


class TestThrough:

    def test_has_many_through_keys(self):
        rel = User().posts_via_country()

        assert isinstance(rel, HasManyThrough)
        assert rel.kind is RelationKind.HAS_MANY_THROUGH
        assert rel.first_key == "user_id"
        assert rel.second_key == "country_id"
        assert rel.local_key == "id"
        assert isinstance(rel.through, Country)
        assert rel.query.model is Post

    def test_has_one_through_second_key_comes_from_related(self):
        rel = Country().profile()

        assert isinstance(rel, HasOneThrough)
        assert rel.kind is RelationKind.HAS_ONE_THROUGH
        assert rel.first_key == "country_id"
        assert rel.second_key == "profile_id"
        assert rel.local_key == "id"
        assert isinstance(rel.through, User)

    def test_has_many_through_second_key_comes_from_through(self):
        assert Country().posts().second_key == "user_id"

    def test_overrides(self):
        rel = Country().has_many_through(Post, User, "nation_id", "writer_id", "code")
        assert rel.keys() == {"first_key": "nation_id", "second_key": "writer_id",
                              "local_key": "code", "through": "User"}


class TestIdempotence:

    @pytest.mark.parametrize("accessor", ["author", "tags", "posts", "profile", "posts_via_country"])
    def test_same_call_site_same_keys(self, accessor):
        owner = Post() if accessor in ("author", "tags") else User()
        first = getattr(owner, accessor)()
        second = getattr(owner, accessor)()

        assert first.keys() == second.keys()
        assert first is not second
        assert first.query is not second.query


class TestInstantiation:

    @pytest.mark.parametrize("related", [AbstractEntity, RelationalModel, BrokenEntity, 42, dict])
    def test_non_constructible_related(self, related):
        with pytest.raises(InstantiationError):
            User().has_many(related)

    def test_constructor_error_is_chained(self):
        with pytest.raises(InstantiationError) as exc_info:
            Post().belongs_to(BrokenEntity, relation="broken")

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert exc_info.value.related is BrokenEntity

    def test_unknown_class_name(self):
        with pytest.raises(InstantiationError, match="no mapped class"):
            Post().belongs_to_many("Nope", relation="nope")

    def test_string_reference_needs_registry(self):
        class Plain(RelationalModel):
            pass

        with pytest.raises(InstantiationError, match="registry"):
            Plain().has_many("Post")

    def test_no_query_created_on_failure(self):
        with patch.object(Post, "new_query") as new_query:
            with pytest.raises(InstantiationError):
                Country().has_one_through(Post, BrokenEntity)
            with pytest.raises(InstantiationError):
                Country().has_many_through(Post, BrokenEntity)

        new_query.assert_not_called()

    def test_related_instance_bound_to_owner_session(self):
        session = object()
        rel = User().bind(session).posts()
        assert rel.query.db is session


class TestAccessorName:

    @pytest.mark.parametrize("name", ["<module>", "<lambda>", "<listcomp>", "__init__", ""])
    def test_rejected(self, name):
        with pytest.raises(NamingInferenceError):
            _accessor_name(name)

    def test_accepted(self):
        assert _accessor_name("author") == "author"
