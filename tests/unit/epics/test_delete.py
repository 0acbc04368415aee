"""
Tests for the Delete step and direct deletion.
"""

import pytest

from rail_transact.epics import (
    BeginStep,
    CommitStep,
    DeleteStep,
    Epic,
    EpicContext,
    ErrorKind,
    PersistenceError,
    WorkStep,
    direct_delete,
)
from tests.fakes import FakeEntity, RecordingProvider

pytestmark = pytest.mark.unit


def post_with(**associations):
    return FakeEntity("post", id=1, associations=associations)


class TestDirectDelete:
    def test_single_entity(self):
        entity = FakeEntity("a", id=1)
        provider = RecordingProvider(stored=[entity])

        assert direct_delete(entity, provider) == 1
        assert provider.stored == {}

    def test_already_deleted_is_a_noop(self):
        provider = RecordingProvider()

        assert direct_delete(FakeEntity("gone", id=1), provider) == 0

    def test_list_counts_deleted_entities(self):
        a, b = FakeEntity("a", id=1), FakeEntity("b", id=2)
        provider = RecordingProvider(stored=[a])

        assert direct_delete([a, b], provider) == 1

    def test_list_stops_at_first_failure(self):
        entities = [FakeEntity(name, id=i) for i, name in enumerate("abc")]
        provider = RecordingProvider(stored=entities, fail_on={"b"})

        with pytest.raises(PersistenceError):
            direct_delete(entities, provider)

        assert provider.writes == [("delete", "a"), ("delete", "b")]


class TestDeleteStep:
    def test_registers_associations_then_entity(self):
        comment = FakeEntity("comment", id=5)
        stats = FakeEntity("stats", id=6)
        post = post_with(comments=[comment], stats=stats)
        provider = RecordingProvider()
        ctx = EpicContext(assigns={"post": post}, provider=provider)

        ctx = DeleteStep(on="post", extra_associations=["comments", "stats"]).execute(ctx)

        assert ctx.pending_mutations == ["post__comments", "post__stats", "post"]
        assert ctx.get("post__comments") == [comment]
        assert ctx.get("post__stats") is stats
        assert ctx.get("post") is post

    def test_empty_associations_are_skipped(self):
        post = post_with(comments=[], stats=None, tags=[FakeEntity("tag", id=2)])
        ctx = EpicContext(assigns={"post": post}, provider=RecordingProvider())

        ctx = DeleteStep(on="post", extra_associations=["comments", "stats", "tags"]).execute(ctx)

        assert ctx.pending_mutations == ["post__tags", "post"]

    def test_default_associations_from_options(self):
        post = post_with(comments=[FakeEntity("c", id=3)], stats=FakeEntity("s", id=4))
        ctx = EpicContext(
            assigns={"post": post, "options": {"delete_associations": ["stats"]}},
            provider=RecordingProvider(),
        )

        step = DeleteStep(on="post", extra_associations=["comments", "stats"])
        ctx = step.execute(ctx)

        assert step.get_associations(ctx) == ["stats", "comments"]
        assert ctx.pending_mutations == ["post__stats", "post__comments", "post"]

    def test_options_as_pairs(self):
        post = post_with(comments=[FakeEntity("c", id=3)])
        ctx = EpicContext(
            assigns={"post": post, "options": [("delete_associations", ["comments"])]},
            provider=RecordingProvider(),
        )

        ctx = DeleteStep(on="post").execute(ctx)

        assert ctx.pending_mutations == ["post__comments", "post"]

    def test_default_associations_from_settings(self, settings):
        settings.RAIL_TRANSACT = {"delete_associations": ["comments"]}
        post = post_with(comments=[FakeEntity("c", id=3)])
        ctx = EpicContext(assigns={"post": post}, provider=RecordingProvider())

        ctx = DeleteStep(on="post").execute(ctx)

        assert ctx.pending_mutations == ["post__comments", "post"]

    def test_noop_when_errors(self):
        provider = RecordingProvider()
        ctx = EpicContext(assigns={"post": post_with()}, provider=provider)
        ctx.add_error(ErrorKind.VALIDATION, "bad")

        ctx = DeleteStep(on="post").execute(ctx)

        assert ctx.pending_mutations == []
        assert len(ctx.errors) == 1

    @pytest.mark.parametrize("key", [None, 42, "not a key", ""])
    def test_invalid_key(self, key):
        ctx = EpicContext(provider=RecordingProvider())

        ctx = DeleteStep(on=key).execute(ctx)

        [error] = ctx.errors
        assert error.kind == ErrorKind.INVALID_KEY
        assert ctx.pending_mutations == []

    def test_not_an_entity(self):
        ctx = EpicContext(assigns={"post": {"id": 1}}, provider=RecordingProvider())

        ctx = DeleteStep(on="post").execute(ctx)

        assert ctx.pending_mutations == []
        assert not ctx.errors
        assert ctx.warnings[0].kind == ErrorKind.NOT_AN_ENTITY

    def test_unknown_association_is_an_error(self):
        ctx = EpicContext(assigns={"post": post_with()}, provider=RecordingProvider())

        ctx = DeleteStep(on="post", extra_associations=["nope"]).execute(ctx)

        assert ctx.errors[0].kind == ErrorKind.CONFIGURATION
        assert ctx.errors[0].details == {"association": "nope"}
        assert ctx.pending_mutations == []

    def test_cascade_applied_in_order(self):
        comment = FakeEntity("comment", id=5)
        stats = FakeEntity("stats", id=6)
        post = post_with(comments=[comment], stats=stats)
        provider = RecordingProvider(stored=[comment, stats, post])

        ctx = Epic(
            [
                DeleteStep(on="post", extra_associations=["comments", "stats"]),
                BeginStep(),
                WorkStep(),
                CommitStep(),
            ]
        ).run(post=post, provider=provider)

        assert not ctx.errors
        assert provider.writes == [
            ("delete", "comment"),
            ("delete", "stats"),
            ("delete", "post"),
        ]
        assert provider.stored == {}
        assert provider.outcomes == ["commit"]
