"""Tests for the follow graph."""

from __future__ import annotations

import pytest

from sample_app.core.errors import NotFound, ValidationError
from sample_app.core.models import Relationship
from sample_app.services.relationship_service import RelationshipService


def test_follow_and_unfollow(db, make_user) -> None:
    alice, bob = make_user(), make_user()
    graph = RelationshipService(db)

    graph.follow(alice.id, bob.id)
    assert graph.is_following(alice.id, bob.id)
    assert not graph.is_following(bob.id, alice.id)
    assert graph.following(alice.id) == {bob.id}
    assert graph.followers(bob.id) == {alice.id}

    graph.unfollow(alice.id, bob.id)
    assert not graph.is_following(alice.id, bob.id)
    assert graph.following(alice.id) == set()
    assert graph.followers(bob.id) == set()


def test_follow_twice_is_a_no_op(db, make_user) -> None:
    alice, bob = make_user(), make_user()
    graph = RelationshipService(db)

    first = graph.follow(alice.id, bob.id)
    second = graph.follow(alice.id, bob.id)
    assert first.id == second.id
    assert db.query(Relationship).count() == 1


def test_unfollow_twice_is_a_no_op(db, make_user) -> None:
    alice, bob = make_user(), make_user()
    graph = RelationshipService(db)

    graph.unfollow(alice.id, bob.id)
    graph.follow(alice.id, bob.id)
    graph.unfollow(alice.id, bob.id)
    graph.unfollow(alice.id, bob.id)
    assert db.query(Relationship).count() == 0


def test_self_follow_is_rejected(db, make_user) -> None:
    alice = make_user()
    with pytest.raises(ValidationError):
        RelationshipService(db).follow(alice.id, alice.id)


def test_follow_unknown_user_raises_not_found(db, make_user) -> None:
    alice = make_user()
    graph = RelationshipService(db)
    with pytest.raises(NotFound):
        graph.follow(alice.id, 999)
    with pytest.raises(NotFound):
        graph.following(999)


def test_following_and_follower_users_are_paginated(db, make_user) -> None:
    alice = make_user()
    others = [make_user() for _ in range(3)]
    graph = RelationshipService(db)
    for other in others:
        graph.follow(alice.id, other.id)
        graph.follow(other.id, alice.id)

    assert [u.id for u in graph.following_users(alice.id, page=1, per_page=2)] == [o.id for o in others[:2]]
    assert [u.id for u in graph.follower_users(alice.id, page=2, per_page=2)] == [others[2].id]


def test_follow_counts(db, make_user) -> None:
    alice, bob, carol = make_user(), make_user(), make_user()
    graph = RelationshipService(db)
    graph.follow(alice.id, bob.id)
    graph.follow(alice.id, carol.id)
    graph.follow(bob.id, carol.id)

    assert graph.count_following(alice.id) == 2
    assert graph.count_followers(carol.id) == 2
    assert graph.count_followers(alice.id) == 0
    with pytest.raises(NotFound):
        graph.count_followers(999)
