"""Tests for registration, profile edits and administrative destroy."""

from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from sample_app.core.errors import Forbidden, NotFound, StorageUnavailable, ValidationError
from sample_app.core.models import Micropost, Relationship
from sample_app.services.identity_service import IdentityService, validate_user
from sample_app.services.relationship_service import RelationshipService

VALID = dict(name="Example User", email="user@example.com", password="foobar", password_confirmation="foobar")


def _errors(**overrides) -> dict:
    fields = {**VALID, **overrides}
    return validate_user(**fields)


def test_valid_user_has_no_errors() -> None:
    assert _errors() == {}


@pytest.mark.parametrize("name", [" ", "", None, "a" * 51])
def test_invalid_names(name) -> None:
    assert "name" in _errors(name=name)


def test_name_of_fifty_characters_is_valid() -> None:
    assert _errors(name="a" * 50) == {}


def test_name_length_ignores_surrounding_whitespace() -> None:
    assert _errors(name=" " + "a" * 50 + " ") == {}
    assert "name" in _errors(name="a" * 51 + " ")


@pytest.mark.parametrize("email", ["user@foo,com", "user_at_foo.org", "example.user@foo.", " ", None])
def test_invalid_emails(email) -> None:
    assert "email" in _errors(email=email)


@pytest.mark.parametrize("email", ["user@foo.com", "A_USER@f.b.org", "frst.lst@foo.jp", "a+b@baz.cn"])
def test_valid_emails(email) -> None:
    assert _errors(email=email) == {}


def test_blank_password_is_invalid() -> None:
    assert "password" in _errors(password=" ", password_confirmation=" ")


def test_short_password_is_invalid() -> None:
    assert "password" in _errors(password="a" * 5, password_confirmation="a" * 5)


def test_password_confirmation_mismatch_is_invalid() -> None:
    assert "password" in _errors(password_confirmation="mismatch")


def test_missing_password_confirmation_is_invalid() -> None:
    assert "password_confirmation" in _errors(password_confirmation=None)


def test_create_stores_digest_and_remember_token(db) -> None:
    user = IdentityService(db).create(**VALID)
    assert user.id is not None
    assert user.password_digest != "foobar"
    assert user.remember_token
    assert user.admin is False


def test_email_uniqueness_is_case_insensitive(db) -> None:
    service = IdentityService(db)
    service.create(**VALID)
    with pytest.raises(ValidationError) as exc:
        service.create(**{**VALID, "email": "USER@example.com"})
    assert exc.value.errors["email"] == ["has already been taken"]


def test_email_is_stored_lower_case_and_found_case_insensitively(db) -> None:
    service = IdentityService(db)
    user = service.create(**{**VALID, "email": "Foo@ExAMPle.CoM"})
    assert user.email == "foo@example.com"
    assert service.find_by_email("FOO@example.com").id == user.id


def test_find_missing_user_raises_not_found(db) -> None:
    service = IdentityService(db)
    with pytest.raises(NotFound):
        service.find_by_id(12345)
    with pytest.raises(NotFound):
        service.find_by_email("nobody@example.com")


def test_update_rejects_admin_flag(db, make_user) -> None:
    user = make_user()
    with pytest.raises(ValidationError) as exc:
        IdentityService(db).update(user.id, {"admin": True})
    assert "admin" in exc.value.errors
    db.refresh(user)
    assert user.admin is False


def test_update_changes_name_and_regenerates_token(db, make_user) -> None:
    user = make_user()
    old_token = user.remember_token
    updated = IdentityService(db).update(user.id, {"name": "New Name", "email": "new@example.com"})
    assert updated.name == "New Name"
    assert updated.email == "new@example.com"
    assert updated.remember_token and updated.remember_token != old_token


def test_password_change_regenerates_token_and_digest(db, make_user) -> None:
    user = make_user()
    old_token, old_digest = user.remember_token, user.password_digest
    updated = IdentityService(db).update(
        user.id, {"password": "newsecret", "password_confirmation": "newsecret"}
    )
    assert updated.remember_token != old_token
    assert updated.password_digest != old_digest


def test_update_revalidates_fields(db, make_user) -> None:
    other = make_user(email="taken@example.com")
    user = make_user()
    service = IdentityService(db)
    with pytest.raises(ValidationError) as exc:
        service.update(user.id, {"email": "TAKEN@example.com", "name": ""})
    assert set(exc.value.errors) == {"email", "name"}

    with pytest.raises(ValidationError):
        service.update(user.id, {"password": "short", "password_confirmation": "short"})

    # Своё же письмо - не конфликт
    assert service.update(other.id, {"email": "Taken@Example.com"}).email == "taken@example.com"


def test_update_unknown_user_raises_not_found(db) -> None:
    with pytest.raises(NotFound):
        IdentityService(db).update(999, {"name": "Ghost"})


def test_list_is_ordered_by_id_and_paginated(db, make_user) -> None:
    users = [make_user() for _ in range(5)]
    page, total = IdentityService(db).list(page=2, per_page=2)
    assert total == 5
    assert [u.id for u in page] == [users[2].id, users[3].id]


def test_non_admin_cannot_destroy(db, make_user) -> None:
    user = make_user()
    target = make_user()
    with pytest.raises(Forbidden):
        IdentityService(db).destroy(user, target.id)
    with pytest.raises(Forbidden):
        IdentityService(db).destroy(None, target.id)


def test_admin_cannot_destroy_self(db, make_user) -> None:
    admin = make_user(admin=True)
    with pytest.raises(Forbidden):
        IdentityService(db).destroy(admin, admin.id)
    assert IdentityService(db).find_by_id(admin.id)


def test_admin_destroy_of_missing_user_raises_not_found(db, make_user) -> None:
    admin = make_user(admin=True)
    with pytest.raises(NotFound):
        IdentityService(db).destroy(admin, 999)


def test_admin_destroy_cascades_posts_and_relationships(db, make_user, make_post) -> None:
    admin = make_user(admin=True)
    target = make_user()
    bystander = make_user()
    older = make_post(target, ago=timedelta(days=1))
    newer = make_post(target, ago=timedelta(hours=1))
    kept = make_post(bystander)

    graph = RelationshipService(db)
    graph.follow(target.id, bystander.id)
    graph.follow(bystander.id, target.id)

    IdentityService(db).destroy(admin, target.id)

    with pytest.raises(NotFound):
        IdentityService(db).find_by_id(target.id)
    assert db.get(Micropost, older.id) is None
    assert db.get(Micropost, newer.id) is None
    assert db.get(Micropost, kept.id) is not None
    assert db.query(Relationship).count() == 0
    assert graph.followers(bystander.id) == set()


def test_set_admin_is_the_only_way_to_promote(db, make_user) -> None:
    user = make_user()
    assert user.admin is False
    assert IdentityService(db).set_admin(user.id, True).admin is True
    assert IdentityService(db).set_admin(user.id, False).admin is False


def test_create_strips_padded_name(db) -> None:
    user = IdentityService(db).create(**{**VALID, "name": "a" * 50 + " "})
    assert user.name == "a" * 50


def test_failed_cascade_leaves_everything_in_place(db, make_user, make_post, monkeypatch) -> None:
    admin = make_user(admin=True)
    target = make_user()
    bystander = make_user()
    post = make_post(target)
    RelationshipService(db).follow(target.id, bystander.id)

    def _storage_down(self, user_id):
        raise OperationalError("DELETE FROM relationships", {}, Exception("connection lost"))

    monkeypatch.setattr(RelationshipService, "remove_all_for", _storage_down)

    with pytest.raises(StorageUnavailable):
        IdentityService(db).destroy(admin, target.id)

    assert IdentityService(db).find_by_id(target.id)
    assert db.get(Micropost, post.id) is not None
    assert db.query(Relationship).count() == 1
    assert RelationshipService(db).is_following(target.id, bystander.id)
