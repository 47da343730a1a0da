from models.profile import Role
from models.session import Identity


def test_ensure_creates_viewer_profile_on_first_sign_in(profiles, store):
    identity = Identity(uid="u1", email="u1@example.com", display_name="Ann")

    profile = profiles.ensure(identity)

    assert profile.role is Role.VIEWER
    assert profile.disabled is False
    assert profile.created_at is not None
    assert store.get("roles", "u1").data == {"role": "viewer", "disabled": False}


def test_ensure_keeps_existing_profile(profiles, store):
    store.set("users", "u1", {"role": "admin", "email": "u1@example.com"})

    profile = profiles.ensure(Identity(uid="u1", email="u1@example.com"))

    assert profile.role is Role.ADMIN
    assert store.get("roles", "u1") is None


def test_apply_changes_updates_profile_and_mirror(profiles, store):
    store.set("users", "u1", {"role": "viewer", "email": "u1@example.com"})

    profiles.apply_changes("u1", role=Role.CONTRIBUTOR, disabled=True)

    user = store.get("users", "u1").data
    assert user["role"] == "contributor"
    assert user["disabled"] is True
    assert "updatedAt" in user
    assert store.get("roles", "u1").data == {"role": "contributor", "disabled": True}


def test_list_excludes_soft_deleted(profiles, store):
    store.set("users", "u1", {"email": "a@example.com", "createdAt": "1"})
    store.set("users", "u2", {"email": "b@example.com", "createdAt": "2"})

    profiles.soft_delete("u1")

    assert [p.uid for p in profiles.list()] == ["u2"]
    assert {p.uid for p in profiles.list(include_deleted=True)} == {"u1", "u2"}
    assert store.get("roles", "u1").data == {"deleted": True}


def test_update_display_name(profiles, store):
    store.set("users", "u1", {"displayName": "Old"})

    profiles.update_display_name("u1", "New")

    assert profiles.get("u1").display_name == "New"
