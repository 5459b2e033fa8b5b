"""Tests for the reader's own profile settings."""

from spines.models import User, db


def test_profile_requires_login(client):
    assert client.get("/profile").status_code == 401


def test_show_profile(reader_client):
    data = reader_client.get("/profile").get_json()["user"]

    assert data["username"] == "reader"
    assert data["theme"] == "light"
    assert data["profile_picture"].endswith("default.svg")


def test_update_profile(reader_client, reader):
    rv = reader_client.post("/profile", data={"display_name": "  New Name ", "description": "Sci-fi mostly."})

    assert rv.status_code == 200
    assert rv.get_json()["user"]["display_name"] == "New Name"
    assert db.session.get(User, reader.id).description == "Sci-fi mostly."


def test_update_profile_requires_display_name(reader_client):
    rv = reader_client.post("/profile", data={"display_name": ""})
    assert rv.status_code == 400


def test_change_password(reader_client, reader):
    rv = reader_client.post(
        "/profile/password",
        data={"current_password": "TestPass1", "new_password": "Fresh-Pages-42", "confirm_password": "Fresh-Pages-42"},
    )

    assert rv.status_code == 200
    assert db.session.get(User, reader.id).check_password("Fresh-Pages-42")


def test_change_password_wrong_current(reader_client, reader):
    rv = reader_client.post(
        "/profile/password",
        data={"current_password": "Nope", "new_password": "Fresh-Pages-42", "confirm_password": "Fresh-Pages-42"},
    )

    assert rv.status_code == 400
    assert rv.get_json()["error"] == "Current password is incorrect."
    assert db.session.get(User, reader.id).check_password("TestPass1")


def test_change_password_rejects_common_password(reader_client):
    rv = reader_client.post(
        "/profile/password",
        data={"current_password": "TestPass1", "new_password": "bookworm", "confirm_password": "bookworm"},
    )

    assert rv.status_code == 400
    assert "new_password" in rv.get_json()["fields"]


def test_set_theme(reader_client, reader):
    rv = reader_client.post("/profile/theme", data={"theme": "dark"})

    assert rv.get_json() == {"theme": "dark"}
    assert db.session.get(User, reader.id).theme == "dark"


def test_set_theme_rejects_unknown(reader_client):
    assert reader_client.post("/profile/theme", data={"theme": "neon"}).status_code == 400


def test_default_avatar_is_served(client):
    rv = client.get("/static/uploads/avatars/default.svg")

    assert rv.status_code == 200
    assert rv.mimetype == "image/svg+xml"
    rv.close()
