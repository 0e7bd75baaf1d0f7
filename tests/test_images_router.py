# Tests for request dispatch below /images.

import pytest

from imgapi.core.actions import NOT_IMPLEMENTED, Action
from imgapi.core.deps import parse_query
from imgapi.core.errors import ErrorCode, ImgApiError
from imgapi.routers.images import _ACTION_OPERATIONS

from conftest import IMAGE_UUID

ALICE = ("alice", "secret")
IMAGE = f"/images/{IMAGE_UUID}"


def assert_error(resp, status, code):
    assert resp.status_code == status
    assert resp.json() == {"code": code, "message": resp.json()["message"]}
    assert set(resp.json()) == {"code", "message"}


class TestAuthentication:

    def test_anonymous_get_lists_images(self, client, ops, config):
        resp = client.get("/images")
        assert resp.status_code == 200
        assert resp.json() == {"operation": "list_images"}
        assert ops.list_images.await_count == 1
        assert ops.list_images.await_args.args[2] == config.datadir

    @pytest.mark.parametrize("method,path", [
        ("DELETE", IMAGE),
        ("POST", "/images"),
        ("POST", IMAGE + "?action=activate"),
        ("PUT", IMAGE + "/file"),
    ])
    def test_anonymous_mutation_gets_bare_401(self, client, awaited, existing_image, method, path):
        resp = client.request(method, path)
        assert resp.status_code == 401
        assert resp.content == b""
        assert resp.headers["server"] == "Norbye Public Images Repo"
        assert awaited() == []

    @pytest.mark.parametrize("method", ["GET", "POST", "PUT", "DELETE"])
    def test_unknown_account(self, client, awaited, method):
        resp = client.request(method, IMAGE, auth=("mallory", "secret"))
        assert_error(resp, 403, "AccountDoesNotExist")
        assert "mallory" in resp.json()["message"]
        assert awaited() == []

    def test_wrong_password(self, client, awaited):
        resp = client.get("/images", auth=("alice", "nope"))
        assert_error(resp, 401, "UnauthorizedError")
        assert awaited() == []

    def test_valid_credentials_on_get(self, client, ops):
        resp = client.get("/images", auth=ALICE)
        assert resp.status_code == 200
        ops.list_images.assert_awaited_once()

    def test_undecodable_authorization_is_anonymous(self, client, ops, awaited):
        headers = {"Authorization": "Basic bm9jb2xvbg=="}
        assert client.get("/images", headers=headers).status_code == 200
        assert client.delete(IMAGE, headers=headers).status_code == 401
        assert awaited() == ["list_images"]


class TestGet:

    @pytest.mark.parametrize("suffix,operation", [
        ("", "get_image"),
        ("/icon", "get_image_icon"),
        ("/file", "get_image_file"),
    ])
    def test_dispatch(self, client, ops, config, awaited, suffix, operation):
        resp = client.get(IMAGE + suffix)
        assert resp.json() == {"operation": operation}
        assert awaited() == [operation]
        assert getattr(ops, operation).await_args.args[2] == config.datadir / IMAGE_UUID

    def test_existing_image_directory_is_not_found(self, client, existing_image, awaited):
        resp = client.get(IMAGE)
        assert_error(resp, 404, "ResourceNotFound")
        assert awaited() == []

    def test_unknown_subresource(self, client, awaited):
        assert_error(client.get(IMAGE + "/acl"), 404, "ResourceNotFound")
        assert_error(client.get(IMAGE + "/foo"), 404, "ResourceNotFound")
        assert awaited() == []

    def test_empty_uuid(self, client, awaited):
        resp = client.get("/images/")
        assert_error(resp, 422, "InvalidParameter")
        assert awaited() == []

    def test_query_parameters_are_passed_along(self, client, ops):
        client.get("/images?state=all&name=base&name=other")
        params = ops.list_images.await_args.args[1]
        assert params["state"] == "all"
        assert params.getlist("name") == ["base", "other"]

    def test_undecodable_query(self, client, awaited):
        resp = client.get("/images?name=%FF")
        assert_error(resp, 500, "InternalError")
        assert resp.json()["message"] == "Failed to parse query"
        assert awaited() == []

    @pytest.mark.parametrize("query", ["name=%zz", "name=%", "a=1&b=%4"])
    def test_malformed_escape(self, query):
        with pytest.raises(ImgApiError) as exc:
            parse_query(query)
        assert exc.value.code is ErrorCode.INTERNAL_ERROR

    def test_valid_escapes(self):
        assert parse_query("name=a%20b&tag=%E2%9C%93")["tag"] == "\u2713"


class TestDelete:

    def test_delete_image(self, client, ops, config):
        resp = client.delete(IMAGE, auth=ALICE)
        assert resp.json() == {"operation": "delete_image"}
        ops.delete_image.assert_awaited_once()
        assert ops.delete_image.await_args.args[2] == config.datadir / IMAGE_UUID

    def test_delete_icon(self, client, awaited):
        client.delete(IMAGE + "/icon", auth=ALICE)
        assert awaited() == ["delete_image_icon"]

    @pytest.mark.parametrize("suffix", ["/acl", "/file", "/foo"])
    def test_other_subresources_not_found(self, client, awaited, suffix):
        assert_error(client.delete(IMAGE + suffix, auth=ALICE), 404, "ResourceNotFound")
        assert awaited() == []

    def test_collection_is_invalid(self, client, awaited):
        assert_error(client.delete("/images", auth=ALICE), 422, "InvalidParameter")
        assert awaited() == []


class TestPost:

    def test_create_image(self, client, ops, config):
        resp = client.post("/images", auth=ALICE, json={"name": "base", "version": "1.0"})
        assert resp.json() == {"operation": "create_image"}
        ops.create_image.assert_awaited_once()
        assert ops.create_image.await_args.args[2] == config.datadir

    def test_missing_image(self, client, awaited):
        resp = client.post(IMAGE + "?action=activate", auth=ALICE)
        assert_error(resp, 404, "ResourceNotFound")
        assert awaited() == []

    def test_add_icon(self, client, existing_image, ops):
        client.post(IMAGE + "/icon", auth=ALICE, content=b"\x89PNG")
        ops.add_image_icon.assert_awaited_once()
        assert ops.add_image_icon.await_args.args[2] == existing_image

    def test_acl_not_implemented(self, client, existing_image, awaited):
        resp = client.post(IMAGE + "/acl?action=add", auth=ALICE)
        assert_error(resp, 422, "InsufficientServerVersion")
        assert awaited() == []

    def test_unknown_subresource(self, client, existing_image, awaited):
        assert_error(client.post(IMAGE + "/file", auth=ALICE), 404, "ResourceNotFound")
        assert awaited() == []

    def test_empty_uuid(self, client, awaited):
        assert_error(client.post("/images/", auth=ALICE), 422, "InvalidParameter")
        assert awaited() == []

    def test_unreadable_image_path_is_internal_error(self, client, awaited):
        resp = client.post("/images/" + "a" * 400 + "?action=activate", auth=ALICE)
        assert_error(resp, 500, "InternalError")
        assert resp.json()["message"].startswith("Failed to locate resource")
        assert awaited() == []


class TestActions:

    @pytest.mark.parametrize("action,operation", [
        ("activate", "activate_image"),
        ("update", "update_image"),
        ("disable", "disable_image"),
        ("enable", "enable_image"),
    ])
    def test_implemented_actions(self, client, existing_image, ops, awaited, action, operation):
        resp = client.post(f"{IMAGE}?action={action}", auth=ALICE)
        assert resp.json() == {"operation": operation}
        assert awaited() == [operation]
        getattr(ops, operation).assert_awaited_once()
        assert getattr(ops, operation).await_args.args[2] == existing_image

    @pytest.mark.parametrize("action", ["export", "copy-remote", "import-remote", "import", "channel-add"])
    def test_recognized_but_not_implemented(self, client, existing_image, awaited, action):
        resp = client.post(f"{IMAGE}?action={action}", auth=ALICE)
        assert_error(resp, 422, "InsufficientServerVersion")
        assert action in resp.json()["message"]
        assert awaited() == []

    @pytest.mark.parametrize("action", ["bogus", "ACTIVATE", "Activate", ""])
    def test_unknown_action(self, client, existing_image, awaited, action):
        resp = client.post(f"{IMAGE}?action={action}", auth=ALICE)
        assert_error(resp, 422, "InvalidParameter")
        assert f'"{action}"' in resp.json()["message"]
        assert awaited() == []

    def test_missing_action(self, client, existing_image, awaited):
        resp = client.post(IMAGE + "?dc=us-west-1", auth=ALICE)
        assert_error(resp, 422, "InvalidParameter")
        assert resp.json()["message"] == "action parameter not specified"
        assert awaited() == []

    def test_first_action_wins(self, client, existing_image, awaited):
        client.post(IMAGE + "?action=enable&action=disable", auth=ALICE)
        assert awaited() == ["enable_image"]

    def test_every_action_is_handled(self):
        assert set(_ACTION_OPERATIONS) | NOT_IMPLEMENTED == set(Action)
        assert not set(_ACTION_OPERATIONS) & NOT_IMPLEMENTED


class TestPut:

    def test_add_file(self, client, ops, config):
        resp = client.put(IMAGE + "/file?compression=gzip", auth=ALICE, content=b"data")
        assert resp.json() == {"operation": "add_image_file"}
        ops.add_image_file.assert_awaited_once()
        _, params, path = ops.add_image_file.await_args.args
        assert path == config.datadir / IMAGE_UUID
        assert params["compression"] == "gzip"

    @pytest.mark.parametrize("path", [IMAGE + "/icon", IMAGE, "/images", "/images/", IMAGE + "/acl"])
    def test_anything_but_file_is_invalid(self, client, awaited, path):
        assert_error(client.put(path, auth=ALICE, content=b"data"), 422, "InvalidParameter")
        assert awaited() == []


class TestEnvelope:

    def test_error_body_is_indented_json(self, client):
        resp = client.get("/images/")
        assert resp.headers["content-type"] == "application/json; charset=utf-8"
        assert resp.headers["server"] == "Norbye Public Images Repo"
        assert resp.text.startswith("{\n  ")

    def test_unsupported_method(self, client):
        resp = client.request("PATCH", IMAGE, auth=ALICE)
        assert_error(resp, 405, "MethodNotAllowed")

    def test_unknown_route(self, client):
        assert_error(client.get("/nothing-here"), 404, "ResourceNotFound")
