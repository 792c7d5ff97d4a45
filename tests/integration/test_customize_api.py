"""Integration tests for /api/v1/customize endpoints."""

import json

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError

from src.engines.customize.hooks import SAVE, SAVE_RESPONSE
from src.engines.customize.sanitizers import strip_tags
from src.kernel.identity.nonce import NonceManager, save_action, update_action
from src.main import settings as app_settings

BASE = "/api/v1/customize"


async def fetch_nonces(client: AsyncClient, headers, **params):
    response = await client.get(f"{BASE}/nonces", headers=headers, params=params)
    assert response.status_code == 200
    return response.json()["data"]


def error_code(response) -> str:
    body = response.json()
    assert body["success"] is False
    return body["data"]["error_code"]


class TestUpdateTransaction:
    """POST /api/v1/customize/transactions/update"""

    @pytest.mark.asyncio
    async def test_update_returns_sanitized_values(self, client: AsyncClient, admin_user, auth_headers, new_uuid):
        headers = auth_headers(admin_user)
        nonces = await fetch_nonces(client, headers)

        response = await client.post(
            f"{BASE}/transactions/update",
            headers=headers,
            json={
                "customize_transaction_uuid": new_uuid,
                "nonce": nonces["update"],
                "customized": {
                    "blogname": "My <script>alert(1)</script>Site",
                    "background_color": "#nothex",
                    "nav_menu_locations[primary]": "3",
                },
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["transaction_uuid"] == new_uuid
        assert response.headers["X-Customize-Transaction"] == new_uuid
        assert response.headers["X-Request-ID"]
        assert body["data"]["transaction_settings"] == {
            "blogname": "My Site",
            "nav_menu_locations[primary]": 3,
        }
        assert list(body["data"]["rejected_settings"]) == ["background_color"]

    @pytest.mark.asyncio
    async def test_form_encoded_customized_json(self, client: AsyncClient, admin_user, auth_headers, new_uuid):
        headers = auth_headers(admin_user)
        nonces = await fetch_nonces(client, headers)

        response = await client.post(
            f"{BASE}/transactions/update",
            headers=headers,
            data={
                "customize_transaction_uuid": new_uuid,
                "nonce": nonces["update"],
                "customized": json.dumps({"blogdescription": "Just <b>another</b> site"}),
            },
        )

        assert response.status_code == 200
        assert response.json()["data"]["transaction_settings"] == {"blogdescription": "Just another site"}

    @pytest.mark.asyncio
    async def test_bad_nonce(self, client: AsyncClient, admin_user, auth_headers, new_uuid):
        response = await client.post(
            f"{BASE}/transactions/update",
            headers=auth_headers(admin_user),
            json={"customize_transaction_uuid": new_uuid, "nonce": "0000000000", "customized": {"blogname": "x"}},
        )
        assert response.status_code == 400
        assert error_code(response) == "bad_nonce"

    @pytest.mark.asyncio
    async def test_get_is_bad_method(self, client: AsyncClient, admin_user, auth_headers, new_uuid):
        headers = auth_headers(admin_user)
        nonces = await fetch_nonces(client, headers)
        response = await client.get(
            f"{BASE}/transactions/update",
            headers=headers,
            params={
                "customize_transaction_uuid": new_uuid,
                "nonce": nonces["update"],
                "customized": json.dumps({"blogname": "x"}),
            },
        )
        assert response.status_code == 405
        assert error_code(response) == "bad_method"

    @pytest.mark.asyncio
    async def test_subscriber_is_refused(self, client: AsyncClient, subscriber_user, auth_headers, new_uuid):
        nonce = NonceManager().create(update_action("meridian"), subscriber_user.id)
        response = await client.post(
            f"{BASE}/transactions/update",
            headers=auth_headers(subscriber_user),
            json={"customize_transaction_uuid": new_uuid, "nonce": nonce, "customized": {"blogname": "x"}},
        )
        assert response.status_code == 403
        assert error_code(response) == "customize_not_allowed"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("customized", [None, "not json", "[1, 2]"])
    async def test_missing_customized_json(
        self, client: AsyncClient, admin_user, auth_headers, new_uuid, customized,
    ):
        headers = auth_headers(admin_user)
        nonces = await fetch_nonces(client, headers)
        payload = {"customize_transaction_uuid": new_uuid, "nonce": nonces["update"]}
        if customized is not None:
            payload["customized"] = customized
        response = await client.post(f"{BASE}/transactions/update", headers=headers, json=payload)
        assert response.status_code == 400
        assert error_code(response) == "missing_customized_json"

    @pytest.mark.asyncio
    async def test_malformed_transaction_uuid(self, client: AsyncClient, admin_user, auth_headers):
        headers = auth_headers(admin_user)
        response = await client.post(
            f"{BASE}/transactions/update",
            headers=headers,
            json={"customize_transaction_uuid": "abc", "nonce": "x", "customized": {"blogname": "x"}},
        )
        assert response.status_code == 400
        assert error_code(response) == "invalid_customize_transaction_uuid"

    @pytest.mark.asyncio
    async def test_malformed_json_body(self, client: AsyncClient, admin_user, auth_headers):
        headers = {**auth_headers(admin_user), "Content-Type": "application/json"}
        response = await client.post(f"{BASE}/transactions/update", headers=headers, content=b"{not json")
        assert response.status_code == 400


class TestSave:
    """POST /api/v1/customize/save"""

    @pytest.mark.asyncio
    async def test_save_outside_preview(self, client: AsyncClient, admin_user, auth_headers, new_uuid):
        headers = auth_headers(admin_user)
        nonces = await fetch_nonces(client, headers)
        response = await client.post(
            f"{BASE}/save",
            headers=headers,
            json={"customize_transaction_uuid": new_uuid, "nonce": nonces["save"]},
        )
        assert response.status_code == 400
        assert error_code(response) == "not_preview"

    @pytest.mark.asyncio
    async def test_publish_then_update_is_refused(self, client: AsyncClient, admin_user, auth_headers, new_uuid):
        headers = auth_headers(admin_user)
        nonces = await fetch_nonces(client, headers)

        update = await client.post(
            f"{BASE}/transactions/update",
            headers=headers,
            json={
                "customize_transaction_uuid": new_uuid,
                "nonce": nonces["update"],
                "customized": {"blogname": "Published Title"},
            },
        )
        assert update.status_code == 200

        save = await client.post(
            f"{BASE}/save",
            headers=headers,
            json={"customize_transaction_uuid": new_uuid, "nonce": nonces["save"], "wp_customize": "on"},
        )
        assert save.status_code == 200
        assert save.json()["data"]["transaction_status"] == "publish"
        assert save.json()["data"]["transaction_settings"] == {"blogname": "Published Title"}

        again = await client.post(
            f"{BASE}/transactions/update",
            headers=headers,
            json={
                "customize_transaction_uuid": new_uuid,
                "nonce": nonces["update"],
                "customized": {"blogname": "Too Late"},
            },
        )
        assert again.status_code == 400
        assert error_code(again) == "transaction_published"

        # Published value is now the stored one, visible outside any transaction
        preview = await client.get(f"{BASE}/preview", headers=headers)
        assert preview.json()["data"]["values"]["blogname"] == "Published Title"

    @pytest.mark.asyncio
    async def test_designer_submits_for_review(
        self, client: AsyncClient, designer_user, auth_headers, new_uuid,
    ):
        headers = auth_headers(designer_user)
        update = await client.post(
            f"{BASE}/transactions/update",
            headers=headers,
            json={
                "customize_transaction_uuid": new_uuid,
                "nonce": NonceManager().create(update_action("meridian"), designer_user.id),
                "customized": {"background_color": "#102030", "blogname": "Not mine to set"},
            },
        )
        assert update.status_code == 200
        assert update.json()["data"]["transaction_settings"] == {"background_color": "102030"}

        save = await client.post(
            f"{BASE}/save",
            headers=headers,
            json={
                "customize_transaction_uuid": new_uuid,
                "nonce": NonceManager().create(save_action("meridian"), designer_user.id),
                "wp_customize": "on",
            },
        )
        assert save.status_code == 200
        assert save.json()["data"]["transaction_status"] == "pending"


class TestPreviewAndTree:
    """GET /api/v1/customize/preview and /tree"""

    @pytest.mark.asyncio
    async def test_preview_reflects_staged_values(self, client: AsyncClient, admin_user, auth_headers, new_uuid):
        headers = auth_headers(admin_user)
        nonces = await fetch_nonces(client, headers)
        await client.post(
            f"{BASE}/transactions/update",
            headers=headers,
            json={
                "customize_transaction_uuid": new_uuid,
                "nonce": nonces["update"],
                "customized": {"background_color": "#abcdef"},
            },
        )

        staged = await client.get(
            f"{BASE}/preview",
            headers=headers,
            params={"customize_transaction_uuid": new_uuid, "wp_customize": "on"},
        )
        plain = await client.get(f"{BASE}/preview", headers=headers)

        assert staged.json()["data"]["values"]["background_color"] == "#abcdef"
        assert plain.json()["data"]["values"]["background_color"] == "#ffffff"

    @pytest.mark.asyncio
    async def test_anonymous_preview_of_existing_transaction(
        self, client: AsyncClient, admin_user, auth_headers, new_uuid,
    ):
        headers = auth_headers(admin_user)
        nonces = await fetch_nonces(client, headers)
        await client.post(
            f"{BASE}/transactions/update",
            headers=headers,
            json={
                "customize_transaction_uuid": new_uuid,
                "nonce": nonces["update"],
                "customized": {"blogname": "Shared Preview"},
            },
        )

        response = await client.get(
            f"{BASE}/preview",
            params={"customize_transaction_uuid": new_uuid, "wp_customize": "on"},
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["values"]["blogname"] == "Shared Preview"
        assert data["nonce"] == {}

    @pytest.mark.asyncio
    async def test_anonymous_without_transaction(self, client: AsyncClient):
        response = await client.get(f"{BASE}/tree")
        assert response.status_code == 401
        assert error_code(response) == "unauthorized"

    @pytest.mark.asyncio
    async def test_tree_is_ordered_by_priority(self, client: AsyncClient, admin_user, auth_headers):
        response = await client.get(f"{BASE}/tree", headers=auth_headers(admin_user))
        assert response.status_code == 200
        data = response.json()["data"]

        sections = data["sections"]
        assert sections.index("title_tagline") < sections.index("colors")
        assert data["containers"][0]["id"] == "title_tagline"
        assert "color" in data["control_types"]

    @pytest.mark.asyncio
    async def test_designer_tree_hides_site_options(self, client: AsyncClient, designer_user, auth_headers):
        response = await client.get(f"{BASE}/tree", headers=auth_headers(designer_user))
        controls = response.json()["data"]["controls"]
        assert "blogname" not in controls
        assert "background_color" in controls

    @pytest.mark.asyncio
    async def test_invalid_token_is_not_treated_as_anonymous(self, client: AsyncClient):
        response = await client.get(f"{BASE}/tree", headers={"Authorization": "Bearer not-a-token"})
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_unknown_theme(self, client: AsyncClient, admin_user, auth_headers):
        response = await client.get(f"{BASE}/tree", headers=auth_headers(admin_user), params={"theme": "nope"})
        assert response.status_code == 400
        assert error_code(response) == "theme_not_allowed"


def brand_setting_resolver(setting_id):
    if setting_id.startswith("brand_"):
        return "option", {
            "capability": "edit_theme_options",
            "default": "",
            "sanitize_callback": strip_tags,
        }
    return None


class FailingSession:
    """Session whose reads fail as if the database went away."""

    async def get(self, *args, **kwargs):
        raise OperationalError("SELECT options", {}, Exception("disk I/O error"))


async def stage(client: AsyncClient, headers, transaction_uuid: str, nonces, customized):
    response = await client.post(
        f"{BASE}/transactions/update",
        headers=headers,
        json={"customize_transaction_uuid": transaction_uuid, "nonce": nonces["update"], "customized": customized},
    )
    assert response.status_code == 200
    return response


async def publish(client: AsyncClient, headers, transaction_uuid: str, nonces):
    return await client.post(
        f"{BASE}/save",
        headers=headers,
        json={"customize_transaction_uuid": transaction_uuid, "nonce": nonces["save"], "wp_customize": "on"},
    )


class TestExtensions:
    """Hooks and resolvers registered for the running service."""

    @pytest.mark.asyncio
    async def test_resolver_and_save_response_filter(
        self, client: AsyncClient, admin_user, auth_headers, new_uuid, customize_extensions,
    ):
        customize_extensions.add_resolver(brand_setting_resolver)
        customize_extensions.add_hook(
            SAVE_RESPONSE,
            lambda response, manager: {**response, "receipt": f"saved-{manager.stylesheet}"},
        )
        headers = auth_headers(admin_user)
        nonces = await fetch_nonces(client, headers)

        update = await stage(
            client, headers, new_uuid, nonces,
            {"brand_slogan": "<i>Bold</i> moves", "mystery_setting": "x"},
        )
        assert update.json()["data"]["transaction_settings"] == {"brand_slogan": "Bold moves"}

        save = await publish(client, headers, new_uuid, nonces)
        assert save.status_code == 200
        data = save.json()["data"]
        assert data["receipt"] == "saved-meridian"
        assert data["transaction_settings"] == {"brand_slogan": "Bold moves"}

    @pytest.mark.asyncio
    async def test_unregistered_ids_are_dropped_without_resolver(
        self, client: AsyncClient, admin_user, auth_headers, new_uuid, customize_extensions,
    ):
        headers = auth_headers(admin_user)
        nonces = await fetch_nonces(client, headers)
        update = await stage(client, headers, new_uuid, nonces, {"brand_slogan": "x", "blogname": "Kept"})
        assert update.json()["data"]["transaction_settings"] == {"blogname": "Kept"}


class TestServerErrors:
    """Failures past validation still answer with the error envelope."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("debug", [False, True])
    async def test_unhandled_exception_is_fatal_error(
        self, error_client: AsyncClient, admin_user, auth_headers, new_uuid,
        customize_extensions, monkeypatch, debug,
    ):
        monkeypatch.setattr(app_settings, "debug", debug)

        def explode(manager):
            raise RuntimeError("renderer exploded")

        customize_extensions.add_hook(SAVE, explode)
        headers = auth_headers(admin_user)
        nonces = await fetch_nonces(error_client, headers)
        await stage(error_client, headers, new_uuid, nonces, {"blogname": "Never published"})

        response = await publish(error_client, headers, new_uuid, nonces)
        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert body["data"]["error_code"] == "fatal_error"
        assert body["data"]["request_id"] == response.headers["X-Request-ID"]
        if debug:
            assert body["data"]["type"] == "RuntimeError"
            assert body["data"]["detail"] == "renderer exploded"
        else:
            assert "type" not in body["data"]
            assert "detail" not in body["data"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("debug", [False, True])
    async def test_option_write_failure_is_storage_error(
        self, error_client: AsyncClient, admin_user, auth_headers, new_uuid,
        customize_extensions, monkeypatch, debug,
    ):
        monkeypatch.setattr(app_settings, "debug", debug)
        customize_extensions.add_hook(SAVE, lambda manager: setattr(manager.options, "session", FailingSession()))
        headers = auth_headers(admin_user)
        nonces = await fetch_nonces(error_client, headers)
        await stage(error_client, headers, new_uuid, nonces, {"blogname": "Never published"})

        response = await publish(error_client, headers, new_uuid, nonces)
        assert response.status_code == 500
        assert error_code(response) == "storage_error"
        assert ("message" in response.json()["data"]) is debug

        # Nothing was published: the stored title is unchanged and the transaction is still editable
        preview = await error_client.get(f"{BASE}/preview", headers=headers)
        assert preview.json()["data"]["values"]["blogname"] == ""
        await stage(error_client, headers, new_uuid, nonces, {"blogname": "Second try"})


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"
