"""Integration-style tests exercising the favorites routes with in-memory backends."""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from lifehacks.main import app
from lifehacks.services.favorites import (
    AuthenticationRequiredError,
    FavoritesController,
    LocalFavoritesStore,
)
from lifehacks.services.favorites_service import (
    FavoritesService,
    FavoritesSessionRegistry,
    get_favorites_service,
)
from lifehacks.storage import InMemoryKeyValueStore
from tests.conftest import (
    FakeMutations,
    FakeRemoteQuery,
    FakeTipLookup,
    make_tip,
    paged_responder,
)

VISITOR = {"X-Visitor-Id": "visitor-1"}
SIGNED_IN = {**VISITOR, "Authorization": "Bearer token-1"}


class Backends:
    """Shared fakes wired into every controller the registry builds."""

    def __init__(self) -> None:
        self.storage: dict[str, str] = {}
        self.remote = FakeRemoteQuery(
            paged_responder([make_tip(f"t{index}") for index in range(1, 16)])
        )
        self.mutations = FakeMutations()
        self.tip_lookup = FakeTipLookup(
            {f"t{index}": make_tip(f"t{index}") for index in range(1, 8)}
        )

    async def build(self, visitor_id: str) -> FavoritesController:
        return FavoritesController(
            local_store=LocalFavoritesStore(
                InMemoryKeyValueStore(self.storage, namespace=visitor_id)
            ),
            remote_client=self.remote,
            mutations=self.mutations,
            tip_lookup=self.tip_lookup,
        )


@pytest.fixture
def backends() -> Backends:
    return Backends()


@pytest_asyncio.fixture
async def client(backends: Backends) -> AsyncIterator[AsyncClient]:
    registry = FavoritesSessionRegistry(backends.build, max_sessions=10)

    async def _service() -> FavoritesService:
        return FavoritesService(registry)

    app.dependency_overrides[get_favorites_service] = _service
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client
    app.dependency_overrides.pop(get_favorites_service, None)


@pytest.mark.asyncio
async def test_health(client: AsyncClient) -> None:
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert response.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_anonymous_add_then_view(client: AsyncClient) -> None:
    for tip_id in ("t1", "t2", "t3"):
        response = await client.put(f"/favorites/{tip_id}", headers=VISITOR)
        assert response.status_code == 204

    response = await client.get("/favorites", headers=VISITOR)

    assert response.status_code == 200
    payload = response.json()
    assert payload["state"] == "anonymous_loaded"
    assert payload["isAnonymous"] is True
    assert [item["id"] for item in payload["items"]] == ["t1", "t2", "t3"]
    assert payload["totalPages"] == 1
    assert payload["hasMore"] is False
    assert payload["anonymousLimit"] == 5


@pytest.mark.asyncio
async def test_anonymous_limit_returns_conflict(client: AsyncClient) -> None:
    for index in range(1, 6):
        await client.put(f"/favorites/t{index}", headers=VISITOR)

    response = await client.put("/favorites/t6", headers=VISITOR)

    assert response.status_code == 409
    body = response.json()
    assert body["error_type"] == "conflict"
    assert "Sign up for unlimited favorites" in body["message"]


@pytest.mark.asyncio
async def test_authenticated_view_and_load_more(
    client: AsyncClient, backends: Backends
) -> None:
    response = await client.get(
        "/favorites?q=garlic&sortBy=alphabetical&page=2", headers=SIGNED_IN
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["state"] == "authenticated_loaded"
    assert payload["isAnonymous"] is False
    assert len(payload["items"]) == 10
    assert payload["currentPage"] == 1
    assert payload["hasMore"] is True
    assert payload["query"] == "q=garlic&sortBy=alphabetical"
    assert payload["filters"]["sortOption"] == "alphabetical"
    assert backends.remote.calls[0][0].page_number == 1

    response = await client.post(
        "/favorites/load-more?q=garlic&sortBy=alphabetical", headers=SIGNED_IN
    )

    payload = response.json()
    assert len(payload["items"]) == 15
    assert payload["currentPage"] == 2
    assert payload["hasMore"] is False
    assert payload["query"] == "q=garlic&sortBy=alphabetical&page=2"
    assert len(backends.remote.calls) == 2


@pytest.mark.asyncio
async def test_authenticated_load_error_is_rendered_in_view(
    client: AsyncClient, backends: Backends
) -> None:
    backends.remote.error = AuthenticationRequiredError(
        "Your session has expired. Please sign in again.", status_code=401
    )

    response = await client.get("/favorites", headers=SIGNED_IN)

    assert response.status_code == 200
    payload = response.json()
    assert payload["state"] == "error"
    assert payload["items"] == []
    assert payload["error"]["requiresReauthentication"] is True


@pytest.mark.asyncio
async def test_authenticated_mutation_failure_returns_unauthorized(
    client: AsyncClient, backends: Backends
) -> None:
    backends.mutations.error = AuthenticationRequiredError(
        "Your session has expired. Please sign in again.", status_code=401
    )

    response = await client.put("/favorites/t1", headers=SIGNED_IN)

    assert response.status_code == 401
    assert response.json()["error_type"] == "authentication_error"


@pytest.mark.asyncio
async def test_status_and_delete(client: AsyncClient) -> None:
    await client.put("/favorites/t2", headers=VISITOR)

    response = await client.get("/favorites/t2/status", headers=VISITOR)
    assert response.json() == {"tipId": "t2", "isFavorite": True}

    response = await client.delete("/favorites/t2", headers=VISITOR)
    assert response.status_code == 204

    response = await client.get("/favorites/t2/status", headers=VISITOR)
    assert response.json()["isFavorite"] is False


@pytest.mark.asyncio
async def test_visitors_are_isolated(client: AsyncClient) -> None:
    await client.put("/favorites/t1", headers=VISITOR)

    response = await client.get("/favorites", headers={"X-Visitor-Id": "visitor-2"})

    assert response.json()["items"] == []


@pytest.mark.asyncio
async def test_missing_visitor_header_is_a_validation_error(client: AsyncClient) -> None:
    response = await client.get("/favorites")

    assert response.status_code == 422
    body = response.json()
    assert body["error_type"] == "validation_error"
    assert body["path"] == "/favorites"
    assert body["request_id"] == response.headers["X-Request-ID"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "raw_tip_id",
    ["%2E", "%2E%2E", "a%3Fx%3D1", "a%23frag", "a%2Fb"],
)
async def test_mutation_routes_reject_unsafe_tip_ids(
    client: AsyncClient, backends: Backends, raw_tip_id: str
) -> None:
    for method in ("PUT", "DELETE"):
        response = await client.request(
            method, f"/favorites/{raw_tip_id}", headers=SIGNED_IN
        )
        assert response.status_code in {404, 422}

    response = await client.get(f"/favorites/{raw_tip_id}/status", headers=SIGNED_IN)
    assert response.status_code in {404, 422}
    assert backends.mutations.added == []
    assert backends.mutations.removed == []


@pytest.mark.asyncio
async def test_dot_only_tip_id_is_a_validation_error(client: AsyncClient) -> None:
    response = await client.delete("/favorites/%2E%2E", headers=SIGNED_IN)

    assert response.status_code == 422
    assert response.json()["error_type"] == "validation_error"


@pytest.mark.asyncio
async def test_tip_ids_with_dots_inside_are_accepted(
    client: AsyncClient, backends: Backends
) -> None:
    response = await client.put("/favorites/tip.v2", headers=SIGNED_IN)

    assert response.status_code == 204
    assert backends.mutations.added == ["tip.v2"]
