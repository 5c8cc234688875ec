"""Pytest configuration and fixtures."""

import asyncio
import copy
import json
import re
from types import SimpleNamespace
from typing import Any, AsyncGenerator

import pytest
from bson import ObjectId
from httpx import ASGITransport, AsyncClient

from nutrivision_api.core.config import Settings, get_settings
from nutrivision_api.core.security import UserPayload, create_access_token
from nutrivision_api.db.collections import CollectionRegistry
from nutrivision_api.main import create_app
from nutrivision_api.services.vlm import ModelResponse


# =============================================================================
# In-memory Motor doubles
# =============================================================================


def _matches(doc: dict, filter: dict) -> bool:
    for key, cond in filter.items():
        value = doc.get(key)
        if isinstance(cond, dict) and "$regex" in cond:
            flags = re.IGNORECASE if "i" in cond.get("$options", "") else 0
            if not isinstance(value, str) or not re.search(cond["$regex"], value, flags):
                return False
        elif value != cond:
            return False
    return True


class FakeCursor:
    def __init__(self, docs: list[dict]):
        self._docs = docs

    def sort(self, keys: list[tuple[str, int]]) -> "FakeCursor":
        for field, direction in reversed(keys):
            self._docs.sort(key=lambda d: d.get(field), reverse=direction < 0)
        return self

    def skip(self, n: int) -> "FakeCursor":
        self._docs = self._docs[n:]
        return self

    def limit(self, n: int) -> "FakeCursor":
        self._docs = self._docs[:n]
        return self

    async def to_list(self, length: int | None = None) -> list[dict]:
        return self._docs[:length] if length else self._docs


class FakeCollection:
    """Just enough of AsyncIOMotorCollection for the repositories."""

    def __init__(self, name: str):
        self.name = name
        self.docs: list[dict] = []
        self.fail_writes = False

    async def insert_one(self, document: dict):
        if self.fail_writes:
            raise RuntimeError("simulated write failure")
        document.setdefault("_id", ObjectId())
        self.docs.append(copy.deepcopy(document))
        return SimpleNamespace(inserted_id=document["_id"])

    async def find_one(self, filter: dict):
        for doc in self.docs:
            if _matches(doc, filter):
                return copy.deepcopy(doc)
        return None

    def find(self, filter: dict) -> FakeCursor:
        return FakeCursor([copy.deepcopy(d) for d in self.docs if _matches(d, filter)])

    async def count_documents(self, filter: dict) -> int:
        return sum(1 for d in self.docs if _matches(d, filter))

    async def find_one_and_update(self, filter: dict, update: dict, return_document=None):
        for doc in self.docs:
            if _matches(doc, filter):
                doc.update(update.get("$set", {}))
                return copy.deepcopy(doc)
        return None

    async def delete_one(self, filter: dict):
        for i, doc in enumerate(self.docs):
            if _matches(doc, filter):
                del self.docs[i]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)


class FakeDatabase:
    """Indexable by collection name, like AsyncIOMotorDatabase."""

    def __init__(self):
        self.collections: dict[str, FakeCollection] = {}

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self.collections:
            self.collections[name] = FakeCollection(name)
        return self.collections[name]


# =============================================================================
# Model gateway double
# =============================================================================


class StubVLMClient:
    """Stands in for OpenRouterClient in session and route tests."""

    def __init__(
        self,
        parsed: Any = None,
        error: Exception | None = None,
        delay: float = 0,
    ):
        self.parsed = parsed
        self.error = error
        self.delay = delay
        self.calls: list[str] = []

    async def extract_nutrition_info(self, image_url: str) -> ModelResponse:
        self.calls.append(image_url)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return ModelResponse(
            parsed_content=self.parsed,
            raw_content=json.dumps(self.parsed),
            full_response={"choices": [{"message": {"content": json.dumps(self.parsed)}}]},
            elapsed_seconds=0.01,
        )

    async def chat_completion(self, messages, model=None, temperature=None) -> ModelResponse:
        self.calls.append("chat")
        if self.error is not None:
            raise self.error
        return ModelResponse(
            parsed_content=self.parsed,
            raw_content=json.dumps(self.parsed),
            full_response={},
            elapsed_seconds=0.01,
        )

    async def close(self) -> None:
        pass


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def full_label() -> dict:
    """A fully populated model answer."""
    return {
        "metadata": {"confidence_score": 0.92, "error_status": False},
        "product_details": {
            "name": "Crunchy Peanut Butter",
            "serving_size": {"amount": 32, "unit": "g", "type": "2 tbsp"},
        },
        "total_calories": 190,
        "nutrients": {
            "total_fat": {
                "amount": 16,
                "unit": "g",
                "daily_value_percentage": 21,
                "group": "fats",
                "category": "macronutrient",
                "sub_nutrients": {
                    "saturated_fat": {"amount": 3, "unit": "g"},
                    "trans_fat": {"amount": 0, "unit": "g"},
                },
            },
            "cholesterol": {"amount": 0, "unit": "mg"},
            "carbohydrates": {
                "amount": 7,
                "unit": "g",
                "sub_nutrients": {
                    "dietary_fiber": {"amount": 2, "unit": "g"},
                    "total_sugar": {"amount": 3, "unit": "g"},
                    "added_sugar": {"amount": 2, "unit": "g"},
                },
            },
            "protein": {"amount": 8, "unit": "g"},
            "sodium": {"amount": 140, "unit": "mg"},
            "calcium": {"amount": 10, "unit": "mg"},
            "iron": {"amount": 0.6, "unit": "mg"},
            "vitamins": [
                {"vitamin_type": "Vitamin D", "amount": 0, "unit": "mcg"},
                {"vitamin_type": "Vitamin E", "amount": 2.5, "unit": "mg"},
            ],
        },
        "ingredients": ["peanuts", "sugar", "salt"],
        "allergens": ["peanuts"],
    }


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        jwt_secret="test-secret",
        openrouter_api_key="test-key",
        max_analyses_per_connection=1,
    )


@pytest.fixture
def user() -> UserPayload:
    return UserPayload(uuid="3f1c9a52-user-one", email="one@example.com", user_name="one")


@pytest.fixture
def other_user() -> UserPayload:
    return UserPayload(uuid="8b2e7d10-user-two", email="two@example.com", user_name="two")


@pytest.fixture
def token(user: UserPayload, test_settings: Settings) -> str:
    return create_access_token(user, test_settings)


@pytest.fixture
def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def collections(fake_db: FakeDatabase) -> CollectionRegistry:
    return CollectionRegistry(fake_db)


@pytest.fixture
def stub_vlm():
    """Factory for gateway doubles with custom behaviour."""
    return StubVLMClient


@pytest.fixture
def vlm_client(full_label: dict) -> StubVLMClient:
    return StubVLMClient(parsed=full_label)


@pytest.fixture
def app(test_settings: Settings, collections: CollectionRegistry, vlm_client: StubVLMClient):
    """App wired to in-memory storage and the stub gateway (lifespan not run)."""
    application = create_app()
    application.state.collections = collections
    application.state.vlm_client = vlm_client
    application.dependency_overrides[get_settings] = lambda: test_settings
    return application


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """
    Create async test client.

    Usage:
        async def test_endpoint(client: AsyncClient):
            response = await client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
