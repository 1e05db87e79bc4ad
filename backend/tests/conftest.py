# tests/conftest.py
import os

# Settings são carregadas no import de maturador.core.config: definir o ambiente antes
os.environ.update({
    "PROJECT_NAME": "OX Maturador Test",
    "API_V1_STR": "/api/v1",
    "LOG_LEVEL": "DEBUG",
    "MONGODB_URI": "mongodb://localhost:27017/ox_maturador_test",
    "REDIS_URL": "redis://localhost:6379/1",
    "SECRET_KEY": "test-secret-key",
    "ALGORITHM": "HS256",
    "API_KEY": "test-provisioning-key",
    "EVOLUTION_API_KEY": "test-evolution-key",
    "OPENAI_API_KEY": "sk-test-openai",
    "ANTHROPIC_API_KEY": "sk-ant-test",
    "GOOGLE_API_KEY": "google-test-key",
})

import random
from typing import AsyncGenerator, Callable, List

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from mongomock_motor import AsyncMongoMockClient

from maturador.core.database import get_database
from maturador.core.security import create_access_token, get_password_hash
from maturador.modules.users.models import UserCreateInternal, UserInDB
from maturador.modules.users.repository import UserRepository
from maturador.modules.integrations.models import EvolutionSettingsUpdateInternal
from maturador.modules.integrations.repository import EvolutionSettingsRepository

USER_PASSWORD = "secret123"

class ScriptedRandom(random.Random):
    """random() devolve os valores dados em ordem (depois, 0.0)."""

    def __init__(self, values: List[float] = ()):
        super().__init__(1234)
        self.values = list(values)

    def random(self) -> float:
        return self.values.pop(0) if self.values else 0.0

    # mantém randrange() no gerador semeado, sem consumir os valores roteirizados
    def getrandbits(self, k: int) -> int:
        return super().getrandbits(k)

@pytest.fixture
def scripted_random() -> Callable[..., ScriptedRandom]:
    return lambda *values: ScriptedRandom(list(values))

@pytest_asyncio.fixture(scope="function")
async def db_client():
    client = AsyncMongoMockClient()
    yield client[f"test_db_{os.urandom(4).hex()}"]

@pytest.fixture
def app(db_client):
    from maturador.main import app as fastapi_app

    async def override_get_database():
        return db_client

    fastapi_app.dependency_overrides[get_database] = override_get_database
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()

@pytest_asyncio.fixture(scope="function")
async def test_client(app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        yield client

async def _make_user(db, email: str = "owner@oxmaturador.com", chips_limite: int = 5, status: str = "ativo") -> UserInDB:
    repo = UserRepository(db)
    return await repo.create(UserCreateInternal(
        nome="Owner",
        email=email,
        senha_hash=get_password_hash(USER_PASSWORD),
        chips_limite=chips_limite,
        status=status,
    ))

def auth_headers(user: UserInDB) -> dict:
    token = create_access_token({"sub": user.email, "uid": str(user.id)})
    return {"Authorization": f"Bearer {token}"}

@pytest_asyncio.fixture(scope="function")
async def test_user(db_client) -> UserInDB:
    return await _make_user(db_client)

@pytest_asyncio.fixture(scope="function")
async def authenticated_client(app, test_user) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://testserver", headers=auth_headers(test_user)
    ) as client:
        yield client

@pytest_asyncio.fixture(scope="function")
async def evolution_ready(db_client, test_user):
    """Evolution configurada e testada para o usuário de teste."""
    return await EvolutionSettingsRepository(db_client).upsert_for_user(
        test_user.id,
        EvolutionSettingsUpdateInternal(endpoint="https://evo.test", status="connected"),
    )

@pytest.fixture
def user_factory(db_client):
    """Cria usuários extras: `user, headers = await user_factory("x@oxmaturador.com")`."""
    async def factory(email: str, chips_limite: int = 5, status: str = "ativo"):
        user = await _make_user(db_client, email=email, chips_limite=chips_limite, status=status)
        return user, auth_headers(user)
    return factory
