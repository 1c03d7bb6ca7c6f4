"""
Integration tests for the HTTP flow against a real database.

Wires the application with configure_state() on the test pool, replaces
the notifier with a recorder, and drives registration, login and the
product catalogue through the API.
Requires PostgreSQL to be running (via docker-compose).
"""

import pytest
from fastapi.testclient import TestClient
from psycopg_pool import ConnectionPool

from handinhand.api.main import configure_state, create_app
from handinhand.config.settings import Settings
from tests.fakes import RecordingNotifier

pytestmark = pytest.mark.integration


@pytest.fixture
def client(pool: ConnectionPool, notifier: RecordingNotifier) -> TestClient:
    """Create test client with real database connection."""
    settings = Settings(_env_file=None, environment="development", bcrypt_cost=4)
    app = create_app(settings)
    configure_state(app, settings, pool)
    app.state.registration_service.notifier = notifier
    return TestClient(app)


class TestHttpFlow:
    def test_register_login_publish(self, client: TestClient, notifier: RecordingNotifier) -> None:
        sent = client.post(
            "/enviar-codigo", json={"email": "prod@example.com", "nombre": "Productor", "password": "secreto"}
        )
        assert sent.status_code == 200

        verified = client.post("/verificar-codigo", json={"codigoIngresado": notifier.last_code})
        assert verified.status_code == 200
        user_id = verified.json()["userId"]

        assert client.get("/session").json()["user"]["id"] == user_id

        created = client.post(
            "/productos",
            json={
                "nombre": "Miel",
                "descripcion": "Miel de abeja",
                "precio": "12.50",
                "imagen_url": "https://example.com/miel.jpg",
            },
        )
        assert created.status_code == 201

        listing = client.get("/productos").json()["productos"]
        assert listing[0]["id_productor"] == user_id
        assert listing[0]["precio"] == "12.50"

        assert client.post("/logout").status_code == 200
        assert client.get("/session").status_code == 401

        logged_in = client.post("/login", json={"email": "prod@example.com", "password": "secreto"})
        assert logged_in.status_code == 200
        assert logged_in.json()["user"]["id"] == user_id

    def test_duplicate_registration_returns_409(self, client: TestClient, notifier: RecordingNotifier) -> None:
        body = {"email": "ana@example.com", "nombre": "Ana", "password": "secreto"}
        client.post("/enviar-codigo", json=body)
        client.post("/verificar-codigo", json={"codigoIngresado": notifier.last_code})

        response = TestClient(client.app).post("/enviar-codigo", json=body)

        assert response.status_code == 409

    def test_health_reports_connected_database(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["db"] == "connected"
