# tests/conftest.py

from dataclasses import dataclass
from typing import Callable, Dict, Optional
from uuid import UUID

import pytest
from fastapi.testclient import TestClient

import deps.auth as deps_auth
import routes.requests as request_routes
from app.requests import repository
from app.requests.model import EquipmentStatus, MaintenanceRequest
from app.requests.state_machine import RequestStatus
from main import create_app
from security import create_access_token
from services import audit_log
from services.roles import Actor, Role
from tests.memory_store import MemoryStore


@dataclass
class World:
    admin: Actor
    manager: Actor
    tech: Actor
    tech2: Actor
    outsider: Actor
    requester: Actor
    other_requester: Actor
    team_id: UUID
    other_team_id: UUID
    equipment_id: UUID
    unteamed_equipment_id: UUID
    scrapped_equipment_id: UUID


# ---------------------------
# Store + patched collaborators
# ---------------------------

_REPOSITORY_FUNCS = (
    "get_request",
    "get_equipment",
    "get_team_members",
    "insert_request",
    "update_request",
    "mark_equipment_scrapped",
    "delete_request",
)
_AUDIT_FUNCS = ("write_request_log", "list_request_logs", "delete_request_logs")


@pytest.fixture()
def store(monkeypatch) -> MemoryStore:
    store = MemoryStore()
    for name in _REPOSITORY_FUNCS:
        monkeypatch.setattr(repository, name, getattr(store, name), raising=True)
    for name in _AUDIT_FUNCS:
        monkeypatch.setattr(audit_log, name, getattr(store, name), raising=True)

    monkeypatch.setattr(deps_auth, "get_user_role", store.get_user_role, raising=True)
    monkeypatch.setattr(deps_auth, "get_conn", store.get_conn, raising=True)
    monkeypatch.setattr(request_routes, "get_conn", store.get_conn, raising=True)
    return store


@pytest.fixture()
def world(store: MemoryStore) -> World:
    def actor(role: Role) -> Actor:
        return Actor(user_id=store.add_user(role.value), role=role)

    admin = actor(Role.ADMIN)
    manager = actor(Role.MANAGER)
    tech = actor(Role.TECHNICIAN)
    tech2 = actor(Role.TECHNICIAN)
    outsider = actor(Role.TECHNICIAN)
    requester = actor(Role.REQUESTER)
    other_requester = actor(Role.REQUESTER)

    # requester sits on the team but holds no technician capability
    team_id = store.add_team(tech.user_id, tech2.user_id, requester.user_id, leader=tech.user_id)
    other_team_id = store.add_team(outsider.user_id)

    return World(
        admin=admin,
        manager=manager,
        tech=tech,
        tech2=tech2,
        outsider=outsider,
        requester=requester,
        other_requester=other_requester,
        team_id=team_id,
        other_team_id=other_team_id,
        equipment_id=store.add_equipment(team_id=team_id),
        unteamed_equipment_id=store.add_equipment(),
        scrapped_equipment_id=store.add_equipment(team_id=team_id, status=EquipmentStatus.SCRAPPED),
    )


@pytest.fixture()
def make_request(store: MemoryStore, world: World) -> Callable[..., MaintenanceRequest]:
    def _make(status: RequestStatus = RequestStatus.NEW, **fields) -> MaintenanceRequest:
        fields.setdefault("equipment_id", world.equipment_id)
        fields.setdefault("created_by_id", world.requester.user_id)
        return store.seed_request(status=status, **fields)

    return _make


# ---------------------------
# Client + Auth Helpers
# ---------------------------

@pytest.fixture()
def client(store: MemoryStore) -> TestClient:
    # Needed so tests can assert 500s instead of pytest re-raising server exceptions
    return TestClient(create_app(), raise_server_exceptions=False)


def _auth_headers(actor: Actor, request_id: Optional[str] = None) -> Dict[str, str]:
    h = {"Authorization": f"Bearer {create_access_token(sub=str(actor.user_id))}"}
    if request_id:
        h["X-Request-ID"] = request_id
    return h
