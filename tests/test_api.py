# tests/test_api.py

from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient

from piercerhub.crud import notification as crud_notification
from piercerhub.services import appointment_notification
from piercerhub.services import subscription as subscription_service
from piercerhub.services import team as team_service
from tests.constants import MEMBER_ID, OWNER_ID

pytestmark = pytest.mark.asyncio


async def test_health(client: AsyncClient):
    response = await client.get("/api/v1/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


async def test_requests_without_token_are_rejected(client: AsyncClient):
    response = await client.get("/api/v1/me/context")

    assert response.status_code in (401, 403)


async def test_invalid_token_is_rejected(client: AsyncClient):
    response = await client.get("/api/v1/me/context", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401


async def test_member_context_points_to_owner(client: AsyncClient, member_headers: dict, team_member):
    response = await client.get("/api/v1/me/context", headers=member_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["is_team_member"] is True
    assert data["owner_user_id"] == OWNER_ID
    assert data["member_name"] == "Ana Recepção"


async def test_loyalty_requires_active_subscription(client: AsyncClient, owner_headers: dict):
    response = await client.get("/api/v1/loyalty/plans", headers=owner_headers)

    assert response.status_code == 402


async def test_member_sees_owner_plans(
    client: AsyncClient, member_headers: dict, team_member, owner_subscription, visits_plan
):
    response = await client.get("/api/v1/loyalty/plans", headers=member_headers)

    assert response.status_code == 200
    assert [p["name"] for p in response.json()] == ["Plan A"]


async def test_member_without_clients_permission_is_denied(
    client: AsyncClient, member_headers: dict, team_member, owner_subscription, db_session
):
    team_member.permissions = {**team_member.permissions, "clients": False}
    db_session.commit()

    response = await client.get("/api/v1/loyalty/plans", headers=member_headers)

    assert response.status_code == 403
    assert response.json()["detail"] == "Você não tem permissão para acessar esta página"


async def test_enroll_and_duplicate(
    client: AsyncClient, owner_headers: dict, owner_subscription, studio_client, visits_plan
):
    payload = {"client_id": studio_client.id, "plan_id": visits_plan.id}

    first = await client.post("/api/v1/loyalty/enrollments", json=payload, headers=owner_headers)
    second = await client.post("/api/v1/loyalty/enrollments", json=payload, headers=owner_headers)

    assert first.status_code == 201
    assert first.json()["points"] == 0
    assert second.status_code == 409
    assert second.json()["detail"] == "Cliente já está matriculado neste plano"


async def test_points_and_best_discount(
    client: AsyncClient, member_headers: dict, team_member, owner_subscription, enrollment, points_plan, db_session
):
    await client.post(
        "/api/v1/loyalty/enrollments",
        json={"client_id": enrollment.client_id, "plan_id": points_plan.id},
        headers=member_headers,
    )

    points = await client.post(
        f"/api/v1/loyalty/clients/{enrollment.client_id}/points",
        json={"points": 100, "amount_spent": "50.00"},
        headers=member_headers,
    )
    assert points.status_code == 200
    assert len(points.json()) == 2

    best = await client.get(
        f"/api/v1/loyalty/clients/{enrollment.client_id}/best-discount", headers=member_headers
    )
    assert best.status_code == 200
    assert best.json()["discount"] == 20
    assert best.json()["plan_name"] == "Plan B"


async def test_best_discount_is_null_when_nothing_applies(
    client: AsyncClient, owner_headers: dict, owner_subscription, studio_client
):
    response = await client.get(
        f"/api/v1/loyalty/clients/{studio_client.id}/best-discount", headers=owner_headers
    )

    assert response.status_code == 200
    assert response.json() is None


async def test_redeem_and_history(client: AsyncClient, owner_headers: dict, owner_subscription, enrollment):
    redeem = await client.post(
        f"/api/v1/loyalty/enrollments/{enrollment.id}/redeem",
        json={"reward_type": "discount", "reward_value": "10"},
        headers=owner_headers,
    )
    history = await client.get(f"/api/v1/loyalty/enrollments/{enrollment.id}/history", headers=owner_headers)
    status = await client.get(f"/api/v1/loyalty/enrollments/{enrollment.id}/status", headers=owner_headers)

    assert redeem.status_code == 201
    assert len(history.json()) == 1
    assert status.json()["enrollment"]["rewards_claimed"] == 1
    assert status.json()["eligibility"]["eligible"] is True


async def test_unknown_enrollment_returns_404(client: AsyncClient, owner_headers: dict, owner_subscription):
    response = await client.get("/api/v1/loyalty/enrollments/999/status", headers=owner_headers)

    assert response.status_code == 404


async def test_team_routes_are_owner_only(
    client: AsyncClient, member_headers: dict, team_member, owner_subscription
):
    response = await client.get("/api/v1/team/members", headers=member_headers)

    assert response.status_code == 403


async def test_owner_invites_member(client: AsyncClient, owner_headers: dict, owner_subscription, mocker):
    mocker.patch.object(
        team_service.functions_client, "invoke",
        new_callable=AsyncMock, return_value={"userId": "invited-id"},
    )

    response = await client.post(
        "/api/v1/team/members",
        json={"name": "João", "email": "joao@studio.test", "password": "segredo123"},
        headers=owner_headers,
    )

    assert response.status_code == 201
    data = response.json()
    assert data["member_user_id"] == "invited-id"
    assert data["permissions"]["pos"] is True
    assert data["permissions"]["reports"] is False


async def test_deactivated_member_falls_back_to_own_scope(
    client: AsyncClient, owner_headers: dict, member_headers: dict, team_member, owner_subscription
):
    response = await client.put(
        f"/api/v1/team/members/{team_member.id}/status", json={"is_active": False}, headers=owner_headers
    )
    assert response.status_code == 200

    context = await client.get("/api/v1/me/context", headers=member_headers)
    assert context.json()["owner_user_id"] == MEMBER_ID


async def test_notifications_read_flow(client: AsyncClient, owner_headers: dict, owner_subscription, db_session):
    notification = crud_notification.create_notification(db_session, user_id=OWNER_ID, type="info", title="Olá")

    listing = await client.get("/api/v1/notifications?unread_only=true", headers=owner_headers)
    assert listing.json()["total_items"] == 1

    read = await client.post(f"/api/v1/notifications/{notification.id}/read", headers=owner_headers)
    assert read.status_code == 204

    listing = await client.get("/api/v1/notifications?unread_only=true", headers=owner_headers)
    assert listing.json()["total_items"] == 0

    missing = await client.post("/api/v1/notifications/999/read", headers=owner_headers)
    assert missing.status_code == 404


async def test_subscription_summary(client: AsyncClient, owner_headers: dict, owner_subscription):
    response = await client.get("/api/v1/me/subscription", headers=owner_headers)

    assert response.status_code == 200
    assert response.json()["has_active_access"] is True
    assert response.json()["is_trial"] is True


async def test_new_owner_gets_trial_after_subscription_check(
    client: AsyncClient, owner_headers: dict, mocker
):
    mocker.patch.object(
        subscription_service.stripe_billing, "find_customer_by_email", new_callable=AsyncMock, return_value=None
    )

    blocked = await client.get("/api/v1/loyalty/plans", headers=owner_headers)
    check = await client.post("/api/v1/me/subscription/check", headers=owner_headers)
    summary = await client.get("/api/v1/me/subscription", headers=owner_headers)
    plans = await client.get("/api/v1/loyalty/plans", headers=owner_headers)

    assert blocked.status_code == 402
    assert check.status_code == 200
    assert check.json()["status"] == "no_customer"
    assert check.json()["trial_active"] is True
    assert summary.json()["has_active_access"] is True
    assert summary.json()["subscription"]["trial_end_date"] is not None
    assert plans.status_code == 200
    assert plans.json() == []


async def test_permission_patches_keep_revoked_flags(
    client: AsyncClient, owner_headers: dict, team_member, owner_subscription
):
    url = f"/api/v1/team/members/{team_member.id}"

    first = await client.patch(url, json={"permissions": {"pos": False}}, headers=owner_headers)
    second = await client.patch(url, json={"permissions": {"reports": True}}, headers=owner_headers)

    assert first.status_code == 200
    assert second.status_code == 200
    permissions = second.json()["permissions"]
    assert permissions["pos"] is False
    assert permissions["reports"] is True
    assert permissions["clients"] is True


async def test_appointment_dispatch_copies_signed_in_piercer(
    client: AsyncClient, owner_headers: dict, owner_subscription, mocker
):
    invoke = mocker.patch.object(
        appointment_notification.functions_client, "invoke",
        new_callable=AsyncMock, return_value={"id": "email-1"},
    )
    payload = {
        "appointment_id": "apt-9",
        "client_email": "maria@example.com",
        "client_name": "Maria",
        "service": "Piercing de hélix",
        "start_time": "2024-01-15T10:00:00-03:00",
        "end_time": "2024-01-15T11:00:00-03:00",
    }

    response = await client.post("/api/v1/notifications/appointment", json=payload, headers=owner_headers)

    assert response.status_code == 200
    assert response.json() == {"success": True, "id": "email-1"}
    _, sent = invoke.await_args.args
    assert sent["piercer_email"] == "owner@studio.test"
