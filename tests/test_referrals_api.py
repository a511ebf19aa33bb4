import uuid

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_validate_referral_code(client: AsyncClient, make_user) -> None:
    await make_user(name="Acme College", role="institute", referral_code="ACME6X", college="Acme")

    response = await client.get("/api/v1/referrals/validate/acme6x")
    assert response.status_code == 200
    data = response.json()
    assert data["valid"] is True
    assert data["referrer"]["name"] == "Acme College"
    assert data["referrer"]["role"] == "institute"

    response = await client.get("/api/v1/referrals/validate/NOPE99")
    assert response.status_code == 200
    assert response.json() == {"valid": False, "message": "Invalid referral code", "referrer": None}


@pytest.mark.asyncio
async def test_my_code_and_referred_users(client: AsyncClient, make_user, auth_headers) -> None:
    institute = await make_user(name="Acme College", role="institute", referral_code="ACME6X")
    for name, email in (("Aman", "aman@example.com"), ("Neha", "neha@example.com")):
        response = await client.post(
            "/api/v1/auth/signup",
            json={"name": name, "email": email, "referrer_code_used": "ACME6X"},
        )
        assert response.status_code == 201

    response = await client.get("/api/v1/referrals/my-code", headers=auth_headers(institute))
    assert response.status_code == 200
    assert response.json() == {"referral_code": "ACME6X", "referrals_count": 2}

    response = await client.get("/api/v1/referrals/referred-users", headers=auth_headers(institute))
    assert response.status_code == 200
    data = response.json()
    assert data["count"] == 2
    assert {u["email"] for u in data["data"]} == {"aman@example.com", "neha@example.com"}
    assert all(u["referrer_code_used"] == "ACME6X" for u in data["data"])


@pytest.mark.asyncio
async def test_referred_users_forbidden_for_students(client: AsyncClient, make_user, auth_headers) -> None:
    student = await make_user()
    response = await client.get("/api/v1/referrals/referred-users", headers=auth_headers(student))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_my_referrer(client: AsyncClient, make_user, auth_headers) -> None:
    institute = await make_user(name="Acme College", role="institute", referral_code="ACME6X")
    referred = await make_user(referred_by_id=institute.id, referrer_code_used="ACME6X")
    loner = await make_user()

    response = await client.get("/api/v1/referrals/my-referrer", headers=auth_headers(referred))
    assert response.status_code == 200
    assert response.json()["id"] == str(institute.id)

    response = await client.get("/api/v1/referrals/my-referrer", headers=auth_headers(loner))
    assert response.status_code == 200
    assert response.json() is None


@pytest.mark.asyncio
async def test_admin_routes_require_admin(client: AsyncClient, make_user, auth_headers) -> None:
    student = await make_user()
    institute = await make_user(role="institute", referral_code="ACME6X")

    assert (await client.get("/api/v1/admin/users")).status_code == 401
    for user in (student, institute):
        response = await client.get("/api/v1/admin/users", headers=auth_headers(user))
        assert response.status_code == 403
        response = await client.put(
            f"/api/v1/admin/users/{student.id}/promote-to-institute", headers=auth_headers(user)
        )
        assert response.status_code == 403


@pytest.mark.asyncio
async def test_role_comes_from_database_not_token(client: AsyncClient, make_user, auth_headers) -> None:
    """A token issued before a promotion carries the new role on the next request."""
    admin = await make_user(role="admin")
    user = await make_user()
    headers = auth_headers(user)

    assert (await client.get("/api/v1/admin/users", headers=headers)).status_code == 403
    response = await client.put(f"/api/v1/admin/users/{user.id}/promote", headers=auth_headers(admin))
    assert response.status_code == 200
    assert (await client.get("/api/v1/admin/users", headers=headers)).status_code == 200


@pytest.mark.asyncio
async def test_admin_promote_to_institute(client: AsyncClient, make_user, auth_headers) -> None:
    admin = await make_user(role="admin")
    student = await make_user(name="Delta Coaching")
    other = await make_user(name="Echo Classes")

    response = await client.put(
        f"/api/v1/admin/users/{student.id}/promote-to-institute",
        json={"custom_referral_code": "delta1"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 200
    assert response.json()["role"] == "institute"
    assert response.json()["referral_code"] == "DELTA1"

    response = await client.put(
        f"/api/v1/admin/users/{other.id}/promote-to-institute",
        json={"custom_referral_code": "DELTA1"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 409

    response = await client.put(
        f"/api/v1/admin/users/{other.id}/promote-to-institute",
        json={"custom_referral_code": "EC"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 400

    # No body: code is generated
    response = await client.put(
        f"/api/v1/admin/users/{other.id}/promote-to-institute",
        headers=auth_headers(admin),
    )
    assert response.status_code == 200
    assert len(response.json()["referral_code"]) == 6

    # Already an institute
    response = await client.put(
        f"/api/v1/admin/users/{other.id}/promote-to-institute",
        headers=auth_headers(admin),
    )
    assert response.status_code == 400

    response = await client.put(
        f"/api/v1/admin/users/{uuid.uuid4()}/promote-to-institute",
        headers=auth_headers(admin),
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_admin_create_and_list_institutes(client: AsyncClient, make_user, auth_headers) -> None:
    admin = await make_user(role="admin")

    response = await client.post(
        "/api/v1/admin/institutes",
        json={"name": "Acme College", "mobile": "9876543210", "custom_referral_code": "ACME6X"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 201
    institute = response.json()
    assert institute["role"] == "institute"
    assert institute["referral_code"] == "ACME6X"

    response = await client.post(
        "/api/v1/admin/institutes",
        json={"name": "No Mobile"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 422

    await client.post(
        "/api/v1/auth/signup",
        json={"name": "Aman", "email": "aman@example.com", "referrer_code_used": "ACME6X"},
    )

    response = await client.get("/api/v1/admin/institutes", headers=auth_headers(admin))
    assert response.status_code == 200
    [summary] = response.json()
    assert summary["id"] == institute["id"]
    assert summary["referral_count"] == 1

    response = await client.get("/api/v1/admin/users-by-referral/acme6x", headers=auth_headers(admin))
    assert response.status_code == 200
    data = response.json()
    assert data["institute"]["id"] == institute["id"]
    assert data["count"] == 1
    assert data["users"][0]["email"] == "aman@example.com"

    response = await client.get("/api/v1/admin/users-by-referral/NOPE99", headers=auth_headers(admin))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_admin_list_and_get_users(client: AsyncClient, make_user, auth_headers) -> None:
    admin = await make_user(role="admin")
    student = await make_user()
    await make_user(role="institute", referral_code="ACME6X")

    response = await client.get("/api/v1/admin/users", headers=auth_headers(admin))
    assert response.status_code == 200
    assert len(response.json()) == 3

    response = await client.get("/api/v1/admin/users", params={"role": "student"}, headers=auth_headers(admin))
    assert [u["id"] for u in response.json()] == [str(student.id)]

    response = await client.get(f"/api/v1/admin/users/{student.id}", headers=auth_headers(admin))
    assert response.status_code == 200
    assert response.json()["email"] == student.email

    response = await client.get(f"/api/v1/admin/users/{uuid.uuid4()}", headers=auth_headers(admin))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_admin_create_admin(client: AsyncClient, make_user, auth_headers) -> None:
    admin = await make_user(role="admin")

    payload = {"name": "Ops", "email": "ops@example.com", "password": "StrongPass123"}
    response = await client.post("/api/v1/admin/admins", json=payload, headers=auth_headers(admin))
    assert response.status_code == 201
    assert response.json()["role"] == "admin"

    response = await client.post("/api/v1/admin/admins", json=payload, headers=auth_headers(admin))
    assert response.status_code == 409


async def _two_institutes_with_referrals(make_user):
    acme = await make_user(name="Acme College", role="institute", referral_code="ACME6X")
    beta = await make_user(name="Beta Classes", role="institute", referral_code="BETA42")
    for _ in range(2):
        await make_user(referred_by_id=acme.id, referrer_code_used="ACME6X")
    await make_user(referred_by_id=beta.id, referrer_code_used="BETA42")
    await make_user()
    return acme, beta


@pytest.mark.asyncio
async def test_referral_pairs_scoped_by_role(client: AsyncClient, make_user, auth_headers) -> None:
    _, beta = await _two_institutes_with_referrals(make_user)
    admin = await make_user(role="admin")
    student = await make_user()

    response = await client.get("/api/v1/referrals", headers=auth_headers(admin))
    assert response.status_code == 200
    data = response.json()
    assert data["count"] == 3
    assert sorted(p["referrer"]["name"] for p in data["data"]) == ["Acme College", "Acme College", "Beta Classes"]

    response = await client.get("/api/v1/referrals", headers=auth_headers(beta))
    assert response.status_code == 200
    data = response.json()
    assert data["count"] == 1
    assert data["data"][0]["referrer"]["id"] == str(beta.id)
    assert data["data"][0]["referred"]["referrer_code_used"] == "BETA42"

    response = await client.get("/api/v1/referrals", headers=auth_headers(student))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_admin_lists_all_referrals(client: AsyncClient, make_user, auth_headers) -> None:
    acme, _ = await _two_institutes_with_referrals(make_user)
    admin = await make_user(role="admin")

    response = await client.get("/api/v1/admin/referrals", headers=auth_headers(admin))
    assert response.status_code == 200
    data = response.json()
    assert data["count"] == 3
    assert all(p["referred_at"] for p in data["data"])

    response = await client.get("/api/v1/admin/referrals", headers=auth_headers(acme))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_admin_referral_stats(client: AsyncClient, make_user, auth_headers) -> None:
    admin = await make_user(role="admin")

    response = await client.get("/api/v1/admin/referral-stats", headers=auth_headers(admin))
    assert response.status_code == 200
    assert response.json() == {"total_referrals": 0, "top_referrers": []}

    acme, beta = await _two_institutes_with_referrals(make_user)

    response = await client.get("/api/v1/admin/referral-stats", headers=auth_headers(admin))
    assert response.status_code == 200
    data = response.json()
    assert data["total_referrals"] == 3
    assert [(r["id"], r["referral_count"]) for r in data["top_referrers"]] == [
        (str(acme.id), 2),
        (str(beta.id), 1),
    ]
    assert data["top_referrers"][0]["referral_code"] == "ACME6X"

    response = await client.get(
        "/api/v1/admin/referral-stats", params={"limit": 1}, headers=auth_headers(admin)
    )
    assert len(response.json()["top_referrers"]) == 1
