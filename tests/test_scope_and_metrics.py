import pytest


@pytest.mark.asyncio
async def test_scope_lookups(client, make_user, headers_for):
    headers = headers_for(await make_user())

    res = await client.get("/api/scope/colleges", headers=headers)
    assert res.status_code == 200
    colleges = {c["name"]: c for c in res.json()}
    assert colleges["SRMIST RAMAPURAM"]["has_institutes"] is True
    assert colleges["EASWARI ENGINEERING COLLEGE"]["has_institutes"] is False
    assert colleges["SRM TRICHY"]["email_domain"] == "srmtrichy.edu.in"

    res = await client.get("/api/scope/institutes", params={"college": "EASWARI ENGINEERING COLLEGE"}, headers=headers)
    assert res.json() == ["N/A"]

    res = await client.get(
        "/api/scope/departments",
        params={"college": "SRM TRICHY", "institute": "SRM RESEARCH"},
        headers=headers,
    )
    assert res.json() == ["Trichy Research"]

    res = await client.get("/api/scope/departments", params={"college": "Unknown"}, headers=headers)
    assert res.json() == ["N/A"]


@pytest.mark.asyncio
async def test_scope_requires_login(client):
    res = await client.get("/api/scope/colleges")
    assert res.status_code in (401, 403)


@pytest.mark.asyncio
async def test_root_and_metrics(client):
    res = await client.get("/")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"

    res = await client.get("/api/metrics")
    assert res.status_code == 200
    assert res.json()["database"] == "Connected"

    res = await client.get("/api/metrics/health")
    assert res.status_code == 200
    assert res.json()["database"] == "Connected"


@pytest.mark.asyncio
async def test_dashboard_stats_scoped_to_campus(client, super_admin, campus_admin, make_user, headers_for):
    await make_user(college="SRM TRICHY", institute="Science and Humanities", department="Physics")

    res = await client.get("/api/metrics/dashboard-stats", headers=headers_for(super_admin))
    assert res.status_code == 200
    assert res.json()["metrics"]["total_users"] == 3

    res = await client.get("/api/metrics/dashboard-stats", headers=headers_for(campus_admin))
    assert res.json()["metrics"]["users_by_role"] == {"campus_admin": 1}
