import pytest
import pytest_asyncio

from app.models.user import UserRole


def paper(**overrides):
    payload = {
        "kind": "journal_paper",
        "title": "Graph Neural Networks for Crop Yield",
        "year": 2024,
        "doi": "10.1000/gnn.2024.01",
        "details": {"journal": "Journal of Applied AI", "q_rating": "Q1"},
    }
    payload.update(overrides)
    return payload


@pytest_asyncio.fixture
async def author(make_user):
    async def _author(**kwargs):
        kwargs.setdefault("scopus_id", "57200000001")
        return await make_user(**kwargs)
    return _author


@pytest.mark.asyncio
async def test_upload_requires_author_id(client, make_user, headers_for):
    faculty = await make_user()
    res = await client.post("/api/publications/", json=paper(), headers=headers_for(faculty))
    assert res.status_code == 403
    assert res.json()["detail"]["settings_url"] == "/api/settings/author-ids"


@pytest.mark.asyncio
async def test_upload_sets_owner_and_scope_from_account(client, author, headers_for):
    faculty = await author(faculty_id="FAC-UP-1", department="Civil")
    res = await client.post(
        "/api/publications/",
        json=paper(faculty_id="SOMEONE-ELSE"),
        headers=headers_for(faculty),
    )
    assert res.status_code == 201

    body = res.json()
    assert body["faculty_id"] == "FAC-UP-1"
    assert body["department"] == "Civil"
    assert body["is_owner"] is True
    assert body["badge"] == "Your Paper"


@pytest.mark.asyncio
async def test_duplicate_doi_conflicts(client, author, headers_for):
    faculty = await author()
    headers = headers_for(faculty)

    assert (await client.post("/api/publications/", json=paper(), headers=headers)).status_code == 201
    res = await client.post("/api/publications/", json=paper(title="Another"), headers=headers)
    assert res.status_code == 409

    res = await client.get("/api/publications/doi-exists", params={"doi": "10.1000/gnn.2024.01"}, headers=headers)
    assert res.json()["exists"] is True


@pytest.mark.asyncio
async def test_super_admin_without_faculty_id_cannot_upload(client, super_admin, headers_for):
    res = await client.post("/api/publications/", json=paper(), headers=headers_for(super_admin))
    assert res.status_code == 400


@pytest.mark.asyncio
async def test_faculty_sees_only_own_publications(client, author, headers_for):
    owner = await author(faculty_id="FAC-A")
    other = await author(faculty_id="FAC-B")

    await client.post("/api/publications/", json=paper(), headers=headers_for(owner))
    await client.post("/api/publications/", json=paper(doi="10.1000/other"), headers=headers_for(other))

    res = await client.get("/api/publications/", headers=headers_for(owner))
    assert res.status_code == 200
    items = res.json()["items"]
    assert [i["faculty_id"] for i in items] == ["FAC-A"]

    res = await client.get("/api/publications/my", headers=headers_for(other))
    assert res.json()["total"] == 1


@pytest.mark.asyncio
async def test_campus_admin_oversees_and_edits(client, author, campus_admin, headers_for):
    owner = await author()
    created = (await client.post("/api/publications/", json=paper(), headers=headers_for(owner))).json()

    headers = headers_for(campus_admin)
    res = await client.get("/api/publications/", headers=headers)
    item = res.json()["items"][0]
    assert item["can_edit"] is True
    assert item["can_delete"] is True
    assert item["is_owner"] is False
    assert item["badge"] == "View Only"

    res = await client.put(f"/api/publications/{created['id']}", json={"title": "Edited Title"}, headers=headers)
    assert res.status_code == 200
    assert res.json()["title"] == "Edited Title"
    assert res.json()["faculty_id"] == owner.faculty_id


@pytest.mark.asyncio
async def test_admin_views_but_cannot_edit(client, author, make_user, headers_for):
    owner = await author()
    admin = await make_user(role=UserRole.Admin, department="N/A")
    created = (await client.post("/api/publications/", json=paper(), headers=headers_for(owner))).json()

    res = await client.put(
        f"/api/publications/{created['id']}", json={"title": "Hijack"}, headers=headers_for(admin)
    )
    assert res.status_code == 403


@pytest.mark.asyncio
async def test_other_faculty_cannot_touch_paper(client, author, headers_for):
    owner = await author()
    stranger = await author()
    created = (await client.post("/api/publications/", json=paper(), headers=headers_for(owner))).json()

    res = await client.delete(f"/api/publications/{created['id']}", headers=headers_for(stranger))
    assert res.status_code == 404

    res = await client.delete(f"/api/publications/{created['id']}", headers=headers_for(owner))
    assert res.status_code == 200


@pytest.mark.asyncio
async def test_stats_and_export(client, author, campus_admin, headers_for):
    owner = await author(department="Civil")
    headers = headers_for(owner)
    await client.post("/api/publications/", json=paper(), headers=headers)
    await client.post(
        "/api/publications/",
        json=paper(kind="book_chapter", doi=None, title="A Chapter", year=2023),
        headers=headers,
    )

    res = await client.get("/api/publications/stats", headers=headers)
    assert res.status_code == 403

    res = await client.get("/api/publications/stats", headers=headers_for(campus_admin))
    assert res.status_code == 200
    stats = res.json()
    assert stats["total"] == 2
    assert stats["by_kind"] == {"journal_paper": 1, "book_chapter": 1}
    assert stats["by_department"] == {"Civil": 2}
    assert stats["active_faculty"] == 1

    res = await client.get("/api/publications/export", headers=headers)
    assert res.status_code == 200
    assert res.headers["content-type"].startswith("text/csv")
    lines = res.text.strip().splitlines()
    assert lines[0].startswith("kind,title,year,doi")
    assert len(lines) == 3
