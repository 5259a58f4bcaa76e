"""API contract tests for org-scoped field mappings."""

import uuid

import pytest
from httpx import AsyncClient

PAYLOAD = {
    "mapping_name": "Zendesk Jira link",
    "source_system": "Zendesk",
    "source_field": "zendesk.custom_360",
    "target_system": "jira",
    "target_field": "jira.key",
    "transformation_type": "extract_jira_key",
}


def _url(org, suffix=""):
    return f"/organizations/{org.id}/field-mappings{suffix}"


@pytest.mark.asyncio
async def test_field_mapping_crud(client: AsyncClient, test_org):
    create_resp = await client.post(_url(test_org), json=PAYLOAD)
    assert create_resp.status_code == 201, create_resp.text
    created = create_resp.json()
    mapping_id = created["id"]
    assert created["source_system"] == "zendesk"
    assert created["transformation_type"] == "extract_jira_key"
    assert created["is_active"] is True

    list_resp = await client.get(_url(test_org))
    assert list_resp.status_code == 200, list_resp.text
    assert [item["id"] for item in list_resp.json()] == [mapping_id]

    patch_resp = await client.patch(
        _url(test_org, f"/{mapping_id}"),
        json={"mapping_name": "Renamed", "target_transform": {"type": "extract_jira_key"}},
    )
    assert patch_resp.status_code == 200, patch_resp.text
    assert patch_resp.json()["mapping_name"] == "Renamed"
    assert patch_resp.json()["target_transform"] == {"type": "extract_jira_key"}

    delete_resp = await client.delete(_url(test_org, f"/{mapping_id}"))
    assert delete_resp.status_code == 204, delete_resp.text

    assert (await client.get(_url(test_org))).json() == []
    inactive = (await client.get(_url(test_org), params={"include_inactive": True})).json()
    assert inactive[0]["id"] == mapping_id
    assert inactive[0]["is_active"] is False


@pytest.mark.asyncio
async def test_duplicate_active_mapping_conflicts(client: AsyncClient, test_org):
    assert (await client.post(_url(test_org), json=PAYLOAD)).status_code == 201

    dup_resp = await client.post(_url(test_org), json={**PAYLOAD, "mapping_name": "Again"})
    assert dup_resp.status_code == 409, dup_resp.text


@pytest.mark.asyncio
async def test_reactivating_into_a_duplicate_conflicts(client: AsyncClient, test_org):
    first = (await client.post(_url(test_org), json=PAYLOAD)).json()
    await client.delete(_url(test_org, f"/{first['id']}"))
    assert (await client.post(_url(test_org), json=PAYLOAD)).status_code == 201

    resp = await client.patch(_url(test_org, f"/{first['id']}"), json={"is_active": True})
    assert resp.status_code == 409, resp.text


@pytest.mark.asyncio
async def test_transform_accepts_json_string(client: AsyncClient, test_org):
    payload = {
        **PAYLOAD,
        "transformation_type": "split_extract",
        "source_transform": '{"separator": "-", "index": 1}',
    }

    resp = await client.post(_url(test_org), json=payload)

    assert resp.status_code == 201, resp.text
    assert resp.json()["source_transform"] == {"separator": "-", "index": 1}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "override",
    [
        {"source_system": "fax"},
        {"transformation_type": "reverse"},
        {"source_transform": "{not json"},
        {"mapping_name": ""},
    ],
)
async def test_invalid_payload_is_rejected(client: AsyncClient, test_org, override):
    resp = await client.post(_url(test_org), json={**PAYLOAD, **override})
    assert resp.status_code == 422, resp.text


@pytest.mark.asyncio
async def test_unknown_mapping_and_org_are_404(client: AsyncClient, test_org):
    missing = uuid.uuid4()

    assert (await client.patch(_url(test_org, f"/{missing}"), json={})).status_code == 404
    assert (await client.delete(_url(test_org, f"/{missing}"))).status_code == 404
    assert (await client.get(f"/organizations/{missing}/field-mappings")).status_code == 404
