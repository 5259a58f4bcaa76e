"""API contract tests for records and custom columns."""

import json
import uuid

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_list_records_filters_by_system(client: AsyncClient, test_org, make_integration, make_record):
    ticket = make_record(
        make_integration("zendesk"),
        "1",
        title="Printer on fire",
        labels=["vip"],
        custom_fields={"team": "billing"},
    )
    make_record(make_integration("jira"), "PAL-1")

    resp = await client.get(f"/organizations/{test_org.id}/records", params={"source_system": "zendesk"})

    assert resp.status_code == 200, resp.text
    records = resp.json()
    assert len(records) == 1
    assert records[0]["id"] == str(ticket.id)
    assert records[0]["labels"] == ["vip"]
    assert records[0]["custom_fields"] == {"team": "billing"}


@pytest.mark.asyncio
async def test_custom_field_edit_merges(client: AsyncClient, test_org, make_integration, make_record):
    record = make_record(
        make_integration("zendesk"), "1", custom_fields={"channel": "email", "team": "billing"}
    )

    resp = await client.put(
        f"/organizations/{test_org.id}/records/{record.id}/custom-fields",
        json={"custom_fields": {"team": "support", "escalated": True}},
    )

    assert resp.status_code == 200, resp.text
    assert resp.json() == {
        "record_id": str(record.id),
        "custom_fields": {"channel": "email", "team": "support", "escalated": True},
    }
    assert json.loads(record.custom_fields)["escalated"] is True


@pytest.mark.asyncio
async def test_custom_field_edit_unknown_record(client: AsyncClient, test_org):
    resp = await client.put(
        f"/organizations/{test_org.id}/records/{uuid.uuid4()}/custom-fields",
        json={"custom_fields": {"team": "support"}},
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_custom_column_crud(client: AsyncClient, test_org):
    url = f"/organizations/{test_org.id}/custom-columns"

    first = await client.post(url, json={"name": "Team Name", "label": "Team"})
    assert first.status_code == 201, first.text
    assert first.json()["name"] == "team_name"
    assert first.json()["type"] == "text"
    assert first.json()["sort_order"] == 1

    second = await client.post(
        url,
        json={
            "name": "tier",
            "label": "Tier",
            "type": "select",
            "select_options": ["gold", " silver ", ""],
        },
    )
    assert second.status_code == 201, second.text
    assert second.json()["select_options"] == ["gold", "silver"]
    assert second.json()["sort_order"] == 2

    listed = (await client.get(url)).json()
    assert [column["name"] for column in listed] == ["team_name", "tier"]

    delete_resp = await client.delete(f"{url}/{first.json()['id']}")
    assert delete_resp.status_code == 204, delete_resp.text
    assert [column["name"] for column in (await client.get(url)).json()] == ["tier"]


@pytest.mark.asyncio
async def test_custom_column_validation(client: AsyncClient, test_org):
    url = f"/organizations/{test_org.id}/custom-columns"
    assert (await client.post(url, json={"name": "team", "label": "Team"})).status_code == 201

    duplicate = await client.post(url, json={"name": "Team", "label": "Again"})
    assert duplicate.status_code == 409, duplicate.text

    one_option = await client.post(
        url, json={"name": "tier", "label": "Tier", "type": "select", "select_options": ["gold"]}
    )
    assert one_option.status_code == 400, one_option.text

    bad_name = await client.post(url, json={"name": "team!", "label": "Bad"})
    assert bad_name.status_code == 422, bad_name.text

    assert (await client.delete(f"{url}/{uuid.uuid4()}")).status_code == 404
