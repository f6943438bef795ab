"""
Tests for the campaign insights API.

WHAT:
    Validate adsight/routers/campaign_insights.py responses: explorer payload,
    tenant header, parameter validation, period buckets and navigator
    transitions.

WHY:
    Keeps the explorer UI contract stable when aggregation or metric
    configuration changes.

REFERENCES:
    - adsight/routers/campaign_insights.py
    - adsight/schemas.py::ExplorerResponse, NavigationResponse
"""

import pytest

from conftest import CLIENT_ID


EXPLORER_URL = "/campaign-insights/explorer"


def _params(**overrides):
    params = {"client_id": CLIENT_ID, "date_start": "2024-01-01", "date_end": "2024-01-02"}
    params.update(overrides)
    return params


# ============================================================================
# GET /explorer
# ============================================================================

def test_explorer_campaigns(client, org_headers, sample_insights):
    response = client.get(EXPLORER_URL, params=_params(), headers=org_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["meta"]["title"] == "Campaigns"
    assert body["meta"]["total"] == 2
    assert [row["id"] for row in body["rows"]] == ["B", "A"]

    row_a = body["rows"][1]
    assert row_a["name"] == "Spring Sale"
    assert row_a["spend"] == pytest.approx(20.0)
    assert row_a["impressions"] == 300
    ctr = next(m for m in row_a["metrics"] if m["key"] == "ctr")
    assert ctr["value"] == pytest.approx(20 / 300)
    assert ctr["formatted"] == "6.67%"

    assert body["totals"]["spend"] == pytest.approx(50.0)
    assert body["periods"]["granularity"] == "day"
    assert body["periods"]["truncated"] is False
    assert body["error"] is None


def test_explorer_adsets_scoped_by_repeated_campaign_ids(client, org_headers, sample_insights):
    response = client.get(
        EXPLORER_URL,
        params=_params(level="adsets", campaign_ids=["A"]),
        headers=org_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["meta"]["title"] == "Ad Sets"
    assert [row["id"] for row in body["rows"]] == ["AS1", "AS2"]
    assert all(row["campaign_id"] == "A" for row in body["rows"])


def test_explorer_search_and_week_pivot(client, org_headers, sample_insights):
    response = client.get(
        EXPLORER_URL,
        params=_params(search="brand", granularity="week"),
        headers=org_headers,
    )

    body = response.json()
    assert [row["id"] for row in body["rows"]] == ["B"]
    assert body["meta"]["visible"] == 1
    assert body["meta"]["total"] == 2
    assert [p["label"] for p in body["periods"]["periods"]] == ["1/1 - 2/1"]
    assert body["pivot"][0]["cells"][0]["spend"] == pytest.approx(30.0)


def test_explorer_requires_org_header(client, sample_insights):
    response = client.get(EXPLORER_URL, params=_params())

    assert response.status_code == 400


@pytest.mark.parametrize(
    "overrides",
    [
        {"level": "keywords"},
        {"granularity": "hour"},
        {"date_start": "2024-02-01"},
    ],
)
def test_explorer_invalid_parameters(client, org_headers, overrides):
    response = client.get(EXPLORER_URL, params=_params(**overrides), headers=org_headers)

    assert response.status_code == 400


def test_explorer_other_tenant_sees_nothing(client, sample_insights):
    response = client.get(EXPLORER_URL, params=_params(), headers={"X-Organization-ID": "org_nobody"})

    assert response.status_code == 200
    assert response.json()["rows"] == []


# ============================================================================
# GET /periods
# ============================================================================

def test_periods_month(client):
    response = client.get(
        "/campaign-insights/periods",
        params={"date_start": "2024-01-15", "date_end": "2024-03-02", "granularity": "month"},
    )

    assert response.status_code == 200
    body = response.json()
    assert [p["label"] for p in body["periods"]] == ["Jan 24", "Feb 24", "Mar 24"]
    assert body["periods"][1]["key"] == "2024-02-01"
    assert body["periods"][1]["end_key"] == "2024-02-29"


def test_periods_truncated_flag(client):
    response = client.get(
        "/campaign-insights/periods",
        params={"date_start": "2020-01-01", "date_end": "2024-12-31", "granularity": "week"},
    )

    body = response.json()
    assert len(body["periods"]) == 100
    assert body["truncated"] is True


# ============================================================================
# POST /navigation
# ============================================================================

def test_navigation_drill_down(client):
    response = client.post(
        "/campaign-insights/navigation",
        json={"action": "drill_down", "entity_id": "A", "entity_name": "Spring Sale"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["state"]["level"] == "adsets"
    assert body["state"]["selected_campaign_ids"] == ["A"]
    assert [c["label"] for c in body["state"]["breadcrumbs"]] == ["Campaigns", "Spring Sale"]
    assert body["parent_scope"] == {"column": "campaign_id", "ids": ["A"]}
    assert body["filter_summary"] == "Filtering by 1 campaign"
    assert body["changed"] is True


def test_navigation_round_trips_state(client):
    first = client.post(
        "/campaign-insights/navigation",
        json={"action": "drill_down", "entity_id": "A"},
    ).json()

    second = client.post(
        "/campaign-insights/navigation",
        json={"state": first["state"], "action": "drill_down", "entity_id": "AS1", "entity_name": "Broad"},
    ).json()

    assert second["state"]["level"] == "ads"
    assert second["parent_scope"] == {"column": "adset_id", "ids": ["AS1"]}

    back = client.post(
        "/campaign-insights/navigation",
        json={"state": second["state"], "action": "navigate_to", "index": 0},
    ).json()

    assert back["state"]["level"] == "campaigns"
    assert back["state"]["selected_campaign_ids"] == []
    assert back["parent_scope"] == {"column": None, "ids": []}
    assert back["filter_summary"] is None


def test_navigation_drill_at_ads_reports_unchanged(client):
    state = {"level": "ads", "selected_adset_ids": ["AS1"]}

    body = client.post(
        "/campaign-insights/navigation",
        json={"state": state, "action": "drill_down", "entity_id": "AD1"},
    ).json()

    assert body["changed"] is False
    assert body["state"]["level"] == "ads"


@pytest.mark.parametrize(
    "payload",
    [
        {"action": "navigate_to"},
        {"action": "navigate_to", "index": 4},
        {"action": "drill_down"},
        {"action": "switch_tab"},
    ],
)
def test_navigation_missing_or_invalid_arguments(client, payload):
    response = client.post("/campaign-insights/navigation", json=payload)

    assert response.status_code == 400


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
