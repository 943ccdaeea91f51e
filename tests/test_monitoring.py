"""
Tests for social media monitoring configuration routes.
"""

from uuid import uuid4


def config_row(**overrides):
    config = {
        "id": str(uuid4()),
        "config_name": "Political Parties",
        "category": "political_parties",
        "keywords": ["JLP", "PNP"],
        "is_enabled": True,
        "description": "Main parties",
        "priority": 1,
    }
    config.update(overrides)
    return config


CONFIGS = [
    config_row(),
    config_row(
        config_name="Constituencies",
        category="constituencies",
        keywords=["St. Andrew South", "JLP"],
        priority=2,
    ),
    config_row(
        config_name="Custom hashtags",
        category="hashtags",
        keywords=["#JaVotes"],
        is_enabled=False,
        priority=3,
    ),
]


async def test_list_configs(make_client, coordinator_user, mock_conn):
    mock_conn.fetch.return_value = CONFIGS
    client = make_client(coordinator_user)

    response = await client.get("/api/v1/monitoring/configs")

    assert response.status_code == 200
    assert len(response.json()["data"]) == 3


async def test_observer_cannot_list_configs(make_client, observer_user):
    client = make_client(observer_user)

    response = await client.get("/api/v1/monitoring/configs")

    assert response.status_code == 403


async def test_list_category_configs(make_client, coordinator_user, mock_conn):
    mock_conn.fetch.return_value = CONFIGS[:1]
    client = make_client(coordinator_user)

    response = await client.get("/api/v1/monitoring/configs/category/political_parties")

    assert response.status_code == 200
    assert mock_conn.fetch.call_args[0][1] == "political_parties"


async def test_update_config_dedups_keywords(make_client, admin_user, mock_conn):
    config = config_row(keywords=["JLP", "PNP", "NDM"])
    mock_conn.fetchrow.return_value = config
    client = make_client(admin_user)

    response = await client.put(
        f"/api/v1/monitoring/configs/{config['id']}",
        json={"keywords": ["JLP", "PNP", "JLP", " ", "NDM"], "priority": 2},
    )

    assert response.status_code == 200
    args = mock_conn.fetchrow.call_args[0]
    assert args[1:4] == (["JLP", "PNP", "NDM"], 2, config["id"])


async def test_update_config_without_fields(make_client, admin_user):
    client = make_client(admin_user)

    response = await client.put(f"/api/v1/monitoring/configs/{uuid4()}", json={})

    assert response.status_code == 400


async def test_update_missing_config(make_client, admin_user, mock_conn):
    client = make_client(admin_user)

    response = await client.put(
        f"/api/v1/monitoring/configs/{uuid4()}", json={"is_enabled": False}
    )

    assert response.status_code == 404


async def test_coordinator_cannot_update_config(make_client, coordinator_user):
    client = make_client(coordinator_user)

    response = await client.put(
        f"/api/v1/monitoring/configs/{uuid4()}", json={"is_enabled": False}
    )

    assert response.status_code == 403


async def test_add_keywords_to_new_category(make_client, admin_user, mock_conn):
    created = config_row(config_name="Custom hashtags", category="hashtags", priority=3)
    mock_conn.fetchrow.side_effect = [None, created]
    client = make_client(admin_user)

    response = await client.post(
        "/api/v1/monitoring/keywords",
        json={"category": "hashtags", "keywords": ["#JaVotes", "#JaVotes", "#Election2025"]},
    )

    assert response.status_code == 200
    args = mock_conn.fetchrow.call_args[0]
    assert args[1:4] == ("Custom hashtags", "hashtags", ["#JaVotes", "#Election2025"])


async def test_add_keywords_requires_keywords(make_client, admin_user):
    client = make_client(admin_user)

    response = await client.post(
        "/api/v1/monitoring/keywords", json={"category": "hashtags", "keywords": []}
    )

    assert response.status_code == 422


async def test_remove_keywords(make_client, admin_user, mock_conn):
    config = config_row(keywords=["JLP", "PNP", "NDM"])
    mock_conn.fetchrow.side_effect = [config, {**config, "keywords": ["JLP", "NDM"]}]
    client = make_client(admin_user)

    response = await client.request(
        "DELETE",
        f"/api/v1/monitoring/configs/{config['id']}/keywords",
        json={"keywords": ["PNP", "ndm"]},
    )

    assert response.status_code == 200
    assert mock_conn.fetchrow.call_args[0][1] == ["JLP", "NDM"]


async def test_remove_keywords_from_missing_config(make_client, admin_user, mock_conn):
    client = make_client(admin_user)

    response = await client.request(
        "DELETE",
        f"/api/v1/monitoring/configs/{uuid4()}/keywords",
        json={"keywords": ["PNP"]},
    )

    assert response.status_code == 404


async def test_toggle_config(make_client, admin_user, mock_conn):
    mock_conn.fetchrow.return_value = config_row(is_enabled=False)
    client = make_client(admin_user)

    response = await client.post(f"/api/v1/monitoring/configs/{uuid4()}/toggle")

    assert response.status_code == 200
    assert response.json()["message"] == "Configuration disabled"


async def test_toggle_missing_config(make_client, admin_user, mock_conn):
    client = make_client(admin_user)

    response = await client.post(f"/api/v1/monitoring/configs/{uuid4()}/toggle")

    assert response.status_code == 404


async def test_active_keywords(make_client, coordinator_user, mock_conn):
    mock_conn.fetch.return_value = [
        {"keywords": ["JLP", "PNP"]},
        {"keywords": ["St. Andrew South", "JLP"]},
        {"keywords": None},
    ]
    client = make_client(coordinator_user)

    response = await client.get("/api/v1/monitoring/keywords/active")

    assert response.json()["data"] == ["JLP", "PNP", "St. Andrew South"]


async def test_keywords_by_priority(make_client, coordinator_user, mock_conn):
    mock_conn.fetch.return_value = CONFIGS
    client = make_client(coordinator_user)

    response = await client.get("/api/v1/monitoring/keywords/by-priority")

    assert response.json()["data"] == {
        "high": ["JLP", "PNP"],
        "medium": ["St. Andrew South", "JLP"],
        "low": [],
    }


async def test_stats(make_client, coordinator_user, mock_conn):
    mock_conn.fetch.return_value = CONFIGS
    client = make_client(coordinator_user)

    response = await client.get("/api/v1/monitoring/stats")

    assert response.json()["data"] == {
        "totalConfigurations": 3,
        "activeConfigurations": 2,
        "totalKeywords": 5,
        "activeKeywords": 4,
        "categoryCounts": {"political_parties": 1, "constituencies": 1, "hashtags": 1},
    }


async def test_initialize_seeds_empty_table(make_client, admin_user, mock_conn):
    mock_conn.fetchval.return_value = 0
    client = make_client(admin_user)

    response = await client.post("/api/v1/monitoring/initialize")

    assert response.json()["data"] == {"initialized": True}
    rows = mock_conn.executemany.call_args[0][1]
    assert rows
    assert all(len(row[2]) == len(set(row[2])) for row in rows)


async def test_initialize_keeps_existing_configs(make_client, admin_user, mock_conn):
    mock_conn.fetchval.return_value = 4
    client = make_client(admin_user)

    response = await client.post("/api/v1/monitoring/initialize")

    assert response.json()["data"] == {"initialized": False}
    assert response.json()["message"] == "Configurations already exist"
    mock_conn.executemany.assert_not_called()


async def test_coordinator_cannot_initialize(make_client, coordinator_user):
    client = make_client(coordinator_user)

    response = await client.post("/api/v1/monitoring/initialize")

    assert response.status_code == 403
