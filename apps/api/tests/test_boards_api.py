from __future__ import annotations

import uuid

import pytest
from httpx import AsyncClient

from conftest import create_issue, default_board, register


@pytest.mark.anyio
async def test_register_creates_default_project_and_board(client: AsyncClient) -> None:
  me = await register(client, "grace@example.com", first_name="Grace")
  assert me["email"] == "grace@example.com"
  assert me["firstName"] == "Grace"

  projects = (await client.get("/project")).json()
  assert [p["name"] for p in projects] == ["Grace's Project"]
  assert projects[0]["memberIds"] == [me["id"]]

  board = await default_board(client)
  assert board["name"] == "Default Board"
  assert [(c["name"], c["position"]) for c in board["columns"]] == [("To Do", 1), ("In Progress", 2), ("Done", 3)]
  assert all(c["items"] == [] for c in board["columns"])


@pytest.mark.anyio
async def test_register_duplicate_email_conflicts(client: AsyncClient, other_client: AsyncClient) -> None:
  await register(client, "dup@example.com")
  res = await other_client.post(
    "/auth/register",
    json={"email": "DUP@example.com", "password": "password123", "firstName": "X", "lastName": "Y"},
  )
  assert res.status_code == 409, res.text


@pytest.mark.anyio
async def test_login_logout_and_auth_required(client: AsyncClient) -> None:
  res = await client.get("/project")
  assert res.status_code == 401

  await register(client, "linus@example.com")
  assert (await client.post("/auth/logout")).status_code == 200
  assert (await client.get("/auth/me")).status_code == 401

  bad = await client.post("/auth/login", json={"email": "linus@example.com", "password": "nope-nope"})
  assert bad.status_code == 401
  ok = await client.post("/auth/login", json={"email": "linus@example.com", "password": "password123"})
  assert ok.status_code == 200, ok.text
  assert (await client.get("/auth/me")).json()["email"] == "linus@example.com"


@pytest.mark.anyio
async def test_place_move_status_and_remove_over_http(client: AsyncClient) -> None:
  await register(client)
  board = await default_board(client)
  todo, doing, done = (c["id"] for c in board["columns"])
  issue = await create_issue(client, board["projectId"], "Write docs")

  res = await client.post("/project-board-column-item", json={"issueId": issue["id"], "projectBoardColumnId": todo, "position": 1})
  assert res.status_code == 201, res.text
  item_id = res.json()["id"]

  dup = await client.post("/project-board-column-item", json={"issueId": issue["id"], "projectBoardColumnId": doing})
  assert dup.status_code == 409, dup.text

  status = (await client.get(f"/issue-status/{issue['id']}")).json()
  assert status["current"]["id"] == todo
  assert [o["name"] for o in status["options"]] == ["To Do", "In Progress", "Done"]

  res = await client.patch(f"/issue-status/{issue['id']}", json={"statusOptionId": doing})
  assert res.status_code == 200, res.text
  assert res.json()["current"]["id"] == doing

  res = await client.patch(f"/project-board-column-item/{item_id}", json={"projectBoardColumnId": done, "position": 0})
  assert res.status_code == 200, res.text
  assert res.json()["projectBoardColumnId"] == done

  fetched = (await client.get(f"/issue/{issue['id']}")).json()
  assert fetched["projectBoardColumnItemId"] == item_id

  assert (await client.delete(f"/project-board-column-item/{item_id}")).status_code == 204
  status = (await client.get(f"/issue-status/{issue['id']}")).json()
  assert status == {"options": [], "current": None}

  res = await client.patch(f"/issue-status/{issue['id']}", json={"statusOptionId": doing})
  assert res.status_code == 400
  assert res.json()["detail"] == "Issue has no status to update"


@pytest.mark.anyio
async def test_place_into_first_column_of_board(client: AsyncClient) -> None:
  await register(client)
  board = await default_board(client)
  issue = await create_issue(client, board["projectId"])

  res = await client.post("/project-board-column-item", json={"issueId": issue["id"], "projectBoardId": board["id"]})
  assert res.status_code == 201, res.text
  refreshed = (await client.get(f"/project-board/{board['id']}")).json()
  assert [i["issueId"] for i in refreshed["columns"][0]["items"]] == [issue["id"]]


@pytest.mark.anyio
async def test_status_change_to_other_board_is_rejected(client: AsyncClient) -> None:
  await register(client)
  board = await default_board(client)
  res = await client.post("/project-board", json={"name": "Second", "projectId": board["projectId"]})
  assert res.status_code == 201, res.text
  second = res.json()
  col = await client.post("/project-board-column", json={"name": "Elsewhere", "projectBoardId": second["id"]})
  assert col.status_code == 201, col.text
  assert col.json()["position"] == 0

  issue = await create_issue(client, board["projectId"])
  await client.post("/project-board-column-item", json={"issueId": issue["id"], "projectBoardColumnId": board["columns"][0]["id"]})

  res = await client.patch(f"/issue-status/{issue['id']}", json={"statusOptionId": col.json()["id"]})
  assert res.status_code == 400
  assert res.json()["detail"] == "Invalid status option ID for this project board"
  status = (await client.get(f"/issue-status/{issue['id']}")).json()
  assert status["current"]["id"] == board["columns"][0]["id"]


@pytest.mark.anyio
async def test_nested_board_patch_applies_layout(client: AsyncClient) -> None:
  await register(client)
  board = await default_board(client)
  todo, doing, done = (c["id"] for c in board["columns"])
  first = await create_issue(client, board["projectId"], "First")
  second = await create_issue(client, board["projectId"], "Second")
  a = (await client.post("/project-board-column-item", json={"issueId": first["id"], "projectBoardColumnId": todo})).json()["id"]
  b = (await client.post("/project-board-column-item", json={"issueId": second["id"], "projectBoardColumnId": todo})).json()["id"]

  payload = {
    "name": "Renamed",
    "columns": [
      {"id": done, "position": 0, "items": []},
      {"id": todo, "position": 1, "items": [{"id": b, "position": 0}, {"id": a, "position": 1}]},
      {"id": doing, "position": 2, "name": "Doing", "items": []},
    ],
  }
  res = await client.patch(f"/project-board/{board['id']}", json=payload)
  assert res.status_code == 200, res.text
  out = res.json()
  assert out["name"] == "Renamed"
  assert [c["id"] for c in out["columns"]] == [done, todo, doing]
  assert [i["id"] for i in out["columns"][1]["items"]] == [b, a]
  assert out["columns"][2]["name"] == "Doing"

  stale = {"columns": [{"id": todo, "position": 0, "items": [{"id": a, "position": 0}]}]}
  res = await client.patch(f"/project-board/{board['id']}", json=stale)
  assert res.status_code == 409, res.text
  assert (await client.get(f"/project-board/{board['id']}")).json() == out


@pytest.mark.anyio
async def test_renumber_and_delete_board(client: AsyncClient) -> None:
  await register(client)
  board = await default_board(client)
  issue = await create_issue(client, board["projectId"])
  await client.post("/project-board-column-item", json={"issueId": issue["id"], "projectBoardColumnId": board["columns"][0]["id"], "position": 40})

  res = await client.post(f"/project-board/{board['id']}/renumber")
  assert res.status_code == 200, res.text
  out = res.json()
  assert [c["position"] for c in out["columns"]] == [0, 1, 2]
  assert out["columns"][0]["items"][0]["position"] == 0

  assert (await client.delete(f"/project-board/{board['id']}")).status_code == 204
  assert (await client.get(f"/project-board/{board['id']}")).status_code == 404
  assert (await client.get(f"/issue-status/{issue['id']}")).json() == {"options": [], "current": None}


@pytest.mark.anyio
async def test_board_access_is_limited_to_project_members(client: AsyncClient, other_client: AsyncClient) -> None:
  await register(client)
  board = await default_board(client)
  await register(other_client)

  assert (await other_client.get(f"/project-board/{board['id']}")).status_code == 403
  assert (await other_client.get(f"/project-board/{uuid.uuid4()}")).status_code == 404
  assert (await other_client.get("/project-board/not-a-uuid")).status_code == 404


@pytest.mark.anyio
async def test_health_and_version(client: AsyncClient) -> None:
  assert (await client.get("/health")).json() == {"ok": True}
  res = await client.get("/version")
  assert set(res.json()) == {"version", "buildSha"}
  assert res.headers["x-content-type-options"] == "nosniff"


@pytest.mark.anyio
async def test_placing_an_issue_returns_its_item_id(client: AsyncClient, app) -> None:
  await register(client)
  board = await default_board(client)
  issue = await create_issue(client, board["projectId"])

  res = await client.post("/project-board-column-item", json={"issueId": issue["id"], "projectBoardId": board["id"]})
  assert res.status_code == 201, res.text
  assert list(res.json()) == ["id"]
  assert (await client.get(f"/project-board-column-item/{res.json()['id']}")).json()["issueId"] == issue["id"]

  schema = app.openapi()["paths"]["/project-board-column-item"]["post"]["responses"]["201"]["content"]["application/json"]["schema"]
  assert schema == {"$ref": "#/components/schemas/IdOut"}
