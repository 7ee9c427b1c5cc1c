from __future__ import annotations

import pytest
from httpx import AsyncClient

from conftest import create_issue, default_board, register


async def _join(client: AsyncClient, project_id: str, email: str) -> None:
  res = await client.post(f"/project/{project_id}/members", json={"email": email})
  assert res.status_code == 200, res.text


@pytest.mark.anyio
async def test_current_user_and_project_members(client: AsyncClient, other_client: AsyncClient) -> None:
  me = await register(client)
  bob = await register(other_client, "bob@example.com", first_name="Bob")
  project_id = (await default_board(client))["projectId"]

  res = await client.get("/user")
  assert res.status_code == 200, res.text
  assert res.json() == (await client.get("/auth/me")).json()
  assert res.json()["id"] == me["id"]

  assert (await other_client.get(f"/user/project/{project_id}")).status_code == 403
  await _join(client, project_id, "bob@example.com")
  res = await other_client.get(f"/user/project/{project_id}")
  assert res.status_code == 200, res.text
  assert [u["id"] for u in res.json()] == [me["id"], bob["id"]]
  assert res.json()[1]["email"] == "bob@example.com"


@pytest.mark.anyio
async def test_users_only_update_themselves(client: AsyncClient, other_client: AsyncClient) -> None:
  me = await register(client)
  await register(other_client)

  assert (await other_client.get(f"/user/{me['id']}")).json()["firstName"] == "Ada"
  res = await other_client.patch(f"/user/{me['id']}", json={"firstName": "Mallory"})
  assert res.status_code == 403


@pytest.mark.anyio
async def test_user_issues_are_scoped_to_shared_projects(client: AsyncClient, other_client: AsyncClient) -> None:
  await register(client)
  bob = await register(other_client, "bob@example.com", first_name="Bob")
  await create_issue(other_client, (await default_board(other_client))["projectId"], "Private")

  board = await default_board(client)
  project_id = board["projectId"]
  await _join(client, project_id, "bob@example.com")

  label = (await client.post("/issue-label", json={"name": "bug", "color": "red", "projectId": project_id})).json()
  assigned = await create_issue(client, project_id, "Assigned", assigneeId=bob["id"], priority="high")
  child = await create_issue(client, project_id, "Child", parentId=assigned["id"])
  await client.patch(f"/issue/{assigned['id']}", json={"labelIds": [label["id"]]})
  await client.post("/project-board-column-item", json={"issueId": assigned["id"], "projectBoardColumnId": board["columns"][0]["id"]})
  created = await create_issue(other_client, project_id, "Created by Bob")

  res = await client.get(f"/user/{bob['id']}/issues")
  assert res.status_code == 200, res.text
  issues = res.json()
  assert [i["id"] for i in issues] == [created["id"], assigned["id"]]

  first, second = issues
  assert first["createdById"] == bob["id"]
  assert first["status"] is None
  assert first["labels"] == []
  assert second["assigneeId"] == bob["id"]
  assert second["priority"] == "high"
  assert second["childrenIds"] == [child["id"]]
  assert second["labels"] == ["bug"]
  assert second["status"] == {"id": board["columns"][0]["id"], "name": "To Do", "projectBoardId": board["id"]}

  own = (await other_client.get(f"/user/{bob['id']}/issues")).json()
  assert {i["title"] for i in own} == {"Private", "Assigned", "Created by Bob"}


@pytest.mark.anyio
async def test_user_history_lists_authored_changes(client: AsyncClient, other_client: AsyncClient) -> None:
  await register(client)
  bob = await register(other_client, "bob@example.com", first_name="Bob")
  await create_issue(other_client, (await default_board(other_client))["projectId"], "Private")

  project_id = (await default_board(client))["projectId"]
  await _join(client, project_id, "bob@example.com")
  mine = await create_issue(client, project_id, "Mine")
  created = await create_issue(other_client, project_id, "Bob's")
  res = await other_client.patch(f"/issue/{mine['id']}", json={"title": "Renamed"})
  assert res.status_code == 200, res.text

  res = await client.get(f"/user/{bob['id']}/history")
  assert res.status_code == 200, res.text
  entries = res.json()
  assert [(e["issueId"], e["change"]["topic"]) for e in entries] == [(mine["id"], "title"), (created["id"], "created")]
  assert entries[0]["authorId"] == bob["id"]
  assert entries[0]["change"] == {"topic": "title", "previous": "Mine", "current": "Renamed"}
  assert entries[0]["issue"] == {"id": mine["id"], "title": "Renamed"}
  assert len((await other_client.get(f"/user/{bob['id']}/history")).json()) == 3


@pytest.mark.anyio
async def test_deleting_account_removes_owned_data(client: AsyncClient, other_client: AsyncClient) -> None:
  me = await register(client)
  bob = await register(other_client, "bob@example.com", first_name="Bob")
  board = await default_board(client)
  project_id = board["projectId"]
  await _join(client, project_id, "bob@example.com")

  mine = await create_issue(client, project_id, "Mine", assigneeId=bob["id"])
  bobs = await create_issue(other_client, project_id, "Bob's")
  await client.post("/project-board-column-item", json={"issueId": bobs["id"], "projectBoardColumnId": board["columns"][0]["id"]})

  root = (await client.post("/issue-comment", json={"issueId": mine["id"], "text": "root"})).json()
  bob_reply = (await other_client.post("/issue-comment", json={"issueId": mine["id"], "text": "bob", "parentId": root["id"]})).json()
  my_reply = (await client.post("/issue-comment", json={"issueId": mine["id"], "text": "me", "parentId": bob_reply["id"]})).json()
  assert (await other_client.patch(f"/issue-comment/{root['id']}", json={"liked": True})).status_code == 200
  address = {"street": "Elm St", "houseNumber": "2", "city": "Springfield", "state": "IL", "zipCode": "62701", "country": "US"}
  address_id = (await other_client.post("/address", json=address)).json()["id"]

  res = await other_client.delete("/user")
  assert res.status_code == 204, res.text
  assert "ib_session" in res.headers["set-cookie"]
  assert (await other_client.get("/user")).status_code == 401

  assert (await client.get(f"/user/{bob['id']}")).status_code == 404
  assert (await client.get(f"/issue/{bobs['id']}")).status_code == 404
  assert (await client.get(f"/issue/{mine['id']}")).json()["assigneeId"] is None
  assert (await client.get(f"/address/{address_id}")).status_code == 404
  assert [u["id"] for u in (await client.get(f"/user/project/{project_id}")).json()] == [me["id"]]

  comments = {c["id"]: c for c in (await client.get("/issue-comment", params={"issueId": mine["id"]})).json()}
  assert set(comments) == {root["id"], my_reply["id"]}
  assert comments[my_reply["id"]]["parentId"] == root["id"]
  assert comments[root["id"]]["likedByUserIds"] == []

  items = [i["issueId"] for c in (await default_board(client))["columns"] for i in c["items"]]
  assert bobs["id"] not in items

  res = await client.post("/auth/login", json={"email": "bob@example.com", "password": "password123"})
  assert res.status_code == 401
