"""知识文档路由测试 -- CRUD、版本、模板"""

from httpx import AsyncClient

_DOC = {
    "title": "Onboarding",
    "category": "template",
    "content": "Welcome {{name}} to {{team}}",
    "tags": ["hr"],
}


async def _create(client: AsyncClient, **overrides) -> dict:
    resp = await client.post("/api/documents", json={**_DOC, **overrides})
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestDocumentCrud:
    async def test_create_and_get_counts_views(self, client: AsyncClient):
        doc = await _create(client)
        assert doc["version"] == 1
        assert doc["status"] == "draft"

        first = await client.get(f"/api/documents/{doc['doc_id']}")
        second = await client.get(f"/api/documents/{doc['doc_id']}")
        assert first.json()["view_count"] == 1
        assert second.json()["view_count"] == 2
        assert second.json()["version"] == 1

    async def test_get_missing(self, client: AsyncClient):
        resp = await client.get("/api/documents/ghost")
        assert resp.status_code == 404
        assert resp.json()["error"]["details"]["kind"] == "KnowledgeDocument"

    async def test_create_invalid(self, client: AsyncClient):
        resp = await client.post("/api/documents", json={**_DOC, "title": ""})
        assert resp.status_code == 400
        assert resp.json()["error"]["details"]["errors"][0]["message"] == "Title is mandatory"

    async def test_patch_null_template_flag(self, client: AsyncClient):
        doc = await _create(client)
        resp = await client.patch(f"/api/documents/{doc['doc_id']}", json={"is_template": None})
        assert resp.status_code == 400
        error = resp.json()["error"]
        assert error["code"] == "VALIDATION_FAILED"
        assert error["details"]["errors"][0]["field"] == "is_template"

    async def test_patch_with_reason_and_versions(self, client: AsyncClient):
        doc = await _create(client)
        resp = await client.patch(
            f"/api/documents/{doc['doc_id']}",
            params={"reason": "typo"},
            json={"content": "Welcome {{name}}!"},
        )
        assert resp.status_code == 200
        assert resp.json()["version"] == 2

        versions = (await client.get(f"/api/documents/{doc['doc_id']}/versions")).json()
        assert [v["version_number"] for v in versions["versions"]] == [2, 1]
        assert versions["versions"][0]["change_reason"] == "typo"
        assert versions["versions"][0]["change_type"] == "content_updated"

        v1 = await client.get(f"/api/documents/{doc['doc_id']}/versions/1")
        assert v1.json()["snapshot"]["content"] == _DOC["content"]
        missing = await client.get(f"/api/documents/{doc['doc_id']}/versions/7")
        assert missing.status_code == 404
        assert missing.json()["error"]["code"] == "REFERENCE_NOT_FOUND"

        diff = await client.get(
            f"/api/documents/{doc['doc_id']}/compare", params={"from": 1, "to": 2}
        )
        assert [c["field"] for c in diff.json()["changes"]] == ["content"]

        restored = await client.post(f"/api/documents/{doc['doc_id']}/versions/1/restore")
        assert restored.json()["version"] == 3
        assert restored.json()["content"] == _DOC["content"]

    async def test_archive_hides_from_list(self, client: AsyncClient):
        doc = await _create(client)
        resp = await client.delete(f"/api/documents/{doc['doc_id']}")
        assert resp.json()["status"] == "archived"
        assert (await client.get("/api/documents")).json()["documents"] == []
        archived = await client.get("/api/documents", params={"status": "archived"})
        assert len(archived.json()["documents"]) == 1

    async def test_link_task(self, client: AsyncClient):
        doc = await _create(client)
        url = f"/api/documents/{doc['doc_id']}/link-task/item-1"
        assert (await client.post(url)).json()["related_items"] == ["item-1"]
        assert (await client.delete(url)).json()["related_items"] == []


class TestTemplateRoutes:
    async def _template(self, client: AsyncClient) -> dict:
        doc = await _create(client)
        resp = await client.post(
            f"/api/documents/{doc['doc_id']}/convert-to-template",
            json={"placeholders": ["name", "team"], "default_values": {"objective": "onboard"}},
        )
        assert resp.status_code == 200
        return resp.json()

    async def test_templates_listing_and_check(self, client: AsyncClient):
        template = await self._template(client)
        listed = (await client.get("/api/documents/templates")).json()
        assert [d["doc_id"] for d in listed["documents"]] == [template["doc_id"]]

        check = (await client.get(f"/api/documents/{template['doc_id']}/template-check")).json()
        assert check["is_valid"] is True

    async def test_instantiate(self, client: AsyncClient):
        template = await self._template(client)
        resp = await client.post(
            f"/api/documents/templates/{template['doc_id']}/instantiate",
            json={"title": "Ann onboarding", "placeholder_values": {"name": "Ann"}},
        )
        assert resp.status_code == 201
        data = resp.json()
        assert data["content"] == "Welcome Ann to {{team}}"
        assert data["related_documents"] == [template["doc_id"]]

    async def test_instantiate_non_template(self, client: AsyncClient):
        doc = await _create(client)
        resp = await client.post(f"/api/documents/templates/{doc['doc_id']}/instantiate", json={})
        assert resp.status_code == 400
        assert resp.json()["error"]["details"]["errors"][0]["code"] == "NOT_A_TEMPLATE"

    async def test_work_item_from_template(self, client: AsyncClient):
        template = await self._template(client)
        resp = await client.post(
            f"/api/documents/templates/{template['doc_id']}/work-item",
            json={
                "assignee": "ann",
                "start_date": "2025-01-01",
                "due_date": "2025-01-05",
                "placeholder_values": {"name": "Ann", "team": "Core"},
            },
        )
        assert resp.status_code == 201
        item = resp.json()
        assert item["objective"] == "onboard"
        assert item["deliverable"] == "Welcome Ann to Core"
        assert "from-template" in item["tags"]

        members = (await client.get("/api/objectives/onboard/members")).json()
        assert members["members"] == [item["item_id"]]
