import uuid

from video_studio.core.errors import ProviderError
from video_studio.providers.stubs import SoraAdapterStub
from video_studio.providers.types import ContentResult, JobError, JobStatus, RefreshResult, VideoAsset


class FilteredSoraStub(SoraAdapterStub):
    def refresh(self, job):
        return RefreshResult(
            status=JobStatus.FAILED,
            outputs=[VideoAsset(kind="video/mp4", uri="https://cdn.example.com/filtered.mp4")],
            error=JobError(message="1 video(s) filtered by content policy", raw=["violence"]),
        )


class RejectingSoraStub(SoraAdapterStub):
    def submit(self, job):
        raise ProviderError("Sora API error (400): Invalid size", provider_status=400)


class StreamingSoraStub(SoraAdapterStub):
    def __init__(self):
        super().__init__()
        self.closed = False

    def content(self, job, asset_index):
        self.output_at(job, asset_index)
        return ContentResult.streamed(iter([b"mp4", b"-bytes"]), close=self._close)

    def _close(self):
        self.closed = True


def test_healthz(client):
    assert client.get("/healthz").json() == {"ok": True}
    assert client.get("/api/healthz").json() == {"ok": True}


def test_list_providers(client):
    response = client.get("/api/providers")
    assert response.status_code == 200
    providers = {item["id"]: item for item in response.json()["data"]}
    assert set(providers) == {"sora", "veo"}
    assert providers["sora"]["capabilities"]["remix"] is True
    assert providers["sora"]["capabilities"]["extend"] is False
    assert providers["veo"]["capabilities"] == {"remix": False, "extend": True, "referenceImage": True}
    assert {mode["id"] for mode in providers["veo"]["modes"]} >= {"generate", "extend"}


def test_sora_end_to_end(client, create_job, refresh):
    job = create_job("sora", "a cat")
    assert job["status"] == "queued"
    assert job["providerJobId"] is None
    assert job["outputs"] == []

    submitted = refresh(job["id"])
    assert submitted["status"] == "running"
    provider_job_id = submitted["providerJobId"]
    assert provider_job_id

    done = refresh(job["id"], times=2)
    assert done["status"] == "succeeded"
    assert done["providerJobId"] == provider_job_id
    assert len(done["outputs"]) == 1
    assert done["outputs"][0]["kind"] == "video/mp4"
    assert done["error"] is None
    assert done["actions"] == {"canDownload": True, "canDelete": True, "canRemix": True, "canExtend": False}

    again = refresh(job["id"], times=3)
    assert again["status"] == "succeeded"
    assert again["providerJobId"] == provider_job_id
    assert again["outputs"] == done["outputs"]


def test_veo_end_to_end_then_remix_is_unsupported(client, create_job, refresh):
    job = create_job("veo", "a dog")
    partial = refresh(job["id"], times=3)
    assert partial["status"] == "running"
    assert partial["progressPct"] is None

    done = refresh(job["id"])
    assert done["status"] == "succeeded"
    assert done["providerJobId"].startswith("operations/")

    response = client.post(f"/api/jobs/{job['id']}/remix", json={"prompt": "a dog, but blue"})
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "UNSUPPORTED_OPERATION"


def test_delete_missing_job_is_not_found(client):
    response = client.delete(f"/api/jobs/{uuid.uuid4()}")
    assert response.status_code == 404
    assert response.json() == {"error": {"code": "NOT_FOUND", "message": "Job not found"}}


def test_delete_job(client, create_job):
    job = create_job()
    response = client.delete(f"/api/jobs/{job['id']}")
    assert response.status_code == 200
    assert response.json()["data"] == {"id": job["id"], "deleted": True}
    assert client.get(f"/api/jobs/{job['id']}").status_code == 404


def test_get_job(client, create_job):
    job = create_job("veo", "waves", params={"aspectRatio": "9:16"}, mode="generate")
    response = client.get(f"/api/jobs/{job['id']}")
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["params"] == {"aspectRatio": "9:16", "mode": "generate"}
    assert data["actions"]["canDownload"] is False


def test_create_validation_errors(client):
    response = client.post("/api/jobs", json={"provider": "runway", "prompt": ""})
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert "provider" in error["message"]
    assert "prompt" in error["message"]


def test_create_stores_assets_in_params(client, create_job):
    job = create_job("sora", "a cat", assets=[{"kind": "video/mp4", "uri": "https://cdn.example.com/a.mp4"}])
    assert job["params"]["assets"] == [{"kind": "video/mp4", "uri": "https://cdn.example.com/a.mp4"}]


def test_unknown_route_uses_error_envelope(client):
    response = client.get("/api/nope")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


def test_list_jobs_pagination_and_filters(client, create_job):
    created = [create_job("sora", f"cat number {index}") for index in range(3)]
    create_job("veo", "a dog")

    first = client.get("/api/jobs", params={"provider": "sora", "limit": 2}).json()
    assert len(first["data"]) == 2
    assert first["meta"]["total"] == 3
    assert first["meta"]["limit"] == 2
    assert first["meta"]["nextCursor"] == first["data"][-1]["id"]

    second = client.get("/api/jobs", params={"provider": "sora", "limit": 2, "cursor": first["meta"]["nextCursor"]}).json()
    assert len(second["data"]) == 1
    assert second["meta"]["total"] == 3
    assert second["meta"]["nextCursor"] is None

    seen = {job["id"] for job in first["data"] + second["data"]}
    assert seen == {job["id"] for job in created}

    exact = client.get("/api/jobs", params={"provider": "sora", "limit": 3}).json()
    assert exact["meta"]["nextCursor"] is None

    search = client.get("/api/jobs", params={"q": "DOG"}).json()
    assert [job["prompt"] for job in search["data"]] == ["a dog"]

    queued = client.get("/api/jobs", params={"status": "queued"}).json()
    assert queued["meta"]["total"] == 4


def test_list_jobs_rejects_bad_query(client):
    for params in ({"limit": 0}, {"limit": 101}, {"status": "done"}, {"provider": "runway"}):
        response = client.get("/api/jobs", params=params)
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    response = client.get("/api/jobs", params={"cursor": "missing"})
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_remix_creates_new_job_without_touching_source(client, create_job, refresh):
    source = refresh(create_job("sora", "a cat")["id"], times=3)
    assert source["status"] == "succeeded"

    response = client.post(f"/api/jobs/{source['id']}/remix", json={"prompt": "a cat in the rain"})
    assert response.status_code == 201
    remix = response.json()["data"]
    assert remix["id"] != source["id"]
    assert remix["provider"] == "sora"
    assert remix["prompt"] == "a cat in the rain"
    assert remix["status"] == "running"
    assert remix["providerJobId"] and remix["providerJobId"] != source["providerJobId"]
    assert remix["params"]["mode"] == "remix"
    assert remix["params"]["sourceJobId"] == source["id"]
    assert remix["params"]["sourceProviderJobId"] == source["providerJobId"]

    after = client.get(f"/api/jobs/{source['id']}").json()["data"]
    for field in ("status", "outputs", "providerJobId", "prompt", "params"):
        assert after[field] == source[field]

    finished = refresh(remix["id"], times=2)
    assert finished["status"] == "succeeded"


def test_remix_without_body_reuses_source_prompt(client, create_job, refresh):
    source = refresh(create_job("sora", "a cat")["id"], times=3)
    response = client.post(f"/api/jobs/{source['id']}/remix")
    assert response.status_code == 201
    assert response.json()["data"]["prompt"] == "a cat"


def test_extend_creates_new_veo_job(client, create_job, refresh):
    source = refresh(create_job("veo", "a dog", params={"aspectRatio": "16:9"})["id"], times=4)

    response = client.post(
        f"/api/jobs/{source['id']}/extend",
        json={"prompt": "the dog keeps running", "sourceAssetIndex": 0, "params": {"durationSeconds": 8}},
    )
    assert response.status_code == 201
    extended = response.json()["data"]
    assert extended["provider"] == "veo"
    assert extended["params"]["mode"] == "extend"
    assert extended["params"]["durationSeconds"] == 8
    assert extended["params"]["aspectRatio"] == "16:9"
    assert extended["params"]["sourceJobId"] == source["id"]
    assert extended["params"]["sourceProviderJobId"] == source["providerJobId"]

    after = client.get(f"/api/jobs/{source['id']}").json()["data"]
    assert after["status"] == "succeeded"
    assert after["outputs"] == source["outputs"]


def test_extend_on_sora_job_is_unsupported(client, create_job, refresh):
    source = refresh(create_job("sora", "a cat")["id"], times=3)
    response = client.post(f"/api/jobs/{source['id']}/extend", json={})
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "UNSUPPORTED_OPERATION"


def test_derivatives_require_completed_source(client, create_job, refresh):
    for provider in ("sora", "veo"):
        job = create_job(provider, "unfinished")
        refresh(job["id"])
        for operation in ("remix", "extend"):
            response = client.post(f"/api/jobs/{job['id']}/{operation}", json={})
            assert response.status_code == 400
            assert response.json()["error"]["code"] == "JOB_NOT_COMPLETE"


def test_derivative_of_missing_job_is_not_found(client):
    response = client.post(f"/api/jobs/{uuid.uuid4()}/remix", json={})
    assert response.status_code == 404


def test_content_redirects_for_stub_output(client, create_job, refresh):
    job = refresh(create_job("sora", "a cat")["id"], times=3)
    response = client.get(f"/api/jobs/{job['id']}/content", follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"].endswith("/output_0.mp4")


def test_content_rejects_out_of_range_asset(client, create_job, refresh):
    job = refresh(create_job("veo", "a dog")["id"], times=4)
    for asset in (1, 7, -1):
        response = client.get(f"/api/jobs/{job['id']}/content", params={"asset": asset}, follow_redirects=False)
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "ASSET_NOT_FOUND"


def test_content_requires_completed_job(client, create_job):
    job = create_job("sora", "a cat")
    response = client.get(f"/api/jobs/{job['id']}/content")
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "JOB_NOT_COMPLETE"


def test_outputs_only_on_success_and_errors_only_on_failure(client, create_job, refresh):
    for provider, polls in (("sora", 5), ("veo", 6)):
        job = create_job(provider, "invariants")
        for _ in range(polls):
            data = refresh(job["id"])
            if data["outputs"]:
                assert data["status"] == "succeeded"
            if data["error"] is not None:
                assert data["status"] == "failed"


def test_failed_refresh_keeps_error_and_drops_outputs(client, create_job, refresh, use_adapter):
    use_adapter(FilteredSoraStub())
    submitted = refresh(create_job("sora", "a cat")["id"])

    failed = refresh(submitted["id"])
    assert failed["status"] == "failed"
    assert failed["outputs"] == []
    assert failed["error"] == {"message": "1 video(s) filtered by content policy", "raw": ["violence"]}
    assert failed["providerJobId"] == submitted["providerJobId"]
    assert failed["actions"]["canDownload"] is False

    assert refresh(submitted["id"]) == failed
    response = client.get(f"/api/jobs/{submitted['id']}/content")
    assert response.json()["error"]["code"] == "JOB_NOT_COMPLETE"


def test_rejected_submit_leaves_job_queued(client, create_job, use_adapter):
    use_adapter(RejectingSoraStub())
    job = create_job("sora", "a cat")

    response = client.post(f"/api/jobs/{job['id']}/refresh")
    assert response.status_code == 500
    assert response.json() == {"error": {"code": "INTERNAL_ERROR", "message": "Internal server error"}}

    stored = client.get(f"/api/jobs/{job['id']}").json()["data"]
    assert stored["status"] == "queued"
    assert stored["providerJobId"] is None
    assert stored["outputs"] == []
    assert stored["error"] is None


def test_streamed_content_is_closed_after_response(client, create_job, refresh, use_adapter):
    adapter = use_adapter(StreamingSoraStub())
    job = refresh(create_job("sora", "a cat")["id"], times=3)

    response = client.get(f"/api/jobs/{job['id']}/content")
    assert response.status_code == 200
    assert response.content == b"mp4-bytes"
    assert response.headers["content-type"] == "video/mp4"
    assert adapter.closed
