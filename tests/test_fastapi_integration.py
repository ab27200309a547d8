import pytest
from fastapi import Depends
from fastapi import FastAPI
from fastapi.testclient import TestClient
from samples import ISomeContentInterface

from contenthandling import ContentEnvelope
from contenthandling import envelope_body


@pytest.fixture
def fastapi_app(content_factory):
    app = FastAPI()

    @app.post("/content/")
    async def post_content(
        envelope: ContentEnvelope = Depends(envelope_body(content_factory)),
    ):
        payload = envelope.get_contents(ISomeContentInterface)
        return {
            "contentType": envelope.payload_content_type,
            "someValue": payload.some_value,
        }

    return app


def test_fastapi_roundtrip(fastapi_app, caplog):
    caplog.set_level("DEBUG")
    ct = "application/vnd.corvus.somecontentwithinterfaceandchild"
    with TestClient(fastapi_app) as client:
        resp = client.post(
            "/content/",
            json={
                "contentType": ct,
                "someValue": "Hello",
                "child": {
                    "contentType": (
                        "application/vnd.corvus.somecontentwithinterface"
                    ),
                    "someValue": "Dolly",
                },
            },
        )
        assert resp.status_code == 200
        assert resp.json() == {"contentType": ct, "someValue": "Hello"}

    assert f"Reading '{ct}'" in caplog.text


def test_fastapi_rejects_bad_bodies(fastapi_app, caplog):
    with TestClient(fastapi_app) as client:
        resp = client.post(
            "/content/",
            content=b"not json",
            headers={"content-type": "application/json"},
        )
        assert resp.status_code == 422
        assert resp.json()["detail"] == "Request body is not valid JSON"

        resp = client.post("/content/", json={"someValue": "x"})
        assert resp.status_code == 422
        assert "contentType" in resp.json()["detail"]

    assert "Rejected request body" in caplog.text
