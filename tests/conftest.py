"""Shared pytest fixtures: gateway config and an in-process fake SDS."""

import json
import logging
from dataclasses import dataclass
from typing import Optional

import pytest
from fastapi import APIRouter, FastAPI, File, Form, Query, Request, UploadFile
from fastapi.responses import JSONResponse, Response
from fastapi.testclient import TestClient

from gateway.config import GatewayConfig
from gateway.sds import SdsGateway
from gateway.transport import SdsTransport

SDS_URL = "http://sds.test/api"
API_KEY = "test-key"
TENANT_KEYS = {"tenant-a": "key-a"}


@dataclass
class StoredObject:
    """Object held by the fake SDS."""
    id: str
    file_name: str
    data: bytes
    unencrypted_size: int
    creation_date: str = "2024-01-01T00:00:00Z"


class FakeSds:
    """
    Minimal SDS served by FastAPI.

    Objects get sequential 24-digit ids. Every request is recorded as
    (method, path, query params, api key).
    """

    def __init__(self):
        self.objects: dict[str, StoredObject] = {}
        self.requests: list[tuple[str, str, dict, Optional[str]]] = []
        self.uploads: list[dict] = []
        self.nodes = [
            {"host": "node-1.sds.test", "status": "ok", "region": "eu-west"},
            {"host": "node-2.sds.test", "status": "degraded", "region": "eu-central", "load": 0.93},
        ]
        self.upload_error: Optional[tuple[int, dict]] = None
        self._counter = 0
        self.app = self._build_app()

    def next_id(self) -> str:
        self._counter += 1
        return f"{self._counter:024d}"

    def add_object(self, file_name: str, data: bytes = b"", unencrypted_size: Optional[int] = None) -> StoredObject:
        obj = StoredObject(
            id=self.next_id(),
            file_name=file_name,
            data=data,
            unencrypted_size=len(data) if unencrypted_size is None else unencrypted_size,
        )
        self.objects[obj.id] = obj
        return obj

    def paths(self, method: str = "GET") -> list[str]:
        return [path for m, path, _, _ in self.requests if m == method]

    def _build_app(self) -> FastAPI:
        app = FastAPI()
        router = APIRouter(prefix="/api")
        valid_keys = {API_KEY, *TENANT_KEYS.values()}

        @app.middleware("http")
        async def record_and_authenticate(request: Request, call_next):
            key = request.headers.get("x-api-key")
            self.requests.append((request.method, request.url.path, dict(request.query_params), key))
            if key not in valid_keys:
                return JSONResponse(status_code=401, content={"message": "Invalid API key"})
            return await call_next(request)

        @router.post("/files", status_code=201)
        async def upload(
            request: Request,
            file: UploadFile = File(...),
            display_name: str = Form(..., alias="DisplayName"),
        ):
            if self.upload_error is not None:
                status, body = self.upload_error
                return JSONResponse(status_code=status, content=body)
            data = await file.read()
            self.uploads.append({
                "filename": file.filename,
                "display_name": display_name,
                "content_length": request.headers.get("content-length"),
                "content_type": request.headers.get("content-type"),
            })
            obj = self.add_object(display_name, data)
            return {"id": obj.id, "fileName": obj.file_name, "size": len(data), "bucket": "primary"}

        @router.get("/files/info/{object_id}")
        async def info(object_id: str):
            obj = self.objects.get(object_id)
            if obj is None:
                return JSONResponse(status_code=404, content={"message": "File not found"})
            return {"id": obj.id, "size": len(obj.data) + 16, "unencryptedSize": obj.unencrypted_size}

        @router.get("/files/{object_id}")
        async def download(object_id: str):
            obj = self.objects.get(object_id)
            if obj is None:
                return JSONResponse(status_code=404, content={"message": "File not found"})
            return Response(content=obj.data, media_type="application/octet-stream")

        @router.get("/files")
        async def list_files(limit: int = Query(...), offset: int = Query(0)):
            page = list(self.objects.values())[offset:offset + limit]
            return [
                {
                    "id": obj.id,
                    "pointer": obj.id,
                    "fileName": obj.file_name,
                    "creationDate": obj.creation_date,
                }
                for obj in page
            ]

        @router.get("/health")
        async def health():
            return self.nodes

        app.include_router(router)
        return app


@pytest.fixture(autouse=True)
def reset_component_loggers():
    """Undo setup_logging() so caplog sees records in every test."""
    yield
    for name in ("cli", "gateway"):
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
        logger.propagate = True
        logger.setLevel(logging.NOTSET)


@pytest.fixture
def config():
    """Gateway config pointing at the fake SDS."""
    return GatewayConfig(sds_url=SDS_URL, api_key=API_KEY, api_keys=TENANT_KEYS)


@pytest.fixture
def config_file(tmp_path):
    """Config JSON file in the on-disk format."""
    path = tmp_path / "config" / "gateway.json"
    path.parent.mkdir()
    path.write_text(json.dumps({"sdsUrl": SDS_URL, "apiKey": API_KEY, "apiKeys": TENANT_KEYS}))
    return path


@pytest.fixture
def fake_sds():
    return FakeSds()


@pytest.fixture
def gateway(config, fake_sds):
    """SdsGateway wired to the fake SDS through FastAPI's TestClient."""
    transport = SdsTransport(config, session=TestClient(fake_sds.app))
    with SdsGateway(transport) as gw:
        yield gw


@pytest.fixture
def sample_file(tmp_path):
    """
    Create a 10-byte sample file.

    Returns:
        Path to a.txt
    """
    file_path = tmp_path / 'a.txt'
    file_path.write_bytes(b'0123456789')
    return file_path
