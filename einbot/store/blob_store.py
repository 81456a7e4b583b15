import time
from typing import Optional
from urllib.parse import quote

import httpx

from einbot.observability.logging import log
from einbot.settings import settings

API_VERSION = "2021-12-02"


class BlobStoreError(RuntimeError):
    def __init__(self, status_code: int, body: str = "", name: str = ""):
        self.status_code = status_code
        self.body = (body or "")[:500]
        self.name = name
        super().__init__(f"blob store returned {status_code} for {name}: {self.body}")


class BlobStore:
    """
    Durable artifact store on the Azure Blob REST API (SAS-authenticated).
    Writes overwrite by name; a missing container is created once and the write retried.
    """

    def __init__(
        self,
        account_url: Optional[str] = None,
        container: Optional[str] = None,
        sas_token: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.account_url = (account_url if account_url is not None else settings.BLOB_ACCOUNT_URL).rstrip("/")
        self.container = container or settings.BLOB_CONTAINER
        self.sas_token = (sas_token if sas_token is not None else settings.BLOB_SAS_TOKEN).lstrip("?")
        self.timeout = float(timeout or settings.BLOB_TIMEOUT_SEC)

    def _url(self, path: str, query: str = "") -> str:
        parts = [p for p in (query, self.sas_token) if p]
        return f"{self.account_url}/{path}" + (("?" + "&".join(parts)) if parts else "")

    def blob_url(self, name: str) -> str:
        return f"{self.account_url}/{self.container}/{quote(name)}"

    def exists(self, container: Optional[str] = None) -> bool:
        c = container or self.container
        with httpx.Client(timeout=self.timeout) as client:
            resp = client.request(
                "GET",
                self._url(c, "restype=container"),
                headers={"x-ms-version": API_VERSION},
            )
        return 200 <= resp.status_code < 300

    def create(self, container: Optional[str] = None) -> None:
        c = container or self.container
        with httpx.Client(timeout=self.timeout) as client:
            resp = client.request(
                "PUT",
                self._url(c, "restype=container"),
                headers={"x-ms-version": API_VERSION},
            )
        # 409: created concurrently by another run
        if resp.status_code not in (201, 409):
            raise BlobStoreError(resp.status_code, resp.text, c)
        log(event="blob_container_created", container=c, statusCode=int(resp.status_code))

    def _put_once(self, data: bytes, name: str, content_type: str, hidden: bool) -> httpx.Response:
        headers = {
            "x-ms-blob-type": "BlockBlob",
            "x-ms-version": API_VERSION,
            "x-ms-date": time.strftime("%a, %d %b %Y %H:%M:%S GMT", time.gmtime()),
            "Content-Type": content_type,
            "x-ms-blob-content-type": content_type,
        }
        if hidden:
            headers["x-ms-tags"] = "HiddenFromClient=true"
        with httpx.Client(timeout=self.timeout) as client:
            return client.put(self._url(f"{self.container}/{quote(name)}"), content=data, headers=headers)

    def put(self, data: bytes, name: str, content_type: str, hidden: bool = True) -> str:
        if not self.account_url:
            raise BlobStoreError(0, "BLOB_ACCOUNT_URL is not set", name)

        resp = self._put_once(data, name, content_type, hidden)
        if resp.status_code == 404 and "ContainerNotFound" in (resp.headers.get("x-ms-error-code", "") + resp.text):
            log(event="blob_container_missing", container=self.container, target=name)
            self.create(self.container)
            resp = self._put_once(data, name, content_type, hidden)

        if not (200 <= resp.status_code < 300):
            raise BlobStoreError(resp.status_code, resp.text, name)
        return self.blob_url(name)
