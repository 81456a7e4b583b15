import time
import zlib
from typing import Optional

import httpx

from einbot.core.audit import crm_file_stem
from einbot.core.errors import CrmError
from einbot.observability.logging import log
from einbot.settings import settings

SUCCESS_MESSAGE = "EIN is submitted IRS successfully"
LETTER_FAILURE_MESSAGE = "EIN Letter could not be downloaded"

STATUS_SUCCESS = "success"
STATUS_FAIL = "fail"

STATUS_PATH = "/services/apexrest/service/v2/formautomation/ein/update"
MILESTONE_OBJECT = "Content_Migration__c"


class CrmClient:
    """
    System-of-record client (password-grant OAuth, JSON REST).

    authenticate() raises CrmError; the notify calls never raise and return
    True/False. A 401 on any call refreshes the token once and resends once.
    """

    def __init__(
        self,
        login_url: Optional[str] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.login_url = login_url or settings.CRM_LOGIN_URL
        self.client_id = client_id if client_id is not None else settings.CRM_CLIENT_ID
        self.client_secret = client_secret if client_secret is not None else settings.CRM_CLIENT_SECRET
        self.username = username if username is not None else settings.CRM_USERNAME
        self.password = password if password is not None else settings.CRM_PASSWORD
        self.timeout = float(timeout or settings.CRM_TIMEOUT_SEC)
        self._token: Optional[str] = None
        self._instance_url: Optional[str] = None
        self._expires_at = 0.0

    @property
    def authenticated(self) -> bool:
        return bool(self._token) and time.time() < self._expires_at

    def authenticate(self, force: bool = False) -> str:
        """Returns a usable access token; reuses the cached one until it expires."""
        if self.authenticated and not force:
            return self._token

        form = {
            "grant_type": "password",
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "username": self.username,
            "password": self.password,
        }
        try:
            with httpx.Client(timeout=self.timeout) as client:
                resp = client.post(self.login_url, data=form)
        except httpx.HTTPError as e:
            log(event="crm_auth_exception", errorType=type(e).__name__, error=str(e)[:300])
            raise CrmError(0, str(e)) from e

        if not (200 <= resp.status_code < 300):
            log(event="crm_auth_failed", statusCode=int(resp.status_code), responseText=(resp.text or "")[:300])
            raise CrmError(resp.status_code, resp.text)

        body = resp.json()
        token = body.get("access_token")
        instance = body.get("instance_url")
        if not token or not instance:
            raise CrmError(resp.status_code, "token response missing access_token or instance_url")

        self._token = token
        self._instance_url = instance.rstrip("/")
        self._expires_at = time.time() + int(settings.CRM_TOKEN_TTL_SEC)
        log(event="crm_auth_ok", instanceUrl=self._instance_url)
        return token

    def _send(self, url: str, payload: dict, params: Optional[dict] = None) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self._token}", "Content-Type": "application/json"}
        with httpx.Client(timeout=self.timeout) as client:
            return client.post(url, json=payload, params=params, headers=headers)

    def _post(self, path: str, payload: dict, params: Optional[dict] = None) -> httpx.Response:
        self.authenticate()
        resp = self._send(f"{self._instance_url}{path}", payload, params)
        if resp.status_code == 401:
            log(event="crm_token_rejected", path=path)
            self.authenticate(force=True)
            resp = self._send(f"{self._instance_url}{path}", payload, params)
        if not (200 <= resp.status_code < 300):
            raise CrmError(resp.status_code, resp.text)
        return resp

    def update_status(
        self,
        record_id: str,
        status: str,
        identifier: Optional[str] = None,
        error_code: Optional[str] = None,
        message: Optional[str] = None,
    ) -> bool:
        if message is None:
            message = SUCCESS_MESSAGE if status == STATUS_SUCCESS else ""
        payload = {
            "entityProcessId": record_id,
            "einNumber": identifier,
            "errorCode": error_code,
            "message": message,
            "status": status,
        }
        try:
            resp = self._post(STATUS_PATH, payload, params={"entityProcessId": record_id})
        except Exception as e:
            log(event="crm_status_failed", recordId=record_id, status=status,
                errorType=type(e).__name__, error=str(e)[:300])
            return False
        log(event="crm_status_sent", recordId=record_id, status=status, errorCode=error_code,
            statusCode=int(resp.status_code))
        return True

    def notify_milestone(
        self,
        record_id: str,
        url: str,
        entity_name: Optional[str],
        purpose: str,
        hidden: bool = True,
        doc_type: str = "pdf",
    ) -> bool:
        stem = crm_file_stem(entity_name, purpose)
        payload = {
            "Name": f"{stem}.{doc_type}",
            "File_Extension__c": doc_type,
            "Migration_ID__c": f"{zlib.crc32((url or '').encode('utf-8'))}_{int(time.time())}",
            "File_Name__c": stem,
            "Parent_Name__c": "EntityProcess",
            "Account_ID__c": "",
            "Case_ID__c": "",
            "Entity_ID__c": "",
            "Entity_Process_Id__c": record_id,
            "Order_ID__c": "",
            "RFI_ID__c": "",
            "Blob_URL__c": url,
            "Is_Content_Created__c": False,
            "Is_Errored__c": False,
            "Hidden_From_Client__c": bool(hidden),
            "Historical_Record__c": False,
            "Exclude_from_Partner_API__c": False,
            "Deleted_by_Client__c": False,
        }
        path = f"/services/data/{settings.CRM_API_VERSION}/sobjects/{MILESTONE_OBJECT}/"
        try:
            resp = self._post(path, payload)
        except Exception as e:
            log(event="crm_milestone_failed", recordId=record_id, fileName=stem,
                errorType=type(e).__name__, error=str(e)[:300])
            return False
        log(event="crm_milestone_sent", recordId=record_id, fileName=stem, statusCode=int(resp.status_code))
        return True
