import os
from dotenv import load_dotenv

load_dotenv()

class Settings:
    API_KEY: str = os.getenv("API_KEY", "")
    ADMIN_API_KEY: str = os.getenv("ADMIN_API_KEY", "")
    ADMIN_RBAC_ENABLED: bool = os.getenv("ADMIN_RBAC_ENABLED", "true").lower() == "true"
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "")

    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    RQ_QUEUE_NAME: str = os.getenv("RQ_QUEUE_NAME", "ein")
    # One live browser session per record; the lock outlives the slowest expected run
    RUN_LOCK_TTL_MS: int = int(os.getenv("RUN_LOCK_TTL_MS", "1800000"))
    RUN_JOB_TIMEOUT_SEC: int = int(os.getenv("RUN_JOB_TIMEOUT_SEC", "1800"))

    # Remote form
    FORM_START_URL: str = os.getenv("FORM_START_URL", "https://sa.www4.irs.gov/modiein/individual/index.jsp")
    FORM_BASE_URL: str = os.getenv("FORM_BASE_URL", "https://sa.www4.irs.gov")
    STEP_TIMEOUT_SEC: int = int(os.getenv("STEP_TIMEOUT_SEC", "300"))
    CLICK_RETRIES: int = int(os.getenv("CLICK_RETRIES", "3"))
    CLICK_RETRY_DELAY_SEC: float = float(os.getenv("CLICK_RETRY_DELAY_SEC", "1.0"))
    HEADLESS: bool = os.getenv("HEADLESS", "true").lower() == "true"
    BROWSER_LOG_DIR: str = os.getenv("BROWSER_LOG_DIR", "/tmp")

    # Capture
    CAPTURE_SETTLE_SEC: float = float(os.getenv("CAPTURE_SETTLE_SEC", "1.0"))
    CAPTURE_READY_TIMEOUT_SEC: int = int(os.getenv("CAPTURE_READY_TIMEOUT_SEC", "10"))
    CAPTURE_SCRIPT_TIMEOUT_SEC: int = int(os.getenv("CAPTURE_SCRIPT_TIMEOUT_SEC", "30"))
    HTML2PDF_URL: str = os.getenv(
        "HTML2PDF_URL",
        "https://cdnjs.cloudflare.com/ajax/libs/html2pdf.js/0.10.1/html2pdf.bundle.min.js",
    )

    # Artifact store (Azure Blob REST, SAS-authenticated)
    BLOB_ACCOUNT_URL: str = os.getenv("BLOB_ACCOUNT_URL", "")
    BLOB_CONTAINER: str = os.getenv("BLOB_CONTAINER", "ein-artifacts")
    BLOB_SAS_TOKEN: str = os.getenv("BLOB_SAS_TOKEN", "")
    BLOB_TIMEOUT_SEC: int = int(os.getenv("BLOB_TIMEOUT_SEC", "30"))
    ARTIFACT_NAMESPACE: str = os.getenv("ARTIFACT_NAMESPACE", "EntityProcess")

    # Upload retry policy
    UPLOAD_MAX_ATTEMPTS: int = int(os.getenv("UPLOAD_MAX_ATTEMPTS", "5"))
    UPLOAD_BASE_DELAY_MS: int = int(os.getenv("UPLOAD_BASE_DELAY_MS", "2000"))
    UPLOAD_MAX_DELAY_MS: int = int(os.getenv("UPLOAD_MAX_DELAY_MS", "60000"))
    UPLOAD_JITTER: bool = os.getenv("UPLOAD_JITTER", "false").lower() == "true"

    # System of record
    CRM_LOGIN_URL: str = os.getenv("CRM_LOGIN_URL", "https://login.salesforce.com/services/oauth2/token")
    CRM_CLIENT_ID: str = os.getenv("CRM_CLIENT_ID", "")
    CRM_CLIENT_SECRET: str = os.getenv("CRM_CLIENT_SECRET", "")
    CRM_USERNAME: str = os.getenv("CRM_USERNAME", "")
    CRM_PASSWORD: str = os.getenv("CRM_PASSWORD", "")
    CRM_TIMEOUT_SEC: int = int(os.getenv("CRM_TIMEOUT_SEC", "15"))
    # Tokens are not introspected; treat them as valid for this long
    CRM_TOKEN_TTL_SEC: int = int(os.getenv("CRM_TOKEN_TTL_SEC", "7200"))
    CRM_API_VERSION: str = os.getenv("CRM_API_VERSION", "v59.0")
    # Modes:
    # - "sync": send inline only
    # - "rq": queue only
    # - "hybrid": send inline, queue a retry job if that failed
    NOTIFY_MODE: str = os.getenv("NOTIFY_MODE", "hybrid").lower()

    ENABLE_PII_REDACTION: bool = os.getenv("ENABLE_PII_REDACTION", "true").lower() == "true"

settings = Settings()
