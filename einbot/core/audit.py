import re
import time
from dataclasses import asdict
from typing import Optional

from einbot.core.models import AuditRecord, CaseRecord, STATUS_PENDING
from einbot.observability.logging import log
from einbot.settings import settings

UNKNOWN_ENTITY = "UnknownEntity"

# Artifact purposes (file-name suffixes)
PURPOSE_CONFIRMATION = "ID-EINConfirmation"
PURPOSE_LETTER = "ID-EINLetter"
PURPOSE_FAILURE = "ID-EINSubmissionFailure"


def entity_slug(entity_name: Optional[str]) -> str:
    return re.sub(r"[^\w\-]", "", entity_name or UNKNOWN_ENTITY) or UNKNOWN_ENTITY


def audit_slug(entity_name: Optional[str]) -> str:
    return re.sub(r"[^\w]", "", entity_name or UNKNOWN_ENTITY) or UNKNOWN_ENTITY


def crm_file_stem(entity_name: Optional[str], purpose: str) -> str:
    stem = re.sub(r"\s+", "", entity_name or UNKNOWN_ENTITY)
    return f"{stem}-{purpose}"


def artifact_name(record_id: str, entity_name: Optional[str], purpose: str, ext: str = "pdf") -> str:
    ns = settings.ARTIFACT_NAMESPACE
    return f"{ns}/{record_id or 'unknown'}/{entity_slug(entity_name)}-{purpose}.{ext}"


def audit_blob_name(record_id: str, entity_name: Optional[str]) -> str:
    return f"{settings.ARTIFACT_NAMESPACE}/{record_id}/{audit_slug(entity_name)}_data.json"


def log_blob_name(record_id: str, ts: Optional[int] = None) -> str:
    return f"logs/{record_id or 'unknown'}/browser_{int(ts if ts is not None else time.time())}.log"


def _plain(v):
    if v is None:
        return None
    if hasattr(v, "__dataclass_fields__"):
        return asdict(v)
    if isinstance(v, tuple):
        return [dict(x) if isinstance(x, dict) else x for x in v]
    if isinstance(v, dict):
        return dict(v)
    return v


def build_audit_record(case: CaseRecord) -> AuditRecord:
    """Projects the case into the audit record. Missing fields are recorded and logged, never rejected."""
    data = {
        "record_id": case.record_id,
        "form_type": case.form_type,
        "entity_name": case.entity_name,
        "entity_type": case.entity_type,
        "formation_date": case.formation_date,
        "business_category": case.business_category,
        "business_description": case.business_description,
        "business_address_1": case.business_address_1,
        "entity_state": case.entity_state,
        "business_address_2": case.business_address_2,
        "city": case.city,
        "zip_code": case.zip_code,
        "quarter_of_first_payroll": case.quarter_of_first_payroll,
        "entity_state_record_state": case.entity_state_record_state,
        "case_contact_name": case.case_contact_name,
        "ssn_decrypted": case.ssn_decrypted,
        "proceed_flag": case.proceed_flag,
        "entity_members": _plain(case.entity_members),
        "locations": _plain(case.locations),
        "mailing_address": _plain(case.mailing_address),
        "county": case.county,
        "trade_name": case.trade_name,
        "care_of_name": case.care_of_name,
        "closing_month": case.closing_month,
        "filing_requirement": case.filing_requirement,
        "employee_details": _plain(case.employee_details),
        "third_party_designee": _plain(case.third_party_designee),
        "llc_details": _plain(case.llc_details),
        "missing_fields": case.missing_fields(),
        "defaulted_fields": [],
        "response_status": STATUS_PENDING,
    }
    if data["missing_fields"]:
        try:
            log(event="case_missing_fields", recordId=case.record_id, fields=data["missing_fields"])
        except Exception:
            pass
    return AuditRecord(data=data)
