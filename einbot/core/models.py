from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional, Tuple, Union


@dataclass(frozen=True)
class LlcDetails:
    numberOfMembers: Optional[str] = None


@dataclass(frozen=True)
class ThirdPartyDesignee:
    name: Optional[str] = None
    phone: Optional[str] = None
    fax: Optional[str] = None
    authorized: Optional[str] = None


@dataclass(frozen=True)
class EmployeeDetails:
    other: Optional[str] = None


@dataclass(frozen=True)
class CaseRecord:
    """Immutable input for one workflow run. Optional fields stay None when absent."""
    record_id: str
    form_type: str = "EIN"
    entity_name: Optional[str] = None
    entity_type: Optional[str] = None
    formation_date: Optional[str] = None
    business_category: Optional[str] = None
    business_description: Optional[str] = None
    business_address_1: Optional[str] = None
    business_address_2: Optional[str] = None
    entity_state: Optional[str] = None
    city: Optional[str] = None
    zip_code: Optional[str] = None
    quarter_of_first_payroll: Optional[str] = None
    entity_state_record_state: Optional[str] = None
    case_contact_name: Optional[str] = None
    ssn_decrypted: Optional[str] = None
    proceed_flag: str = "true"
    # first_name_1, middle_name_1, last_name_1, phone_1, name_1, percent_ownership_1
    entity_members: Optional[Dict[str, str]] = None
    locations: Optional[Tuple[Dict[str, Any], ...]] = None
    mailing_address: Optional[Tuple[Dict[str, str], ...]] = None
    physical_address: Optional[Tuple[Dict[str, str], ...]] = None
    county: Optional[str] = None
    trade_name: Optional[str] = None
    care_of_name: Optional[str] = None
    closing_month: Optional[str] = None
    filing_requirement: Optional[str] = None
    employee_details: Optional[EmployeeDetails] = None
    third_party_designee: Optional[ThirdPartyDesignee] = None
    llc_details: Optional[LlcDetails] = None

    def missing_fields(self) -> List[str]:
        out = []
        for f in fields(self):
            if f.name == "record_id":
                continue
            if _is_missing(getattr(self, f.name)):
                out.append(f.name)
        return out

    def first_mailing(self) -> Dict[str, str]:
        if self.mailing_address:
            return dict(self.mailing_address[0])
        return {}


def _is_missing(v: Any) -> bool:
    if v is None:
        return True
    if isinstance(v, str):
        return not v.strip()
    if isinstance(v, (dict, list, tuple)):
        return len(v) == 0
    return False


# response_status values
STATUS_PENDING = "pending"
STATUS_SUCCESS = "success"
STATUS_FAIL = "fail"


@dataclass
class AuditRecord:
    """Mutable audit projection of a run. Persisted whole, never partially."""
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def record_id(self) -> str:
        return str(self.data.get("record_id") or "")

    @property
    def status(self) -> str:
        return str(self.data.get("response_status") or STATUS_PENDING)

    def set(self, key: str, value: Any) -> None:
        self.data[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def snapshot(self) -> Dict[str, Any]:
        return dict(self.data)


@dataclass
class Artifact:
    name: str
    data: bytes
    content_type: str = "application/pdf"
    # Internal-only unless explicitly published to the client
    hidden: bool = True
    url: Optional[str] = None


@dataclass(frozen=True)
class WorkflowResult:
    success: bool
    message: str
    artifact_url: Optional[str] = None
    # success / recoverable / unexpected
    outcome: str = ""
    # reference number or error code on failure
    code: Optional[str] = None


# Terminal outcomes of the form-completion flow

@dataclass(frozen=True)
class Success:
    identifier: str
    artifact: Optional[Artifact] = None
    letter_url: Optional[str] = None


@dataclass(frozen=True)
class RecoverableFailure:
    code: str
    detail: str = ""


@dataclass(frozen=True)
class UnexpectedFailure:
    error: BaseException
    detail: str = ""
    code: str = "500"


Outcome = Union[Success, RecoverableFailure, UnexpectedFailure]
