"""
Request -> CaseRecord mapping and input validation.

Validation happens here, before the workflow runs; the workflow itself treats
missing optional fields as defaults, never as errors.
"""
import re
from typing import Dict, List, Optional

from einbot.api.schemas import Address, EinRequest
from einbot.core.errors import InputValidationError
from einbot.core.mappings import MONTH_BY_NUMBER
from einbot.core.models import CaseRecord, EmployeeDetails, LlcDetails, ThirdPartyDesignee
from einbot.core.normalize import digits_only

DEFAULT_ENTITY_TYPE = "Limited Liability Company (LLC)"

SSN_RE = re.compile(r"^\d{9}$|^\d{2}-\d{7}$|^\d{3}-\d{2}-\d{4}$")
STATE_RE = re.compile(r"^[A-Z]{2}$")
ZIP_RE = re.compile(r"^\d{5}(-\d{4})?$")


def _s(v) -> Optional[str]:
    if v is None:
        return None
    s = str(v).strip()
    return s or None


def _pick(addresses: List[Address], location_type: str) -> Optional[Address]:
    for a in addresses:
        if (a.locationType or "") == location_type:
            return a
    return addresses[0] if addresses else None


def _street(a: Address) -> Optional[str]:
    return _s(a.street) or _s(a.street1)


def _members(req: EinRequest) -> Dict[str, str]:
    rp = req.responsibleParty
    rp_first = (_s(rp.firstName) or "") if rp else ""
    rp_middle = (_s(rp.middleName) or "") if rp else ""
    rp_last = (_s(rp.lastName) or "") if rp else ""
    rp_phone = (_s(rp.phone) or "") if rp else ""

    for m in req.ownershipDetails:
        first, middle, last = _s(m.firstName) or "", _s(m.middleName) or "", _s(m.lastName) or ""
        if (first.lower(), middle.lower(), last.lower()) == (rp_first.lower(), rp_middle.lower(), rp_last.lower()):
            return {
                "first_name_1": first,
                "middle_name_1": middle,
                "last_name_1": last,
                "phone_1": rp_phone,
                "name_1": " ".join(p for p in (first, middle, last) if p),
                "percent_ownership_1": _s(m.ownershipPercentage) or "",
            }

    if rp_first and rp_last:
        return {
            "first_name_1": rp_first,
            "middle_name_1": rp_middle,
            "last_name_1": rp_last,
            "phone_1": rp_phone,
            "name_1": " ".join(p for p in (rp_first, rp_middle, rp_last) if p),
            "percent_ownership_1": "",
        }
    return {}


def _closing_month(v) -> Optional[str]:
    s = _s(v)
    if s is None:
        return None
    if s.isdigit():
        return MONTH_BY_NUMBER.get(str(int(s)))
    return s


def map_request_to_case(req: EinRequest) -> CaseRecord:
    physical = _pick(req.physicalAddress, "Business")
    mailing = _pick(req.mailingAddress, "Mailing")

    mailing_dict = None
    if mailing is not None:
        m = {
            "mailingStreet": _street(mailing) or "",
            "mailingCity": _s(mailing.city) or "",
            "mailingState": _s(mailing.state) or "",
            "mailingZip": _s(mailing.zipCode) or "",
        }
        if any(m.values()):
            mailing_dict = (m,)

    physical_dict = None
    if physical is not None:
        physical_dict = ({
            "physicalStreet": _street(physical) or "",
            "physicalCity": _s(physical.city) or "",
            "physicalState": _s(physical.state) or "",
            "physicalZip": _s(physical.zipCode) or "",
        },)

    rp = req.responsibleParty
    tpd = req.thirdPartyDesignee
    llc = req.llcDetails
    members = _members(req)

    return CaseRecord(
        record_id=_s(req.entityProcessId) or "",
        form_type=_s(req.formType) or "EIN",
        entity_name=_s(req.legalName),
        entity_type=_s(req.entityType) or DEFAULT_ENTITY_TYPE,
        formation_date=_s(req.startDate),
        business_category=_s(req.principalActivity),
        business_description=_s(req.principalLineOfBusiness),
        business_address_1=_street(physical) if physical else None,
        business_address_2=_s(physical.street2) if physical else None,
        entity_state=_s(physical.state) if physical else None,
        city=_s(physical.city) if physical else None,
        zip_code=_s(physical.zipCode) if physical else None,
        quarter_of_first_payroll=_s(req.firstWagesDate),
        ssn_decrypted=_s(rp.ssnOrItinOrEin) if rp else None,
        entity_members=members or None,
        locations=physical_dict,
        mailing_address=mailing_dict,
        physical_address=physical_dict,
        county=_s(req.county),
        trade_name=_s(req.tradeName),
        care_of_name=_s(req.careOfName),
        closing_month=_closing_month(req.closingMonth),
        filing_requirement=_s(req.filingRequirement),
        employee_details=EmployeeDetails(other=_s(req.employeeDetails.other)) if req.employeeDetails else None,
        third_party_designee=ThirdPartyDesignee(
            name=_s(tpd.name), phone=_s(tpd.phone), fax=_s(tpd.fax), authorized=_s(tpd.authorized),
        ) if tpd else None,
        llc_details=LlcDetails(numberOfMembers=_s(llc.numberOfMembers)) if llc and llc.numberOfMembers is not None else None,
    )


def validate_case(case: CaseRecord) -> None:
    """Raises InputValidationError listing every problem found."""
    problems = []
    if not (case.record_id or "").strip():
        problems.append("entityProcessId is required")
    if not (case.entity_type or "").strip():
        problems.append("entityType is required")
    if (case.form_type or "").strip().upper() != "EIN":
        problems.append(f"formType must be EIN, got {case.form_type!r}")

    if case.ssn_decrypted and not SSN_RE.match(case.ssn_decrypted):
        problems.append("responsibleParty.ssnOrItinOrEin must be 9 digits (optionally dashed)")
    if case.entity_state and not STATE_RE.match(case.entity_state):
        problems.append(f"physicalAddress.state must be a two-letter code, got {case.entity_state!r}")
    if case.zip_code and not ZIP_RE.match(case.zip_code):
        problems.append(f"physicalAddress.zipCode must be 5 or 9 digits, got {case.zip_code!r}")

    mailing = case.first_mailing()
    if mailing:
        for key, label in (("mailingStreet", "street"), ("mailingCity", "city"),
                           ("mailingState", "state"), ("mailingZip", "zipCode")):
            if not (mailing.get(key) or "").strip():
                problems.append(f"mailingAddress.{label} is required when a mailing address is given")

    phone = (case.entity_members or {}).get("phone_1")
    if phone and len(digits_only(phone)) != 10:
        problems.append("responsibleParty.phone must have 10 digits")

    if case.llc_details and case.llc_details.numberOfMembers is not None:
        raw = case.llc_details.numberOfMembers
        try:
            ok = int(str(raw).strip()) > 0
        except ValueError:
            ok = False
        if not ok:
            problems.append(f"llcDetails.numberOfMembers must be a positive integer, got {raw!r}")

    tpd = case.third_party_designee
    if tpd:
        if tpd.phone and len(digits_only(tpd.phone)) != 10:
            problems.append("thirdPartyDesignee.phone must have 10 digits")
        if tpd.fax and len(digits_only(tpd.fax)) != 10:
            problems.append("thirdPartyDesignee.fax must have 10 digits")

    if problems:
        raise InputValidationError(problems)
