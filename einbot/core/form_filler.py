"""
Form completion
---------------
Drives one interactive session through the registration pages for one case.

FormCompletion.run() never raises; it returns an Outcome:
- Success(identifier, artifact, letter_url)
- RecoverableFailure(code=reference number, detail)   (remote refused, Type 2)
- UnexpectedFailure(error, detail)                    (anything else, Type 1)

Pages are walked in a fixed order with branches driven by the mapped entity
category. Optional case fields get defaults; every substitution is logged and
recorded on the audit record under `defaulted_fields`.
"""
from __future__ import annotations

import threading
import time
from typing import Dict, List, Optional

import einbot.core.state_machine as st
from einbot.core import mappings as m
from einbot.core.audit import PURPOSE_CONFIRMATION
from einbot.core.capture import capture_page
from einbot.core.diagnosis import diagnose
from einbot.core.errors import AutomationError
from einbot.core.models import (
    Artifact,
    AuditRecord,
    CaseRecord,
    Outcome,
    RecoverableFailure,
    Success,
    UnexpectedFailure,
)
from einbot.core.normalize import (
    DEFAULT_BUSINESS_DESCRIPTION,
    full_address,
    map_category,
    normalize_business_name,
    normalize_closing_month,
    normalize_state,
    normalize_trade_name,
    normalize_trust_name,
    parse_formation_date,
    parse_member_count,
    phone_or_default,
    resolve_sub_type,
    split_phone,
    split_tax_id,
    wants_mailing_address,
)
from einbot.core.submission import detect_refusal, submit_application
from einbot.observability.logging import log
from einbot.session.base import ElementNotReady, InteractiveSession, by_id, by_xpath
from einbot.session.interactions import (
    click_button,
    click_optional,
    fill_field,
    select_dropdown,
    select_radio,
)
from einbot.settings import settings
from einbot.store.retry import call_with_retry

BEGIN = by_xpath("//input[@type='submit' and @name='submit' and @value='Begin Application >>']")
CONTINUE = by_xpath("//input[@type='submit' and @value='Continue >>']")
CONTINUE_SUBMIT = by_xpath("//input[@type='submit' and @name='Submit' and contains(@value, 'Continue >>')]")
CONTINUE_SUBMIT2 = by_xpath("//input[@type='submit' and @name='Submit2' and contains(@value, 'Continue >>')]")
ACCEPT_AS_ENTERED = by_xpath("//input[@type='submit' and @name='Submit' and @value='Accept As Entered']")
MAIN_CONTENT = by_id("individual-leftcontent")

ACCEPT_AS_ENTERED_WAIT_SEC = 20
JURISDICTION_WAIT_SEC = 5
SUB_TYPE_CONTINUE_GAP_SEC = 0.5
FISCAL_MONTH_ATTEMPTS = 2
FISCAL_MONTH_DELAY_MS = 1000

TRUSTEESHIP = "Trusteeship"


class FormCompletion:
    def __init__(
        self,
        session: InteractiveSession,
        case: CaseRecord,
        audit: AuditRecord,
        store,
        cancel: Optional[threading.Event] = None,
    ):
        self.session = session
        self.case = case
        self.audit = audit
        self.store = store
        self.cancel = cancel
        self.state = st.START
        self.trail: List[str] = []
        # purpose -> uploaded artifact, announced by the orchestrator
        self.artifacts: Dict[str, Artifact] = {}

        self.category, self.category_radio = map_category(case.entity_type)
        self.entity_type = (case.entity_type or "").strip()

    # bookkeeping

    def _enter(self, state: str) -> None:
        if self.state in st.TERMINAL_STATES:
            log(event="form_state_ignored", recordId=self.case.record_id, state=state, terminal=self.state)
            return
        self.state = state
        self.trail.append(state)
        log(event="form_state", recordId=self.case.record_id, state=state)

    def _default(self, field: str, value, default):
        if value is not None and str(value).strip() != "":
            return value
        defaulted = list(self.audit.get("defaulted_fields") or [])
        if field not in defaulted:
            defaulted.append(field)
            self.audit.set("defaulted_fields", defaulted)
        try:
            log(event="case_field_defaulted", recordId=self.case.record_id, field=field)
        except Exception:
            pass
        return default

    def _member(self, key: str) -> str:
        return ((self.case.entity_members or {}).get(key) or "").strip()

    def _continue(self, label: str, locator=CONTINUE) -> None:
        click_button(self.session, locator, f"Continue ({label})")

    def _accept_as_entered(self) -> None:
        click_optional(self.session, ACCEPT_AS_ENTERED, "Accept As Entered", ACCEPT_AS_ENTERED_WAIT_SEC)

    # entry point

    def run(self) -> Outcome:
        try:
            if self.entity_type == TRUSTEESHIP:
                self._trust_flow()
            else:
                self._standard_flow()
            outcome = submit_application(self.session, self.case, self.audit, self.store, self.cancel, self.artifacts)
        except Exception as e:
            refusal = detect_refusal(self.session, self.case, self.audit)
            if refusal is not None:
                log(event="form_refused", recordId=self.case.record_id, state=self.state,
                    errorType=type(e).__name__, error=str(e)[:300], referenceNumber=refusal.code)
                self._enter(st.TYPE2_FAILURE)
                return refusal
            detail = diagnose(self.session)
            log(event="form_failed", recordId=self.case.record_id, state=self.state,
                errorType=type(e).__name__, error=str(e)[:300], pageError=detail)
            self._enter(st.TYPE1_FAILURE)
            return UnexpectedFailure(error=e, detail=detail)

        if isinstance(outcome, Success):
            if outcome.artifact is None and PURPOSE_CONFIRMATION in self.artifacts:
                outcome = Success(outcome.identifier, self.artifacts[PURPOSE_CONFIRMATION], outcome.letter_url)
            self._enter(st.ISSUED)
        elif isinstance(outcome, RecoverableFailure):
            self._enter(st.TYPE2_FAILURE)
        else:
            self._enter(st.TYPE1_FAILURE)
        return outcome

    # standard flow

    def _standard_flow(self) -> None:
        self._start()
        self._entity_category()
        self._sub_category()
        self._member_count()
        self._jurisdiction()
        self._purpose()
        self._party_identity()
        self._physical_address()
        self._mailing_address()
        self._business_name()
        self._formation_date()
        self._activity()
        self._receive_method()

    def _start(self) -> None:
        self._enter(st.START)
        self.session.navigate(settings.FORM_START_URL)
        message = self.session.accept_dialogs(timeout=5)
        if message:
            log(event="dialog_accepted", message=message[:200])
        try:
            self.session.wait_for(BEGIN, timeout=10)
        except ElementNotReady as e:
            raise AutomationError("Page load timeout", "Failed to locate Begin Application button") from e
        click_button(self.session, BEGIN, "Begin Application")
        try:
            self.session.wait_for(MAIN_CONTENT, timeout=10)
        except ElementNotReady as e:
            raise AutomationError("Failed to load main form content", "Element 'individual-leftcontent' not found") from e

    def _entity_category(self) -> None:
        self._enter(st.ENTITY_CATEGORY)
        if not self.category_radio:
            raise AutomationError(f"Failed to select entity type: {self.category}", f"unmapped entity type {self.entity_type!r}")
        select_radio(self.session, self.category_radio, f"Entity type: {self.category}")
        self._continue("entity type")

    def _sub_category(self) -> None:
        if self.category in m.NO_SUB_TYPE_CATEGORIES:
            self._continue("after entity type")
            return
        self._enter(st.SUB_CATEGORY)
        label, radio = resolve_sub_type(self.entity_type, self.case.business_description)
        select_radio(self.session, radio, f"Sub-type: {label}")
        self._continue("sub-type, first")
        time.sleep(SUB_TYPE_CONTINUE_GAP_SEC)
        self._continue("sub-type, second")

    def _member_count(self) -> None:
        if self.category != m.LLC:
            return
        self._enter(st.MEMBER_COUNT)
        raw = self.case.llc_details.numberOfMembers if self.case.llc_details else None
        members = parse_member_count(self._default("llc_details.numberOfMembers", raw, "1"))
        fill_field(self.session, by_xpath("//input[@id='numbermem' or @name='numbermem']"), str(members), "LLC members")
        state = normalize_state(self.case.entity_state or self.case.entity_state_record_state)
        select_dropdown(self.session, by_id("state"), "State", value=state)
        self._continue("LLC members and state")

    def _jurisdiction(self) -> None:
        restricted = (
            self.category == m.LLC
            and (self.case.entity_state or "").strip()
            and normalize_state(self.case.entity_state) in m.RESTRICTED_LLC_STATES
        )
        if not restricted:
            self._continue("after LLC")
            return
        self._enter(st.JURISDICTION_CONFIRMATION)
        if self.session.exists(by_id("radio_n"), timeout=JURISDICTION_WAIT_SEC):
            select_radio(self.session, "radio_n", "Non-partnership LLC option")
            self._continue("non-partnership LLC option")
        else:
            log(event="optional_control_absent", field="radio_n")
        self._continue("after confirmation")

    def _purpose(self) -> None:
        self._enter(st.PURPOSE)
        select_radio(self.session, "newbiz", "New Business")
        self._continue("business purpose")

    def _party_identity(self) -> None:
        self._enter(st.PARTY_IDENTITY)
        applicant = self.entity_type in m.APPLICANT_NAME_TYPES
        prefix = "applicant" if applicant else "responsibleParty"
        first = self._member("first_name_1")
        middle = self._member("middle_name_1")
        last = self._member("last_name_1")
        fill_field(self.session, by_id(f"{prefix}FirstName"), first, "First Name")
        if middle:
            fill_field(self.session, by_id(f"{prefix}MiddleName"), middle, "Middle Name")
        fill_field(self.session, by_id(f"{prefix}LastName"), last, "Last Name")

        self._enter(st.TAX_ID)
        first3, mid2, last4 = split_tax_id(self.case.ssn_decrypted)
        fill_field(self.session, by_id(f"{prefix}SSN3"), first3, "SSN First 3")
        fill_field(self.session, by_id(f"{prefix}SSN2"), mid2, "SSN Middle 2")
        fill_field(self.session, by_id(f"{prefix}SSN4"), last4, "SSN Last 4")
        select_radio(self.session, "iamsole", "I Am Sole")
        self._continue("responsible party")

    def _physical_street(self) -> str:
        return full_address(self.case.business_address_1, self.case.business_address_2)

    def _physical_address(self) -> None:
        self._enter(st.PHYSICAL_ADDRESS)
        fill_field(self.session, by_id("physicalAddressStreet"), self._physical_street(), "Street")
        fill_field(self.session, by_id("physicalAddressCity"), self.case.city, "Physical City")
        select_dropdown(self.session, by_id("physicalAddressState"), "Physical State",
                        value=normalize_state(self.case.entity_state))
        fill_field(self.session, by_id("physicalAddressZipCode"), self.case.zip_code, "Physical Zip")

        phone = phone_or_default(self._default("entity_members.phone_1", self._member("phone_1"), ""))
        parts = split_phone(phone)
        if parts:
            fill_field(self.session, by_id("phoneFirst3"), parts[0], "Phone First 3")
            fill_field(self.session, by_id("phoneMiddle3"), parts[1], "Phone Middle 3")
            fill_field(self.session, by_id("phoneLast4"), parts[2], "Phone Last 4")
        else:
            log(event="phone_skipped", recordId=self.case.record_id, digits=len(phone))

        if self.case.care_of_name and self.entity_type in m.CARE_OF_TYPES:
            self._enter(st.CARE_OF_NAME)
            locator = by_id("physicalAddressCareofName")
            if self.session.exists(locator, timeout=10):
                try:
                    fill_field(self.session, locator, self.case.care_of_name, "Physical Care of Name")
                except AutomationError as e:
                    log(event="care_of_name_skipped", error=str(e)[:200])

    def _mailing_address(self) -> None:
        self._enter(st.MAILING_DECISION)
        mailing = self.case.first_mailing()
        street = (mailing.get("mailingStreet") or "").strip()
        has_mailing = wants_mailing_address(street, self._physical_street())
        select_radio(self.session, "radioAnotherAddress_y" if has_mailing else "radioAnotherAddress_n",
                     "Address option (Yes)" if has_mailing else "Address option (No)")
        self._continue("address option")
        self._accept_as_entered()
        if not has_mailing:
            return

        self._enter(st.MAILING_ADDRESS)
        fill_field(self.session, by_id("mailingAddressStreet"), street, "Mailing Street")
        fill_field(self.session, by_id("mailingAddressCity"), mailing.get("mailingCity"), "Mailing City")
        fill_field(self.session, by_id("mailingAddressState"), mailing.get("mailingState"), "Mailing State")
        fill_field(self.session, by_id("mailingAddressPostalCode"), mailing.get("mailingZip"), "Mailing Zip")
        self._continue("mailing address")
        self._accept_as_entered()

    def _business_name(self) -> None:
        self._enter(st.BUSINESS_NAME)
        legal = normalize_business_name(self.case.entity_name, self.category_radio)
        field_id = "businessOperationalTradeName" if self.category_radio == "sole" else "businessOperationalLegalName"
        try:
            fill_field(self.session, by_id(field_id), legal, "Legal Business Name")
        except AutomationError as e:
            log(event="business_name_fill_failed", recordId=self.case.record_id, error=str(e)[:200])

        fill_field(self.session, by_id("businessOperationalCounty"), normalize_state(self.case.entity_state), "County")

        county_state = (self.case.county or "").strip()
        if county_state:
            try:
                select_dropdown(self.session, by_id("businessOperationalState"), "Business Operational State",
                                value=normalize_state(county_state))
            except AutomationError as e:
                log(event="business_state_skipped", error=str(e)[:200])
            if self.entity_type in m.ARTICLES_FILED_TYPES:
                try:
                    select_dropdown(self.session, by_id("articalsFiledState"), "Articles Filed State",
                                    value=normalize_state(county_state))
                except AutomationError as e:
                    log(event="articles_filed_state_skipped", error=str(e)[:200])
        else:
            self._default("county", None, "")

        self._trade_name(legal)

    def _trade_name(self, legal: str) -> None:
        trade = (self.case.trade_name or "").strip()
        if not trade:
            return
        normalized = normalize_trade_name(trade, self.category_radio)
        if normalized.lower() == normalize_trade_name(self.case.entity_name, self.category_radio).lower():
            log(event="trade_name_same_as_legal", recordId=self.case.record_id)
            return
        try:
            fill_field(self.session, by_id("businessOperationalTradeName"), normalized, "Trade Name")
        except AutomationError as e:
            log(event="trade_name_fill_failed", recordId=self.case.record_id, error=str(e)[:200])

    def _formation_fields(self) -> None:
        month, year = parse_formation_date(self.case.formation_date)
        if month is None:
            log(event="formation_date_unparsed", recordId=self.case.record_id, value=self.case.formation_date)
        select_dropdown(self.session, by_id("BUSINESS_OPERATIONAL_MONTH_ID"), "Formation Month", value=month)
        fill_field(self.session, by_id("BUSINESS_OPERATIONAL_YEAR_ID"), str(year) if year else "", "Formation Year")

    def _formation_date(self) -> None:
        self._enter(st.FORMATION_DATE)
        self._formation_fields()
        self._fiscal_month()
        self._continue("formation date")

    def _fiscal_month(self) -> None:
        if self.entity_type not in m.FISCAL_MONTH_TYPES:
            return
        raw = (self.case.closing_month or "").strip()
        if not raw:
            return
        month = normalize_closing_month(raw)
        if not month:
            log(event="closing_month_invalid", recordId=self.case.record_id, value=raw)
            return
        self._enter(st.FISCAL_CLOSING_MONTH)
        locator = by_id("fiscalMonth")
        try:
            call_with_retry(
                lambda: self.session.select_option(locator, label=month, timeout=10),
                attempts=FISCAL_MONTH_ATTEMPTS,
                delay_ms=lambda attempt: FISCAL_MONTH_DELAY_MS,
                retry_on=(ElementNotReady,),
                label="fiscalMonth",
                event_prefix="select",
            )
        except ElementNotReady as e:
            raise AutomationError(f"Failed to select Fiscal Month {month}", str(e)) from e

    def _activity(self) -> None:
        self._enter(st.ACTIVITY_QUESTIONNAIRE)
        for radio in m.ACTIVITY_NO_RADIOS:
            select_radio(self.session, radio, radio)
        self._continue("activity options")

        self._enter(st.PRIMARY_ACTIVITY)
        select_radio(self.session, "other", "Other activity")
        self._continue("primary activity")
        select_radio(self.session, "other", "Other service")
        description = self._default("business_description", self.case.business_description,
                                    DEFAULT_BUSINESS_DESCRIPTION)
        fill_field(self.session, by_id("pleasespecify"), description, "Business Description")
        self._continue("specify service")

    def _receive_method(self, locator=CONTINUE) -> None:
        self._enter(st.RECEIVE_METHOD)
        select_radio(self.session, "receiveonline", "Receive Online")
        self._continue("receive method", locator)
        self._enter(st.CONFIRMATION)
        artifact, ok = capture_page(PURPOSE_CONFIRMATION, self.session, self.case, self.store, self.cancel)
        if ok and artifact is not None:
            self.artifacts[PURPOSE_CONFIRMATION] = artifact
        else:
            log(event="confirmation_capture_failed", recordId=self.case.record_id)

    # trusteeship flow

    def _trust_flow(self) -> None:
        self._start()

        self._enter(st.ENTITY_CATEGORY)
        radio = self.category_radio or m.CATEGORY_RADIO[m.TRUSTS]
        select_radio(self.session, radio, "Entity type: Trusts")
        self._continue("entity type")

        self._enter(st.SUB_CATEGORY)
        label, sub_radio = resolve_sub_type(self.entity_type, self.case.business_description)
        select_radio(self.session, sub_radio, f"Sub-type: {label}")
        self._continue("sub-type")
        self._continue("sub-type confirmation")

        self._enter(st.PARTY_IDENTITY)
        first = self._member("first_name_1")
        middle = self._member("middle_name_1")
        last = self._member("last_name_1")
        self._trust_names(first, middle, last)
        self._enter(st.TAX_ID)
        first3, mid2, last4 = split_tax_id(self.case.ssn_decrypted)
        fill_field(self.session, by_id("responsiblePartySSN3"), first3, "SSN First 3")
        fill_field(self.session, by_id("responsiblePartySSN2"), mid2, "SSN Middle 2")
        fill_field(self.session, by_id("responsiblePartySSN4"), last4, "SSN Last 4")
        self._continue("SSN", CONTINUE_SUBMIT2)

        # the next page comes back with the names cleared
        try:
            self._trust_names(first, middle, last)
        except AutomationError as e:
            log(event="trust_name_refill_failed", error=str(e)[:200])
        select_radio(self.session, "iamsole", "I Am Sole")
        self._continue("I Am Sole", CONTINUE_SUBMIT)

        self._enter(st.MAILING_ADDRESS)
        mailing = self.case.first_mailing()
        fill_field(self.session, by_id("mailingAddressStreet"), mailing.get("mailingStreet"), "Mailing Street")
        fill_field(self.session, by_id("mailingAddressCity"), mailing.get("mailingCity"), "Mailing City")
        fill_field(self.session, by_id("mailingAddressState"), mailing.get("mailingState"), "Mailing State")
        fill_field(self.session, by_id("mailingAddressPostalCode"), mailing.get("mailingZip"), "Mailing Zip")
        phone = phone_or_default(self._default("entity_members.phone_1", self._member("phone_1"), ""))
        fill_field(self.session, by_id("internationalPhoneNumber"), phone, "Phone Number")
        self._continue("mailing", CONTINUE_SUBMIT)
        self._accept_as_entered()

        self._enter(st.BUSINESS_NAME)
        try:
            fill_field(self.session, by_id("businessOperationalLegalName"),
                       normalize_trust_name(self.case.entity_name), "Legal Business Name")
        except AutomationError as e:
            log(event="business_name_fill_failed", recordId=self.case.record_id, error=str(e)[:200])
        fill_field(self.session, by_id("businessOperationalCounty"), self.case.entity_state, "County")
        try:
            self.session.select_option(by_xpath("//select[@id='businessOperationalState' and @name='businessOperationalState']"),
                                       value=normalize_state(self.case.county), timeout=10)
        except (ElementNotReady, ValueError) as e:
            raise AutomationError("Failed to select state", str(e)) from e

        self._enter(st.FORMATION_DATE)
        self._formation_fields()
        self._continue("business info", CONTINUE_SUBMIT)

        self._enter(st.ACTIVITY_QUESTIONNAIRE)
        select_radio(self.session, "radioHasEmployees_n", "radioHasEmployees_n")
        self._continue("activity options")

        self._receive_method()

    def _trust_names(self, first: str, middle: str, last: str) -> None:
        fill_field(self.session, by_id("responsiblePartyFirstName"), first, "Responsible First Name")
        if middle:
            fill_field(self.session, by_id("responsiblePartyMiddleName"), middle, "Responsible Middle Name")
        fill_field(self.session, by_id("responsiblePartyLastName"), last, "Responsible Last Name")

