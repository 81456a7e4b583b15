import pytest

from einbot.api.mapper import map_request_to_case, validate_case
from einbot.api.schemas import EinRequest
from einbot.core.errors import InputValidationError


def _payload(**overrides):
    payload = {
        "entityProcessId": "a0X001",
        "formType": "EIN",
        "legalName": "Acme Widgets LLC",
        "entityType": "Limited Liability Company (LLC)",
        "startDate": "2024-03-15",
        "principalActivity": "Retail",
        "principalLineOfBusiness": "Widget retail",
        "county": "Florida",
        "closingMonth": "12",
        "responsibleParty": {
            "firstName": "Jane",
            "middleName": "Q",
            "lastName": "Doe",
            "phone": "305-555-0100",
            "ssnOrItinOrEin": "123-45-6789",
        },
        "ownershipDetails": [
            {"firstName": "John", "lastName": "Roe", "ownershipPercentage": 40},
            {"firstName": "JANE", "middleName": "q", "lastName": "doe", "ownershipPercentage": 60},
        ],
        "physicalAddress": [
            {"locationType": "Registered Agent", "street": "1 Agent Way", "city": "Dover", "state": "DE",
             "zipCode": "19901"},
            {"locationType": "Business", "street": "100 Main St", "street2": "Suite 5", "city": "Miami",
             "state": "FL", "zipCode": 33101},
        ],
        "mailingAddress": [
            {"locationType": "Mailing", "street1": "PO Box 77", "city": "Tampa", "state": "FL",
             "zipCode": "33601"},
        ],
        "llcDetails": {"numberOfMembers": 2},
        "someCrmOnlyField": {"ignored": True},
    }
    payload.update(overrides)
    return payload


def _case(**overrides):
    return map_request_to_case(EinRequest.model_validate(_payload(**overrides)))


def test_full_payload_maps_to_case():
    case = _case()

    assert case.record_id == "a0X001"
    assert case.entity_name == "Acme Widgets LLC"
    assert case.business_address_1 == "100 Main St"
    assert case.business_address_2 == "Suite 5"
    assert case.entity_state == "FL"
    assert case.zip_code == "33101"
    assert case.closing_month == "DECEMBER"
    assert case.llc_details.numberOfMembers == "2"
    assert case.first_mailing() == {
        "mailingStreet": "PO Box 77", "mailingCity": "Tampa", "mailingState": "FL", "mailingZip": "33601",
    }
    validate_case(case)


def test_matching_owner_supplies_member_and_percentage():
    members = _case().entity_members
    assert members["first_name_1"] == "JANE"
    assert members["last_name_1"] == "doe"
    assert members["percent_ownership_1"] == "60"
    assert members["phone_1"] == "305-555-0100"
    assert members["name_1"] == "JANE q doe"


def test_responsible_party_used_when_no_owner_matches():
    members = _case(ownershipDetails=[{"firstName": "John", "lastName": "Roe"}]).entity_members
    assert (members["first_name_1"], members["middle_name_1"], members["last_name_1"]) == ("Jane", "Q", "Doe")
    assert members["percent_ownership_1"] == ""


def test_missing_entity_type_defaults_to_llc():
    case = _case(entityType=None)
    assert case.entity_type == "Limited Liability Company (LLC)"


def test_first_address_used_without_preferred_location_type():
    case = _case(physicalAddress=[{"street": "9 Elm", "city": "Reno", "state": "NV", "zipCode": "89501"}],
                 mailingAddress=[])
    assert case.business_address_1 == "9 Elm"
    assert case.mailing_address is None


def test_validation_reports_every_problem():
    case = _case(
        entityProcessId="",
        formType="SS-4",
        responsibleParty={"firstName": "Jane", "lastName": "Doe", "phone": "555", "ssnOrItinOrEin": "12345"},
        ownershipDetails=[],
        physicalAddress=[{"locationType": "Business", "street": "1 Main", "city": "X", "state": "Florida",
                          "zipCode": "331"}],
        mailingAddress=[{"locationType": "Mailing", "street": "PO Box 1"}],
        llcDetails={"numberOfMembers": "zero"},
        thirdPartyDesignee={"name": "Agent", "phone": "123", "fax": "1234567890"},
    )

    with pytest.raises(InputValidationError) as excinfo:
        validate_case(case)

    problems = excinfo.value.problems
    joined = " | ".join(problems)
    assert "entityProcessId is required" in joined
    assert "formType must be EIN" in joined
    assert "ssnOrItinOrEin" in joined
    assert "physicalAddress.state" in joined
    assert "physicalAddress.zipCode" in joined
    assert "mailingAddress.city" in joined
    assert "mailingAddress.zipCode" in joined
    assert "responsibleParty.phone" in joined
    assert "llcDetails.numberOfMembers" in joined
    assert "thirdPartyDesignee.phone" in joined
    assert "thirdPartyDesignee.fax" not in joined


@pytest.mark.parametrize("ssn", ["123456789", "12-3456789", "123-45-6789"])
def test_accepted_tax_id_shapes(ssn):
    rp = dict(_payload()["responsibleParty"], ssnOrItinOrEin=ssn)
    validate_case(_case(responsibleParty=rp))


def test_nine_digit_zip_is_valid():
    addr = dict(_payload()["physicalAddress"][1], zipCode="33101-1234")
    validate_case(_case(physicalAddress=[addr]))
