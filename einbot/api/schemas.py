from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

Scalar = Union[str, int, float]


class _Payload(BaseModel):
    # The system of record sends more keys than the form needs
    model_config = ConfigDict(extra="ignore")


class ResponsibleParty(_Payload):
    firstName: Optional[str] = None
    middleName: Optional[str] = None
    lastName: Optional[str] = None
    phone: Optional[Scalar] = None
    ssnOrItinOrEin: Optional[str] = None


class OwnershipDetail(_Payload):
    firstName: Optional[str] = None
    middleName: Optional[str] = None
    lastName: Optional[str] = None
    ownershipPercentage: Optional[Scalar] = None


class Address(_Payload):
    locationType: Optional[str] = None
    street: Optional[str] = None
    street1: Optional[str] = None
    street2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zipCode: Optional[Scalar] = None


class EmployeeDetailsIn(_Payload):
    other: Optional[str] = None


class ThirdPartyDesigneeIn(_Payload):
    name: Optional[str] = None
    phone: Optional[Scalar] = None
    fax: Optional[Scalar] = None
    authorized: Optional[str] = None


class LlcDetailsIn(_Payload):
    numberOfMembers: Optional[Any] = None


class EinRequest(_Payload):
    entityProcessId: Optional[str] = None
    formType: Optional[str] = "EIN"
    legalName: Optional[str] = None
    entityType: Optional[str] = None
    startDate: Optional[str] = None
    principalActivity: Optional[str] = None
    principalLineOfBusiness: Optional[str] = None
    firstWagesDate: Optional[str] = None
    county: Optional[str] = None
    tradeName: Optional[str] = None
    careOfName: Optional[str] = None
    closingMonth: Optional[Scalar] = None
    filingRequirement: Optional[str] = None
    responsibleParty: Optional[ResponsibleParty] = None
    ownershipDetails: List[OwnershipDetail] = Field(default_factory=list)
    physicalAddress: List[Address] = Field(default_factory=list)
    mailingAddress: List[Address] = Field(default_factory=list)
    employeeDetails: Optional[EmployeeDetailsIn] = None
    thirdPartyDesignee: Optional[ThirdPartyDesigneeIn] = None
    llcDetails: Optional[LlcDetailsIn] = None


class RunResponse(BaseModel):
    status: Literal["success", "fail", "queued", "error"] = "success"
    message: str = ""
    recordId: str = ""
    einNumber: Optional[str] = None
    artifactUrl: Optional[str] = None
    referenceNumber: Optional[str] = None
    jobId: Optional[str] = None
