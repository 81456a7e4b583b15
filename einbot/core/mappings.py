"""
Fixed lookup tables for the registration form.

All tables are read-only views built once at import; callers never mutate them.
"""
from types import MappingProxyType

LLC = "Limited Liability Company (LLC)"
SOLE = "Sole Proprietor"
PARTNERSHIP = "Partnership"
CORPORATIONS = "Corporations"
ESTATE = "Estate"
TRUSTS = "Trusts"
VIEW_ADDITIONAL = "View Additional Types, Including Tax-Exempt and Governmental Organizations"

# Case entity type -> category label on the first form page
ENTITY_CATEGORY = MappingProxyType({
    "Sole Proprietorship": SOLE,
    "Individual": SOLE,
    "Partnership": PARTNERSHIP,
    "Joint venture": PARTNERSHIP,
    "Limited Partnership": PARTNERSHIP,
    "General partnership": PARTNERSHIP,
    "C-Corporation": CORPORATIONS,
    "S-Corporation": CORPORATIONS,
    "Professional Corporation": CORPORATIONS,
    "Corporation": CORPORATIONS,
    "Non-Profit Corporation": VIEW_ADDITIONAL,
    "Limited Liability": LLC,
    "Company (LLC)": LLC,
    "LLC": LLC,
    "Limited Liability Company": LLC,
    "Limited Liability Company (LLC)": LLC,
    "Professional Limited Liability Company": LLC,
    "Limited Liability Partnership": PARTNERSHIP,
    "LLP": PARTNERSHIP,
    "Professional Limited Liability Company (PLLC)": LLC,
    "Association": VIEW_ADDITIONAL,
    "Co-ownership": PARTNERSHIP,
    "Doing Business As (DBA)": SOLE,
    "Trusteeship": TRUSTS,
})

# Category label -> radio id (also the suffix group key)
CATEGORY_RADIO = MappingProxyType({
    SOLE: "sole",
    PARTNERSHIP: "partnerships",
    CORPORATIONS: "corporations",
    LLC: "limited",
    ESTATE: "estate",
    TRUSTS: "trusts",
    VIEW_ADDITIONAL: "viewadditional",
})

NONPROFIT_SUB_TYPE = "Non-Profit/Tax-Exempt Organization"
OTHER_SUB_TYPE = "Other"

# Case entity type -> sub-type label. Non-Profit Corporation is resolved from the description.
SUB_TYPE = MappingProxyType({
    "Sole Proprietorship": "Sole Proprietor",
    "Individual": "Sole Proprietor",
    "Partnership": "Partnership",
    "Joint venture": "Joint Venture",
    "Limited Partnership": "Partnership",
    "General partnership": "Partnership",
    "C-Corporation": "Corporation",
    "S-Corporation": "S Corporation",
    "Professional Corporation": "Personal Service Corporation",
    "Corporation": "Corporation",
    "Limited Liability": "N/A",
    "Limited Liability Company (LLC)": "N/A",
    "LLC": "N/A",
    "Limited Liability Company": "N/A",
    "Professional Limited Liability Company": "N/A",
    "Limited Liability Partnership": "Partnership",
    "LLP": "Partnership",
    "Professional Limited Liability Company (PLLC)": "N/A",
    "Association": "N/A",
    "Co-ownership": "Partnership",
    "Doing Business As (DBA)": "N/A",
    "Trusteeship": "Irrevocable Trust",
})

SUB_TYPE_RADIO = MappingProxyType({
    "Sole Proprietor": "sole",
    "Household Employer": "house",
    # sic: the remote form's own id
    "Partnership": "parnership",
    "Joint Venture": "joint",
    "Corporation": "corp",
    "S Corporation": "scorp",
    "Personal Service Corporation": "personalservice",
    "Irrevocable Trust": "irrevocable",
    NONPROFIT_SUB_TYPE: "nonprofit",
    OTHER_SUB_TYPE: "other_option",
})

NONPROFIT_KEYWORDS = ("non-profit", "nonprofit", "charity", "charitable", "501(c)", "tax-exempt")

# Categories that skip the sub-type page
NO_SUB_TYPE_CATEGORIES = frozenset({LLC, ESTATE})

# LLC jurisdictions with an extra community-property confirmation page
RESTRICTED_LLC_STATES = frozenset({"AZ", "CA", "ID", "LA", "NV", "NM", "TX", "WA", "WI"})

APPLICANT_NAME_TYPES = frozenset({"Sole Proprietorship", "Individual"})

CARE_OF_TYPES = frozenset({"C-Corporation", "S-Corporation", "Professional Corporation", "Corporation"})

ARTICLES_FILED_TYPES = frozenset({
    "C-Corporation", "S-Corporation", "Professional Corporation", "Corporation",
    "Limited Liability Company", "Professional Limited Liability Company",
    "Limited Liability Company (LLC)", "Professional Limited Liability Company (PLLC)", "LLC",
})

FISCAL_MONTH_TYPES = frozenset({
    "Partnership", "Joint venture", "Limited Partnership", "General partnership",
    "C-Corporation", "Limited Liability Partnership", "LLP", "Corporation",
})

# Suffix group (category radio id) -> legal suffixes stripped from the business name
LEGAL_SUFFIXES = MappingProxyType({
    "sole": ("LLC", "LC", "PLLC", "PA", "Corp", "Inc"),
    "partnerships": ("Corp", "LLC", "PLLC", "LC", "Inc", "PA"),
    "corporations": ("LLC", "PLLC", "LC"),
    "limited": ("PLLC", "LLC", "LC", "Corp", "Inc", "PA"),
    "trusts": ("Corp", "LLC", "PLLC", "LC", "Inc", "PA"),
    "estate": ("Corp", "LLC", "PLLC", "LC", "Inc", "PA"),
    "viewadditional": (),
})

# Suffix group -> suffixes stripped before comparing trade and legal names
_TRADE_SUFFIXES = ("LLC", "LC", "PLLC", "PA", "Corp", "Inc")
TRADE_NAME_SUFFIXES = MappingProxyType({
    "sole": _TRADE_SUFFIXES,
    "partnerships": _TRADE_SUFFIXES,
    "corporations": _TRADE_SUFFIXES,
    "limited": _TRADE_SUFFIXES,
    "trusts": _TRADE_SUFFIXES,
    "estate": _TRADE_SUFFIXES,
    "viewadditional": (),
})

# Trust names drop long-form endings too
TRUST_NAME_SUFFIXES = ("Corp", "Inc", "LLC", "LC", "PLLC", "PA", "L.L.C.", "INC.", "CORPORATION", "LIMITED")

ACTIVITY_NO_RADIOS = (
    "radioTrucking_n",
    "radioInvolveGambling_n",
    "radioExciseTax_n",
    "radioSellTobacco_n",
    "radioHasEmployees_n",
)

_MONTHS = (
    "JANUARY", "FEBRUARY", "MARCH", "APRIL", "MAY", "JUNE",
    "JULY", "AUGUST", "SEPTEMBER", "OCTOBER", "NOVEMBER", "DECEMBER",
)


def _closing_month_table():
    table = {}
    for i, name in enumerate(_MONTHS, start=1):
        table[name.lower()] = name
        table[name[:3].lower()] = name
        table[str(i)] = name
    return table


CLOSING_MONTHS = MappingProxyType(_closing_month_table())

MONTH_BY_NUMBER = MappingProxyType({str(i): name for i, name in enumerate(_MONTHS, start=1)})

STATE_CODES = MappingProxyType({
    "ALABAMA": "AL", "ALASKA": "AK", "ARIZONA": "AZ", "ARKANSAS": "AR",
    "CALIFORNIA": "CA", "COLORADO": "CO", "CONNECTICUT": "CT", "DELAWARE": "DE",
    "FLORIDA": "FL", "GEORGIA": "GA", "HAWAII": "HI", "IDAHO": "ID",
    "ILLINOIS": "IL", "INDIANA": "IN", "IOWA": "IA", "KANSAS": "KS",
    "KENTUCKY": "KY", "LOUISIANA": "LA", "MAINE": "ME", "MARYLAND": "MD",
    "MASSACHUSETTS": "MA", "MICHIGAN": "MI", "MINNESOTA": "MN", "MISSISSIPPI": "MS",
    "MISSOURI": "MO", "MONTANA": "MT", "NEBRASKA": "NE", "NEVADA": "NV",
    "NEW HAMPSHIRE": "NH", "NEW JERSEY": "NJ", "NEW MEXICO": "NM", "NEW YORK": "NY",
    "NORTH CAROLINA": "NC", "NORTH DAKOTA": "ND", "OHIO": "OH", "OKLAHOMA": "OK",
    "OREGON": "OR", "PENNSYLVANIA": "PA", "RHODE ISLAND": "RI", "SOUTH CAROLINA": "SC",
    "SOUTH DAKOTA": "SD", "TENNESSEE": "TN", "TEXAS": "TX", "UTAH": "UT",
    "VERMONT": "VT", "VIRGINIA": "VA", "WASHINGTON": "WA", "WEST VIRGINIA": "WV",
    "WISCONSIN": "WI", "WYOMING": "WY", "DISTRICT OF COLUMBIA": "DC",
})
