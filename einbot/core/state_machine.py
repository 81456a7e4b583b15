# Form completion states, in page order

# Page: start screen, "Begin Application >>"
START = "START"

# Page: entity category radio list
# Branch: unmapped category fails here, before any business data is entered
ENTITY_CATEGORY = "ENTITY_CATEGORY"

# Page: sub-type radio list
# Skipped for LLC and Estate
SUB_CATEGORY = "SUB_CATEGORY"

# Page: LLC member count + organizing state
# Only for the LLC category
MEMBER_COUNT = "MEMBER_COUNT"

# Page: community-property confirmation (radio_n)
# Only for LLCs in a restricted jurisdiction; the control may never appear
JURISDICTION_CONFIRMATION = "JURISDICTION_CONFIRMATION"

# Page: reason for applying (new business)
PURPOSE = "PURPOSE"

# Page: responsible party / applicant name + tax id
PARTY_IDENTITY = "PARTY_IDENTITY"
TAX_ID = "TAX_ID"

# Page: physical location and phone
PHYSICAL_ADDRESS = "PHYSICAL_ADDRESS"

# Field: care-of name, corporation-like types only
CARE_OF_NAME = "CARE_OF_NAME"

# Field: "another mailing address?" yes/no
MAILING_DECISION = "MAILING_DECISION"

# Page: mailing address, only when it differs from the physical street
MAILING_ADDRESS = "MAILING_ADDRESS"

# Page: legal name, trade name, county/state, articles filed
BUSINESS_NAME = "BUSINESS_NAME"

# Fields: formation month/year
FORMATION_DATE = "FORMATION_DATE"

# Field: fiscal closing month, partnership / C-corp / LLP types only
FISCAL_CLOSING_MONTH = "FISCAL_CLOSING_MONTH"

# Page: trucking, gambling, excise, tobacco, employees (all "no")
ACTIVITY_QUESTIONNAIRE = "ACTIVITY_QUESTIONNAIRE"

# Pages: primary activity "other" + free-text description
PRIMARY_ACTIVITY = "PRIMARY_ACTIVITY"

# Page: how to receive the letter (online)
RECEIVE_METHOD = "RECEIVE_METHOD"

# Page: summary before submission; captured as the confirmation artifact
CONFIRMATION = "CONFIRMATION"

# Terminal: identifier issued
ISSUED = "ISSUED"

# Terminal: interaction/unexpected error (Type 1)
TYPE1_FAILURE = "TYPE1_FAILURE"

# Terminal: remote refused with a reference number (Type 2)
TYPE2_FAILURE = "TYPE2_FAILURE"

TERMINAL_STATES = frozenset({ISSUED, TYPE1_FAILURE, TYPE2_FAILURE})
