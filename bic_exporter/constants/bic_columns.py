"""
BIC Directory Column Constants

Column order of the ISO 9362 BIC directory table. The header set is
identical across directory editions and independent of extraction results.
"""

HEADERS = (
    "Record creation date",
    "Last Update date",
    "BIC",
    "Brch Code",
    "Full legal name",
    "Registered address",
    "Operational address",
    "Branch description",
    "Branch address",
    "Instit. Type",
)

COLUMN_COUNT = len(HEADERS)

# Column indices
COL_CREATION_DATE = 0
COL_LAST_UPDATE_DATE = 1
COL_BIC = 2
COL_BRANCH_CODE = 3
COL_LEGAL_NAME = 4
COL_REGISTERED_ADDRESS = 5
COL_OPERATIONAL_ADDRESS = 6
COL_BRANCH_DESCRIPTION = 7
COL_BRANCH_ADDRESS = 8
COL_INSTITUTION_TYPE = 9

DATE_COLUMNS = (COL_CREATION_DATE, COL_LAST_UPDATE_DATE)

# Snake-case keys for the keyed record view
FIELD_KEYS = (
    "record_creation_date",
    "last_update_date",
    "bic",
    "branch_code",
    "full_legal_name",
    "registered_address",
    "operational_address",
    "branch_description",
    "branch_address",
    "institution_type",
)
