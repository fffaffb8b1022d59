"""Names used by the FHIR data schema."""

from fhirschema.model.objects import INITIAL_VERSION  # noqa: F401

# Admin schema objects
DEFAULT_ADMIN_SCHEMA = "FHIR_ADMIN"
DEFAULT_DATA_SCHEMA = "FHIRDATA"
DEFAULT_TABLESPACE = "FHIR_TS"
DEFAULT_SESSION_VARIABLE = "SV_TENANT_ID"
FHIR_USER_GRANT_GROUP = "FHIRSERVER"

# Tenant column carried by every data table
MT_ID = "MT_ID"

# Prefix for index names
IDX = "IDX_"

FHIR_SEQUENCE = "FHIR_SEQUENCE"
SEQUENCE_CACHE = 1000

# Reference tables
CODE_SYSTEMS = "CODE_SYSTEMS"
CODE_SYSTEM_ID = "CODE_SYSTEM_ID"
CODE_SYSTEM_NAME = "CODE_SYSTEM_NAME"

PARAMETER_NAMES = "PARAMETER_NAMES"
PARAMETER_NAME_ID = "PARAMETER_NAME_ID"
PARAMETER_NAME = "PARAMETER_NAME"

RESOURCE_TYPES = "RESOURCE_TYPES"
RESOURCE_TYPE_ID = "RESOURCE_TYPE_ID"
RESOURCE_TYPE = "RESOURCE_TYPE"

# Per resource type tables
LOGICAL_RESOURCES = "LOGICAL_RESOURCES"
RESOURCES = "RESOURCES"
STR_VALUES = "STR_VALUES"
TOKEN_VALUES = "TOKEN_VALUES"
DATE_VALUES = "DATE_VALUES"
NUMBER_VALUES = "NUMBER_VALUES"
QUANTITY_VALUES = "QUANTITY_VALUES"
LATLNG_VALUES = "LATLNG_VALUES"

LOGICAL_RESOURCE_ID = "LOGICAL_RESOURCE_ID"
LOGICAL_ID = "LOGICAL_ID"
CURRENT_RESOURCE_ID = "CURRENT_RESOURCE_ID"
RESOURCE_ID = "RESOURCE_ID"
VERSION_ID = "VERSION_ID"
LAST_UPDATED = "LAST_UPDATED"
IS_DELETED = "IS_DELETED"
DATA = "DATA"
ROW_ID = "ROW_ID"

# Search parameter value columns
STR_VALUE = "STR_VALUE"
STR_VALUE_LCASE = "STR_VALUE_LCASE"
TOKEN_VALUE = "TOKEN_VALUE"
DATE_VALUE = "DATE_VALUE"
DATE_START = "DATE_START"
DATE_END = "DATE_END"
NUMBER_VALUE = "NUMBER_VALUE"
CODE = "CODE"
QUANTITY_VALUE = "QUANTITY_VALUE"
QUANTITY_VALUE_LOW = "QUANTITY_VALUE_LOW"
QUANTITY_VALUE_HIGH = "QUANTITY_VALUE_HIGH"
LATITUDE_VALUE = "LATITUDE_VALUE"
LONGITUDE_VALUE = "LONGITUDE_VALUE"

# Stored procedures
ADD_CODE_SYSTEM = "ADD_CODE_SYSTEM"
ADD_PARAMETER_NAME = "ADD_PARAMETER_NAME"
ADD_RESOURCE_TYPE = "ADD_RESOURCE_TYPE"
ADD_ANY_RESOURCE = "ADD_ANY_RESOURCE"
ADD_RESOURCE_TEMPLATE = "add_resource_template.sql"

ALL_TABLES_COMPLETE = "ALL_TABLES_COMPLETE"

# Max length of VARCHAR values passed in structured parameter types
STR_VALUE_SIZE = 511
