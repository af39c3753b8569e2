"""Constants for the NamespaceStore Operator."""

# API Group
API_GROUP = "noobaa.io"
API_VERSION = "v1alpha1"
API_GROUP_VERSION = f"{API_GROUP}/{API_VERSION}"

# Resource Kinds
KIND_NAMESPACE_STORE = "NamespaceStore"
KIND_NOOBAA = "NooBaa"

# Plurals
PLURAL_NAMESPACE_STORES = "namespacestores"
PLURAL_NOOBAAS = "noobaas"

# Labels
LABEL_APP = "app"
LABEL_APP_VALUE = "noobaa"

# Finalizers
FINALIZER = f"{API_GROUP}/finalizer"

# Field Manager
FIELD_MANAGER = "namespacestore-operator"

# Store types
STORE_TYPE_AWS_S3 = "aws-s3"
STORE_TYPE_S3_COMPATIBLE = "s3-compatible"
STORE_TYPE_IBM_COS = "ibm-cos"
STORE_TYPE_AZURE_BLOB = "azure-blob"
STORE_TYPE_NSFS = "nsfs"

# Spec block field per store type
STORE_TYPE_FIELDS = {
    STORE_TYPE_AWS_S3: "awsS3",
    STORE_TYPE_S3_COMPATIBLE: "s3Compatible",
    STORE_TYPE_IBM_COS: "ibmCos",
    STORE_TYPE_AZURE_BLOB: "azureBlob",
    STORE_TYPE_NSFS: "nsfs",
}

# Remote endpoint types
ENDPOINT_TYPE_AWS = "AWS"
ENDPOINT_TYPE_S3_COMPAT = "S3_COMPATIBLE"
ENDPOINT_TYPE_IBM_COS = "IBM_COS"
ENDPOINT_TYPE_AZURE = "AZURE"

# S3 signature versions
SIGNATURE_VERSION_V2 = "v2"
SIGNATURE_VERSION_V4 = "v4"
AUTH_METHOD_V2 = "AWS_V2"
AUTH_METHOD_V4 = "AWS_V4"

# Default endpoints
DEFAULT_AWS_HOST = "s3.amazonaws.com"
DEFAULT_S3_COMPATIBLE_ENDPOINT = "https://127.0.0.1:6443"
DEFAULT_AZURE_ENDPOINT = "https://blob.core.windows.net"

# Secret keys
SECRET_AWS_ACCESS_KEY_ID = "AWS_ACCESS_KEY_ID"
SECRET_AWS_SECRET_ACCESS_KEY = "AWS_SECRET_ACCESS_KEY"
SECRET_ALTERNATE_ACCESS_KEY_NAMES = ("aws_access_key_id", "AccessKey")
SECRET_ALTERNATE_SECRET_KEY_NAMES = ("aws_secret_access_key", "SecretKey")
SECRET_IBM_COS_ACCESS_KEY_ID = "IBM_COS_ACCESS_KEY_ID"
SECRET_IBM_COS_SECRET_ACCESS_KEY = "IBM_COS_SECRET_ACCESS_KEY"
SECRET_AZURE_ACCOUNT_NAME = "AccountName"
SECRET_AZURE_ACCOUNT_KEY = "AccountKey"

# Remote pool types
POOL_RESOURCE_TYPE_INTERNAL = "INTERNAL"

# Remote RPC codes
RPC_CODE_IN_USE = "IN_USE"
RPC_CODE_INVALID_SCHEMA_PARAMS = "INVALID_SCHEMA_PARAMS"

# Condition Types
COND_AVAILABLE = "Available"
COND_PROGRESSING = "Progressing"
COND_DEGRADED = "Degraded"
COND_UPGRADEABLE = "Upgradeable"

# Condition / Event Reasons
REASON_PHASE_VERIFYING = "NamespaceStorePhaseVerifying"
REASON_PHASE_CONNECTING = "NamespaceStorePhaseConnecting"
REASON_PHASE_CREATING = "NamespaceStorePhaseCreating"
REASON_PHASE_READY = "NamespaceStorePhaseReady"
REASON_PHASE_REJECTED = "NamespaceStorePhaseRejected"
REASON_PHASE_DELETING = "NamespaceStorePhaseDeleting"
REASON_TEMPORARY_ERROR = "TemporaryError"
REASON_MISSING_SYSTEM = "MissingSystem"
REASON_MISSING_SECRET = "MissingSecret"
REASON_INVALID_ENDPOINT = "InvalidEndpoint"
REASON_INVALID_SIGNATURE_VERSION = "InvalidSignatureVersion"
REASON_INVALID_SECRET = "InvalidSecret"
REASON_INVALID_TYPE = "InvalidType"
REASON_INVALID_CONNECTION_PARAMS = "InvalidConnectionParams"

EVENT_REASON_CONNECTION_ADDED = "ExternalConnectionAdded"
EVENT_REASON_RESOURCE_CREATED = "NamespaceResourceCreated"
EVENT_REASON_RESOURCE_DELETED = "NamespaceResourceDeleted"

# Event Types
EVENT_TYPE_NORMAL = "Normal"
EVENT_TYPE_WARNING = "Warning"
