"""Builder for external connection descriptors."""

from __future__ import annotations

import re
from urllib.parse import urlsplit, urlunsplit

from ..constants import (
    AUTH_METHOD_V2,
    AUTH_METHOD_V4,
    DEFAULT_AWS_HOST,
    DEFAULT_AZURE_ENDPOINT,
    DEFAULT_S3_COMPATIBLE_ENDPOINT,
    ENDPOINT_TYPE_AWS,
    ENDPOINT_TYPE_AZURE,
    ENDPOINT_TYPE_IBM_COS,
    ENDPOINT_TYPE_S3_COMPAT,
    REASON_INVALID_ENDPOINT,
    REASON_INVALID_SECRET,
    REASON_INVALID_SIGNATURE_VERSION,
    REASON_INVALID_TYPE,
    SECRET_ALTERNATE_ACCESS_KEY_NAMES,
    SECRET_ALTERNATE_SECRET_KEY_NAMES,
    SECRET_AWS_ACCESS_KEY_ID,
    SECRET_AWS_SECRET_ACCESS_KEY,
    SECRET_AZURE_ACCOUNT_KEY,
    SECRET_AZURE_ACCOUNT_NAME,
    SECRET_IBM_COS_ACCESS_KEY_ID,
    SECRET_IBM_COS_SECRET_ACCESS_KEY,
    SIGNATURE_VERSION_V2,
    SIGNATURE_VERSION_V4,
)
from ..models import (
    AWSS3Spec,
    AzureBlobSpec,
    ConnectionDescriptor,
    CredentialBundle,
    IBMCosSpec,
    NSFSSpec,
    S3CompatibleSpec,
    StoreSpec,
    target_container,
)
from ..services.noobaa.models import CreateNamespaceResourceParams
from ..utils.errors import ReconcileError

_SCHEME_RE = re.compile(r"^\w+://")


def normalize_secret_data(data: dict[str, str]) -> dict[str, str]:
    """Fill the canonical AWS key names from their alternate spellings."""
    normalized = dict(data)

    if not normalized.get(SECRET_AWS_ACCESS_KEY_ID):
        for key in SECRET_ALTERNATE_ACCESS_KEY_NAMES:
            if normalized.get(key):
                normalized[SECRET_AWS_ACCESS_KEY_ID] = normalized[key]
                break

    if not normalized.get(SECRET_AWS_SECRET_ACCESS_KEY):
        for key in SECRET_ALTERNATE_SECRET_KEY_NAMES:
            if normalized.get(key):
                normalized[SECRET_AWS_SECRET_ACCESS_KEY] = normalized[key]
                break

    return normalized


def credentials_for(store: StoreSpec, secret_data: dict[str, str]) -> CredentialBundle:
    """Pick the identity/secret pair the store type reads from its secret."""
    data = normalize_secret_data(secret_data)
    if isinstance(store, IBMCosSpec):
        return CredentialBundle(
            identity=data.get(SECRET_IBM_COS_ACCESS_KEY_ID, ""),
            secret=data.get(SECRET_IBM_COS_SECRET_ACCESS_KEY, ""),
        )
    if isinstance(store, AzureBlobSpec):
        return CredentialBundle(
            identity=data.get(SECRET_AZURE_ACCOUNT_NAME, ""),
            secret=data.get(SECRET_AZURE_ACCOUNT_KEY, ""),
        )
    return CredentialBundle(
        identity=data.get(SECRET_AWS_ACCESS_KEY_ID, ""),
        secret=data.get(SECRET_AWS_SECRET_ACCESS_KEY, ""),
    )


def is_graphic_or_space(value: str) -> bool:
    """Return True if every character is printable or whitespace."""
    return all(ch.isprintable() or ch.isspace() for ch in value)


def auth_method_for(signature_version: str, store_name: str) -> str | None:
    if signature_version == SIGNATURE_VERSION_V4:
        return AUTH_METHOD_V4
    if signature_version == SIGNATURE_VERSION_V2:
        return AUTH_METHOD_V2
    if signature_version:
        raise ReconcileError.persistent(
            REASON_INVALID_SIGNATURE_VERSION,
            f"Invalid s3 signature version {signature_version!r} for namespace store {store_name!r}",
        )
    return None


def normalize_endpoint(endpoint: str) -> str:
    """Normalize an S3 endpoint URL, defaulting the scheme to https.

    Raises:
        ReconcileError: Persistent InvalidEndpoint if the URL cannot be parsed
    """
    if not endpoint:
        return DEFAULT_S3_COMPATIBLE_ENDPOINT

    if not _SCHEME_RE.match(endpoint):
        endpoint = "https://" + endpoint

    if any(ch.isspace() or not ch.isprintable() for ch in endpoint):
        raise ReconcileError.persistent(REASON_INVALID_ENDPOINT, f"Invalid endpoint url {endpoint!r}")

    try:
        parts = urlsplit(endpoint)
        # Accessing port validates it
        parts.port
    except ValueError as e:
        raise ReconcileError.persistent(
            REASON_INVALID_ENDPOINT, f"Invalid endpoint url {endpoint!r}: {e}"
        ) from e

    if not parts.hostname:
        raise ReconcileError.persistent(REASON_INVALID_ENDPOINT, f"Invalid endpoint url {endpoint!r}: missing host")

    return urlunsplit((parts.scheme or "https", parts.netloc, parts.path, parts.query, parts.fragment))


def aws_endpoint(store: AWSS3Spec) -> str:
    scheme = "http" if store.ssl_disabled else "https"
    host = f"s3.{store.region}.amazonaws.com" if store.region else DEFAULT_AWS_HOST
    return f"{scheme}://{host}"


def create_connection_descriptor(
    store_name: str,
    store: StoreSpec,
    secret_data: dict[str, str],
    secret_name: str = "",
) -> ConnectionDescriptor:
    """Translate the store spec and its secret into a connection descriptor.

    Args:
        store_name: Name of the NamespaceStore (used as the connection name)
        store: Typed store spec
        secret_data: Decoded data of the credentials secret
        secret_name: Name of the credentials secret, for error messages

    Raises:
        ReconcileError: Persistent error naming the invalid field
    """
    credentials = credentials_for(store, secret_data)

    if isinstance(store, AWSS3Spec):
        descriptor = ConnectionDescriptor(
            name=store_name,
            endpoint_type=ENDPOINT_TYPE_AWS,
            endpoint=aws_endpoint(store),
        )
    elif isinstance(store, (S3CompatibleSpec, IBMCosSpec)):
        auth_method = auth_method_for(store.signature_version, store_name)
        descriptor = ConnectionDescriptor(
            name=store_name,
            endpoint_type=ENDPOINT_TYPE_IBM_COS if isinstance(store, IBMCosSpec) else ENDPOINT_TYPE_S3_COMPAT,
            endpoint=normalize_endpoint(store.endpoint),
            auth_method=auth_method,
        )
    elif isinstance(store, AzureBlobSpec):
        descriptor = ConnectionDescriptor(
            name=store_name,
            endpoint_type=ENDPOINT_TYPE_AZURE,
            endpoint=DEFAULT_AZURE_ENDPOINT,
        )
    else:
        raise ReconcileError.persistent(
            REASON_INVALID_TYPE, f"Namespace store type {type(store).__name__} has no external connection"
        )

    if not is_graphic_or_space(credentials.identity) or not is_graphic_or_space(credentials.secret):
        raise ReconcileError.persistent(
            REASON_INVALID_SECRET,
            f"Invalid secret containing non graphic characters (perhaps not base64 encoded?) {secret_name!r}",
        )

    descriptor.identity = credentials.identity
    descriptor.secret = credentials.secret
    return descriptor


def create_namespace_resource_params(
    store_name: str,
    store_namespace: str,
    store: StoreSpec,
    connection_name: str = "",
) -> CreateNamespaceResourceParams:
    """Build the params to create the remote namespace resource."""
    if isinstance(store, NSFSSpec):
        return CreateNamespaceResourceParams(
            name=store_name,
            namespace_store_namespace=store_namespace,
            nsfs_config={"fs_backend": store.fs_backend, "fs_root_path": store.fs_root_path},
        )
    return CreateNamespaceResourceParams(
        name=store_name,
        namespace_store_namespace=store_namespace,
        connection=connection_name,
        target_bucket=target_container(store),
    )
