"""Unit tests for the connection builder."""

from __future__ import annotations

import pytest

from namespacestore_operator.builders.connection import (
    create_connection_descriptor,
    create_namespace_resource_params,
    normalize_endpoint,
    normalize_secret_data,
)
from namespacestore_operator.models import (
    AWSS3Spec,
    AzureBlobSpec,
    IBMCosSpec,
    NSFSSpec,
    S3CompatibleSpec,
)
from namespacestore_operator.utils.errors import ReconcileError

AWS_SECRET = {"AWS_ACCESS_KEY_ID": "AKIA", "AWS_SECRET_ACCESS_KEY": "sec"}


class TestNormalizeEndpoint:
    """Test normalize_endpoint."""

    def test_empty_uses_default(self) -> None:
        """Test the default endpoint."""
        assert normalize_endpoint("") == "https://127.0.0.1:6443"

    def test_scheme_added(self) -> None:
        """Test that a bare host gets https."""
        assert normalize_endpoint("minio.local:9000") == "https://minio.local:9000"

    def test_scheme_kept(self) -> None:
        """Test that an explicit scheme is kept."""
        assert normalize_endpoint("http://minio.local:9000/") == "http://minio.local:9000/"

    @pytest.mark.parametrize("endpoint", ["not a url", "https://host:99999", "https://:9000"])
    def test_invalid(self, endpoint) -> None:
        """Test that unparsable endpoints are persistent errors."""
        with pytest.raises(ReconcileError) as exc_info:
            normalize_endpoint(endpoint)

        assert exc_info.value.reason == "InvalidEndpoint"
        assert exc_info.value.is_persistent


class TestCreateConnectionDescriptor:
    """Test create_connection_descriptor."""

    def test_aws(self) -> None:
        """Test an aws-s3 descriptor."""
        descriptor = create_connection_descriptor("ns1", AWSS3Spec(region="us-east-2"), AWS_SECRET)

        assert descriptor.endpoint_type == "AWS"
        assert descriptor.endpoint == "https://s3.us-east-2.amazonaws.com"
        assert descriptor.identity_key == ("AWS", "https://s3.us-east-2.amazonaws.com", "AKIA")
        assert descriptor.secret == "sec"
        assert "sec" not in repr(descriptor)

    def test_aws_defaults(self) -> None:
        """Test an aws-s3 descriptor without region and with ssl disabled."""
        descriptor = create_connection_descriptor("ns1", AWSS3Spec(ssl_disabled=True), AWS_SECRET)

        assert descriptor.endpoint == "http://s3.amazonaws.com"

    def test_alternate_key_names(self) -> None:
        """Test that alternate secret key names are accepted."""
        data = normalize_secret_data({"AccessKey": "AKIA", "SecretKey": "sec"})

        assert data["AWS_ACCESS_KEY_ID"] == "AKIA"
        assert data["AWS_SECRET_ACCESS_KEY"] == "sec"

    def test_s3_compatible_v4(self) -> None:
        """Test an s3-compatible descriptor with signature v4."""
        store = S3CompatibleSpec(endpoint="minio:9000", signature_version="v4")

        descriptor = create_connection_descriptor("ns1", store, AWS_SECRET)

        assert descriptor.endpoint_type == "S3_COMPATIBLE"
        assert descriptor.endpoint == "https://minio:9000"
        assert descriptor.auth_method == "AWS_V4"

    def test_invalid_signature_checked_before_endpoint(self) -> None:
        """Test that the signature version is validated first."""
        store = S3CompatibleSpec(endpoint="not a url", signature_version="v3")

        with pytest.raises(ReconcileError) as exc_info:
            create_connection_descriptor("ns1", store, AWS_SECRET)

        assert exc_info.value.reason == "InvalidSignatureVersion"

    def test_ibm_cos_reads_ibm_keys(self) -> None:
        """Test that IBM COS reads its own secret keys."""
        store = IBMCosSpec(endpoint="s3.us.cloud-object-storage.appdomain.cloud", signature_version="v2")
        secret = {"IBM_COS_ACCESS_KEY_ID": "ibm-id", "IBM_COS_SECRET_ACCESS_KEY": "ibm-sec"}

        descriptor = create_connection_descriptor("ns1", store, secret)

        assert descriptor.endpoint_type == "IBM_COS"
        assert descriptor.identity == "ibm-id"
        assert descriptor.auth_method == "AWS_V2"

    def test_azure(self) -> None:
        """Test an azure-blob descriptor."""
        secret = {"AccountName": "acc", "AccountKey": "key"}

        descriptor = create_connection_descriptor("ns1", AzureBlobSpec(target_blob_container="c"), secret)

        assert descriptor.endpoint_type == "AZURE"
        assert descriptor.endpoint == "https://blob.core.windows.net"
        assert descriptor.identity == "acc"

    def test_non_graphic_secret(self) -> None:
        """Test that control characters in credentials are rejected."""
        secret = {"AWS_ACCESS_KEY_ID": "AKIA\x00", "AWS_SECRET_ACCESS_KEY": "sec"}

        with pytest.raises(ReconcileError) as exc_info:
            create_connection_descriptor("ns1", AWSS3Spec(), secret, secret_name="aws-creds")

        assert exc_info.value.reason == "InvalidSecret"

    def test_nsfs_has_no_connection(self) -> None:
        """Test that nsfs stores have no connection descriptor."""
        with pytest.raises(ReconcileError) as exc_info:
            create_connection_descriptor("ns1", NSFSSpec(), {})

        assert exc_info.value.reason == "InvalidType"


class TestCreateNamespaceResourceParams:
    """Test create_namespace_resource_params."""

    def test_connection_backed(self) -> None:
        """Test params of a connection backed resource."""
        params = create_namespace_resource_params("ns1", "noobaa", AzureBlobSpec(target_blob_container="c1"), "conn")

        assert params.to_params() == {
            "name": "ns1",
            "namespace_store": {"name": "ns1", "namespace": "noobaa"},
            "connection": "conn",
            "target_bucket": "c1",
        }

    def test_nsfs(self) -> None:
        """Test params of an nsfs resource."""
        params = create_namespace_resource_params("ns1", "noobaa", NSFSSpec(fs_backend="GPFS", fs_root_path="/fs"))

        assert params.to_params()["nsfs_config"] == {"fs_backend": "GPFS", "fs_root_path": "/fs"}
        assert "connection" not in params.to_params()
