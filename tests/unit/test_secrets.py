"""Tests for Kubernetes secrets utilities."""

from __future__ import annotations

import base64
from unittest.mock import Mock

import pytest
from kubernetes import client

from namespacestore_operator.utils.secrets import read_secret_data


def _encoded(value: str) -> str:
    return base64.b64encode(value.encode("utf-8")).decode("utf-8")


class TestReadSecretData:
    """Test cases for read_secret_data function."""

    def test_read_secret_data_success(self):
        """Test decoding all keys of a secret."""
        mock_api = Mock()
        mock_secret = Mock()
        mock_secret.data = {
            "AWS_ACCESS_KEY_ID": _encoded("AKIAEXAMPLE"),
            "AWS_SECRET_ACCESS_KEY": _encoded("secret"),
        }
        mock_api.read_namespaced_secret.return_value = mock_secret

        result = read_secret_data(mock_api, "noobaa", "aws-creds")

        assert result == {"AWS_ACCESS_KEY_ID": "AKIAEXAMPLE", "AWS_SECRET_ACCESS_KEY": "secret"}
        mock_api.read_namespaced_secret.assert_called_once_with(name="aws-creds", namespace="noobaa")

    def test_read_secret_data_bytes(self):
        """Test reading values that are already bytes."""
        mock_api = Mock()
        mock_secret = Mock()
        mock_secret.data = {"key": b"value"}
        mock_api.read_namespaced_secret.return_value = mock_secret

        assert read_secret_data(mock_api, "noobaa", "s") == {"key": "value"}

    def test_read_secret_data_empty(self):
        """Test a secret without data."""
        mock_api = Mock()
        mock_secret = Mock()
        mock_secret.data = None
        mock_api.read_namespaced_secret.return_value = mock_secret

        assert read_secret_data(mock_api, "noobaa", "s") == {}

    def test_read_secret_data_not_found(self):
        """Test that a missing secret returns None."""
        mock_api = Mock()
        mock_api.read_namespaced_secret.side_effect = client.exceptions.ApiException(status=404)

        assert read_secret_data(mock_api, "noobaa", "missing") is None

    def test_read_secret_data_api_error(self):
        """Test that other API errors propagate."""
        mock_api = Mock()
        mock_api.read_namespaced_secret.side_effect = client.exceptions.ApiException(status=500)

        with pytest.raises(client.exceptions.ApiException):
            read_secret_data(mock_api, "noobaa", "s")
