"""Tests for receiving and decoding the driver's mount request."""

from __future__ import annotations

import os
from unittest.mock import patch

import pytest

import ipc
from ipc import DecodeError, ReceiveError, decode_request, receive


class TestReceive:
    def test_receives_fd_and_payload(self, driver, socket_path):
        driver({"bucketName": "b"})
        fd, msg = receive(socket_path, timeout=5)
        try:
            assert msg == b'{"bucketName": "b"}'
            assert fd >= 0
        finally:
            os.close(fd)
        assert not os.path.exists(socket_path)

    def test_connect_failure(self, socket_path):
        with pytest.raises(ReceiveError, match="failed to connect to the socket"):
            receive(socket_path, timeout=1)

    def test_socket_already_removed(self, driver, socket_path):
        driver({"bucketName": "b"}, unlink_first=True)
        fd, msg = receive(socket_path, timeout=5)
        os.close(fd)
        assert msg == b'{"bucketName": "b"}'

    def test_unlink_failure_is_logged(self, driver, socket_path, caplog):
        driver({"bucketName": "b"})
        with patch.object(ipc.os, "unlink", side_effect=PermissionError("denied")):
            fd, msg = receive(socket_path, timeout=5)
        os.close(fd)
        assert msg == b'{"bucketName": "b"}'
        assert "Failed to unlink socket" in caplog.text

    def test_silent_driver_times_out(self, driver, socket_path):
        driver({"bucketName": "b"}, silent=True)
        with pytest.raises(ReceiveError, match="failed to receive mount options"):
            receive(socket_path, timeout=0.5)

    def test_message_without_fd(self, driver, socket_path):
        driver({"bucketName": "b"}, send_fd=False)
        with pytest.raises(ReceiveError, match="failed to receive mount options"):
            receive(socket_path, timeout=5)


class TestDecodeRequest:
    def test_decode(self):
        request = decode_request(
            b'{"volumeName": "v", "bucketName": "b", "options": ["implicit-dirs"], "extra": 1}',
            fd=7,
        )
        assert request.volume_name == "v"
        assert request.bucket_name == "b"
        assert request.options == ["implicit-dirs"]
        assert request.file_descriptor == 7
        assert request.token_server_identity_provider == ""
        assert request.host_network_ksa_opt_in is False

    def test_payload_can_not_set_translated_fields(self):
        request = decode_request(
            b'{"bucketName": "b", "token_server_identity_provider": "evil",'
            b' "host_network_ksa_opt_in": true, "file_descriptor": 99}',
            fd=7,
        )
        assert request.token_server_identity_provider == ""
        assert request.host_network_ksa_opt_in is False
        assert request.file_descriptor == 7

    @pytest.mark.parametrize(
        "payload",
        [b"not json", b'{"bucketName": "b", "options": "implicit-dirs"}', b"[]"],
    )
    def test_malformed(self, payload):
        with pytest.raises(DecodeError, match="failed to unmarshal"):
            decode_request(payload)

    @pytest.mark.parametrize("payload", [b"{}", b'{"bucketName": ""}'])
    def test_missing_bucket(self, payload):
        with pytest.raises(DecodeError, match="bucket name"):
            decode_request(payload)
