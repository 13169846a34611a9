import os
import socket
from typing import Optional

from log import getLogger
from models import MountRequest
from pydantic import ValidationError
from values import socket_timeout

# Large enough for any option list the driver sends
max_payload_size = 1024 * 1024


class ReceiveError(Exception):
    pass


class DecodeError(Exception):
    pass


def recv_msg(conn: socket.socket):
    """Read one message carrying a file descriptor and a payload."""
    msg, fds, _flags, _addr = socket.recv_fds(conn, max_payload_size, 1)
    if not fds:
        raise ReceiveError("no file descriptor in message")
    for extra in fds[1:]:
        os.close(extra)
    return fds[0], msg


def receive(socket_path: str, timeout: Optional[float] = None):
    """Connect to the driver socket, read the bundle and remove the socket.

    Returns ``(fd, payload)``. Raises ReceiveError if the socket can not be
    reached or the message can not be read.
    """
    log = getLogger()
    if timeout is None:
        timeout = socket_timeout
    log.info(f"Connect to socket {socket_path} ...")
    conn = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    conn.settimeout(timeout if timeout > 0 else None)
    try:
        try:
            conn.connect(socket_path)
        except OSError as e:
            raise ReceiveError(
                f'failed to connect to the socket "{socket_path}": {e}'
            ) from e
        try:
            fd, msg = recv_msg(conn)
        except (OSError, ReceiveError) as e:
            raise ReceiveError(
                f'failed to receive mount options from the socket "{socket_path}": {e}'
            ) from e
    finally:
        conn.close()

    # The driver closes its listener once it has answered, so the file
    # may already be gone
    try:
        os.unlink(socket_path)
    except FileNotFoundError:
        pass
    except OSError:
        log.exception(f"Failed to unlink socket {socket_path}")
    return fd, msg


def decode_request(payload: bytes, fd: int = -1) -> MountRequest:
    try:
        request = MountRequest.model_validate_json(payload)
    except ValidationError as e:
        raise DecodeError(f"failed to unmarshal the mount config: {e}") from e
    if not request.bucket_name:
        raise DecodeError("failed to fetch bucket name from CSI driver")
    request.file_descriptor = fd
    return request
