import os
import threading
from typing import Optional

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import model_validator
from reporter import ErrorWriter
from values import buffer_volume_mount_path
from values import cache_volume_mount_path
from values import config_file_name
from values import error_file_name
from values import prometheus_port_start
from values import tmp_volume_mount_path


internal_fields = {
    "file_descriptor",
    "token_server_identity_provider",
    "host_network_ksa_opt_in",
}


class MountRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    volume_name: str = Field("", alias="volumeName")
    bucket_name: str = Field("", alias="bucketName")
    options: list[str] = Field(default_factory=list)
    file_descriptor: int = Field(-1, exclude=True)

    # Filled in by the option translator
    token_server_identity_provider: str = Field("", exclude=True)
    host_network_ksa_opt_in: bool = Field(False, exclude=True)

    @model_validator(mode="before")
    @classmethod
    def drop_internal_fields(cls, data):
        # the driver payload must never set these
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if k not in internal_fields}
        return data


class SocketModel(BaseModel):
    socket_path: str


class PortCounter:
    def __init__(self, start: int = prometheus_port_start):
        self._next = start
        self._lock = threading.Lock()

    def allocate(self) -> int:
        with self._lock:
            port = self._next
            self._next += 1
            return port


class MountConfig:
    def __init__(self, socket_path: str):
        # socket path pattern: <tmp volume>/.volumes/<volume-name>/socket
        self.socket_path = socket_path
        self.temp_dir = os.path.dirname(socket_path)
        self.volume_name = os.path.basename(self.temp_dir)
        self.buffer_dir = os.path.join(
            buffer_volume_mount_path, ".volumes", self.volume_name
        )
        self.cache_dir = os.path.join(
            cache_volume_mount_path, ".volumes", self.volume_name
        )
        self.config_file = os.path.join(
            tmp_volume_mount_path, ".volumes", self.volume_name, config_file_name
        )
        self.error_writer = ErrorWriter(os.path.join(self.temp_dir, error_file_name))
        self.request: Optional[MountRequest] = None
        self.flag_map: dict[str, str] = {}
        self.config_file_flag_map: dict[str, str] = {}

    @property
    def bucket_name(self) -> str:
        return self.request.bucket_name if self.request else ""

    @property
    def file_descriptor(self) -> int:
        return self.request.file_descriptor if self.request else -1

    def to_dict(self):
        return {
            "volume": self.volume_name,
            "bucket": self.bucket_name,
            "flags": dict(self.flag_map),
            "config_file": self.config_file,
        }
