import json
import os
from typing import Optional

import yaml
from config_file import build_config
from config_file import ConfigFileError
from config_file import merge_flags
from config_file import write_config_file
from ipc import decode_request
from ipc import DecodeError
from ipc import receive
from ipc import ReceiveError
from log import getLogger
from models import MountConfig
from models import PortCounter
from translator import prepare_mount_args
from values import driver_flags_file


def load_driver_flags(path: str = driver_flags_file) -> dict:
    """Driver defaults for the config file, a JSON object of path flags."""
    if not path or not os.path.exists(path):
        return {}
    with open(path) as f:
        flags = json.load(f)
    return {str(k): str(v) for k, v in flags.items()}


def new_mount_config(
    socket_path: str,
    flag_map_from_driver: Optional[dict],
    port_counter: PortCounter,
    timeout: Optional[float] = None,
) -> Optional[MountConfig]:
    """Receive a mount request on ``socket_path`` and prepare gcsfuse for it.

    Returns None on any failure. The reason is written to the error file
    next to the socket, where the driver picks it up.
    """
    log = getLogger()
    mc = MountConfig(socket_path)
    try:
        fd, msg = receive(socket_path, timeout=timeout)
    except ReceiveError as e:
        mc.error_writer.write_msg(str(e))
        return None
    try:
        mc.request = decode_request(msg, fd)
    except DecodeError as e:
        os.close(fd)
        mc.error_writer.write_msg(str(e))
        return None

    if mc.request.volume_name:
        mc.volume_name = mc.request.volume_name
    else:
        mc.request.volume_name = mc.volume_name

    log.info(f"Prepare mount config for volume {mc.volume_name} ...")
    prepare_mount_args(mc, port_counter)
    merge_flags(mc.config_file_flag_map, flag_map_from_driver)
    try:
        config = build_config(
            mc.config_file_flag_map,
            mc.request.token_server_identity_provider,
            mc.request.host_network_ksa_opt_in,
            mc.temp_dir,
        )
        write_config_file(mc.config_file, config)
    except (ConfigFileError, OSError, yaml.YAMLError) as e:
        os.close(fd)
        mc.error_writer.write_msg(
            f'failed to create config file "{mc.config_file}": {e}'
        )
        return None
    log.info(f"Prepare mount config for volume {mc.volume_name} ... done")
    return mc
