import os
import re

import yaml
from log import getLogger
from values import token_file_name
from values import unix_socket_base_path

int_pattern = re.compile(r"[+-]?[0-9]+")
int64_min, int64_max = -(2**63), 2**63 - 1
true_literals = {"1", "t", "T", "TRUE", "true", "True"}
false_literals = {"0", "f", "F", "FALSE", "false", "False"}


class ConfigFileError(Exception):
    pass


def merge_flags(config_file_flag_map: dict, driver_flag_map: dict):
    """Add driver defaults, options set on the volume always win."""
    for key, value in (driver_flag_map or {}).items():
        if key not in config_file_flag_map:
            config_file_flag_map[key] = value


def parse_value(value: str):
    # Order matters: "1" and "0" must stay integers
    if int_pattern.fullmatch(value):
        number = int(value)
        if int64_min <= number <= int64_max:
            return number
    if value in true_literals:
        return True
    if value in false_literals:
        return False
    return value


def build_config(
    config_file_flag_map: dict,
    identity_provider: str = "",
    host_network_opt_in: bool = False,
    temp_dir: str = "",
):
    """Expand ``a:b:c -> value`` entries into a nested mapping."""
    if config_file_flag_map is None:
        raise ConfigFileError("got empty config file flag map")

    config = {}
    for path, value in config_file_flag_map.items():
        cur_level = config
        *parents, leaf = path.split(":")
        for token in parents:
            next_level = cur_level.setdefault(token, {})
            if not isinstance(next_level, dict):
                raise ConfigFileError(f'invalid config file flag: "{path}"')
            cur_level = next_level
        if isinstance(cur_level.get(leaf), dict):
            raise ConfigFileError(f'invalid config file flag: "{path}"')
        cur_level[leaf] = parse_value(value)

    if identity_provider and host_network_opt_in:
        config["gcs-auth"] = {
            "token-url": unix_socket_base_path
            + os.path.join(temp_dir, token_file_name)
        }
    return config


def write_config_file(path: str, config: dict):
    log = getLogger()
    data = yaml.safe_dump(config, default_flow_style=False)
    log.info(f"gcsfuse config file content: {config}")
    if os.path.exists(path):
        os.remove(path)
    if os.path.dirname(path):
        os.makedirs(os.path.dirname(path), exist_ok=True)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o400)
    with os.fdopen(fd, "w") as f:
        f.write(data)
