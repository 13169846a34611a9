from typing import Callable
from typing import NamedTuple

from log import getLogger
from models import MountConfig
from models import PortCounter
from values import app_name
from values import bool_flags
from values import disable_metrics_flag
from values import disallowed_flags
from values import false_str
from values import file_cache_size_flag
from values import gid
from values import host_network_ksa_opt_in_flag
from values import identity_provider_flag
from values import temp_dir_name
from values import true_str
from values import uid


class Rule(NamedTuple):
    name: str
    matches: Callable[[str, str], bool]
    apply: Callable[["Translation", str, str, str], None]


class Translation:
    def __init__(self, mc: MountConfig, port: int):
        self.mc = mc
        self.flag_map = {
            "app-name": app_name,
            "temp-dir": f"{mc.buffer_dir}/{temp_dir_name}",
            "config-file": mc.config_file,
            "foreground": "",
            "uid": uid,
            "gid": gid,
            "prometheus-port": str(port),
        }
        self.config_file_flag_map = {
            "logging:file-path": "/dev/fd/1",
            "logging:format": "json",
            # the gcsfuse file cache is disabled unless a size is configured
            "cache-dir": "",
        }
        self.invalid_args = []

    def reject(self, arg: str):
        self.invalid_args.append(arg)


def is_path_form(arg: str) -> bool:
    return ":" in arg and "https" not in arg


def split_path_form(arg: str):
    path, _, value = arg.rpartition(":")
    return path, value


def split_flat_form(arg: str):
    flag, _, value = arg.partition("=")
    return flag, value


def _disable_metrics(t, arg, path, value):
    if value == true_str:
        t.flag_map["prometheus-port"] = "0"


def _store_path(t, arg, path, value):
    t.config_file_flag_map[path] = value
    if path == file_cache_size_flag and value != "0":
        t.config_file_flag_map["cache-dir"] = t.mc.cache_dir


def _reject(t, arg, flag, value):
    t.reject(arg)


def _identity_provider(t, arg, flag, value):
    t.mc.request.token_server_identity_provider = value


def _host_network_opt_in(t, arg, flag, value):
    t.mc.request.host_network_ksa_opt_in = value == true_str


def _bool_flag(t, arg, flag, value):
    if value in (true_str, false_str):
        t.flag_map[f"{flag}={value}"] = ""
    else:
        t.reject(f"{flag}={value}")


def _app_name(t, arg, flag, value):
    t.flag_map[flag] = f"{app_name}-{value}"


def _store_flag(t, arg, flag, value):
    t.flag_map[flag] = value


# First matching rule wins
path_rules = [
    Rule("disable-metrics", lambda path, value: path == disable_metrics_flag, _disable_metrics),
    Rule("disallowed", lambda path, value: path in disallowed_flags, _reject),
    Rule("store", lambda path, value: True, _store_path),
]

flag_rules = [
    Rule("disallowed", lambda flag, value: flag in disallowed_flags, _reject),
    Rule("identity-provider", lambda flag, value: flag == identity_provider_flag, _identity_provider),
    Rule("host-network-opt-in", lambda flag, value: flag == host_network_ksa_opt_in_flag, _host_network_opt_in),
    Rule("bool-flag", lambda flag, value: flag in bool_flags and value != "", _bool_flag),
    Rule("app-name", lambda flag, value: flag == "app-name", _app_name),
    Rule("store", lambda flag, value: True, _store_flag),
]


def apply_rules(rules, t: Translation, arg: str, key: str, value: str) -> str:
    for rule in rules:
        if rule.matches(key, value):
            rule.apply(t, arg, key, value)
            return rule.name
    return ""


def translate_option(t: Translation, arg: str) -> str:
    if is_path_form(arg):
        path, value = split_path_form(arg)
        return apply_rules(path_rules, t, arg, path, value)
    flag, value = split_flat_form(arg)
    return apply_rules(flag_rules, t, arg, flag, value)


def prepare_mount_args(mc: MountConfig, port_counter: PortCounter):
    """Invalid options are dropped and warned about once, they never stop the mount."""
    log = getLogger()
    t = Translation(mc, port_counter.allocate())
    for arg in mc.request.options:
        if not arg:
            continue
        log.info(f"Processing mount arg {arg}")
        translate_option(t, arg)

    if t.invalid_args:
        log.warning(
            f"Got invalid arguments for volume {mc.volume_name}: {t.invalid_args}. "
            "Will discard invalid args and continue to mount."
        )
    mc.flag_map, mc.config_file_flag_map = t.flag_map, t.config_file_flag_map
    return t.invalid_args
