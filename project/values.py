import os

app_name = "gke-gcs-fuse-csi"

buffer_volume_mount_path = os.environ.get(
    "BUFFER_VOLUME_MOUNT_PATH", "/gcsfuse-buffer"
)
cache_volume_mount_path = os.environ.get("CACHE_VOLUME_MOUNT_PATH", "/gcsfuse-cache")
tmp_volume_mount_path = os.environ.get("TMP_VOLUME_MOUNT_PATH", "/gcsfuse-tmp")

gcsfuse_binary = os.environ.get("GCSFUSE_BINARY", "/gcsfuse")
driver_flags_file = os.environ.get("DRIVER_FLAGS_FILE", "")

# Seconds to wait on the driver socket, 0 blocks forever
socket_timeout = float(os.environ.get("SOCKET_TIMEOUT", "30"))
prometheus_port_start = int(os.environ.get("PROMETHEUS_PORT_START", "62990"))

uid = "0"
gid = "0"

temp_dir_name = "temp-dir"
config_file_name = "config.yaml"
error_file_name = "error"
token_file_name = "token.sock"
unix_socket_base_path = "unix://"

true_str = "true"
false_str = "false"

identity_provider_flag = "token-server-identity-provider"
host_network_ksa_opt_in_flag = "hnw-ksa"
disable_metrics_flag = "disable-metrics-for-gke"
file_cache_size_flag = "file-cache:max-size-mb"

disallowed_flags = frozenset(
    {
        "temp-dir",
        "config-file",
        "foreground",
        "log-file",
        "log-format",
        "key-file",
        "token-url",
        "reuse-token-from-url",
        "o",
        "logging:log-rotate:max-file-size-mb",
        "logging:log-rotate:backup-file-count",
        "logging:log-rotate:compress",
        "cache-dir",
        "experimental-local-file-cache",
        "prometheus-port",
    }
)

bool_flags = frozenset(
    {
        "implicit-dirs",
        "enable-nonexistent-type-cache",
        "debug_fuse_errors",
        "debug_fuse",
        "debug_fs",
        "debug_gcs",
        "debug_http",
        "debug_invariants",
        "debug_mutex",
        "disable-autoconfig",
    }
)
