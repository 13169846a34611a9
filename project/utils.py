import asyncio
import glob
import os

from log import getLogger
from models import MountConfig
from values import gcsfuse_binary
from values import tmp_volume_mount_path


lock = asyncio.Lock()
background_tasks = set()
mounts = {}


def get_lock():
    global lock
    return lock


def get_mounts():
    global mounts
    return mounts


def find_sockets(base_dir: str = None):
    base_dir = base_dir or tmp_volume_mount_path
    return sorted(glob.glob(os.path.join(base_dir, ".volumes", "*", "socket")))


def engine_args(mc: MountConfig):
    args = []
    for flag, value in sorted(mc.flag_map.items()):
        if value == "":
            args.append(f"--{flag}")
        else:
            args.append(f"--{flag}={value}")
    return args + [mc.bucket_name, f"/dev/fd/{mc.file_descriptor}"]


def get_cmd(mc: MountConfig):
    return [gcsfuse_binary] + engine_args(mc)


async def run_gcsfuse(cmd: list, fd: int):
    """Run gcsfuse asynchronously, handing over the fuse file descriptor."""
    process = await asyncio.create_subprocess_exec(*cmd, pass_fds=(fd,))
    return process


async def mount(mc: MountConfig):
    global mounts
    log = getLogger()
    if mc.volume_name in mounts:
        raise Exception(f"{mc.volume_name} already mounted")
    cmd = get_cmd(mc)
    log.debug(f"Run cmd: {' '.join(cmd)}")
    process = await run_gcsfuse(cmd, mc.file_descriptor)
    log.info(f"Mount {mc.volume_name} ... started")

    # When the process is no longer running
    # we remove it from the mounts dict
    async def done_callback(process, volume_name):
        returncode = await process.wait()
        log.info(f"gcsfuse for {volume_name} exited with code {returncode}")
        async with lock:
            if mounts.get(volume_name, {}).get("process") is process:
                del mounts[volume_name]

    task = asyncio.create_task(done_callback(process, mc.volume_name))
    background_tasks.add(task)
    task.add_done_callback(background_tasks.discard)

    mounts[mc.volume_name] = {
        "process": process,
        "config": mc,
    }
    return process


async def unmount(volume_name: str):
    entry = mounts.pop(volume_name)
    process = entry["process"]
    try:
        process.terminate()
        await process.wait()
    except ProcessLookupError:
        pass
    fd = entry["config"].file_descriptor
    try:
        os.close(fd)
    except OSError as e:
        getLogger().debug(f"fd {fd} of {volume_name} already closed: {e}")
