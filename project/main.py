import os
from contextlib import asynccontextmanager

import utils
from fastapi import FastAPI
from fastapi import Response
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from log import getLogger
from models import PortCounter
from models import SocketModel
from mount_config import load_driver_flags
from mount_config import new_mount_config
from reporter import ErrorWriter
from values import error_file_name

log = getLogger()
port_counter = PortCounter()


async def prepare_and_mount(socket_path: str):
    mc = await run_in_threadpool(
        new_mount_config, socket_path, load_driver_flags(), port_counter
    )
    if mc is None:
        return None
    try:
        await utils.mount(mc)
    except Exception:
        os.close(mc.file_descriptor)
        raise
    return mc


@asynccontextmanager
async def lifespan(app: FastAPI):
    for socket_path in utils.find_sockets():
        try:
            async with utils.get_lock():
                await prepare_and_mount(socket_path)
        except Exception:
            log.exception(f"Mount for socket {socket_path} failed")
    yield
    for volume_name in list(utils.get_mounts().keys()):
        await utils.unmount(volume_name)


app = FastAPI(lifespan=lifespan)


@app.post("/")
async def post(item: SocketModel):
    try:
        async with utils.get_lock():
            log.info(f"Mount from socket {item.socket_path} ...")
            mc = await prepare_and_mount(item.socket_path)
    except Exception as e:
        log.exception(f"Mount from socket {item.socket_path} failed")
        return JSONResponse(status_code=400, content={"detail": str(e)})
    if mc is None:
        error_file = os.path.join(os.path.dirname(item.socket_path), error_file_name)
        detail = ErrorWriter(error_file).read_msg()
        return JSONResponse(
            status_code=400,
            content={"detail": detail or f"Could not prepare mount for {item.socket_path}"},
        )
    return JSONResponse(status_code=201, content=mc.to_dict())


@app.get("/")
async def get():
    async with utils.get_lock():
        return JSONResponse(
            content=[entry["config"].to_dict() for entry in utils.get_mounts().values()]
        )


@app.delete("/{volume_name}")
async def delete(volume_name: str):
    if volume_name not in utils.get_mounts():
        log.debug(f"{volume_name} not found")
        return JSONResponse(status_code=404, content={"detail": "Mount not found"})
    try:
        async with utils.get_lock():
            log.info(f"Unmount {volume_name} ...")
            await utils.unmount(volume_name)
            log.info(f"Unmount {volume_name} ... successful")
        return Response(status_code=204)
    except Exception as e:
        log.exception(f"Unmount {volume_name} ... failed")
        return JSONResponse(status_code=400, content={"detail": str(e)})
