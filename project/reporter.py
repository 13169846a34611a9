from log import getLogger


class ErrorWriter:
    """Leaves a message for the driver in a side file next to the socket.

    The driver is no longer connected once the socket is gone, so this
    file is the only way it learns why a mount never came up.
    """

    def __init__(self, path: str):
        self.path = path

    def write_msg(self, msg: str):
        log = getLogger()
        log.error(msg)
        try:
            with open(self.path, "w") as f:
                f.write(msg)
        except OSError:
            log.exception(f"Could not write error file {self.path}")

    def read_msg(self) -> str:
        try:
            with open(self.path) as f:
                return f.read()
        except FileNotFoundError:
            return ""
