"""
Reference client: send a PNG to a blur server and wait for the blurred reply.

Usage:
    python -m blurserver.client HOST PORT INPUT OUTPUT
"""

import logging
import socket
import sys
from pathlib import Path

import cv2
import numpy as np

from .errors import DecodeError, EncodeError
from .framing import MAX_FRAME_SIZE, receive_all, send_all


logger = logging.getLogger(__name__)


def request_blur(host: str, port: int, payload: bytes, timeout: float | None = None) -> bytes:
    """Send PNG bytes to the server and return the PNG bytes it replies with."""
    with socket.create_connection((host, port), timeout=timeout) as sock:
        send_all(sock, payload)
        logger.info("Image sent to %s:%d (%d bytes)", host, port, len(payload))
        return receive_all(sock, MAX_FRAME_SIZE)


def blur_array(host: str, port: int, image: np.ndarray, timeout: float | None = None) -> np.ndarray:
    """Blur an OpenCV BGR(A) array remotely; the reply comes back as a BGRA array."""
    ok, buffer = cv2.imencode(".png", image)
    if not ok:
        raise EncodeError("cannot encode image as PNG")
    reply = request_blur(host, port, buffer.tobytes(), timeout)
    blurred = cv2.imdecode(np.frombuffer(reply, np.uint8), cv2.IMREAD_UNCHANGED)
    if blurred is None:
        raise DecodeError("server reply is not an image")
    return blurred


def blur_file(host: str, port: int, input_path: Path, output_path: Path) -> Path:
    reply = request_blur(host, port, Path(input_path).read_bytes())
    output_path = Path(output_path)
    output_path.write_bytes(reply)
    logger.info("Blurred image saved as %s", output_path)
    return output_path


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 4:
        print("Usage: python -m blurserver.client HOST PORT INPUT OUTPUT", file=sys.stderr)
        return 2

    logging.basicConfig(level=logging.INFO, format="%(message)s")
    host, port, input_path, output_path = args
    blur_file(host, int(port), Path(input_path), Path(output_path))
    return 0


if __name__ == "__main__":
    sys.exit(main())
