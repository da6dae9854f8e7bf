"""
Length-prefixed frames

A frame is an 8-byte big-endian length followed by exactly that many payload bytes.
"""

import logging
import struct

from .errors import ProtocolError, SendError, TransferIncomplete


logger = logging.getLogger(__name__)

HEADER = struct.Struct(">q")
CHUNK_SIZE = 8 * 1024
MAX_FRAME_SIZE = 100 * 1024 * 1024


def _recv_exact(sock, length, chunk_size):
    data = bytearray()
    while len(data) < length:
        try:
            packet = sock.recv(min(chunk_size, length - len(data)))
        except OSError as exc:
            raise TransferIncomplete(length, len(data)) from exc
        if not packet:
            raise TransferIncomplete(length, len(data))
        data += packet
    return bytes(data)


def receive_all(sock, max_size: int = MAX_FRAME_SIZE, chunk_size: int = CHUNK_SIZE) -> bytes:
    """
    Read one frame from the socket and return its payload.

    Raises:
        ProtocolError: declared length is not in (0, max_size]; no payload is read
        TransferIncomplete: peer closed before the frame was complete
    """
    header = _recv_exact(sock, HEADER.size, HEADER.size)
    (length,) = HEADER.unpack(header)
    if length <= 0 or length > max_size:
        raise ProtocolError(f"invalid frame length: {length}")

    logger.debug("Receiving frame of %d bytes", length)
    return _recv_exact(sock, length, chunk_size)


def send_all(sock, payload: bytes) -> None:
    if not payload:
        raise ProtocolError("cannot send an empty frame")
    try:
        sock.sendall(HEADER.pack(len(payload)))
        sock.sendall(payload)
    except OSError as exc:
        raise SendError(f"failed to send {len(payload)} bytes: {exc}") from exc
    logger.debug("Sent frame of %d bytes", len(payload))
