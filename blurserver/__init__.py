"""Network box-blur server."""

from .blur import box_blur, coerce_radius, split_bands
from .errors import (
    AuditError,
    BindError,
    BlurServerError,
    DecodeError,
    EncodeError,
    ProcessingError,
    ProtocolError,
    SendError,
    StorageError,
    TransferIncomplete,
)
from .framing import receive_all, send_all
from .gateway import AuditLog, JobRecord, RadiusCell
from .image import Image, decode_png, encode_png
from .pipeline import Job, JobState
from .server import BlurServer, ServerStatus, start_server
from .settings import AppSettings, get_settings
from .storage import Workspace


__version__ = "0.1.0"

__all__ = [
    "AppSettings",
    "AuditError",
    "AuditLog",
    "BindError",
    "BlurServer",
    "BlurServerError",
    "DecodeError",
    "EncodeError",
    "Image",
    "Job",
    "JobRecord",
    "JobState",
    "ProcessingError",
    "ProtocolError",
    "RadiusCell",
    "SendError",
    "ServerStatus",
    "StorageError",
    "TransferIncomplete",
    "Workspace",
    "box_blur",
    "coerce_radius",
    "decode_png",
    "encode_png",
    "get_settings",
    "receive_all",
    "send_all",
    "split_bands",
    "start_server",
]
