"""Errors raised while serving blur jobs."""


class BlurServerError(Exception):
    """Base class for every failure the server knows how to contain."""


class ProtocolError(BlurServerError):
    """Frame header is malformed or declares an unacceptable length."""


class TransferIncomplete(BlurServerError):
    """Peer closed the stream before the declared length arrived."""

    def __init__(self, expected: int, received: int):
        super().__init__(f"stream closed after {received} of {expected} bytes")
        self.expected = expected
        self.received = received


class DecodeError(BlurServerError):
    """Payload bytes are not a readable image."""


class ProcessingError(BlurServerError):
    """Filtering did not complete."""


class EncodeError(BlurServerError):
    """Filtered image could not be serialised back to PNG."""


class SendError(BlurServerError):
    """Result frame could not be written to the peer."""


class StorageError(BlurServerError):
    """Image could not be written to the working directory."""


class AuditError(BlurServerError):
    """Job metadata could not be written to the audit sink."""


class BindError(BlurServerError):
    """Listening socket could not be opened."""
