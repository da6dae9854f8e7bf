"""
One blur job per connection

receive -> decode -> filter -> encode -> send -> record. Any failure before
recording aborts the job and nothing is sent back; a failed audit write only
leaves a gap in the history.
"""

import logging
import time
from enum import StrEnum

from .blur import box_blur
from .framing import CHUNK_SIZE, MAX_FRAME_SIZE, receive_all, send_all
from .gateway import AuditSink, JobRecord, RadiusSource
from .image import decode_png, encode_png
from .storage import Workspace


logger = logging.getLogger(__name__)


class JobState(StrEnum):
    AWAITING = "awaiting"
    RECEIVING = "receiving"
    DECODING = "decoding"
    FILTERING = "filtering"
    ENCODING = "encoding"
    SENDING = "sending"
    RECORDING = "recording"
    DONE = "done"
    ABORTED = "aborted"


TERMINAL_STATES = frozenset({JobState.DONE, JobState.ABORTED})


class Job:
    """Drives a single accepted connection through the blur pipeline."""

    def __init__(
        self,
        conn,
        radius_source: RadiusSource,
        audit_sink: AuditSink,
        workspace: Workspace,
        *,
        max_frame_size: int = MAX_FRAME_SIZE,
        chunk_size: int = CHUNK_SIZE,
        workers: int | None = None,
    ):
        self._conn = conn
        self._radius_source = radius_source
        self._audit_sink = audit_sink
        self._workspace = workspace
        self._max_frame_size = max_frame_size
        self._chunk_size = chunk_size
        self._workers = workers
        self.state = JobState.AWAITING
        self.history = [JobState.AWAITING]

    def _enter(self, state: JobState) -> None:
        self.state = state
        self.history.append(state)

    def run(self) -> JobRecord:
        """
        Run the job to a terminal state.

        Returns:
            The record of the finished job.

        Raises:
            BlurServerError: the job was aborted; state is ABORTED
        """
        if self.state is not JobState.AWAITING:
            raise RuntimeError(f"job already ran (state {self.state})")

        try:
            record = self._run()
        except Exception:
            self._enter(JobState.ABORTED)
            raise
        self._enter(JobState.DONE)
        return record

    def _run(self) -> JobRecord:
        self._enter(JobState.RECEIVING)
        payload = receive_all(self._conn, self._max_frame_size, self._chunk_size)
        original_path = self._workspace.save_original(payload)
        logger.info("Received %s (%d bytes)", original_path.name, len(payload))

        self._enter(JobState.DECODING)
        image = decode_png(payload)

        self._enter(JobState.FILTERING)
        radius = self._radius_source.get_current_radius()
        logger.info("Blurring %dx%d image with radius %d", image.width, image.height, radius)
        started = time.perf_counter()
        blurred = box_blur(image, radius, self._workers)
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        logger.info("Blur finished in %d ms", elapsed_ms)

        self._enter(JobState.ENCODING)
        encoded = encode_png(blurred)
        filtered_path = self._workspace.save_filtered(original_path, encoded)

        self._enter(JobState.SENDING)
        send_all(self._conn, encoded)
        logger.info("Sent %s (%d bytes)", filtered_path.name, len(encoded))

        self._enter(JobState.RECORDING)
        record = JobRecord(str(filtered_path), radius, elapsed_ms)
        try:
            self._audit_sink.append(record.path, record.radius, record.elapsed_ms)
        except Exception:
            logger.exception("Job for %s delivered but not recorded", filtered_path.name)
        return record
