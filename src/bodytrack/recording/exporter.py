"""
Writes serialized sessions to disk as `<sessionId>_data.bin` and
`<sessionId>_meta.json`.
"""

import os
import json
import logging
from typing import Tuple

from bodytrack.core.errors import SessionExportError
from bodytrack.core.types import SessionArtifacts, SessionMetadata

logger = logging.getLogger(__name__)


class SessionExporter:
    """Saves session artifacts into an output directory."""

    def __init__(self, output_dir: str = "data/sessions"):
        self._output_dir = output_dir

    @property
    def output_dir(self) -> str:
        return self._output_dir

    def save(self, artifacts: SessionArtifacts) -> Tuple[str, str]:
        """Write both artifacts.

        Returns:
            (data_path, meta_path)

        Raises:
            SessionExportError: directory or file could not be written
        """
        data_path = os.path.join(self._output_dir, artifacts.data_filename)
        meta_path = os.path.join(self._output_dir, artifacts.meta_filename)
        try:
            os.makedirs(self._output_dir, exist_ok=True)
            with open(data_path, "wb") as f:
                f.write(artifacts.data)
            with open(meta_path, "w") as f:
                json.dump(artifacts.metadata.to_dict(), f, indent=2)
        except (OSError, TypeError, ValueError) as e:
            raise SessionExportError(f"Failed to save {artifacts.session_id}: {e}") from e

        logger.info("Saved session %s -> %s", artifacts.session_id, self._output_dir)
        return data_path, meta_path

    @staticmethod
    def load(data_path: str, meta_path: str) -> Tuple[bytes, SessionMetadata]:
        """Read a saved session back (payload, metadata)."""
        with open(data_path, "rb") as f:
            data = f.read()
        with open(meta_path, "r") as f:
            metadata = SessionMetadata.from_dict(json.load(f))
        return data, metadata
