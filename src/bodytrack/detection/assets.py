"""
Model asset download for the MediaPipe Tasks backends.

Models are cached per user: under $BODYTRACK_MODELS_DIR when it is set,
else ~/.cache/bodytrack/models.
"""

import os
import logging
import urllib.request
from pathlib import Path

logger = logging.getLogger(__name__)

MODELS_ENV_VAR = "BODYTRACK_MODELS_DIR"


def default_models_dir() -> Path:
    """Directory that holds downloaded `.task` models."""
    override = os.environ.get(MODELS_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".cache" / "bodytrack" / "models"


MODELS_DIR = default_models_dir()

POSE_LANDMARKER_MODEL_URL = (
    "https://storage.googleapis.com/mediapipe-models/pose_landmarker/"
    "pose_landmarker_full/float16/1/pose_landmarker_full.task"
)
HAND_LANDMARKER_MODEL_URL = (
    "https://storage.googleapis.com/mediapipe-models/hand_landmarker/"
    "hand_landmarker/float16/1/hand_landmarker.task"
)


def ensure_model(model_path: str, url: str) -> Path:
    """Return the model path, downloading it first if it is missing.

    Raises:
        OSError: the model is absent and could not be downloaded
    """
    path = Path(model_path)
    if path.exists():
        logger.debug("Model already present at %s", path)
        return path

    path.parent.mkdir(parents=True, exist_ok=True)
    logger.info("Downloading model to %s ...", path)
    urllib.request.urlretrieve(url, path)
    logger.info("Model download complete: %s", path.name)
    return path
