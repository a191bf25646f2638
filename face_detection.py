"""
Face Landmark Detection Module
Uses MediaPipe FaceLandmarker (Tasks API) for 478-point normalized face mesh landmarks
"""

import logging
import os

import cv2
import mediapipe as mp
import numpy as np
import requests
from mediapipe.tasks import python as mp_tasks
from mediapipe.tasks.python import vision

import config


logger = logging.getLogger(__name__)


class FaceNotDetectedError(RuntimeError):
    """The detector found no face in the image."""


def download_model(path=config.FACE_MODEL_PATH, url=config.FACE_MODEL_URL, timeout=60):
    """Fetch the FaceLandmarker model file if it is not on disk yet"""
    if os.path.exists(path):
        return path

    logger.info("Downloading face landmarker model to %s", path)

    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    response = requests.get(url, timeout=timeout)
    response.raise_for_status()

    tmp_path = path + ".part"
    with open(tmp_path, "wb") as f:
        f.write(response.content)
    os.replace(tmp_path, path)

    return path


class FaceLandmarkDetector:

    def __init__(self, model_path: str = config.FACE_MODEL_PATH, landmarker=None):
        self.model_path = model_path
        self._landmarker = landmarker

    def _get_landmarker(self):
        if self._landmarker is None:
            download_model(self.model_path)

            options = vision.FaceLandmarkerOptions(
                base_options=mp_tasks.BaseOptions(model_asset_path=self.model_path),
                running_mode=vision.RunningMode.IMAGE,
                num_faces=1,
                output_face_blendshapes=False,
                output_facial_transformation_matrixes=False,
            )
            self._landmarker = vision.FaceLandmarker.create_from_options(options)
            logger.info("Face landmarker ready (%s)", self.model_path)

        return self._landmarker

    def detect_landmarks(self, image: np.ndarray) -> np.ndarray:
        """
        Detect face landmarks in a BGR image

        Args:
            image: BGR image (OpenCV format)

        Returns:
            (478, 3) float array of normalized x, y, z

        Raises:
            FaceNotDetectedError: if no face is found
        """
        if image is None or image.size == 0:
            raise FaceNotDetectedError("Image is empty")

        rgb_image = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=np.ascontiguousarray(rgb_image))

        result = self._get_landmarker().detect(mp_image)

        if not result.face_landmarks:
            raise FaceNotDetectedError(
                "No face detected - try a clearer photo with better lighting and face directly visible"
            )

        landmarks = landmarks_to_array(result.face_landmarks[0])
        logger.info("Detected %d landmarks", len(landmarks))

        return landmarks


def landmarks_to_array(face_landmarks) -> np.ndarray:
    return np.array(
        [(lm.x, lm.y, getattr(lm, "z", 0.0)) for lm in face_landmarks],
        dtype=np.float64,
    )
