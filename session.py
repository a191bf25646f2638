"""
Try-On Session Module
Owns one base photo, its cached landmarks and the user's selection, and
publishes render results in request order
"""

import itertools
import logging
import threading
from typing import Optional

import numpy as np

from makeup_application import CompositeRequest, CompositeResult, MakeupCompositor
from selection import SelectionState


logger = logging.getLogger(__name__)


class TryOnSession:
    """
    Re-renders the whole preview from the untouched base image on every
    state change.

    Landmark detection runs at most once per base image and may finish after
    renders have started; until it does, renders use the whole-frame fallback.
    A render result older than the newest published one is dropped.
    """

    def __init__(self, base_image, compositor=None, selection=None, detector=None):
        self.compositor = compositor if compositor is not None else MakeupCompositor()
        self.selection = selection if selection is not None else SelectionState(self.compositor.catalog)
        self.detector = detector

        self._lock = threading.Lock()
        self._sequence = itertools.count(1)
        self._image_tokens = itertools.count(1)
        self._latest: Optional[CompositeResult] = None
        self._detection = None
        self._last_issued = 0
        self._floor = 0

        self._set_base(base_image)

    def _set_base(self, base_image):
        base = np.array(base_image, dtype=np.uint8, copy=True)
        if base.ndim != 3 or base.shape[2] != 3:
            raise ValueError("Base image must be a 3-channel BGR array")
        base.setflags(write=False)

        self._base_image = base
        self._image_token = next(self._image_tokens)
        self._landmarks = None
        self._detection = None
        self._latest = None
        # renders issued for a previous photo are never published
        self._floor = self._last_issued

    @property
    def base_image(self):
        return self._base_image

    @property
    def image_token(self):
        return self._image_token

    @property
    def landmarks(self):
        return self._landmarks

    @property
    def has_landmarks(self):
        return self._landmarks is not None

    @property
    def latest_result(self) -> Optional[CompositeResult]:
        return self._latest

    def replace_image(self, base_image):
        """Start over with a new photo; selection and intensity are kept"""
        with self._lock:
            self._set_base(base_image)

    def set_landmarks(self, landmarks, image_token=None):
        """
        Store the landmark set for the current photo

        Returns False when the landmarks belong to a photo that has since
        been replaced.
        """
        with self._lock:
            if image_token is not None and image_token != self._image_token:
                logger.info("Discarding landmarks for replaced image %d", image_token)
                return False

            points = np.array(landmarks, dtype=np.float64, copy=True)
            points.setflags(write=False)
            self._landmarks = points
            return True

    def start_detection(self, executor):
        """
        Submit landmark detection for the current photo

        Args:
            executor: concurrent.futures executor to run the detector on

        Returns:
            The detection future, or None when there is no detector
        """
        if self.detector is None:
            return None

        with self._lock:
            if self._detection is not None:
                return self._detection
            if self._landmarks is not None:
                return None

            token = self._image_token
            image = self._base_image
            self._detection = executor.submit(self._detect, image, token)
            return self._detection

    def _detect(self, image, token):
        try:
            landmarks = self.detector.detect_landmarks(image)
        except Exception as e:
            logger.warning("Landmark detection failed, using approximate preview: %s", e)
            return False

        stored = self.set_landmarks(landmarks, image_token=token)
        if stored:
            logger.info("Landmarks ready (%d points)", len(landmarks))
        return stored

    @property
    def detection_pending(self):
        return self._detection is not None and not self._detection.done()

    def snapshot(self) -> CompositeRequest:
        with self._lock:
            self._last_issued = next(self._sequence)
            return CompositeRequest(
                base_image=self._base_image,
                landmarks=self._landmarks,
                selection=self.selection.current(),
                intensity=self.selection.intensity,
                sequence=self._last_issued,
            )

    def render(self) -> CompositeResult:
        """Composite the current state and publish it; returns the newest result"""
        request = self.snapshot()
        result = self.compositor.composite(request)
        return self.publish(result)

    def submit_render(self, executor):
        request = self.snapshot()
        return executor.submit(lambda: self.publish(self.compositor.composite(request)))

    def publish(self, result: CompositeResult) -> CompositeResult:
        with self._lock:
            if result.sequence <= self._floor:
                logger.debug("Dropping render %d for a replaced image", result.sequence)
                return self._latest
            if self._latest is not None and result.sequence < self._latest.sequence:
                logger.debug(
                    "Dropping stale render %d (latest %d)", result.sequence, self._latest.sequence
                )
                return self._latest

            self._latest = result
            return result
