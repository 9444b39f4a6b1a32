"""
Overlay renderer.

Draws a FusedFrame onto a display-sized canvas: skeleton, tracked zones
coloured by body-part group, hand landmarks with fingertips, targets,
fading collision markers, the info panel and recording status. Everything
is already in display space, so no mapping happens here apart from the
optional cover-fitted debug video underlay.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import cv2
import numpy as np

from bodytrack.core.types import (
    BODY_PART_GROUPS, FINGERTIP_INDICES, HAND_CONNECTIONS, SKELETON_CONNECTIONS,
    BodyPartGroup, FusedFrame, summarize_tracked_parts,
)
from bodytrack.tracking.coordinate_mapper import crop_to_viewport

logger = logging.getLogger(__name__)

# BGR
_GROUP_COLORS = {
    BodyPartGroup.HANDS: (0, 255, 0),
    BodyPartGroup.FEET: (255, 128, 0),
    BodyPartGroup.HEAD: (0, 255, 255),
    BodyPartGroup.JOINTS: (255, 0, 255),
    BodyPartGroup.CORE: (0, 165, 255),
}

_PART_GROUP = {
    part: group
    for group, parts in BODY_PART_GROUPS.items()
    for part, _ in parts
}


@dataclass
class OverlayConfig:
    """Overlay drawing settings."""
    show_skeleton: bool = True
    show_hands: bool = True
    show_info_panel: bool = True
    debug_video: bool = False
    min_confidence: float = 0.3

    # Colors (BGR format)
    background_color: Tuple[int, int, int] = (20, 20, 20)
    skeleton_color: Tuple[int, int, int] = (255, 255, 255)
    hand_color: Tuple[int, int, int] = (0, 200, 255)
    fingertip_color: Tuple[int, int, int] = (0, 0, 255)
    target_color: Tuple[int, int, int] = (200, 200, 0)
    hit_color: Tuple[int, int, int] = (0, 0, 255)
    text_color: Tuple[int, int, int] = (255, 255, 255)
    recording_color: Tuple[int, int, int] = (0, 0, 255)

    font_scale: float = 0.6
    font_thickness: int = 1

    @classmethod
    def from_dict(cls, config: dict) -> "OverlayConfig":
        return cls(
            show_skeleton=config.get("show_skeleton", True),
            show_hands=config.get("show_hands", True),
            show_info_panel=config.get("show_info_panel", True),
            debug_video=config.get("debug_video", False),
            min_confidence=float(config.get("min_confidence", 0.3)),
            font_scale=float(config.get("font_scale", 0.6)),
        )


class OverlayRenderer:
    """
    Renders fused frames for the demo window.

    Example:
        >>> renderer = OverlayRenderer(OverlayConfig())
        >>> canvas = renderer.render(fused, (1280, 720), fps=perf.fps)
        >>> cv2.imshow("bodytrack", canvas)
    """

    def __init__(self, config: Optional[OverlayConfig] = None):
        self.config = config or OverlayConfig()
        self._font = cv2.FONT_HERSHEY_SIMPLEX

    def toggle_info_panel(self) -> bool:
        self.config.show_info_panel = not self.config.show_info_panel
        return self.config.show_info_panel

    def toggle_debug_video(self) -> bool:
        self.config.debug_video = not self.config.debug_video
        return self.config.debug_video

    def render(self, fused: FusedFrame, viewport: Tuple[int, int],
               source_image: Optional[np.ndarray] = None,
               fps: float = 0.0, action_label: Optional[str] = None) -> np.ndarray:
        """
        Draw one fused frame.

        Args:
            fused: Display-space snapshot from the pipeline
            viewport: (width, height) of the canvas
            source_image: BGR camera frame, drawn underneath in debug mode
            fps: Current pipeline rate for the info panel
            action_label: Currently selected action

        Returns:
            BGR canvas of the viewport size
        """
        width, height = viewport
        canvas = np.full((height, width, 3), self.config.background_color, dtype=np.uint8)

        if self.config.debug_video and source_image is not None:
            self._draw_video(canvas, source_image, fused)

        for target in fused.targets:
            cv2.circle(canvas, (int(target.x), int(target.y)), int(target.radius),
                       self.config.target_color, 2)
            cv2.putText(canvas, target.id, (int(target.x - target.radius), int(target.y - target.radius - 6)),
                        self._font, 0.45, self.config.target_color, 1)

        if self.config.show_skeleton:
            self._draw_skeleton(canvas, fused)
        self._draw_zones(canvas, fused)
        if self.config.show_hands:
            self._draw_hands(canvas, fused)
        self._draw_collisions(canvas, fused)

        if self.config.show_info_panel:
            self._draw_info_panel(canvas, fused, fps, action_label)
        self._draw_status(canvas, fused)

        return canvas

    def _draw_video(self, canvas: np.ndarray, image: np.ndarray, fused: FusedFrame):
        """Cover-fit the source image into the canvas."""
        height, width = canvas.shape[:2]
        x0, y0, x1, y1 = crop_to_viewport(fused.render_state, width, height)
        if x1 <= x0 or y1 <= y0:
            return
        cropped = image[y0:y1, x0:x1]
        canvas[:, :] = cv2.resize(cropped, (width, height), interpolation=cv2.INTER_LINEAR)

    def _draw_skeleton(self, canvas: np.ndarray, fused: FusedFrame):
        points = {
            kp.name: (int(kp.x), int(kp.y))
            for kp in fused.keypoints
            if kp.is_confident(self.config.min_confidence)
        }
        for start, end in SKELETON_CONNECTIONS:
            if start in points and end in points:
                cv2.line(canvas, points[start], points[end], self.config.skeleton_color, 2)

    def _draw_zones(self, canvas: np.ndarray, fused: FusedFrame):
        for part, zone in fused.tracked_zones.items():
            color = _GROUP_COLORS.get(_PART_GROUP.get(part), self.config.skeleton_color)
            center = (int(zone.x), int(zone.y))
            cv2.circle(canvas, center, int(zone.radius), color, 2)
            cv2.circle(canvas, center, 4, color, -1)

    def _draw_hands(self, canvas: np.ndarray, fused: FusedFrame):
        for landmarks in fused.hands:
            pts = [(int(x), int(y)) for x, y in landmarks[:, :2]]
            for start, end in HAND_CONNECTIONS:
                cv2.line(canvas, pts[start], pts[end], self.config.hand_color, 2)
            for i, pt in enumerate(pts):
                if i in FINGERTIP_INDICES:
                    cv2.circle(canvas, pt, 6, self.config.fingertip_color, -1)
                else:
                    cv2.circle(canvas, pt, 3, self.config.hand_color, -1)

    def _draw_collisions(self, canvas: np.ndarray, fused: FusedFrame):
        for event, alpha in fused.recent_collisions:
            layer = canvas.copy()
            center = (int(event.x), int(event.y))
            cv2.circle(layer, center, 30, self.config.hit_color, -1)
            cv2.putText(layer, "HIT!", (center[0] - 22, center[1] - 36),
                        self._font, 0.8, self.config.hit_color, 2)
            cv2.addWeighted(layer, alpha * 0.6, canvas, 1 - alpha * 0.6, 0, canvas)

    def _draw_info_panel(self, canvas: np.ndarray, fused: FusedFrame,
                         fps: float, action_label: Optional[str]):
        """Semi-transparent panel listing tracked parts per group."""
        summary = summarize_tracked_parts(fused.tracked_zones)
        line_h = 20
        panel_h = 70 + line_h * sum(len(parts) for parts in summary.values())

        overlay = canvas.copy()
        cv2.rectangle(overlay, (0, 0), (230, panel_h), (0, 0, 0), -1)
        cv2.addWeighted(overlay, 0.6, canvas, 0.4, 0, canvas)

        y = 22
        cv2.putText(canvas, f"FPS: {fps:.1f}", (10, y), self._font,
                    self.config.font_scale, self.config.text_color, self.config.font_thickness)
        y += line_h
        hands_state = "on" if fused.hands_enabled else "off"
        cv2.putText(canvas, f"Hands model: {hands_state}", (10, y), self._font,
                    0.45, self.config.text_color, 1)
        y += line_h
        cv2.putText(canvas, f"Action: {action_label or '-'}", (10, y), self._font,
                    0.45, self.config.text_color, 1)

        for group, parts in summary.items():
            color = _GROUP_COLORS[group]
            for label, tracked in parts:
                y += line_h
                mark = "+" if tracked else "-"
                cv2.putText(canvas, f"{mark} {label}", (10, y), self._font, 0.45,
                            color if tracked else (110, 110, 110), 1)

    def _draw_status(self, canvas: np.ndarray, fused: FusedFrame):
        height, width = canvas.shape[:2]
        cv2.putText(canvas, fused.status_text, (10, height - 15), self._font,
                    self.config.font_scale, self.config.text_color, self.config.font_thickness)

        if fused.recording:
            cv2.circle(canvas, (width - 30, 30), 10, self.config.recording_color, -1)
            cv2.putText(canvas, f"REC {fused.recording_elapsed_sec:.1f}s", (width - 140, 36),
                        self._font, self.config.font_scale, self.config.recording_color, 2)
