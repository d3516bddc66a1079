import mediapipe as mp

from core.models import Landmark

mp_pose = mp.solutions.pose


class Tracker:
    """MediaPipe Pose wrapper: RGB frame in, normalized landmark list (or None) out."""

    def __init__(self, min_detection_confidence=0.5, min_tracking_confidence=0.5):
        self.pose = mp_pose.Pose(
            static_image_mode=False, model_complexity=1,
            enable_segmentation=False,
            min_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )

    def process(self, frame_rgb):
        h, w = frame_rgb.shape[:2]
        pose_res = self.pose.process(frame_rgb)
        landmarks = None
        if pose_res.pose_landmarks:
            landmarks = [Landmark(lm.x, lm.y, lm.z) for lm in pose_res.pose_landmarks.landmark]
        return {"landmarks": landmarks, "size": (w, h)}

    def close(self):
        self.pose.close()
