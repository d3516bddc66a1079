import numpy as np

from core.models import L_EYE, L_SHOULDER, NOSE, R_EYE, R_SHOULDER, PostureMetrics


def _point(landmarks, idx):
    if landmarks is None or idx >= len(landmarks):
        return None
    return landmarks[idx]


def inter_eye_distance(landmarks, frame_w, frame_h):
    # eye-to-eye distance in pixel space; grows as the face nears the camera
    l_eye, r_eye = _point(landmarks, L_EYE), _point(landmarks, R_EYE)
    if l_eye is None or r_eye is None:
        return None
    return float(np.hypot((l_eye.x - r_eye.x) * frame_w, (l_eye.y - r_eye.y) * frame_h))


def compute_metrics(landmarks, frame_w, frame_h):
    """
    Landmarks (normalized) -> PostureMetrics in pixels, or None if any of
    nose / eyes / shoulders is missing. Recomputed every frame.
    """
    nose = _point(landmarks, NOSE)
    l_sh, r_sh = _point(landmarks, L_SHOULDER), _point(landmarks, R_SHOULDER)
    eye_dist = inter_eye_distance(landmarks, frame_w, frame_h)
    if nose is None or l_sh is None or r_sh is None or eye_dist is None:
        return None

    shoulder_mid_x = (l_sh.x + r_sh.x) / 2.0
    return PostureMetrics(
        shoulder_diff_px=abs(l_sh.y - r_sh.y) * frame_h,
        head_offset_x=abs(nose.x - shoulder_mid_x) * frame_w,
        inter_eye_distance_px=eye_dist,
    )
