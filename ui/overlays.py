# tracked points + shoulder line + status/hint labels + countdown bar
import cv2

from core.models import L_SHOULDER, NOSE, R_SHOULDER, TRACKED_POINTS, Status

COLOR_POINT = (255, 191, 0)     # BGR
COLOR_SHOULDER = (201, 152, 4)
STATUS_COLORS = {               # BGR label fill
    Status.GOOD: (160, 230, 160),
    Status.BAD: (150, 150, 240),
    Status.TRANSITIONING_BAD: (140, 220, 245),
    Status.TRANSITIONING_GOOD: (140, 220, 245),
    Status.PAUSED: (140, 220, 245),
    Status.CALIBRATING: (245, 210, 160),
}
COLOR_LABEL_DEFAULT = (235, 235, 235)
FONT = cv2.FONT_HERSHEY_SIMPLEX


def draw_skeleton(frame_bgr, landmarks):
    if not landmarks:
        return frame_bgr
    h, w = frame_bgr.shape[:2]

    def P(i):
        lm = landmarks[i] if i < len(landmarks) else None
        return None if lm is None else (int(lm.x * w), int(lm.y * h))

    for i in TRACKED_POINTS:
        pt = P(i)
        if pt is not None:
            cv2.circle(frame_bgr, pt, 6 if i == NOSE else 4, COLOR_POINT, -1, cv2.LINE_AA)
    left, right = P(L_SHOULDER), P(R_SHOULDER)
    if left is not None and right is not None:
        cv2.line(frame_bgr, left, right, COLOR_SHOULDER, 3, cv2.LINE_AA)
    return frame_bgr


def draw_labels(frame_bgr, output, message, hints):
    img = frame_bgr.copy()
    fill = STATUS_COLORS.get(output.status, COLOR_LABEL_DEFAULT)

    cv2.rectangle(img, (10, 10), (10 + 300, 42), fill, -1)
    cv2.putText(img, message, (16, 34), FONT, 0.6, (30, 30, 30), 2, cv2.LINE_AA)

    y = 50
    for line in hints:
        cv2.rectangle(img, (10, y), (10 + 300, y + 26), (255, 255, 255), -1)
        cv2.putText(img, line, (16, y + 19), FONT, 0.5, (30, 30, 30), 1, cv2.LINE_AA)
        y += 30

    # countdown / hold progress
    if output.status in (Status.TRANSITIONING_BAD, Status.TRANSITIONING_GOOD,
                         Status.PAUSED, Status.CALIBRATING) and output.progress > 0:
        cv2.rectangle(img, (10, y + 4), (10 + 300, y + 12), (60, 60, 60), -1)
        cv2.rectangle(img, (10, y + 4), (10 + int(300 * output.progress), y + 12), fill, -1)

    return img
