"""
Configuration settings for Gesture Blocks AR
"""

# Camera settings
CAMERA_CONFIG = {
    'default_camera_index': 0,
    'default_frame_width': 640,
    'default_frame_height': 480,
    'flip_horizontal': True  # Mirror effect for natural interaction
}

# Hand tracking settings (camera-based estimator)
HAND_TRACKING_CONFIG = {
    'static_image_mode': False,
    'max_num_hands': 1,
    'model_complexity': 1,  # 0-1, higher = more accurate but slower
    'min_detection_confidence': 0.6,
    'min_tracking_confidence': 0.5
}

# Gesture classification thresholds, relative to hand scale
GESTURE_CONFIG = {
    'min_hand_scale': 0.001,
    'pinch_threshold': 0.35,
    'pinch_strength_range': 0.4,
    'two_finger_threshold': 0.3,
    'open_palm_min_digits': 4,
    'tap_max_interval_ms': 220.0
}

# Gesture event engine settings
ENGINE_CONFIG = {
    'pinch_history_size': 12,
    'tap_cooldown_ms': 260.0
}

# Screen-to-world projection settings
PROJECTION_CONFIG = {
    'ndc_depth': 0.5,
    'parallel_epsilon': 1e-5,
    'camera_fov': 70.0,  # degrees, vertical
    'camera_near': 0.01,
    'camera_far': 20.0
}

# Block manipulation settings
MANIPULATION_CONFIG = {
    'move_lerp': 0.3,
    'rotate_slerp': 0.25,
    'min_scale': 0.3,
    'max_scale': 3.0,
    'min_normalized_distance': 0.01,
    'default_material': 'metal'
}

# Display settings
DISPLAY_CONFIG = {
    'show_landmarks': True,
    'show_gesture_info': True,
    'overlay_color': (255, 255, 255),
    'overlay_background': (0, 0, 0),
    'text_scale': 0.5,
    'text_thickness': 1
}
