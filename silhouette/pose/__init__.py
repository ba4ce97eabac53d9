"""
Pose estimation utilities.

This package defines the opaque Detector interface, the keypoint data model,
the MediaPipe adapter and the one-shot ModelLoader.
"""
