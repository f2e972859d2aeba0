"""HTTP surface for FaceCloud."""
