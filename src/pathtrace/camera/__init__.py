"""Camera module for view and ray generation.

Components:
    thin_lens: Look-at camera with a finite aperture (depth of field).
        An aperture of zero gives a pinhole camera.

Camera responsibilities:
    - Transform (s, t) image coordinates to world-space rays
    - Apply sub-pixel jitter for anti-aliasing
    - Sample the lens disk for defocus blur

Ray generation uses normalized image coordinates:
    s in [0, 1]: left to right across image
    t in [0, 1]: bottom to top across image

Random state is passed explicitly to every ray generation function, so
the rays for a pixel sample depend only on that sample's stream.
"""

from .thin_lens import (
    ThinLensCamera,
    get_camera_info,
    get_ray,
    get_ray_jittered,
    is_camera_initialized,
    reset_camera,
    setup_camera,
)

__all__ = [
    "ThinLensCamera",
    "setup_camera",
    "is_camera_initialized",
    "reset_camera",
    "get_ray",
    "get_ray_jittered",
    "get_camera_info",
]
