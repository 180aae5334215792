"""
Coordinate mapping between pointer/device space and photo-pixel space.

Three frames are involved:

- device: raw pointer coordinates (logical input pixels, page-relative)
- viewport: device coordinates relative to the viewport origin, in device pixels
- photo: pixels of the source photo, (0, 0) at the top-left

``screen_to_image`` and ``image_to_screen`` are the only two mapping paths.
Mask drawing, hit-testing and overlay placement all go through them so the
forward and inverse transforms can never drift apart.
"""

from dataclasses import dataclass, replace

from loguru import logger


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Camera:
    """User pan/zoom of photo space inside the viewport."""
    scale: float = 1.0
    pan_x: float = 0.0
    pan_y: float = 0.0


@dataclass(frozen=True)
class ImageFit:
    """Offset/scale applied when the photo was fit into its container."""
    origin_x: float = 0.0
    origin_y: float = 0.0
    img_scale: float = 1.0


@dataclass(frozen=True)
class RoundTripReport:
    original: Point
    photo: Point
    round_trip: Point
    delta_x: float
    delta_y: float
    is_valid: bool


def _check_transform(camera: Camera, pixel_density: float, image_fit: ImageFit) -> None:
    if camera.scale <= 0:
        raise ValueError(f"camera.scale must be positive, got {camera.scale}")
    if image_fit.img_scale <= 0:
        raise ValueError(f"image_fit.img_scale must be positive, got {image_fit.img_scale}")
    if pixel_density <= 0:
        raise ValueError(f"pixel_density must be positive, got {pixel_density}")


def screen_to_image(
    device_point: Point,
    viewport_origin: Point,
    camera: Camera,
    pixel_density: float,
    image_fit: ImageFit,
) -> Point:
    """
    Map a pointer position to photo-pixel coordinates.

    Args:
        device_point: Pointer position in logical input pixels
        viewport_origin: Top-left of the viewport in the same frame as device_point
        camera: Current pan/zoom
        pixel_density: Device pixels per logical input pixel
        image_fit: Fit transform of the photo inside its container

    Returns:
        Point in photo-pixel space (not clamped to the photo extent)
    """
    _check_transform(camera, pixel_density, image_fit)

    # device -> viewport
    vx = (device_point.x - viewport_origin.x) * pixel_density
    vy = (device_point.y - viewport_origin.y) * pixel_density

    # viewport -> camera
    cx = (vx - camera.pan_x) / camera.scale
    cy = (vy - camera.pan_y) / camera.scale

    # camera -> photo
    px = (cx - image_fit.origin_x) / image_fit.img_scale
    py = (cy - image_fit.origin_y) / image_fit.img_scale

    return Point(px, py)


def image_to_screen(
    photo_point: Point,
    viewport_origin: Point,
    camera: Camera,
    pixel_density: float,
    image_fit: ImageFit,
) -> Point:
    """Exact inverse of ``screen_to_image``: photo pixels back to a pointer position."""
    _check_transform(camera, pixel_density, image_fit)

    # photo -> camera
    cx = photo_point.x * image_fit.img_scale + image_fit.origin_x
    cy = photo_point.y * image_fit.img_scale + image_fit.origin_y

    # camera -> viewport
    vx = cx * camera.scale + camera.pan_x
    vy = cy * camera.scale + camera.pan_y

    # viewport -> device
    dx = vx / pixel_density + viewport_origin.x
    dy = vy / pixel_density + viewport_origin.y

    return Point(dx, dy)


def debug_round_trip(
    device_point: Point,
    viewport_origin: Point,
    camera: Camera,
    pixel_density: float,
    image_fit: ImageFit,
) -> RoundTripReport:
    """Map a pointer position to the photo and back, reporting the drift."""
    photo = screen_to_image(device_point, viewport_origin, camera, pixel_density, image_fit)
    back = image_to_screen(photo, viewport_origin, camera, pixel_density, image_fit)

    delta_x = abs(device_point.x - back.x)
    delta_y = abs(device_point.y - back.y)

    return RoundTripReport(
        original=device_point,
        photo=photo,
        round_trip=back,
        delta_x=delta_x,
        delta_y=delta_y,
        is_valid=delta_x < 0.5 and delta_y < 0.5,
    )


def calculate_image_fit(
    img_w: float,
    img_h: float,
    container_w: float,
    container_h: float,
    padding: float = 0.98,
) -> ImageFit:
    """
    Fit a photo inside a container, centered, keeping its aspect ratio.

    Invalid dimensions give the identity fit.
    """
    if img_w <= 0 or img_h <= 0 or container_w <= 0 or container_h <= 0:
        logger.warning(
            f"[FIT] Invalid dimensions img={img_w}x{img_h} container={container_w}x{container_h}, "
            f"using identity fit"
        )
        return ImageFit()

    scale = min((container_w * padding) / img_w, (container_h * padding) / img_h)
    origin_x = (container_w - img_w * scale) / 2
    origin_y = (container_h - img_h * scale) / 2

    return ImageFit(origin_x=origin_x, origin_y=origin_y, img_scale=scale)


def zoom_at_point(camera: Camera, new_scale: float, center: Point) -> Camera:
    """
    Zoom to ``new_scale`` while keeping the viewport point ``center`` fixed.

    ``center`` is in viewport (device-pixel) coordinates.
    """
    if new_scale <= 0:
        raise ValueError(f"new_scale must be positive, got {new_scale}")
    ratio = new_scale / camera.scale
    return replace(
        camera,
        scale=new_scale,
        pan_x=center.x - (center.x - camera.pan_x) * ratio,
        pan_y=center.y - (center.y - camera.pan_y) * ratio,
    )
