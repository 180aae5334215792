"""
sRGB <-> CIE L*a*b* conversion (D65 white point), vectorized over numpy arrays.

Inputs and outputs keep the trailing channel axis: ``(..., 3)``.
"""

import numpy as np

# D65 reference white
XN, YN, ZN = 0.95047, 1.0, 1.08883

_RGB_TO_XYZ = np.array([
    [0.4124, 0.3576, 0.1805],
    [0.2126, 0.7152, 0.0722],
    [0.0193, 0.1192, 0.9505],
], dtype=np.float64)

_XYZ_TO_RGB = np.array([
    [3.2406, -1.5372, -0.4986],
    [-0.9689, 1.8758, 0.0415],
    [0.0557, -0.2040, 1.0570],
], dtype=np.float64)

_EPSILON = 0.008856
_KAPPA_SLOPE = 7.787
_OFFSET = 16.0 / 116.0

# Rec. 709 luma weights, applied to gamma-encoded values
LUMA_WEIGHTS = np.array([0.2126, 0.7152, 0.0722], dtype=np.float32)


def srgb_to_linear(rgb: np.ndarray) -> np.ndarray:
    """Gamma-encoded [0, 1] -> linear [0, 1]."""
    return np.where(rgb <= 0.04045, rgb / 12.92, ((rgb + 0.055) / 1.055) ** 2.4)


def linear_to_srgb(lin: np.ndarray) -> np.ndarray:
    """Linear [0, 1] -> gamma-encoded [0, 1]. Input is clamped first."""
    lin = np.clip(lin, 0.0, 1.0)
    return np.where(lin <= 0.0031308, 12.92 * lin, 1.055 * np.power(lin, 1 / 2.4) - 0.055)


def _f(t: np.ndarray) -> np.ndarray:
    return np.where(t > _EPSILON, np.cbrt(t), _KAPPA_SLOPE * t + _OFFSET)


def _f_inv(t: np.ndarray) -> np.ndarray:
    t3 = t ** 3
    return np.where(t3 > _EPSILON, t3, (t - _OFFSET) / _KAPPA_SLOPE)


def srgb_to_lab(rgb: np.ndarray) -> np.ndarray:
    """
    Convert 8-bit sRGB values to L*a*b*.

    Args:
        rgb: array (..., 3) with values in [0, 255] (any numeric dtype)

    Returns:
        float64 array (..., 3) of (L, a, b)
    """
    lin = srgb_to_linear(np.asarray(rgb, dtype=np.float64) / 255.0)
    xyz = lin @ _RGB_TO_XYZ.T

    fx = _f(xyz[..., 0] / XN)
    fy = _f(xyz[..., 1] / YN)
    fz = _f(xyz[..., 2] / ZN)

    lab = np.empty_like(xyz)
    lab[..., 0] = 116.0 * fy - 16.0
    lab[..., 1] = 500.0 * (fx - fy)
    lab[..., 2] = 200.0 * (fy - fz)
    return lab


def lab_to_srgb(lab: np.ndarray) -> np.ndarray:
    """
    Convert L*a*b* back to 8-bit sRGB.

    Out-of-gamut colors are clamped in linear space before gamma encoding.

    Returns:
        uint8 array (..., 3)
    """
    lab = np.asarray(lab, dtype=np.float64)
    fy = (lab[..., 0] + 16.0) / 116.0
    fx = fy + lab[..., 1] / 500.0
    fz = fy - lab[..., 2] / 200.0

    xyz = np.stack([XN * _f_inv(fx), YN * _f_inv(fy), ZN * _f_inv(fz)], axis=-1)
    lin = xyz @ _XYZ_TO_RGB.T

    srgb = linear_to_srgb(lin)
    return np.clip(np.rint(srgb * 255.0), 0, 255).astype(np.uint8)


def luminance(rgba: np.ndarray) -> np.ndarray:
    """Rec. 709 luma of the RGB channels, float32 in [0, 255]."""
    rgb = rgba[..., :3].astype(np.float32)
    return rgb @ LUMA_WEIGHTS
