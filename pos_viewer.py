# Copyright [2025] [ecki]
# SPDX-License-Identifier: Apache-2.0

# -*- coding: utf-8 -*-
"""
Image stacks for the bookmark viewer.
Loads 2D images, multi-page TIFFs (pages become Z slices) and numpy
arrays, and renders single planes or snapshot crops with Pillow.
"""
from pathlib import Path

import numpy as np
from PIL import Image, ImageSequence

from pos_navigator import window_origin
from pos_validator import ViewportBounds, clamp
from utils_error_handler import IOFailureError, InvalidFormatError


def to_uint8(plane):
    """Scale a plane into 0..255 for display"""
    if plane.dtype == np.uint8:
        return plane
    data = plane.astype(np.float64)
    low, high = float(np.nanmin(data)), float(np.nanmax(data))
    if high <= low:
        return np.zeros(plane.shape, dtype=np.uint8)
    scaled = (data - low) / (high - low) * 255.0
    return np.clip(scaled, 0, 255).astype(np.uint8)


class ImageStack:
    """
    A 4D image (T, Z, Y, X), optionally with a trailing RGB(A) channel axis.
    Z and T are addressed 1-based like the stored positions.
    """

    def __init__(self, data, title='untitled'):
        self.data = self._normalize(np.asarray(data))
        self.title = title

    @staticmethod
    def _normalize(data):
        has_channels = data.ndim >= 3 and data.shape[-1] in (3, 4)
        spatial = data.ndim - (1 if has_channels else 0)
        if spatial == 2:
            data = data[np.newaxis, np.newaxis, ...]
        elif spatial == 3:
            data = data[np.newaxis, ...]
        elif spatial != 4:
            raise InvalidFormatError(f"Unsupported image shape {data.shape}")
        return data

    @classmethod
    def from_file(cls, path):
        """Load an image file or .npy array"""
        path = Path(path)
        try:
            if path.suffix.lower() == '.npy':
                return cls(np.load(path), path.name)

            with Image.open(path) as img:
                planes = []
                for frame in ImageSequence.Iterator(img):
                    if frame.mode not in ('L', 'I', 'I;16', 'F', 'RGB', 'RGBA'):
                        frame = frame.convert('RGB')
                    planes.append(np.array(frame))
        except (OSError, ValueError) as e:
            raise IOFailureError("read", path, e) from e

        if len({p.shape for p in planes}) != 1:
            raise InvalidFormatError(f"Pages of {path.name} differ in size")
        return cls(np.stack(planes), path.name)

    @property
    def n_frames(self):
        return self.data.shape[0]

    @property
    def n_slices(self):
        return self.data.shape[1]

    @property
    def height(self):
        return self.data.shape[2]

    @property
    def width(self):
        return self.data.shape[3]

    def bounds(self):
        return ViewportBounds(self.width, self.height, self.n_slices, self.n_frames)

    def plane(self, z, t):
        z = clamp(z, 1, self.n_slices)
        t = clamp(t, 1, self.n_frames)
        return self.data[t - 1, z - 1]

    def plane_image(self, z, t):
        """PIL image of one Z/T plane, scaled to 8 bit"""
        return Image.fromarray(to_uint8(self.plane(z, t)))


def capture_snapshot(stack, record, size, path):
    """
    Save a PNG crop of ``size`` x ``size`` pixels centered on a record.

    The crop is kept inside the image, like the viewer window is.
    """
    width = min(size, stack.width)
    height = min(size, stack.height)
    x0, y0 = window_origin(record.x, record.y, (0, 0, width, height), stack.width, stack.height)
    crop = stack.plane(record.z, record.t)[y0:y0 + height, x0:x0 + width]
    Image.fromarray(to_uint8(crop)).save(str(path), format='PNG')
    return path
