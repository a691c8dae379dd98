"""Stereo frame helpers: normalize incoming audio to contiguous (n, 2) float32."""

import numpy as np


def as_stereo_frames(samples) -> np.ndarray:
    """Return `samples` as a contiguous float32 array of shape (n, 2).

    Accepts interleaved `[L, R, L, R, ...]` 1-D data, `(n, 2)` frames,
    `(2, n)` planar channels, or `(n, 1)` mono which is duplicated to both
    channels. A 1-D array is always treated as interleaved stereo.

    Frame-major layouts win when a 2-D shape fits both readings: `(2, 2)` is
    two stereo frames and `(2, 1)` is two mono frames, never one planar frame.
    """
    arr = np.asarray(samples, dtype=np.float32)
    if arr.ndim == 1:
        if arr.size % 2 != 0:
            raise ValueError("Interleaved stereo input must have an even number of samples")
        arr = arr.reshape(-1, 2)
    elif arr.ndim == 2:
        if arr.shape[1] == 2:
            pass
        elif arr.shape[1] == 1:
            arr = np.repeat(arr, 2, axis=1)
        elif arr.shape[0] == 2:
            arr = arr.T
        elif arr.shape[0] == 1:
            arr = np.repeat(arr.T, 2, axis=1)
        else:
            raise ValueError(f"Cannot interpret shape {arr.shape} as stereo frames")
    else:
        raise ValueError(f"Expected 1-D or 2-D audio, got {arr.ndim} dimensions")
    return np.ascontiguousarray(arr)


def mono_to_stereo(samples) -> np.ndarray:
    """Duplicate a 1-D mono signal to both channels."""
    mono = np.asarray(samples, dtype=np.float32).reshape(-1, 1)
    return np.ascontiguousarray(np.repeat(mono, 2, axis=1))
