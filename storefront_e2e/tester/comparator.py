"""Visual regression: pixel-level diffing of screenshots against baselines.

Provides :class:`VisualDiffer`, which compares an *actual* screenshot with an
approved *baseline* and reports how many pixels differ.  The per-pixel
distance is the YIQ perceptual colour delta used by ``pixelmatch``:

1. Semi-transparent pixels are blended over white.
2. Both colours are projected into YIQ space.
3. ``delta = 0.5053*dY^2 + 0.299*dI^2 + 0.1957*dQ^2``.
4. A pixel counts as different when ``delta > 35215 * threshold^2``.

``35215`` is the largest delta two colours can produce, so ``threshold=0``
flags every visible change and ``threshold=1`` tolerates everything.  The
delta only depends on squared differences, which makes the comparison
symmetric in its two images, and the cut-off grows with the threshold, so a
larger threshold never reports more differing pixels.

Each comparison produces an immutable :class:`DiffResult`.
"""

from __future__ import annotations

import io
from pathlib import Path, PurePosixPath
from typing import Optional, Protocol, Union

import numpy as np
from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel, ConfigDict, Field, computed_field

MAX_YIQ_DELTA = 35215.0

ImageSource = Union[Image.Image, bytes, bytearray]


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class VisualDiffError(Exception):
    """Base class for visual comparison failures."""


class DimensionMismatchError(VisualDiffError):
    """Raised when the two images do not share width and height."""

    def __init__(self, actual_size: tuple[int, int], baseline_size: tuple[int, int]) -> None:
        self.actual_size = actual_size
        self.baseline_size = baseline_size
        super().__init__(
            f"Image dimensions differ: actual {actual_size[0]}x{actual_size[1]}, "
            f"baseline {baseline_size[0]}x{baseline_size[1]}"
        )


class ImageDecodeError(VisualDiffError):
    """Raised when bytes cannot be decoded into a raster image."""


class BaselineNotFoundError(VisualDiffError):
    """Raised when the baseline store has no image under the requested name."""


# ---------------------------------------------------------------------------
# Result model
# ---------------------------------------------------------------------------


class DiffResult(BaseModel):
    """Outcome of a single comparison."""

    model_config = ConfigDict(frozen=True)

    differing_pixels: int = Field(..., ge=0)
    total_pixels: int = Field(..., ge=0)
    width: int = Field(default=0, ge=0)
    height: int = Field(default=0, ge=0)
    threshold: float = Field(default=0.1, ge=0.0, le=1.0)
    baseline_name: str = Field(default="", description="Store name of the baseline, if loaded by name")
    diff_path: Optional[str] = Field(default=None, description="Path to the generated diff image, if any")

    @computed_field  # type: ignore[misc]
    @property
    def diff_percentage(self) -> float:
        """Share of differing pixels in percent; 0 for an empty image."""
        if self.total_pixels == 0:
            return 0.0
        return self.differing_pixels / self.total_pixels * 100.0

    @computed_field  # type: ignore[misc]
    @property
    def identical(self) -> bool:
        return self.differing_pixels == 0


# ---------------------------------------------------------------------------
# Baseline storage
# ---------------------------------------------------------------------------


class BaselineStore(Protocol):
    """Anything that can hand out baseline image bytes by name."""

    def read_bytes(self, name: str) -> bytes: ...


class FileBaselineStore:
    """Baselines kept as files under a single directory."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def path_for(self, name: str) -> Path:
        root = self.root.resolve()
        candidate = (root / name).resolve()
        if candidate != root and root not in candidate.parents:
            raise BaselineNotFoundError(f"Baseline name escapes the baseline directory: {name!r}")
        return candidate

    def read_bytes(self, name: str) -> bytes:
        path = self.path_for(name)
        if not path.is_file():
            raise BaselineNotFoundError(f"Baseline image not found: {path}")
        return path.read_bytes()

    def write_bytes(self, name: str, data: bytes) -> Path:
        """Store *data* as the approved baseline *name*."""
        path = self.path_for(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return path


# ---------------------------------------------------------------------------
# Pixel helpers
# ---------------------------------------------------------------------------


def decode_image(data: bytes | bytearray) -> Image.Image:
    """Decode encoded image bytes (PNG, JPEG, ...) into an RGBA image."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            return img.convert("RGBA")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
        raise ImageDecodeError(f"Cannot decode image data ({len(data)} bytes): {exc}") from exc


def _as_image(source: ImageSource) -> Image.Image:
    if isinstance(source, Image.Image):
        return source
    if isinstance(source, (bytes, bytearray)):
        return decode_image(source)
    raise TypeError(f"Expected a PIL image or encoded bytes, got {type(source).__name__}")


def _rgba_array(img: Image.Image) -> np.ndarray:
    """Float copy of the pixels as an ``(h, w, 4)`` array; the image is untouched."""
    rgba = img if img.mode == "RGBA" else img.convert("RGBA")
    return np.asarray(rgba, dtype=np.float64).reshape(img.height, img.width, 4)


def _blend_over_white(pixels: np.ndarray) -> np.ndarray:
    """Composite RGBA pixels over a white background, returning RGB."""
    alpha = pixels[..., 3:4] / 255.0
    return 255.0 + (pixels[..., :3] - 255.0) * alpha


def _yiq(rgb: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]
    y = r * 0.29889531 + g * 0.58662247 + b * 0.11448223
    i = r * 0.59597799 - g * 0.27417610 - b * 0.32180189
    q = r * 0.21147017 - g * 0.52261711 + b * 0.31114694
    return y, i, q


def color_delta(actual: np.ndarray, baseline: np.ndarray) -> np.ndarray:
    """Per-pixel YIQ delta between two ``(h, w, 4)`` RGBA arrays."""
    y1, i1, q1 = _yiq(_blend_over_white(actual))
    y2, i2, q2 = _yiq(_blend_over_white(baseline))
    dy, di, dq = y1 - y2, i1 - i2, q1 - q2
    return 0.5053 * dy * dy + 0.299 * di * di + 0.1957 * dq * dq


def max_delta_for(threshold: float) -> float:
    """Largest delta still treated as "same colour" at *threshold*."""
    return MAX_YIQ_DELTA * threshold * threshold


def _diff_output_path(diff_dir: Path, name: str) -> Path:
    """``login/form.png`` -> ``<diff_dir>/login/form-diff.png``.

    The relative directories of *name* are kept so baselines sharing a stem
    do not overwrite each other's diff; absolute and ``..`` parts are dropped.
    """
    parts = [part for part in PurePosixPath(name.replace("\\", "/")).parts if part not in ("/", ".", "..")]
    if not parts:
        parts = ["diff"]
    stem = PurePosixPath(parts[-1]).stem
    return diff_dir.joinpath(*parts[:-1], f"{stem}-diff.png")


def _render_diff_image(actual: np.ndarray, mask: np.ndarray, output: Path) -> Path:
    """Write a diff image: red where pixels differ, faded greyscale elsewhere."""
    y, _, _ = _yiq(_blend_over_white(actual))
    faded = 255.0 + (y - 255.0) * 0.1
    canvas = np.empty(mask.shape + (4,), dtype=np.uint8)
    grey = np.clip(faded, 0, 255).astype(np.uint8)
    canvas[..., 0] = grey
    canvas[..., 1] = grey
    canvas[..., 2] = grey
    canvas[..., 3] = 255
    canvas[mask] = (255, 0, 0, 255)

    output.parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(canvas).save(str(output))
    return output


# ---------------------------------------------------------------------------
# VisualDiffer
# ---------------------------------------------------------------------------


class VisualDiffer:
    """Compare actual screenshots against baselines.

    Parameters
    ----------
    store:
        Where named baselines are read from.  Only needed for
        :meth:`compare_to_baseline` and name-based :meth:`compare` calls.
    default_threshold:
        Threshold used when a call does not pass one explicitly.
    diff_dir:
        When set, a diff image is written for every comparison that finds
        differing pixels.
    """

    def __init__(
        self,
        store: Optional[BaselineStore] = None,
        *,
        default_threshold: float = 0.1,
        diff_dir: Optional[str | Path] = None,
    ) -> None:
        self._check_threshold(default_threshold)
        self.store = store
        self.default_threshold = default_threshold
        self.diff_dir = Path(diff_dir) if diff_dir else None

    # -- Public API ----------------------------------------------------------

    def compare(
        self,
        actual: ImageSource,
        baseline: ImageSource | str,
        threshold: Optional[float] = None,
        *,
        diff_name: str = "",
    ) -> DiffResult:
        """Count the pixels where *actual* and *baseline* differ.

        *baseline* may be an image, encoded bytes, or the name of an image
        in the baseline store.

        Raises:
            DimensionMismatchError: widths or heights differ.
            ImageDecodeError: bytes could not be decoded.
            BaselineNotFoundError: a named baseline does not exist.
            ValueError: threshold outside ``[0, 1]``.
        """
        if isinstance(baseline, str):
            return self.compare_to_baseline(actual, baseline, threshold, diff_name=diff_name)

        effective = self.default_threshold if threshold is None else threshold
        self._check_threshold(effective)

        actual_img = _as_image(actual)
        baseline_img = _as_image(baseline)
        if actual_img.size != baseline_img.size:
            raise DimensionMismatchError(actual_img.size, baseline_img.size)

        width, height = actual_img.size
        total = width * height
        if total == 0:
            return DiffResult(
                differing_pixels=0, total_pixels=0, width=width, height=height, threshold=effective
            )

        actual_px = _rgba_array(actual_img)
        baseline_px = _rgba_array(baseline_img)
        # Exact matches short-circuit so identical pixels never count, even at threshold 0.
        changed = np.any(actual_px != baseline_px, axis=-1)
        mask = changed & (color_delta(actual_px, baseline_px) > max_delta_for(effective))
        differing = int(np.count_nonzero(mask))

        diff_path: Optional[str] = None
        if differing and self.diff_dir is not None:
            output = _diff_output_path(self.diff_dir, diff_name)
            diff_path = str(_render_diff_image(actual_px, mask, output))

        return DiffResult(
            differing_pixels=differing,
            total_pixels=total,
            width=width,
            height=height,
            threshold=effective,
            diff_path=diff_path,
        )

    def compare_to_baseline(
        self,
        actual: ImageSource,
        baseline_name: str,
        threshold: Optional[float] = None,
        *,
        diff_name: str = "",
    ) -> DiffResult:
        """Load *baseline_name* from the store, decode it, and compare."""
        baseline_img = self.load_baseline(baseline_name)
        result = self.compare(actual, baseline_img, threshold, diff_name=diff_name or baseline_name)
        return result.model_copy(update={"baseline_name": baseline_name})

    def load_baseline(self, name: str) -> Image.Image:
        if self.store is None:
            raise BaselineNotFoundError(f"No baseline store configured to resolve {name!r}")
        return decode_image(self.store.read_bytes(name))

    # -- Internal ------------------------------------------------------------

    @staticmethod
    def _check_threshold(threshold: float) -> None:
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"threshold must be within [0, 1], got {threshold}")
