import io

import pytest
from PIL import Image

from xmasmagic import preprocess
from xmasmagic.exceptions import ImageLoadError, NoRenderingContext
from xmasmagic.preprocess import (
    INITIAL_QUALITY,
    MIN_QUALITY,
    compute_target_size,
    prepare_image,
)
from xmasmagic.utils import decode_data_url


def _decode(data_url: str) -> Image.Image:
    assert data_url.startswith("data:image/jpeg;base64,")
    img = Image.open(io.BytesIO(decode_data_url(data_url)))
    img.load()
    return img


@pytest.mark.parametrize(
    "original, expected",
    [
        ((800, 600), (800, 600)),
        ((5000, 2500), (4096, 2048)),
        ((2500, 5000), (2048, 4096)),
        ((6000, 6000), (4096, 4096)),
        ((4097, 100), (4096, 100)),
        ((10, 10), (15, 15)),
        ((8000, 200), (4096, 102)),
        ((20000, 100), (4096, 20)),
        ((30000, 100), (4096, 15)),
    ],
)
def test_compute_target_size(original, expected):
    assert compute_target_size(*original) == expected


def test_prepare_image_returns_jpeg_data_url(make_image):
    img = _decode(prepare_image(make_image(size=(64, 48))))
    assert img.format == "JPEG"
    assert img.size == (64, 48)


def test_prepare_image_enforces_minimum_side(make_image):
    img = _decode(prepare_image(make_image(size=(10, 4))))
    assert img.size == (15, 15)


def test_prepare_image_downscales_large_images(make_image):
    img = _decode(prepare_image(make_image(size=(5000, 1000))))
    assert img.size == (4096, 819)


def test_prepare_image_flattens_transparency_onto_white(make_image):
    source = make_image(size=(32, 32), color=(0, 0, 0, 0), mode="RGBA")
    img = _decode(prepare_image(source))
    assert img.mode == "RGB"
    r, g, b = img.getpixel((16, 16))
    assert min(r, g, b) >= 250


def test_prepare_image_accepts_paths_and_files(make_image, tmp_path):
    path = tmp_path / "photo.png"
    path.write_bytes(make_image())
    assert prepare_image(path).startswith("data:image/jpeg")
    assert prepare_image(str(path)).startswith("data:image/jpeg")
    with path.open("rb") as fh:
        assert prepare_image(fh).startswith("data:image/jpeg")


def test_prepare_image_steps_quality_down_to_floor(make_image, monkeypatch):
    qualities = []
    original = preprocess.encode_data_url

    def recording(img, quality):
        qualities.append(quality)
        return original(img, quality)

    monkeypatch.setattr(preprocess, "encode_data_url", recording)
    result = prepare_image(make_image(), max_length=10)
    assert qualities == list(range(INITIAL_QUALITY, MIN_QUALITY - 1, -10))
    assert qualities[-1] == MIN_QUALITY
    # Still oversized, but returned anyway.
    assert len(result) > 10


def test_prepare_image_stops_once_small_enough(make_image, monkeypatch):
    qualities = []
    original = preprocess.encode_data_url

    def recording(img, quality):
        qualities.append(quality)
        return original(img, quality)

    monkeypatch.setattr(preprocess, "encode_data_url", recording)
    prepare_image(make_image())
    assert qualities == [INITIAL_QUALITY]


@pytest.mark.parametrize("source", [b"definitely not an image", b""])
def test_prepare_image_rejects_undecodable_bytes(source):
    with pytest.raises(ImageLoadError, match="failed to load image"):
        prepare_image(source)


def test_prepare_image_rejects_missing_file(tmp_path):
    with pytest.raises(ImageLoadError):
        prepare_image(tmp_path / "missing.jpg")


def test_prepare_image_reports_missing_canvas(make_image, monkeypatch):
    source = make_image()

    def no_canvas(*args, **kwargs):
        raise MemoryError("no memory for canvas")

    monkeypatch.setattr(preprocess.Image, "new", no_canvas)
    with pytest.raises(NoRenderingContext):
        prepare_image(source)
