"""
Tests for photo downscaling and the photo list.
"""

import io

import pytest
from PIL import Image

from photos import PhotoList, capture, decode_data_url, downscale, scaled_size
from tests.conftest import make_data_url, make_image


def _size_of(data_url):
    return Image.open(io.BytesIO(decode_data_url(data_url))).size


class TestDownscale:
    """Tests for decode + bound + re-encode."""

    @pytest.mark.parametrize("size", [(2048, 1536), (1536, 2048), (3001, 2000), (1025, 7)])
    def test_longer_edge_bounded(self, size):
        """Longer edge becomes 1024 and the aspect ratio holds within a pixel."""
        result = downscale(make_image(size))
        assert result.ok
        w, h = _size_of(result.data_url)
        assert max(w, h) == 1024
        assert (w, h) == (result.width, result.height)
        if size[0] >= size[1]:
            assert abs(h - size[1] * 1024 / size[0]) <= 1
        else:
            assert abs(w - size[0] * 1024 / size[1]) <= 1

    def test_small_image_not_upscaled(self):
        result = downscale(make_image((640, 480)))
        assert result.ok
        assert _size_of(result.data_url) == (640, 480)

    def test_accepts_data_url(self):
        result = downscale(make_data_url((2000, 1000)))
        assert result.ok
        assert result.data_url.startswith("data:image/jpeg;base64,")
        assert _size_of(result.data_url) == (1024, 512)

    def test_png_reencoded_as_jpeg(self):
        result = downscale(make_image((100, 50), fmt="PNG"))
        assert result.ok
        assert Image.open(io.BytesIO(decode_data_url(result.data_url))).format == "JPEG"

    def test_garbage_fails_explicitly(self):
        """Undecodable bytes give a failed result instead of raising."""
        result = downscale(b"definitely not an image")
        assert result.ok is False
        assert result.error
        assert result.data_url is None

    def test_bad_data_url(self):
        result = downscale("data:image/jpeg;base64,@@@")
        assert result.ok is False

    def test_not_a_data_url(self):
        assert downscale("http://example.com/rock.jpg").ok is False

    def test_capture_keeps_order_and_failures(self):
        results = capture([make_image((10, 10)), b"junk", make_image((20, 10))])
        assert [r.ok for r in results] == [True, False, True]
        assert [r.width for r in results] == [10, 0, 20]

    def test_scaled_size(self):
        assert scaled_size(4000, 3000) == (1024, 768)
        assert scaled_size(500, 400) == (500, 400)


class TestPhotoList:
    """Tests for ordering and the active index."""

    def test_empty_has_no_active(self):
        photos = PhotoList()
        assert photos.active is None
        assert photos.active_photo is None

    def test_first_add_activates(self):
        photos = PhotoList()
        photos.add(["a", "b"])
        assert photos.photos == ["a", "b"]
        assert photos.active == 0

    def test_add_keeps_active(self):
        photos = PhotoList(["a", "b"], active=1)
        photos.add(["c"])
        assert photos.active == 1
        assert photos.photos == ["a", "b", "c"]

    def test_make_primary_moves_to_front(self):
        photos = PhotoList(["a", "b", "c"])
        photos.make_primary(2)
        assert photos.photos == ["c", "a", "b"]
        assert photos.active == 0

    def test_remove_clamps_active(self):
        photos = PhotoList(["a", "b", "c"], active=2)
        photos.remove(2)
        assert photos.photos == ["a", "b"]
        assert photos.active == 1
        photos.remove(0)
        assert photos.active == 0
        photos.remove(0)
        assert photos.active is None

    def test_remove_after_active_keeps_active(self):
        photos = PhotoList(["a", "b", "c"], active=0)
        photos.remove(2)
        assert photos.active == 0

    def test_out_of_range(self):
        photos = PhotoList(["a"])
        with pytest.raises(IndexError):
            photos.select(3)
        with pytest.raises(IndexError):
            photos.remove(-1)

    def test_invalid_initial_active_resets(self):
        assert PhotoList(["a"], active=5).active == 0
