"""Tests for the fit/transform engine."""

from __future__ import annotations

import itertools

import pytest
from PIL import Image

from riv.fit import clamp_pan, fit, make_frame, rotated_size, visible_region
from riv.types import DecodedImage, FitLimits, Rotation, ViewportSpec


def _decoded(img: Image.Image, path: str = "/imgs/x.png") -> DecodedImage:
    return DecodedImage(pixels=img, width=img.width, height=img.height, mode=img.mode, path=path)


class TestFit:
    def test_exact_fit(self):
        r = fit((400, 300), ViewportSpec(800, 600))
        assert r.scale == pytest.approx(2.0)
        assert (r.offset_x, r.offset_y) == (0.0, 0.0)

    def test_letterbox_is_centered(self):
        r = fit((400, 200), ViewportSpec(800, 600))
        assert r.scale == pytest.approx(2.0)
        assert r.offset_x == pytest.approx(0.0)
        assert r.offset_y == pytest.approx(100.0)

    def test_rotation_swaps_dimensions_before_scaling(self):
        r = fit((400, 200), ViewportSpec(800, 600, rotation=Rotation.DEG_90))
        assert r.scale == pytest.approx(1.5)
        assert r.offset_x == pytest.approx(250.0)
        assert r.offset_y == pytest.approx(0.0)
        assert rotated_size(400, 200, Rotation.DEG_270) == (200, 400)
        assert rotated_size(400, 200, Rotation.DEG_180) == (400, 200)

    def test_zoom_multiplies_fit_scale(self):
        r = fit((400, 300), ViewportSpec(800, 600, zoom=1.5))
        assert r.scale == pytest.approx(3.0)

    def test_scale_is_clamped(self):
        limits = FitLimits(min_scale=0.05, max_scale=4.0)
        assert fit((400, 300), ViewportSpec(800, 600, zoom=10.0), limits).scale == pytest.approx(4.0)
        assert fit((100_000, 100_000), ViewportSpec(10, 10, zoom=0.1), limits).scale == pytest.approx(0.05)

    def test_no_upscale_caps_at_one(self):
        limits = FitLimits(upscale=False)
        r = fit((100, 50), ViewportSpec(800, 600), limits)
        assert r.scale == pytest.approx(1.0)
        assert r.offset_x == pytest.approx(350.0)
        # Zoom still applies on top of the capped fit
        assert fit((100, 50), ViewportSpec(800, 600, zoom=2.0), limits).scale == pytest.approx(2.0)

    def test_resize_doubles_scale(self):
        small = fit((400, 300), ViewportSpec(800, 600))
        large = fit((400, 300), ViewportSpec(1600, 1200))
        assert large.scale == pytest.approx(small.scale * 2)

    def test_overflowing_image_becomes_pannable(self):
        vp = ViewportSpec(800, 600, zoom=2.0)  # scale 4 -> 1600x1200
        centered = fit((400, 300), vp)
        assert centered.offset_x == pytest.approx(-400.0)
        assert centered.offset_y == pytest.approx(-300.0)

        far_right = fit((400, 300), vp.with_pan(10_000, 0))
        assert far_right.offset_x == pytest.approx(0.0)
        far_left = fit((400, 300), vp.with_pan(-10_000, 0))
        assert far_left.offset_x == pytest.approx(-800.0)

    def test_pan_ignored_on_axis_that_fits(self):
        r = fit((400, 100), ViewportSpec(800, 600, zoom=1.0, pan_x=50, pan_y=50))
        assert r.offset_y == pytest.approx(200.0)

    def test_identical_inputs_identical_outputs(self):
        vp = ViewportSpec(1024, 768, zoom=2.5, rotation=Rotation.DEG_270, pan_x=13.0, pan_y=-7.0)
        assert fit((3000, 2000), vp) == fit((3000, 2000), vp)

    def test_never_zero_and_never_offscreen(self):
        sizes = [(1, 1), (1, 5000), (5000, 1), (640, 480), (4000, 3000)]
        viewports = [(1, 1), (320, 240), (1920, 1080)]
        zooms = [0.1, 1.0, 3.0, 16.0]
        pans = [(0.0, 0.0), (1e6, -1e6), (-1e6, 1e6)]
        for (iw, ih), (vw, vh), zoom, (px, py), rot in itertools.product(
                sizes, viewports, zooms, pans, list(Rotation)):
            vp = ViewportSpec(vw, vh, zoom=zoom, rotation=rot, pan_x=px, pan_y=py)
            r = fit((iw, ih), vp)
            rw, rh = rotated_size(iw, ih, rot)
            assert r.scale > 0
            # Some part of the image always overlaps the viewport
            assert r.offset_x < vw and r.offset_x + rw * r.scale > 0
            assert r.offset_y < vh and r.offset_y + rh * r.scale > 0


class TestClampPan:
    def test_fitting_image_has_no_pan(self):
        assert clamp_pan((400, 300), ViewportSpec(800, 600, pan_x=30, pan_y=-20)) == (0.0, 0.0)

    def test_pan_limited_to_overflow(self):
        vp = ViewportSpec(800, 600, zoom=2.0, pan_x=1e6, pan_y=-1e6)
        assert clamp_pan((400, 300), vp) == (pytest.approx(400.0), pytest.approx(-300.0))


class TestCompose:
    def test_canvas_matches_viewport(self):
        frame = make_frame(_decoded(Image.new("RGB", (300, 100), (255, 0, 0))), ViewportSpec(64, 48))
        canvas = frame.compose()
        assert canvas.size == (64, 48)
        assert canvas.mode == "RGB"

    def test_pixels_land_where_fit_says(self):
        img = Image.new("RGB", (2, 1))
        img.putpixel((0, 0), (255, 0, 0))
        img.putpixel((1, 0), (0, 0, 255))
        frame = make_frame(_decoded(img), ViewportSpec(4, 2))
        canvas = frame.compose(background=(0, 0, 0, 255), resample=Image.Resampling.NEAREST)
        assert canvas.getpixel((0, 0)) == (255, 0, 0)
        assert canvas.getpixel((3, 1)) == (0, 0, 255)

    def test_rotation_turns_clockwise(self):
        img = Image.new("RGB", (2, 1))
        img.putpixel((0, 0), (255, 0, 0))
        img.putpixel((1, 0), (0, 0, 255))
        frame = make_frame(_decoded(img), ViewportSpec(2, 4, rotation=Rotation.DEG_90))
        assert frame.display_size == (pytest.approx(2.0), pytest.approx(4.0))
        assert frame.offset == (pytest.approx(0.0), pytest.approx(0.0))
        canvas = frame.compose(resample=Image.Resampling.NEAREST)
        # Left pixel ends up on top after a clockwise quarter turn
        assert canvas.getpixel((0, 0)) == (255, 0, 0)
        assert canvas.getpixel((1, 1)) == (255, 0, 0)
        assert canvas.getpixel((0, 3)) == (0, 0, 255)

    def test_transparent_pixels_show_background(self):
        img = Image.new("RGBA", (4, 4), (255, 255, 255, 0))
        frame = make_frame(_decoded(img), ViewportSpec(4, 4))
        canvas = frame.compose(background=(10, 20, 30, 255))
        assert canvas.getpixel((1, 1)) == (10, 20, 30)

    def test_zoomed_region_only_covers_viewport(self):
        vp = ViewportSpec(100, 100, zoom=8.0)
        result = fit((1000, 1000), vp)
        region = visible_region(1000, 1000, result, vp)
        left, top, right, bottom = region.box
        # Only the central eighth of the source is resampled
        assert right - left <= 1000 // 8 + 2
        assert bottom - top <= 1000 // 8 + 2
        assert region.size[0] <= 100 + 16 and region.size[1] <= 100 + 16

    def test_compose_does_not_touch_source(self):
        img = Image.new("RGB", (10, 10), (1, 2, 3))
        decoded = _decoded(img)
        make_frame(decoded, ViewportSpec(30, 30, rotation=Rotation.DEG_180)).compose()
        assert decoded.pixels.size == (10, 10)
        assert decoded.pixels.getpixel((0, 0)) == (1, 2, 3)
