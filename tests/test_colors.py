import unittest

import numpy as np

from poketerm.graphics.ansi import CURSOR_HOME, RESET, encode_frame, encode_row, sgr
from poketerm.graphics.buffers import FrameBuffers
from poketerm.graphics.colors import (
    ColorProfile,
    degrade,
    detect_color_profile,
    rgb_to_ansi256,
    rgb_to_ansi256_array,
)
from poketerm.graphics.compositor import Compositor


class Ansi256Tests(unittest.TestCase):
    def test_cube_corners(self):
        self.assertEqual(rgb_to_ansi256((0, 0, 0)), 16)
        self.assertEqual(rgb_to_ansi256((255, 0, 0)), 196)
        self.assertEqual(rgb_to_ansi256((255, 255, 255)), 231)

    def test_grays_use_gray_ramp(self):
        self.assertEqual(rgb_to_ansi256((128, 128, 128)), 244)
        self.assertEqual(rgb_to_ansi256((8, 8, 8)), 232)

    def test_array_matches_scalar(self):
        colors = np.array([[[220, 40, 40], [70, 70, 70]], [[250, 250, 250], [1, 2, 3]]], dtype=np.uint8)
        codes = rgb_to_ansi256_array(colors)
        self.assertEqual(codes.shape, (2, 2))
        for (r, c), code in np.ndenumerate(codes):
            self.assertEqual(code, rgb_to_ansi256(tuple(colors[r, c])))

    def test_degrade(self):
        self.assertEqual(degrade((1, 2, 3), ColorProfile.TRUECOLOR), (1, 2, 3))
        self.assertEqual(degrade((255, 0, 0), ColorProfile.ANSI256), 196)
        self.assertIsNone(degrade((255, 0, 0), ColorProfile.MONO))
        self.assertIsNone(degrade(None, ColorProfile.TRUECOLOR))


class ProfileDetectionTests(unittest.TestCase):
    def test_no_color_means_mono(self):
        self.assertIs(detect_color_profile({"NO_COLOR": "1", "COLORTERM": "truecolor"}), ColorProfile.MONO)
        self.assertIs(detect_color_profile({"TERM": "dumb"}), ColorProfile.MONO)

    def test_colorterm_truecolor(self):
        self.assertIs(detect_color_profile({"COLORTERM": "24bit"}), ColorProfile.TRUECOLOR)

    def test_fallback_is_ansi256(self):
        self.assertIs(detect_color_profile({"TERM": "xterm-256color"}), ColorProfile.ANSI256)
        self.assertIs(detect_color_profile({}), ColorProfile.ANSI256)

    def test_from_name(self):
        self.assertIs(ColorProfile.from_name("mono"), ColorProfile.MONO)
        self.assertIs(ColorProfile.from_name("auto", {"COLORTERM": "truecolor"}), ColorProfile.TRUECOLOR)
        with self.assertRaises(ValueError):
            ColorProfile.from_name("sixteen")


class AnsiEncodingTests(unittest.TestCase):
    def test_sgr_forms(self):
        self.assertEqual(sgr((1, 2, 3)), "\x1b[38;2;1;2;3m")
        self.assertEqual(sgr(196), "\x1b[38;5;196m")
        self.assertEqual(sgr(None), RESET)

    def test_color_emitted_only_on_change(self):
        red = (255, 0, 0)
        encoded = encode_row("ab c", [red, red, None, red])
        self.assertEqual(encoded.count("\x1b[38;2;255;0;0m"), 1)
        self.assertTrue(encoded.endswith(RESET))

    def test_uncolored_row_has_no_codes(self):
        self.assertEqual(encode_row("abc", [None, None, None]), "abc")

    def test_frame_encoding(self):
        buffers = FrameBuffers(4, 2)
        buffers.write(0, 0, "x", (255, 0, 0), 1.0)
        frame = Compositor(ColorProfile.MONO).resolve(buffers)
        encoded = encode_frame(frame)
        self.assertTrue(encoded.startswith(CURSOR_HOME))
        self.assertEqual(encoded[len(CURSOR_HOME):], "x   \r\n    ")


if __name__ == "__main__":
    unittest.main()
