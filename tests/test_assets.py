import tempfile
import unittest
from pathlib import Path

import numpy as np
from PIL import Image

from poketerm.assets.loader import (
    background_mask,
    frame_duration_ms,
    image_to_sprite,
    load_animation,
    load_sprite,
)
from poketerm.assets.pokedex import POKEDEX_SIZE, POKEMON_NAMES, display_name, id_for, name_for
from poketerm.assets.registry import SpriteRegistry
from poketerm.errors import AssetError

CHARSET = "@%#*+=-:."


def square_image(size=(8, 6), box=(2, 1, 6, 5), background=(255, 255, 255), color=(220, 30, 30)):
    image = Image.new("RGB", size, background)
    for x in range(box[0], box[2]):
        for y in range(box[1], box[3]):
            image.putpixel((x, y), color)
    return image


class PokedexTests(unittest.TestCase):
    def test_table(self):
        self.assertEqual(len(POKEMON_NAMES), POKEDEX_SIZE)
        self.assertEqual(len(set(POKEMON_NAMES)), POKEDEX_SIZE)
        self.assertEqual(name_for(25), "pikachu")
        self.assertEqual(name_for(151), "mew")
        self.assertEqual(id_for(" Charmander "), 4)
        self.assertIsNone(id_for("agumon"))
        self.assertEqual(display_name(7), "SQUIRTLE")

    def test_out_of_range(self):
        with self.assertRaises(ValueError):
            name_for(0)
        with self.assertRaises(ValueError):
            name_for(152)


class ImageConversionTests(unittest.TestCase):
    def test_background_becomes_transparent(self):
        sprite = image_to_sprite(square_image(), CHARSET)

        expected = np.zeros((6, 8), dtype=bool)
        expected[1:5, 2:6] = True
        np.testing.assert_array_equal(sprite.opaque, expected)
        self.assertTrue(all(g in CHARSET for g in sprite.glyphs[sprite.opaque]))
        self.assertTrue((sprite.glyphs[~sprite.opaque] == " ").all())

    def test_enclosed_background_color_is_kept(self):
        # White hole inside the square is not reachable from the border
        image = square_image(size=(9, 9), box=(1, 1, 8, 8))
        image.putpixel((4, 4), (255, 255, 255))
        rgb = np.asarray(image, dtype=np.uint8)
        mask = background_mask(rgb)
        self.assertFalse(mask[4, 4])
        self.assertTrue(mask[0, 0])

    def test_brighter_pixels_use_earlier_glyphs(self):
        image = Image.new("RGB", (6, 3), (0, 0, 0))
        image.putpixel((2, 1), (30, 30, 30))
        image.putpixel((3, 1), (250, 250, 250))
        sprite = image_to_sprite(image, CHARSET)
        dark = CHARSET.index(sprite.glyphs[1, 2])
        light = CHARSET.index(sprite.glyphs[1, 3])
        self.assertGreater(dark, light)

    def test_frames_are_read_only(self):
        sprite = image_to_sprite(square_image(), CHARSET)
        with self.assertRaises(ValueError):
            sprite.glyphs[0, 0] = "x"

    def test_short_charset_rejected(self):
        with self.assertRaises(ValueError):
            image_to_sprite(square_image(), "@")


class FileLoadingTests(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        self.root = Path(self.tmpdir.name)

    def test_load_sprite_keeps_proportions(self):
        path = self.root / "square.png"
        square_image().save(path)

        sprite = load_sprite(path, height=6, aspect_ratio=1.5)

        self.assertEqual(sprite.height, 6)
        self.assertEqual(sprite.width, 12)

    def test_transparent_png_background(self):
        image = Image.new("RGBA", (8, 8), (0, 0, 0, 0))
        for x in range(2, 6):
            for y in range(2, 6):
                image.putpixel((x, y), (40, 200, 40, 255))
        path = self.root / "alpha.png"
        image.save(path)

        sprite = load_sprite(path, height=8, width=8)

        self.assertFalse(sprite.opaque[0, 0])
        self.assertTrue(sprite.opaque[3, 3])

    def test_load_animation(self):
        frames = [square_image(box=(0, 1, 3, 4)), square_image(box=(4, 1, 7, 4))]
        path = self.root / "anim.gif"
        frames[0].save(path, save_all=True, append_images=frames[1:], duration=80, loop=0)

        loaded = load_animation(path, height=6, width=8)

        self.assertEqual(len(loaded), 2)
        self.assertEqual(frame_duration_ms(path), 80.0)

    def test_broken_file_raises_asset_error(self):
        path = self.root / "broken.png"
        path.write_bytes(b"not an image")
        with self.assertRaises(AssetError):
            load_sprite(path, height=6)
        with self.assertRaises(AssetError):
            load_sprite(self.root / "missing.png", height=6)


class SpriteRegistryTests(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        self.assets = Path(self.tmpdir.name)
        (self.assets / "pokemon").mkdir()

    def test_loads_known_names_and_skips_the_rest(self):
        pokemon = self.assets / "pokemon"
        square_image().save(pokemon / "pikachu.png")
        square_image().save(pokemon / "agumon.png")
        (pokemon / "mew.png").write_bytes(b"broken")
        (pokemon / "notes.txt").write_text("hello")

        registry = SpriteRegistry.load(self.assets, height=6)

        self.assertEqual(registry.available_ids(), [25])
        self.assertIn(25, registry)
        self.assertIsNone(registry.get(151))
        self.assertEqual(registry.get(25).height, 6)

    def test_missing_directory_gives_empty_registry(self):
        registry = SpriteRegistry.load(self.assets / "nowhere")
        self.assertEqual(len(registry), 0)


if __name__ == "__main__":
    unittest.main()
