import random
import unittest

from poketerm.animation.particles import PARTICLE_DEPTH, Particle, ParticleStream
from poketerm.graphics.buffers import FrameBuffers


class ParticleTests(unittest.TestCase):
    def test_particle_moves_and_expires(self):
        particle = Particle(x=0.0, y=0.0, vx=10.0, vy=-5.0, lifetime=300.0)
        particle.update(100.0)
        self.assertAlmostEqual(particle.x, 1.0)
        self.assertAlmostEqual(particle.y, -0.5)
        self.assertTrue(particle.active)

        particle.update(200.0)
        self.assertTrue(particle.is_dead)
        self.assertFalse(particle.active)


class ParticleStreamTests(unittest.TestCase):
    def make_stream(self, **kwargs):
        kwargs.setdefault("rng", random.Random(1))
        return ParticleStream(source=(0.0, 0.0, 4.0, 4.0), target=(10.0, 40.0), **kwargs)

    def test_every_particle_reaches_the_target(self):
        stream = self.make_stream(rate=0.0)
        stream.emit(5)

        for _ in range(30):
            stream.update(100.0)

        self.assertEqual(stream.absorbed, 5)
        self.assertEqual(stream.get_active_count(), 0)

    def test_emission_follows_rate(self):
        stream = self.make_stream(rate=20.0)
        stream.set_target(100.0, 1000.0)
        stream.update(100.0)
        self.assertEqual(stream.get_active_count(), 2)
        stream.update(25.0)
        self.assertEqual(stream.get_active_count(), 2)
        stream.update(25.0)
        self.assertEqual(stream.get_active_count(), 3)

    def test_particles_draw_between_sphere_and_sprite(self):
        buffers = FrameBuffers(10, 5)
        buffers.write(1, 1, "S", None, 1000.0)
        buffers.write(2, 2, "@", None, 4.0)

        stream = self.make_stream(rate=0.0)
        stream.particles = [Particle(x=1.0, y=1.0, glyph="*"), Particle(x=2.0, y=2.0, glyph="*")]
        stream.draw(buffers)

        self.assertEqual(buffers.glyphs[1, 1], "*")
        self.assertEqual(buffers.depth[1, 1], PARTICLE_DEPTH)
        self.assertEqual(buffers.glyphs[2, 2], "@")


if __name__ == "__main__":
    unittest.main()
